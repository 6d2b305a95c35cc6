from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Protocol

from localedesk.ai_translate import AITranslator
from localedesk.config import Settings
from localedesk.errors import DomainError, MissingCredential, PartialFailureError
from localedesk.google_translate import GoogleTranslateProvider

logger = logging.getLogger(__name__)


class TranslationProvider(Protocol):
    def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
        credential: str,
    ) -> str: ...


@dataclass
class TranslationResult:
    translations: Dict[str, str] = field(default_factory=dict)
    success: bool = False
    error: Optional[str] = None
    failures: PartialFailureError = field(default_factory=PartialFailureError)

    def as_dict(self) -> dict:
        return {
            "translations": dict(self.translations),
            "success": self.success,
            "error": self.error,
            "failures": dict(self.failures.failures),
        }


def build_provider(settings: Settings) -> TranslationProvider:
    if settings.translator_provider == "openai":
        if not settings.ai_model:
            raise RuntimeError("LOCALEDESK_AI_MODEL must be set for the openai provider.")
        return AITranslator(
            base_url=settings.ai_base_url,
            model=settings.ai_model,
            timeout=settings.translator_timeout,
        )
    if settings.translator_provider != "google":
        raise RuntimeError(f"Unknown translator provider: {settings.translator_provider}")
    return GoogleTranslateProvider(
        url=settings.google_translate_url,
        timeout=settings.translator_timeout,
    )


class AutoTranslateGateway:
    """Fans one source text out to target languages, one provider call each.

    Never raises: a missing credential or per-language provider failure is
    reported on the returned ``TranslationResult``.
    """

    def __init__(self, provider: TranslationProvider) -> None:
        self.provider = provider

    def translate(
        self,
        source_language: str,
        target_languages: Iterable[str],
        text: str,
        credential: Optional[str] = None,
    ) -> TranslationResult:
        result = TranslationResult(translations={source_language: text})
        secret = (credential or "").strip()
        if not secret:
            result.error = MissingCredential().message
            return result
        if not (text or "").strip():
            result.error = "Nothing to translate."
            return result

        for target in target_languages:
            if target == source_language or target in result.translations:
                continue
            try:
                translated = self.provider.translate(text, source_language, target, secret)
            except DomainError as exc:
                logger.exception("Auto-translate failed %s -> %s", source_language, target)
                result.failures.add(target, exc.message)
                continue
            except Exception as exc:
                logger.exception("Auto-translate failed %s -> %s", source_language, target)
                result.failures.add(target, str(exc) or type(exc).__name__)
                continue
            if translated:
                result.translations[target] = translated
                result.success = True
            else:
                result.failures.add(target, "Empty translation returned.")

        if result.failures and not result.success:
            result.error = "; ".join(
                f"{lang}: {message}" for lang, message in result.failures.failures.items()
            )
        return result

    def test_credential(self, credential: Optional[str]) -> TranslationResult:
        return self.translate("en", ["fr"], "Hello", credential=credential)
