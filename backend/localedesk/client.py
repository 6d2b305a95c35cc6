from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Iterable, Mapping, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000/api/translations"


def interpolate(text: str, params: Mapping[str, object]) -> str:
    for name, value in params.items():
        text = re.sub(r"\{\{\s*" + re.escape(name) + r"\s*\}\}", lambda _m, v=str(value): v, text)
    return text


class TranslationClient:
    """Reads published translations from the public API, caching per locale and namespace."""

    def __init__(
        self,
        api_key: str,
        project_id: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.project_id = project_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()
        self._cache: Dict[str, Dict[str, str]] = {}

    def fetch_translations(self, locale: str = "en", namespace: str = "default") -> Dict[str, str]:
        cache_key = f"{locale}:{namespace}"
        if cache_key in self._cache:
            return self._cache[cache_key]
        try:
            resp = self.http.get(
                self.base_url,
                params={"locale": locale, "namespace": namespace},
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Project-ID": self.project_id,
                },
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError):
            logger.exception("Translation fetch failed locale=%s namespace=%s", locale, namespace)
            return {}
        if not isinstance(data, dict):
            logger.error("Unexpected translations payload for %s", cache_key)
            return {}
        self._cache[cache_key] = data
        return data

    def fetch_many(self, locale: str, namespaces: Iterable[str]) -> Dict[str, str]:
        merged: Dict[str, str] = {}
        for namespace in namespaces:
            merged.update(self.fetch_translations(locale, namespace))
        return merged

    @staticmethod
    def translate(
        key: str,
        params: Optional[Mapping[str, object]] = None,
        translations: Optional[Mapping[str, str]] = None,
    ) -> str:
        text = (translations or {}).get(key)
        if not text:
            return key
        return interpolate(text, params or {})

    def get_translator(self, locale: str = "en", namespace: str = "default") -> Callable[..., str]:
        translations = self.fetch_translations(locale, namespace)

        def t(key: str, params: Optional[Mapping[str, object]] = None) -> str:
            return self.translate(key, params, translations)

        return t

    def clear_cache(self) -> None:
        self._cache.clear()
