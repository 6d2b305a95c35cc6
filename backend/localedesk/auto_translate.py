from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from localedesk.config import Settings
from localedesk.database import Database
from localedesk.errors import DomainError, NotFound
from localedesk.events import EventBus, KeyChanged, LanguageAdded, Subscription
from localedesk.gateway import AutoTranslateGateway, TranslationResult
from localedesk.keys import TranslationKeyStore
from localedesk.projects import ProjectStore

logger = logging.getLogger(__name__)

AUTO_TRANSLATE_ACTOR = "system_auto_translate"


class AutoTranslator:
    """Persists gateway output through the value store."""

    def __init__(
        self,
        settings: Settings,
        gateway: AutoTranslateGateway,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.config = settings
        self.gateway = gateway
        self.bus = bus

    def resolve_credential(
        self,
        session: Session,
        project_id: str,
        credential: Optional[str] = None,
    ) -> Optional[str]:
        """Explicit credential first, then the secret stored on the project."""
        if credential and credential.strip():
            return credential.strip()
        return ProjectStore(session, self.config).translation_secret(project_id)

    def translate_key(
        self,
        session: Session,
        key_id: str,
        targets: Optional[Iterable[str]] = None,
        actor: str = AUTO_TRANSLATE_ACTOR,
        credential: Optional[str] = None,
    ) -> TranslationResult:
        keys = TranslationKeyStore(session, self.config)
        key = keys.get(key_id)
        base = keys.languages.base_code(key.project_id)
        base_text = key.translations.get(base, "")
        if targets is None:
            targets = [code for code in keys.languages.active_codes(key.project_id) if code != base]
        secret = self.resolve_credential(session, key.project_id, credential)
        result = self.gateway.translate(base, list(targets), base_text, credential=secret)
        stored = {}
        for language, text in result.translations.items():
            if language == base:
                continue
            keys.values.upsert(key_id, language, text, actor)
            stored[language] = text
        if stored and self.bus is not None:
            self.bus.key_changed.publish(
                KeyChanged(project_id=key.project_id, key_id=key_id, translations=stored)
            )
        return result

    def translate_project_into(
        self,
        session: Session,
        project_id: str,
        codes: Iterable[str],
        actor: str = AUTO_TRANSLATE_ACTOR,
    ) -> dict:
        """Fill ``codes`` for every key with base text; one failure never stops the batch.

        Languages a key already has text for are left alone, so re-adding a
        removed language keeps the translations stored before.
        """
        targets: List[str] = list(codes)
        keys = TranslationKeyStore(session, self.config)
        base = keys.languages.base_code(project_id)
        report: dict = {"succeeded": 0, "failed": 0, "skipped": 0, "errors": []}
        for key in keys.list(project_id):
            if not (key.translations.get(base) or "").strip():
                continue
            missing = [
                code
                for code in targets
                if code != base and not (key.translations.get(code) or "").strip()
            ]
            if not missing:
                report["skipped"] += 1
                continue
            try:
                with session.begin_nested():
                    result = self.translate_key(session, key.id, missing, actor)
            except (DomainError, SQLAlchemyError) as exc:
                logger.exception("Bulk auto-translate failed key_id=%s", key.id)
                report["failed"] += 1
                report["errors"].append({"key": key.key, "error": getattr(exc, "message", str(exc))})
                continue
            if result.success:
                report["succeeded"] += 1
            else:
                report["failed"] += 1
                report["errors"].append({"key": key.key, "error": result.error or "No translation produced."})
        logger.info(
            "Bulk auto-translate project_id=%s targets=%s succeeded=%s failed=%s skipped=%s",
            project_id,
            ",".join(targets),
            report["succeeded"],
            report["failed"],
            report["skipped"],
        )
        return report

    def subscribe(self, database: Database) -> Subscription:
        """Translate existing keys into each newly added language."""
        if self.bus is None:
            raise RuntimeError("AutoTranslator has no event bus to subscribe to.")

        def handle(event: LanguageAdded) -> None:
            with database.get_session() as session:
                try:
                    project = ProjectStore(session, self.config).get(event.project_id)
                except NotFound:
                    logger.warning("Language added to unknown project_id=%s", event.project_id)
                    return
                if not project.enable_auto_translate:
                    logger.info("Auto-translate disabled for project_id=%s", event.project_id)
                    return
                self.translate_project_into(session, event.project_id, [event.code])

        return self.bus.language_added.subscribe(handle)
