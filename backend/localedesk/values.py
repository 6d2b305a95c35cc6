from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from localedesk.config import Settings
from localedesk.errors import EmptyBaseText, NotFound
from localedesk.history import HistoryLog
from localedesk.languages import LanguageRegistry
from localedesk.models import TranslationModel
from localedesk.tables import (
    STATUS_UNCONFIRMED,
    translation_keys_table,
    translations_table,
)

logger = logging.getLogger(__name__)

ACTION_CREATE = "create"
ACTION_UPDATE = "update"

_TRANSLATION_COLUMNS = (
    translations_table.c.id,
    translations_table.c.key_id,
    translations_table.c.language_code,
    translations_table.c.value,
    translations_table.c.created_at,
    translations_table.c.updated_at,
    translations_table.c.created_by,
    translations_table.c.updated_by,
)


class TranslationValueStore:
    def __init__(self, session: Session, settings: Settings) -> None:
        self.session = session
        self.config = settings
        self.history = HistoryLog(session)
        self.languages = LanguageRegistry(session, settings)

    def _key_row(self, key_id: str):  # noqa: ANN202
        row = self.session.execute(
            select(
                translation_keys_table.c.id,
                translation_keys_table.c.project_id,
            ).where(translation_keys_table.c.id == key_id)
        ).mappings().one_or_none()
        if row is None:
            raise NotFound("Translation key not found.")
        return row

    def upsert(
        self,
        key_id: str,
        language_code: str,
        value: Optional[str],
        actor: Optional[str] = None,
    ) -> TranslationModel:
        """Write one cell, append history on change and mark the key unconfirmed."""
        key_row = self._key_row(key_id)
        project_id = key_row["project_id"]
        text = value or ""
        if language_code == self.languages.base_code(project_id) and not text.strip():
            raise EmptyBaseText()

        now = datetime.now(timezone.utc)
        existing = self.session.execute(
            select(translations_table.c.id, translations_table.c.value).where(
                translations_table.c.key_id == key_id,
                translations_table.c.language_code == language_code,
            )
        ).mappings().one_or_none()

        if existing is None:
            result = self.session.execute(
                insert(translations_table).values(
                    key_id=key_id,
                    language_code=language_code,
                    value=text,
                    created_at=now,
                    updated_at=now,
                    created_by=actor,
                    updated_by=actor,
                )
            )
            translation_id = result.inserted_primary_key[0]
            self.history.record(
                key_id=key_id,
                project_id=project_id,
                translation_id=translation_id,
                action=ACTION_CREATE,
                field=language_code,
                old_value=None,
                new_value=text,
                actor=actor,
            )
        else:
            translation_id = existing["id"]
            # Same text: no history entry, but the save still unconfirms the key.
            if existing["value"] != text:
                self.session.execute(
                    update(translations_table)
                    .where(translations_table.c.id == translation_id)
                    .values(value=text, updated_at=now, updated_by=actor)
                )
                self.history.record(
                    key_id=key_id,
                    project_id=project_id,
                    translation_id=translation_id,
                    action=ACTION_UPDATE,
                    field=language_code,
                    old_value=existing["value"],
                    new_value=text,
                    actor=actor,
                )

        self.session.execute(
            update(translation_keys_table)
            .where(translation_keys_table.c.id == key_id)
            .values(status=STATUS_UNCONFIRMED, updated_at=now, updated_by=actor)
        )
        logger.debug("Stored translation key_id=%s lang=%s", key_id, language_code)
        return self._get(translation_id)

    def _get(self, translation_id: int) -> TranslationModel:
        row = self.session.execute(
            select(*_TRANSLATION_COLUMNS).where(translations_table.c.id == translation_id)
        ).mappings().one()
        return TranslationModel(**row)

    def fetch_for_key(self, key_id: str) -> List[TranslationModel]:
        rows = self.session.execute(
            select(*_TRANSLATION_COLUMNS)
            .where(translations_table.c.key_id == key_id)
            .order_by(translations_table.c.language_code)
        ).mappings().all()
        return [TranslationModel(**row) for row in rows]

    def fetch_all(self, project_id: str) -> List[TranslationModel]:
        rows = self.session.execute(
            select(*_TRANSLATION_COLUMNS)
            .join(
                translation_keys_table,
                translation_keys_table.c.id == translations_table.c.key_id,
            )
            .where(translation_keys_table.c.project_id == project_id)
            .order_by(translations_table.c.key_id, translations_table.c.language_code)
        ).mappings().all()
        return [TranslationModel(**row) for row in rows]

    def map_for(self, project_id: str, namespace: str, locale: str) -> Dict[str, str]:
        rows = self.session.execute(
            select(translation_keys_table.c.key, translations_table.c.value)
            .join(
                translations_table,
                translations_table.c.key_id == translation_keys_table.c.id,
            )
            .where(
                translation_keys_table.c.project_id == project_id,
                translation_keys_table.c.namespace == namespace,
                translations_table.c.language_code == locale,
            )
            .order_by(translation_keys_table.c.key)
        ).all()
        return {key: value for key, value in rows if value}
