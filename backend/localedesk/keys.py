from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, insert, or_, select, update
from sqlalchemy.orm import Session

from localedesk.config import Settings
from localedesk.errors import DomainError, DuplicateKey, EmptyBaseText, EmptyKeyName, NotFound
from localedesk.history import HistoryLog
from localedesk.languages import LanguageRegistry
from localedesk.models import TranslationKeyModel
from localedesk.namespaces import NamespaceStore
from localedesk.tables import (
    STATUS_CONFIRMED,
    STATUS_UNCONFIRMED,
    translation_keys_table,
    translations_table,
)
from localedesk.values import TranslationValueStore

logger = logging.getLogger(__name__)

ACTION_CREATE = "create"
ACTION_RENAME = "Renamed key"
ACTION_DESCRIPTION = "Updated description"
ACTION_CONFIRM = "Confirmed translations"
ACTION_DELETE = "Deleted key"

_KEY_COLUMNS = (
    translation_keys_table.c.id,
    translation_keys_table.c.project_id,
    translation_keys_table.c.namespace,
    translation_keys_table.c.key,
    translation_keys_table.c.description,
    translation_keys_table.c.status,
    translation_keys_table.c.created_at,
    translation_keys_table.c.updated_at,
    translation_keys_table.c.created_by,
    translation_keys_table.c.updated_by,
)


class TranslationKeyStore:
    def __init__(self, session: Session, settings: Settings) -> None:
        self.session = session
        self.config = settings
        self.history = HistoryLog(session)
        self.values = TranslationValueStore(session, settings)
        self.languages = LanguageRegistry(session, settings)

    def _row(self, key_id: str):  # noqa: ANN202
        row = self.session.execute(
            select(*_KEY_COLUMNS).where(translation_keys_table.c.id == key_id)
        ).mappings().one_or_none()
        if row is None:
            raise NotFound("Translation key not found.")
        return row

    def _exists(
        self,
        project_id: str,
        namespace: str,
        key: str,
        exclude_id: Optional[str] = None,
    ) -> bool:
        stmt = select(translation_keys_table.c.id).where(
            translation_keys_table.c.project_id == project_id,
            translation_keys_table.c.namespace == namespace,
            translation_keys_table.c.key == key,
        )
        if exclude_id:
            stmt = stmt.where(translation_keys_table.c.id != exclude_id)
        return self.session.execute(stmt).first() is not None

    def find(self, project_id: str, namespace: str, key: str) -> Optional[str]:
        return self.session.execute(
            select(translation_keys_table.c.id).where(
                translation_keys_table.c.project_id == project_id,
                translation_keys_table.c.namespace == namespace,
                translation_keys_table.c.key == key,
            )
        ).scalar_one_or_none()

    def create(
        self,
        project_id: str,
        key: str,
        description: str = "",
        base_text: str = "",
        translations: Optional[Dict[str, str]] = None,
        namespace: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> TranslationKeyModel:
        name = (key or "").strip()
        if not name:
            raise EmptyKeyName()
        if not (base_text or "").strip():
            raise EmptyBaseText()
        namespace = (namespace or self.config.default_namespace).strip()
        if self._exists(project_id, namespace, name):
            raise DuplicateKey(f"Key {name} already exists in {namespace}.")
        NamespaceStore(self.session).ensure(project_id, namespace)

        key_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        self.session.execute(
            insert(translation_keys_table).values(
                id=key_id,
                project_id=project_id,
                namespace=namespace,
                key=name,
                description=description or "",
                status=STATUS_UNCONFIRMED,
                created_at=now,
                updated_at=now,
                created_by=actor,
                updated_by=actor,
            )
        )
        self.history.record(
            key_id=key_id,
            project_id=project_id,
            action=ACTION_CREATE,
            field="key",
            new_value=name,
            actor=actor,
        )
        base = self.languages.base_code(project_id)
        self._insert_value(key_id, base, base_text, actor, now)
        for language, value in (translations or {}).items():
            if language == base or not (value or "").strip():
                continue
            self._insert_value(key_id, language, value, actor, now)
        logger.info("Created key project_id=%s namespace=%s key=%s", project_id, namespace, name)
        return self.get(key_id)

    def _insert_value(
        self,
        key_id: str,
        language: str,
        value: str,
        actor: Optional[str],
        now: datetime,
    ) -> None:
        # Initial values are covered by the key's single create entry.
        self.session.execute(
            insert(translations_table).values(
                key_id=key_id,
                language_code=language,
                value=value,
                created_at=now,
                updated_at=now,
                created_by=actor,
                updated_by=actor,
            )
        )

    def rename(self, key_id: str, new_key: str, actor: Optional[str] = None) -> TranslationKeyModel:
        row = self._row(key_id)
        name = (new_key or "").strip()
        if not name:
            raise EmptyKeyName()
        if name == row["key"]:
            return self.get(key_id)
        if self._exists(row["project_id"], row["namespace"], name, exclude_id=key_id):
            raise DuplicateKey(f"Key {name} already exists in {row['namespace']}.")
        self._touch(key_id, actor, key=name)
        self.history.record(
            key_id=key_id,
            project_id=row["project_id"],
            action=ACTION_RENAME,
            field="key",
            old_value=row["key"],
            new_value=name,
            actor=actor,
        )
        return self.get(key_id)

    def update_description(
        self, key_id: str, text: Optional[str], actor: Optional[str] = None
    ) -> TranslationKeyModel:
        row = self._row(key_id)
        new_text = text or ""
        if new_text == (row["description"] or ""):
            return self.get(key_id)
        self._touch(key_id, actor, description=new_text)
        self.history.record(
            key_id=key_id,
            project_id=row["project_id"],
            action=ACTION_DESCRIPTION,
            field="description",
            old_value=row["description"],
            new_value=new_text,
            actor=actor,
        )
        return self.get(key_id)

    def confirm(self, key_id: str, actor: Optional[str] = None) -> TranslationKeyModel:
        row = self._row(key_id)
        self._touch(key_id, actor, status=STATUS_CONFIRMED)
        self.history.record(
            key_id=key_id,
            project_id=row["project_id"],
            action=ACTION_CONFIRM,
            field="status",
            old_value=row["status"],
            new_value=STATUS_CONFIRMED,
            actor=actor,
        )
        return self.get(key_id)

    def _touch(self, key_id: str, actor: Optional[str], **values: object) -> None:
        self.session.execute(
            update(translation_keys_table)
            .where(translation_keys_table.c.id == key_id)
            .values(updated_at=datetime.now(timezone.utc), updated_by=actor, **values)
        )

    def delete(self, key_id: str, actor: Optional[str] = None) -> None:
        row = self._row(key_id)
        # History goes first so the trail names the key it lost.
        self.history.record(
            key_id=key_id,
            project_id=row["project_id"],
            action=ACTION_DELETE,
            field="key",
            old_value=row["key"],
            new_value=None,
            actor=actor,
        )
        self.session.execute(delete(translations_table).where(translations_table.c.key_id == key_id))
        self.session.execute(
            delete(translation_keys_table).where(translation_keys_table.c.id == key_id)
        )
        logger.info("Deleted key id=%s key=%s", key_id, row["key"])

    def ensure_in_project(self, key_id: str, project_id: str) -> None:
        if self._row(key_id)["project_id"] != project_id:
            raise NotFound("Translation key not found.")

    def delete_many(
        self,
        key_ids: Iterable[str],
        actor: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> dict:
        report: dict = {"succeeded": 0, "failed": 0, "errors": []}
        for key_id in key_ids:
            try:
                with self.session.begin_nested():
                    if project_id is not None:
                        self.ensure_in_project(key_id, project_id)
                    self.delete(key_id, actor)
            except DomainError as exc:
                report["failed"] += 1
                report["errors"].append({"id": key_id, "error": exc.message})
                continue
            report["succeeded"] += 1
        return report

    def get(self, key_id: str) -> TranslationKeyModel:
        row = self._row(key_id)
        translations = {item.language_code: item.value for item in self.values.fetch_for_key(key_id)}
        history = self.history.for_key(key_id, limit=self.config.history_preview_limit)
        return TranslationKeyModel(**row, translations=translations, history=history)

    def list(
        self,
        project_id: str,
        namespace: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[TranslationKeyModel]:
        stmt = select(*_KEY_COLUMNS).where(translation_keys_table.c.project_id == project_id)
        if namespace:
            stmt = stmt.where(translation_keys_table.c.namespace == namespace)
        if status:
            stmt = stmt.where(translation_keys_table.c.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            matching_values = select(translations_table.c.key_id).where(
                translations_table.c.value.ilike(pattern)
            )
            stmt = stmt.where(
                or_(
                    translation_keys_table.c.key.ilike(pattern),
                    translation_keys_table.c.description.ilike(pattern),
                    translation_keys_table.c.id.in_(matching_values),
                )
            )
        stmt = stmt.order_by(translation_keys_table.c.namespace, translation_keys_table.c.key)
        rows = self.session.execute(stmt).mappings().all()
        if not rows:
            return []

        key_ids = [row["id"] for row in rows]
        translations: Dict[str, Dict[str, str]] = {key_id: {} for key_id in key_ids}
        value_rows = self.session.execute(
            select(
                translations_table.c.key_id,
                translations_table.c.language_code,
                translations_table.c.value,
            ).where(translations_table.c.key_id.in_(key_ids))
        ).all()
        for key_id, language, value in value_rows:
            translations[key_id][language] = value
        history = self.history.for_keys(key_ids, self.config.history_preview_limit)
        return [
            TranslationKeyModel(
                **row,
                translations=translations[row["id"]],
                history=history.get(row["id"], []),
            )
            for row in rows
        ]
