from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from localedesk.config import Settings
from localedesk.errors import EmptyName, NotFound
from localedesk.models import ProjectModel
from localedesk.tables import projects_table

logger = logging.getLogger(__name__)


def _to_model(row) -> ProjectModel:  # noqa: ANN001
    return ProjectModel(
        id=row["id"],
        name=row["name"],
        enable_auto_translate=bool(row["enable_auto_translate"]),
        has_translation_api_key=bool((row["translation_api_key"] or "").strip()),
    )


def _mask(secret: str) -> str:
    if len(secret) <= 8:
        return "*" * len(secret)
    return f"{secret[:4]}{'*' * (len(secret) - 8)}{secret[-4:]}"


class ProjectStore:
    def __init__(self, session: Session, settings: Settings) -> None:
        self.session = session
        self.config = settings

    def _row(self, project_id: str):  # noqa: ANN202
        return self.session.execute(
            select(projects_table).where(projects_table.c.id == project_id)
        ).mappings().one_or_none()

    def get(self, project_id: str) -> ProjectModel:
        row = self._row(project_id)
        if row is None:
            raise NotFound("Project not found.")
        return _to_model(row)

    def list(self) -> list[ProjectModel]:
        rows = self.session.execute(
            select(projects_table).order_by(projects_table.c.created_at)
        ).mappings().all()
        return [_to_model(row) for row in rows]

    def create(self, name: str, project_id: Optional[str] = None) -> ProjectModel:
        cleaned = (name or "").strip()
        if not cleaned:
            raise EmptyName("Project name cannot be empty.")
        now = datetime.now(timezone.utc)
        new_id = project_id or str(uuid.uuid4())
        self.session.execute(
            insert(projects_table).values(
                id=new_id,
                name=cleaned,
                enable_auto_translate=True,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("Created project id=%s name=%s", new_id, cleaned)
        return self.get(new_id)

    def ensure_default(self) -> ProjectModel:
        row = self.session.execute(
            select(projects_table).order_by(projects_table.c.created_at).limit(1)
        ).mappings().first()
        if row is not None:
            return _to_model(row)
        return self.create(self.config.default_project_name)

    def settings(self, project_id: str) -> dict:
        """Settings view of a project; the stored secret is only masked."""
        row = self._row(project_id)
        if row is None:
            raise NotFound("Project not found.")
        secret = (row["translation_api_key"] or "").strip()
        return {
            "id": row["id"],
            "name": row["name"],
            "enable_auto_translate": bool(row["enable_auto_translate"]),
            "translation_api_key": _mask(secret) if secret else None,
        }

    def update_settings(
        self,
        project_id: str,
        *,
        name: Optional[str] = None,
        translation_api_key: Optional[str] = None,
        enable_auto_translate: Optional[bool] = None,
    ) -> ProjectModel:
        self.get(project_id)
        updates: dict[str, object] = {}
        if name is not None:
            cleaned = name.strip()
            if not cleaned:
                raise EmptyName("Project name cannot be empty.")
            updates["name"] = cleaned
        if translation_api_key is not None:
            # Empty string clears the stored secret.
            updates["translation_api_key"] = translation_api_key.strip() or None
        if enable_auto_translate is not None:
            updates["enable_auto_translate"] = enable_auto_translate
        if updates:
            updates["updated_at"] = datetime.now(timezone.utc)
            self.session.execute(
                update(projects_table)
                .where(projects_table.c.id == project_id)
                .values(**updates)
            )
        return self.get(project_id)

    def translation_secret(self, project_id: str) -> Optional[str]:
        value = self.session.execute(
            select(projects_table.c.translation_api_key).where(
                projects_table.c.id == project_id
            )
        ).scalar_one_or_none()
        return (value or "").strip() or None
