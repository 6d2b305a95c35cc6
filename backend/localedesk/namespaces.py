from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session

from localedesk.errors import (
    DuplicateNamespace,
    EmptyName,
    NamespaceNotEmpty,
    NotFound,
)
from localedesk.models import NamespaceModel
from localedesk.tables import namespaces_table, translation_keys_table

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"


class NamespaceStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list(self, project_id: str) -> list[NamespaceModel]:
        rows = self.session.execute(
            select(
                namespaces_table.c.id,
                namespaces_table.c.project_id,
                namespaces_table.c.name,
            )
            .where(namespaces_table.c.project_id == project_id)
            .order_by(namespaces_table.c.name)
        ).mappings().all()
        return [NamespaceModel(**row) for row in rows]

    def _find(self, project_id: str, name: str):  # noqa: ANN202
        return self.session.execute(
            select(namespaces_table.c.id).where(
                namespaces_table.c.project_id == project_id,
                namespaces_table.c.name == name,
            )
        ).scalar_one_or_none()

    def create(self, project_id: str, name: str) -> NamespaceModel:
        cleaned = (name or "").strip()
        if not cleaned:
            raise EmptyName("Namespace name cannot be empty.")
        if self._find(project_id, cleaned) is not None:
            raise DuplicateNamespace()
        result = self.session.execute(
            insert(namespaces_table).values(
                project_id=project_id,
                name=cleaned,
                created_at=datetime.now(timezone.utc),
            )
        )
        new_id = result.inserted_primary_key[0]
        logger.info("Created namespace project_id=%s name=%s", project_id, cleaned)
        return NamespaceModel(id=new_id, project_id=project_id, name=cleaned)

    def ensure(self, project_id: str, name: str) -> None:
        if self._find(project_id, name) is None:
            self.create(project_id, name)

    def delete(self, project_id: str, name: str) -> None:
        if name == DEFAULT_NAMESPACE:
            raise NamespaceNotEmpty("The default namespace cannot be deleted.")
        if self._find(project_id, name) is None:
            raise NotFound("Namespace not found.")
        in_use = self.session.execute(
            select(func.count())
            .select_from(translation_keys_table)
            .where(
                translation_keys_table.c.project_id == project_id,
                translation_keys_table.c.namespace == name,
            )
        ).scalar_one()
        if in_use:
            raise NamespaceNotEmpty()
        self.session.execute(
            delete(namespaces_table).where(
                namespaces_table.c.project_id == project_id,
                namespaces_table.c.name == name,
            )
        )
