from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from localedesk.models import HistoryEntryModel
from localedesk.tables import translation_history_table

logger = logging.getLogger(__name__)

_HISTORY_COLUMNS = (
    translation_history_table.c.id,
    translation_history_table.c.key_id,
    translation_history_table.c.translation_id,
    translation_history_table.c.action,
    translation_history_table.c.field,
    translation_history_table.c.old_value,
    translation_history_table.c.new_value,
    translation_history_table.c.actor,
    translation_history_table.c.created_at,
)


class HistoryLog:
    """Append-only audit trail of field changes, keyed by translation key."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def record(
        self,
        *,
        key_id: str,
        action: str,
        field: str,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        actor: Optional[str] = None,
        translation_id: Optional[int] = None,
        project_id: Optional[str] = None,
    ) -> bool:
        """Append one entry. Failures are logged and reported as False.

        The write happens inside a savepoint so that a failed audit insert
        never rolls back the change it documents.
        """
        try:
            with self.session.begin_nested():
                self.session.execute(
                    insert(translation_history_table).values(
                        project_id=project_id,
                        key_id=key_id,
                        translation_id=translation_id,
                        action=action,
                        field=field,
                        old_value=old_value,
                        new_value=new_value,
                        actor=actor,
                        created_at=datetime.now(timezone.utc),
                    )
                )
        except SQLAlchemyError:
            logger.exception(
                "Failed to record history key_id=%s action=%s field=%s",
                key_id,
                action,
                field,
            )
            return False
        return True

    def for_key(
        self,
        key_id: str,
        limit: Optional[int] = None,
        project_id: Optional[str] = None,
    ) -> List[HistoryEntryModel]:
        stmt = (
            select(*_HISTORY_COLUMNS)
            .where(translation_history_table.c.key_id == key_id)
            .order_by(
                translation_history_table.c.created_at.desc(),
                translation_history_table.c.id.desc(),
            )
        )
        if project_id is not None:
            stmt = stmt.where(translation_history_table.c.project_id == project_id)
        if limit:
            stmt = stmt.limit(limit)
        rows = self.session.execute(stmt).mappings().all()
        return [HistoryEntryModel(**row) for row in rows]

    def for_keys(self, key_ids: List[str], limit_per_key: int) -> dict[str, List[HistoryEntryModel]]:
        if not key_ids:
            return {}
        rows = self.session.execute(
            select(*_HISTORY_COLUMNS)
            .where(translation_history_table.c.key_id.in_(key_ids))
            .order_by(
                translation_history_table.c.created_at.desc(),
                translation_history_table.c.id.desc(),
            )
        ).mappings().all()
        grouped: dict[str, List[HistoryEntryModel]] = {}
        for row in rows:
            bucket = grouped.setdefault(row["key_id"], [])
            if len(bucket) < limit_per_key:
                bucket.append(HistoryEntryModel(**row))
        return grouped

    def recent(
        self,
        project_id: str,
        limit: int = 50,
        action: Optional[str] = None,
    ) -> List[HistoryEntryModel]:
        stmt = select(*_HISTORY_COLUMNS).where(
            translation_history_table.c.project_id == project_id
        )
        if action:
            stmt = stmt.where(translation_history_table.c.action.ilike(f"%{action}%"))
        stmt = stmt.order_by(
            translation_history_table.c.created_at.desc(),
            translation_history_table.c.id.desc(),
        ).limit(limit)
        rows = self.session.execute(stmt).mappings().all()
        return [HistoryEntryModel(**row) for row in rows]
