from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.orm import Session

from localedesk.config import Settings
from localedesk.errors import EmptyName, InvalidApiKey, NotFound
from localedesk.models import ApiKeyModel
from localedesk.tables import api_keys_table

logger = logging.getLogger(__name__)

_API_KEY_COLUMNS = (
    api_keys_table.c.id,
    api_keys_table.c.key,
    api_keys_table.c.name,
    api_keys_table.c.project_id,
    api_keys_table.c.user_id,
    api_keys_table.c.created_at,
    api_keys_table.c.last_used_at,
    api_keys_table.c.is_active,
)


def generate_token(prefix: str) -> str:
    return f"{prefix}_{secrets.token_hex(8)}_{secrets.token_hex(16)}"


class ApiKeyStore:
    def __init__(self, session: Session, settings: Settings) -> None:
        self.session = session
        self.config = settings

    def generate(self, project_id: str, user_id: str, name: str) -> ApiKeyModel:
        cleaned = (name or "").strip()
        if not cleaned:
            raise EmptyName("API key name cannot be empty.")
        token = generate_token(self.config.api_key_prefix)
        result = self.session.execute(
            insert(api_keys_table).values(
                key=token,
                name=cleaned,
                project_id=project_id,
                user_id=user_id,
                created_at=datetime.now(timezone.utc),
                is_active=True,
            )
        )
        logger.info("Generated API key project_id=%s name=%s", project_id, cleaned)
        return self._get(result.inserted_primary_key[0])

    def _get(self, api_key_id: int) -> ApiKeyModel:
        row = self.session.execute(
            select(*_API_KEY_COLUMNS).where(api_keys_table.c.id == api_key_id)
        ).mappings().one_or_none()
        if row is None:
            raise NotFound("API key not found.")
        return ApiKeyModel(**row)

    def list(self, project_id: str, user_id: Optional[str] = None) -> List[ApiKeyModel]:
        stmt = select(*_API_KEY_COLUMNS).where(api_keys_table.c.project_id == project_id)
        if user_id:
            stmt = stmt.where(api_keys_table.c.user_id == user_id)
        stmt = stmt.order_by(api_keys_table.c.created_at.desc(), api_keys_table.c.id.desc())
        rows = self.session.execute(stmt).mappings().all()
        return [ApiKeyModel(**row) for row in rows]

    def delete(self, api_key_id: int, user_id: str, project_id: Optional[str] = None) -> None:
        stmt = delete(api_keys_table).where(
            api_keys_table.c.id == api_key_id,
            api_keys_table.c.user_id == user_id,
        )
        if project_id is not None:
            stmt = stmt.where(api_keys_table.c.project_id == project_id)
        result = self.session.execute(stmt)
        if not result.rowcount:
            raise NotFound("API key not found.")

    def authenticate(self, token: str, project_id: str) -> ApiKeyModel:
        row = self.session.execute(
            select(*_API_KEY_COLUMNS).where(
                api_keys_table.c.key == token,
                api_keys_table.c.project_id == project_id,
                api_keys_table.c.is_active.is_(True),
            )
        ).mappings().one_or_none()
        if row is None:
            logger.warning("Rejected API key for project_id=%s", project_id)
            raise InvalidApiKey()
        self.session.execute(
            update(api_keys_table)
            .where(api_keys_table.c.id == row["id"])
            .values(last_used_at=datetime.now(timezone.utc))
        )
        return ApiKeyModel(**row)
