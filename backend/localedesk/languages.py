from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from localedesk.config import Settings
from localedesk.errors import (
    BaseLanguageProtected,
    DuplicateCode,
    EmptyName,
    InvalidLanguageCode,
    NotFound,
)
from localedesk.models import LanguageModel
from localedesk.tables import languages_table

logger = logging.getLogger(__name__)

LANGUAGE_CODE_RE = re.compile(r"^[a-z]{2,3}([-_][A-Za-z0-9]{2,8})*$")

_LANGUAGE_COLUMNS = (
    languages_table.c.id,
    languages_table.c.project_id,
    languages_table.c.code,
    languages_table.c.name,
    languages_table.c.is_base,
    languages_table.c.is_active,
)


def validate_language_code(code: str) -> str:
    cleaned = (code or "").strip()
    if not LANGUAGE_CODE_RE.match(cleaned):
        raise InvalidLanguageCode(f"Invalid language code: {code!r}")
    return cleaned


class LanguageRegistry:
    """Per-project set of target languages; exactly one base language."""

    def __init__(self, session: Session, settings: Settings) -> None:
        self.session = session
        self.config = settings

    def list(self, project_id: str, include_inactive: bool = False) -> List[LanguageModel]:
        stmt = select(*_LANGUAGE_COLUMNS).where(languages_table.c.project_id == project_id)
        if not include_inactive:
            stmt = stmt.where(languages_table.c.is_active.is_(True))
        stmt = stmt.order_by(languages_table.c.is_base.desc(), languages_table.c.code)
        rows = self.session.execute(stmt).mappings().all()
        return [LanguageModel(**row) for row in rows]

    def active_codes(self, project_id: str) -> List[str]:
        return [language.code for language in self.list(project_id)]

    def get(self, language_id: int) -> LanguageModel:
        row = self.session.execute(
            select(*_LANGUAGE_COLUMNS).where(languages_table.c.id == language_id)
        ).mappings().one_or_none()
        if row is None:
            raise NotFound("Language not found.")
        return LanguageModel(**row)

    def _by_code(self, project_id: str, code: str):  # noqa: ANN202
        return self.session.execute(
            select(*_LANGUAGE_COLUMNS).where(
                languages_table.c.project_id == project_id,
                languages_table.c.code == code,
            )
        ).mappings().one_or_none()

    def base_code(self, project_id: str) -> str:
        code = self.session.execute(
            select(languages_table.c.code).where(
                languages_table.c.project_id == project_id,
                languages_table.c.is_base.is_(True),
            )
        ).scalar_one_or_none()
        return code or self.config.base_language

    def add(self, project_id: str, code: str, name: str) -> LanguageModel:
        cleaned_code = validate_language_code(code)
        cleaned_name = (name or "").strip()
        if not cleaned_name:
            raise EmptyName("Language name cannot be empty.")
        existing = self._by_code(project_id, cleaned_code)
        if existing is not None:
            if existing["is_active"]:
                raise DuplicateCode(f"Language {cleaned_code} already exists.")
            self.session.execute(
                update(languages_table)
                .where(languages_table.c.id == existing["id"])
                .values(is_active=True, name=cleaned_name)
            )
            logger.info("Reactivated language project_id=%s code=%s", project_id, cleaned_code)
            return self.get(existing["id"])
        result = self.session.execute(
            insert(languages_table).values(
                project_id=project_id,
                code=cleaned_code,
                name=cleaned_name,
                is_base=False,
                is_active=True,
                created_at=datetime.now(timezone.utc),
            )
        )
        logger.info("Added language project_id=%s code=%s", project_id, cleaned_code)
        return self.get(result.inserted_primary_key[0])

    def update(self, language_id: int, name: str) -> LanguageModel:
        cleaned = (name or "").strip()
        if not cleaned:
            raise EmptyName("Language name cannot be empty.")
        self.get(language_id)
        self.session.execute(
            update(languages_table)
            .where(languages_table.c.id == language_id)
            .values(name=cleaned)
        )
        return self.get(language_id)

    def remove(self, language_id: int) -> None:
        language = self.get(language_id)
        if language.is_base:
            raise BaseLanguageProtected()
        # Soft delete keeps stored translations for a later re-add.
        self.session.execute(
            update(languages_table)
            .where(languages_table.c.id == language_id)
            .values(is_active=False)
        )
        logger.info("Removed language project_id=%s code=%s", language.project_id, language.code)

    def ensure_base(self, project_id: str) -> LanguageModel:
        row = self.session.execute(
            select(*_LANGUAGE_COLUMNS).where(
                languages_table.c.project_id == project_id,
                languages_table.c.is_base.is_(True),
            )
        ).mappings().one_or_none()
        if row is not None:
            return LanguageModel(**row)
        result = self.session.execute(
            insert(languages_table).values(
                project_id=project_id,
                code=self.config.base_language,
                name=self.config.base_language_name,
                is_base=True,
                is_active=True,
                created_at=datetime.now(timezone.utc),
            )
        )
        return self.get(result.inserted_primary_key[0])

    def visible_languages(
        self,
        project_id: str,
        requested: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """Active codes narrowed to ``requested``; the base language always stays."""
        active = self.active_codes(project_id)
        base = self.base_code(project_id)
        if requested is None:
            codes = list(active)
        else:
            wanted = set(requested)
            codes = [code for code in active if code in wanted]
        if base not in codes:
            codes.insert(0, base)
        return codes
