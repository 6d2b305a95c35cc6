"""Typed edit commands for a single translation key."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from localedesk.keys import TranslationKeyStore
from localedesk.models import TranslationKeyModel


@dataclass(frozen=True)
class Rename:
    key: str


@dataclass(frozen=True)
class UpdateDescription:
    description: str


@dataclass(frozen=True)
class UpdateTranslation:
    language: str
    value: str


KeyUpdate = Union[Rename, UpdateDescription, UpdateTranslation]


def apply_update(
    store: TranslationKeyStore,
    key_id: str,
    command: KeyUpdate,
    actor: Optional[str] = None,
) -> TranslationKeyModel:
    if isinstance(command, Rename):
        return store.rename(key_id, command.key, actor)
    if isinstance(command, UpdateDescription):
        return store.update_description(key_id, command.description, actor)
    if isinstance(command, UpdateTranslation):
        store.values.upsert(key_id, command.language, command.value, actor)
        return store.get(key_id)
    raise TypeError(f"Unsupported key update: {type(command).__name__}")


def parse_update(payload: dict) -> KeyUpdate:
    """Build a command from the ``{"field": ..., "value": ...}`` wire shape.

    ``field`` is ``key``, ``description``, ``translation_<lang>`` or a bare
    language code.
    """
    field = str(payload.get("field") or "").strip()
    value = payload.get("value")
    value = "" if value is None else str(value)
    if not field:
        raise ValueError("field is required")
    if field == "key":
        return Rename(key=value)
    if field == "description":
        return UpdateDescription(description=value)
    language = field[len("translation_"):] if field.startswith("translation_") else field
    if not language:
        raise ValueError("language is required")
    return UpdateTranslation(language=language, value=value)
