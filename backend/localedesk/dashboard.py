"""Per-row editing controller for the translations table.

A row is either an existing key or a placeholder for a key that is being
typed in. All writes go through the key and value stores; base-language
edits may offer to re-run machine translation for the other columns.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from localedesk.auto_translate import AutoTranslator
from localedesk.config import Settings
from localedesk.database import Database
from localedesk.errors import DomainError, EmptyBaseText, EmptyKeyName
from localedesk.events import EventBus, KeyChanged, Subscription
from localedesk.gateway import TranslationResult
from localedesk.keys import TranslationKeyStore
from localedesk.models import TranslationKeyModel
from localedesk.projects import ProjectStore
from localedesk.updates import apply_update, parse_update

logger = logging.getLogger(__name__)


class InvalidTransition(DomainError):
    status_code = 409
    default_message = "Row is not in a state that allows this action."


@dataclass(frozen=True)
class Viewing:
    pass


@dataclass(frozen=True)
class Editing:
    field: str


@dataclass(frozen=True)
class NewRow:
    placeholder_id: str
    languages: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConfirmAutoTranslate:
    language: str
    old_value: str
    new_value: str


RowState = Union[Viewing, Editing, NewRow, ConfirmAutoTranslate]


class RowEditor:
    def __init__(
        self,
        database: Database,
        settings: Settings,
        project_id: str,
        auto_translator: AutoTranslator,
        bus: Optional[EventBus] = None,
        key_id: Optional[str] = None,
        actor: str = "user",
        executor: Optional[Executor] = None,
    ) -> None:
        self.database = database
        self.config = settings
        self.project_id = project_id
        self.auto_translator = auto_translator
        self.actor = actor
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(max_workers=1)
        self.state: RowState = Viewing()
        self.discarded = False
        self.key: Optional[TranslationKeyModel] = None
        self.translations: Dict[str, str] = {}
        self._subscription: Optional[Subscription] = None
        if bus is not None:
            self._subscription = bus.key_changed.subscribe(self._on_key_changed)
        if key_id is not None:
            self.reload(key_id)

    @property
    def key_id(self) -> Optional[str]:
        return self.key.id if self.key is not None else None

    def reload(self, key_id: Optional[str] = None) -> TranslationKeyModel:
        target = key_id or self.key_id
        if target is None:
            raise InvalidTransition("Row has no stored key.")
        with self.database.get_session() as session:
            self.key = TranslationKeyStore(session, self.config).get(target)
        self.translations = dict(self.key.translations)
        return self.key

    def _on_key_changed(self, event: KeyChanged) -> None:
        if event.key_id != self.key_id:
            return
        self.translations.update(event.translations)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._owns_executor:
            # A translation still running after its timeout is left to finish on its own.
            self.executor.shutdown(wait=False, cancel_futures=True)
            self._owns_executor = False

    def __enter__(self) -> "RowEditor":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _require(self, *states: type) -> None:
        if not isinstance(self.state, states):
            raise InvalidTransition(
                f"Cannot do this while row is {type(self.state).__name__}."
            )

    def _base_code(self) -> str:
        with self.database.get_session() as session:
            return TranslationKeyStore(session, self.config).languages.base_code(self.project_id)

    # Existing rows

    def start_edit(self, field_name: str) -> RowState:
        self._require(Viewing)
        if self.key is None:
            raise InvalidTransition("Row has no stored key.")
        self.state = Editing(field=field_name)
        return self.state

    def current_value(self, field_name: str) -> str:
        if self.key is None:
            return ""
        if field_name == "key":
            return self.key.key
        if field_name == "description":
            return self.key.description
        return self.translations.get(field_name, "")

    def save(self, value: str) -> RowState:
        self._require(Editing)
        field_name = self.state.field
        old_value = self.current_value(field_name)
        if field_name == self._base_code():
            if not (value or "").strip():
                raise EmptyBaseText()
            if old_value.strip() and value != old_value:
                self.state = ConfirmAutoTranslate(
                    language=field_name, old_value=old_value, new_value=value
                )
                return self.state
        self._write(field_name, value)
        self.state = Viewing()
        return self.state

    def _write(self, field_name: str, value: str) -> None:
        with self.database.get_session() as session:
            store = TranslationKeyStore(session, self.config)
            self.key = apply_update(
                store, self.key_id, parse_update({"field": field_name, "value": value}), self.actor
            )
        self.translations = dict(self.key.translations)

    def confirm_auto_translate(self) -> TranslationResult:
        self._require(ConfirmAutoTranslate)
        pending = self.state
        self._write(pending.language, pending.new_value)
        with self.database.get_session() as session:
            result = self.auto_translator.translate_key(session, self.key_id)
        self.reload()
        self.state = Viewing()
        if result.error:
            logger.warning("Auto-translate after edit failed key_id=%s: %s", self.key_id, result.error)
        return result

    def decline_auto_translate(self) -> RowState:
        self._require(ConfirmAutoTranslate)
        self._write(self.state.language, self.state.new_value)
        self.state = Viewing()
        return self.state

    def cancel(self) -> RowState:
        if isinstance(self.state, NewRow):
            self.discarded = True
        self.state = Viewing()
        return self.state

    # New rows

    def start_new(self, languages: List[str]) -> NewRow:
        self._require(Viewing)
        if self.key is not None:
            raise InvalidTransition("Row already holds a stored key.")
        self.discarded = False
        self.state = NewRow(
            placeholder_id=f"new-{int(time.time() * 1000)}",
            languages=list(languages),
        )
        return self.state

    def _auto_fill(
        self,
        base: str,
        base_text: str,
        missing: List[str],
        credential: Optional[str],
    ) -> Dict[str, str]:
        future = self.executor.submit(
            self.auto_translator.gateway.translate,
            base,
            missing,
            base_text,
            credential,
        )
        try:
            result = future.result(timeout=self.config.auto_translate_wait_seconds)
        except FutureTimeout:
            logger.warning(
                "Auto-translate did not finish within %ss; saving without it",
                self.config.auto_translate_wait_seconds,
            )
            future.cancel()
            return {}
        if result.error:
            logger.warning("Auto-translate for new row failed: %s", result.error)
        return {lang: text for lang, text in result.translations.items() if lang != base}

    def commit_new(
        self,
        key: str,
        description: str = "",
        translations: Optional[Dict[str, str]] = None,
        namespace: Optional[str] = None,
    ) -> TranslationKeyModel:
        self._require(NewRow)
        values = {lang: text for lang, text in (translations or {}).items() if (text or "").strip()}
        if not (key or "").strip():
            raise EmptyKeyName()
        base = self._base_code()
        base_text = values.get(base, "")
        if not base_text.strip():
            raise EmptyBaseText()

        with self.database.get_session() as session:
            project = ProjectStore(session, self.config).get(self.project_id)
            credential = self.auto_translator.resolve_credential(session, self.project_id)
        missing = [lang for lang in self.state.languages if lang != base and lang not in values]
        if project.enable_auto_translate and missing:
            for lang, text in self._auto_fill(base, base_text, missing, credential).items():
                values.setdefault(lang, text)

        with self.database.get_session() as session:
            store = TranslationKeyStore(session, self.config)
            self.key = store.create(
                self.project_id,
                key,
                description=description,
                base_text=base_text,
                translations=values,
                namespace=namespace,
                actor=self.actor,
            )
        self.translations = dict(self.key.translations)
        self.state = Viewing()
        logger.info("Saved new row as key_id=%s", self.key_id)
        return self.key
