from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from localedesk.auto_translate import AutoTranslator
from localedesk.dashboard import (
    ConfirmAutoTranslate,
    Editing,
    InvalidTransition,
    NewRow,
    RowEditor,
    Viewing,
)
from localedesk.errors import EmptyBaseText, EmptyKeyName
from localedesk.events import EventBus, KeyChanged
from localedesk.gateway import AutoTranslateGateway
from localedesk.keys import TranslationKeyStore
from localedesk.languages import LanguageRegistry
from localedesk.projects import ProjectStore

from conftest import PROJECT_ID, FakeProvider


@pytest.fixture()
def seeded_key(database, settings, set_secret) -> str:
    set_secret()
    with database.get_session() as session:
        LanguageRegistry(session, settings).add(PROJECT_ID, "fr", "French")
        key = TranslationKeyStore(session, settings).create(
            PROJECT_ID, "greeting", base_text="Hello", translations={"fr": "Bonjour"}
        )
    return key.id


def _editor(database, settings, provider, key_id=None, bus=None) -> RowEditor:
    translator = AutoTranslator(settings, AutoTranslateGateway(provider), bus)
    return RowEditor(
        database,
        settings,
        PROJECT_ID,
        translator,
        bus=bus,
        key_id=key_id,
        actor="editor",
    )


def test_edit_description_returns_to_viewing(database, settings, seeded_key) -> None:
    editor = _editor(database, settings, FakeProvider(), seeded_key)

    assert editor.start_edit("description") == Editing("description")
    assert editor.save("Shown on the home page") == Viewing()
    assert editor.key.description == "Shown on the home page"


def test_non_base_edit_saves_directly(database, settings, seeded_key) -> None:
    editor = _editor(database, settings, FakeProvider(), seeded_key)

    editor.start_edit("fr")
    editor.save("Salut")

    assert editor.state == Viewing()
    assert editor.translations["fr"] == "Salut"
    assert editor.key.status == "unconfirmed"


def test_changing_base_text_asks_before_auto_translating(database, settings, seeded_key) -> None:
    provider = FakeProvider({"fr": "Bonsoir"})
    editor = _editor(database, settings, provider, seeded_key)

    editor.start_edit("en")
    state = editor.save("Good evening")

    assert state == ConfirmAutoTranslate(language="en", old_value="Hello", new_value="Good evening")
    result = editor.confirm_auto_translate()
    assert result.success is True
    assert editor.state == Viewing()
    assert editor.translations == {"en": "Good evening", "fr": "Bonsoir"}


def test_declining_auto_translate_only_writes_base(database, settings, seeded_key) -> None:
    provider = FakeProvider()
    editor = _editor(database, settings, provider, seeded_key)

    editor.start_edit("en")
    editor.save("Hi there")
    editor.decline_auto_translate()

    assert provider.calls == []
    assert editor.translations == {"en": "Hi there", "fr": "Bonjour"}


def test_unchanged_base_text_saves_without_prompt(database, settings, seeded_key) -> None:
    editor = _editor(database, settings, FakeProvider(), seeded_key)

    editor.start_edit("en")

    assert editor.save("Hello") == Viewing()


def test_empty_base_text_is_rejected_and_stays_editing(database, settings, seeded_key) -> None:
    editor = _editor(database, settings, FakeProvider(), seeded_key)
    editor.start_edit("en")

    with pytest.raises(EmptyBaseText):
        editor.save("  ")
    assert editor.state == Editing("en")
    assert editor.cancel() == Viewing()


def test_invalid_transitions_raise(database, settings, seeded_key) -> None:
    editor = _editor(database, settings, FakeProvider(), seeded_key)

    with pytest.raises(InvalidTransition):
        editor.save("x")
    with pytest.raises(InvalidTransition):
        editor.confirm_auto_translate()
    with pytest.raises(InvalidTransition):
        editor.start_new(["en"])


def test_new_row_commit_fills_missing_languages(database, settings, set_secret) -> None:
    set_secret()
    with database.get_session() as session:
        LanguageRegistry(session, settings).add(PROJECT_ID, "fr", "French")
        LanguageRegistry(session, settings).add(PROJECT_ID, "de", "German")
    provider = FakeProvider({"fr": "Merci", "de": "Danke"})
    editor = _editor(database, settings, provider)

    state = editor.start_new(["en", "fr", "de"])
    assert isinstance(state, NewRow)
    assert state.placeholder_id.startswith("new-")

    key = editor.commit_new("thanks", "Button label", {"en": "Thanks", "de": "Vielen Dank"})

    assert editor.state == Viewing()
    assert key.translations == {"en": "Thanks", "fr": "Merci", "de": "Vielen Dank"}
    assert [call[2] for call in provider.calls] == ["fr"]


def test_new_row_validation_keeps_row_open(database, settings) -> None:
    editor = _editor(database, settings, FakeProvider())
    editor.start_new(["en"])

    with pytest.raises(EmptyKeyName):
        editor.commit_new("", translations={"en": "x"})
    with pytest.raises(EmptyBaseText):
        editor.commit_new("k", translations={"fr": "x"})
    assert isinstance(editor.state, NewRow)


def test_new_row_saves_without_translation_after_timeout(database, settings, set_secret) -> None:
    set_secret()
    slow_settings = settings.model_copy(update={"auto_translate_wait_seconds": 0.05})
    provider = FakeProvider({"fr": "Lent"}, delay=0.5)
    editor = _editor(database, slow_settings, provider)

    editor.start_new(["en", "fr"])
    key = editor.commit_new("slow", translations={"en": "Slow"})

    assert key.translations == {"en": "Slow"}


def test_new_row_skips_auto_translate_when_disabled(database, settings, set_secret) -> None:
    set_secret()
    with database.get_session() as session:
        ProjectStore(session, settings).update_settings(PROJECT_ID, enable_auto_translate=False)
    provider = FakeProvider()
    editor = _editor(database, settings, provider)

    editor.start_new(["en", "fr"])
    editor.commit_new("quiet", translations={"en": "Quiet"})

    assert provider.calls == []


def test_cancel_new_row_discards_it(database, settings) -> None:
    editor = _editor(database, settings, FakeProvider())
    editor.start_new(["en"])

    editor.cancel()

    assert editor.discarded is True
    assert editor.key is None
    with database.get_session() as session:
        assert TranslationKeyStore(session, settings).list(PROJECT_ID) == []


def test_close_shuts_down_its_own_worker_pool(database, settings) -> None:
    with _editor(database, settings, FakeProvider()) as editor:
        pool = editor.executor

    with pytest.raises(RuntimeError):
        pool.submit(print)
    editor.close()


def test_close_leaves_injected_executor_running(database, settings) -> None:
    shared = ThreadPoolExecutor(max_workers=1)
    translator = AutoTranslator(settings, AutoTranslateGateway(FakeProvider()))
    editor = RowEditor(database, settings, PROJECT_ID, translator, executor=shared)

    editor.close()

    assert shared.submit(lambda: 42).result(timeout=1) == 42
    shared.shutdown()


def test_key_changed_events_refresh_the_row(database, settings, seeded_key) -> None:
    bus = EventBus()
    editor = _editor(database, settings, FakeProvider(), seeded_key, bus=bus)

    bus.key_changed.publish(KeyChanged(PROJECT_ID, "someone-else", {"fr": "Nope"}))
    bus.key_changed.publish(KeyChanged(PROJECT_ID, seeded_key, {"fr": "Coucou"}))

    assert editor.translations["fr"] == "Coucou"
    editor.close()
    assert len(bus.key_changed) == 0
