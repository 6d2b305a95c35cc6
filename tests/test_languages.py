from __future__ import annotations

import pytest

from localedesk.errors import BaseLanguageProtected, DuplicateCode, InvalidLanguageCode
from localedesk.languages import LanguageRegistry, validate_language_code

from conftest import PROJECT_ID


def test_base_language_is_listed_first(session, settings) -> None:
    registry = LanguageRegistry(session, settings)
    registry.add(PROJECT_ID, "de", "German")
    registry.add(PROJECT_ID, "bg", "Bulgarian")

    codes = [language.code for language in registry.list(PROJECT_ID)]

    assert codes == ["en", "bg", "de"]
    assert registry.list(PROJECT_ID)[0].is_base is True


def test_add_rejects_duplicate_active_code(session, settings) -> None:
    registry = LanguageRegistry(session, settings)
    registry.add(PROJECT_ID, "fr", "French")

    with pytest.raises(DuplicateCode):
        registry.add(PROJECT_ID, "fr", "Français")


def test_codes_are_case_sensitive(session, settings) -> None:
    registry = LanguageRegistry(session, settings)
    registry.add(PROJECT_ID, "pt-BR", "Portuguese (Brazil)")
    registry.add(PROJECT_ID, "pt-br", "Portuguese (lower)")

    assert {"pt-BR", "pt-br"} <= set(registry.active_codes(PROJECT_ID))


@pytest.mark.parametrize("code", ["", "e", "EN", "english", "fr--CA", "12"])
def test_malformed_codes_are_rejected(code: str) -> None:
    with pytest.raises(InvalidLanguageCode):
        validate_language_code(code)


def test_base_language_cannot_be_removed(session, settings) -> None:
    registry = LanguageRegistry(session, settings)
    base = registry.ensure_base(PROJECT_ID)

    with pytest.raises(BaseLanguageProtected):
        registry.remove(base.id)
    assert "en" in registry.active_codes(PROJECT_ID)


def test_remove_is_soft_and_readding_reactivates(session, settings) -> None:
    registry = LanguageRegistry(session, settings)
    french = registry.add(PROJECT_ID, "fr", "French")

    registry.remove(french.id)
    assert "fr" not in registry.active_codes(PROJECT_ID)
    assert "fr" in [item.code for item in registry.list(PROJECT_ID, include_inactive=True)]

    again = registry.add(PROJECT_ID, "fr", "French (FR)")
    assert again.id == french.id
    assert again.is_active is True
    assert again.name == "French (FR)"


def test_ensure_base_is_idempotent(session, settings) -> None:
    registry = LanguageRegistry(session, settings)
    first = registry.ensure_base(PROJECT_ID)
    second = registry.ensure_base(PROJECT_ID)

    assert first.id == second.id
    assert [item.code for item in registry.list(PROJECT_ID) if item.is_base] == ["en"]


def test_visible_languages_always_include_base(session, settings) -> None:
    registry = LanguageRegistry(session, settings)
    registry.add(PROJECT_ID, "fr", "French")
    registry.add(PROJECT_ID, "es", "Spanish")

    assert registry.visible_languages(PROJECT_ID, ["fr"]) == ["en", "fr"]
    assert registry.visible_languages(PROJECT_ID, []) == ["en"]
    assert registry.visible_languages(PROJECT_ID, ["xx"]) == ["en"]
    assert registry.visible_languages(PROJECT_ID) == ["en", "es", "fr"]


def test_update_renames_display_name(session, settings) -> None:
    registry = LanguageRegistry(session, settings)
    french = registry.add(PROJECT_ID, "fr", "French")

    assert registry.update(french.id, "Français").name == "Français"
