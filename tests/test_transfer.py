from __future__ import annotations

import io
import json
import zipfile

import pytest

from localedesk import transfer
from localedesk.errors import ValidationError
from localedesk.keys import TranslationKeyStore
from localedesk.languages import LanguageRegistry

from conftest import PROJECT_ID

TABLE = {
    "a.b": {"en": "Hi", "fr": "Salut"},
    "c.d": {"en": "Bye", "fr": "Au revoir"},
}


def test_csv_export_matches_expected_text() -> None:
    assert transfer.export_csv(TABLE, ["en", "fr"]) == (
        'key,en,fr\n"a.b","Hi","Salut"\n"c.d","Bye","Au revoir"'
    )


def test_csv_export_doubles_inner_quotes_and_fills_missing() -> None:
    text = transfer.export_csv({"q": {"en": 'Say "hi"'}}, ["en", "de"])

    assert text.splitlines()[1] == '"q","Say ""hi""",""'


def test_yaml_export_escapes_quotes() -> None:
    text = transfer.export_yaml({"q": {"en": 'Say "hi"', "fr": "Salut"}}, ["en", "fr"])

    assert text == 'q:\n  en: "Say \\"hi\\""\n  fr: "Salut"'


def test_export_languages_forces_base_first() -> None:
    assert transfer.export_languages("en", ["fr", "en", "de", "fr"]) == ["en", "fr", "de"]
    assert transfer.export_languages("en", None) == ["en"]


def test_json_export_is_zip_of_language_files() -> None:
    archive = zipfile.ZipFile(io.BytesIO(transfer.export_json(TABLE, ["en", "fr"])))

    assert sorted(archive.namelist()) == ["en/common.json", "fr/common.json"]
    assert json.loads(archive.read("fr/common.json")) == {"a.b": "Salut", "c.d": "Au revoir"}
    assert archive.read("en/common.json").decode().startswith('{\n  "a.b"')


def test_json_round_trip_preserves_pairs() -> None:
    raw = transfer.export_table(TABLE, ["en", "fr"], "json")

    assert transfer.parse_import(raw, "json") == TABLE


def test_parse_json_object() -> None:
    raw = json.dumps({"x": {"en": "X", "fr": None}}).encode()

    assert transfer.parse_import(raw, "json") == {"x": {"en": "X", "fr": ""}}


def test_parse_csv_handles_quoted_commas() -> None:
    raw = b'key,en,fr\n"greet","Hello, world","Bonjour, le monde"\n\n'

    assert transfer.parse_import(raw, "csv") == {
        "greet": {"en": "Hello, world", "fr": "Bonjour, le monde"}
    }


@pytest.mark.parametrize(
    ("raw", "fmt"),
    [
        (b"key,en\n", "csv"),
        (b"name,en\nx,y\n", "csv"),
        (b"[1, 2]", "json"),
        (b"{not json", "json"),
        (b"a:\n  en: b\n", "yaml"),
        (b"", "xml"),
    ],
)
def test_parse_import_rejects_bad_input(raw: bytes, fmt: str) -> None:
    with pytest.raises(ValidationError):
        transfer.parse_import(raw, fmt)


def test_preview_counts_languages_and_samples_base_text() -> None:
    table = {
        "one": {"en": "One", "fr": "Un"},
        "two": {"en": "", "de": "Zwei"},
        "three": {"en": "Three"},
        "four": {"en": "Four"},
    }

    preview = transfer.preview(table, "en").as_dict()

    assert preview == {
        "keyCount": 4,
        "detectedLanguages": ["en", "fr", "de"],
        "sampleEntries": {"one": "One", "three": "Three"},
    }


def test_commit_merges_by_key_name(session, settings) -> None:
    LanguageRegistry(session, settings).add(PROJECT_ID, "fr", "French")
    store = TranslationKeyStore(session, settings)
    existing = store.create(PROJECT_ID, "a.b", base_text="Hi", translations={"fr": "Salut"})
    store.confirm(existing.id)

    report = transfer.commit(
        session,
        settings,
        PROJECT_ID,
        {
            "a.b": {"en": "Hello", "fr": ""},
            "c.d": {"en": "Bye", "fr": "Au revoir"},
            "e.f": {"en": "", "fr": "Orphelin"},
        },
        actor="importer",
    )

    assert report["created"] == 1
    assert report["updated"] == 1
    assert report["failed"] == 1
    assert report["errors"][0]["key"] == "e.f"
    keys = {item.key: item for item in store.list(PROJECT_ID)}
    assert keys["a.b"].translations == {"en": "Hello", "fr": "Salut"}
    assert keys["a.b"].status == "unconfirmed"
    assert keys["c.d"].translations == {"en": "Bye", "fr": "Au revoir"}
    assert keys["c.d"].status == "unconfirmed"
    assert "e.f" not in keys


def test_commit_forces_unconfirmed_even_without_changes(session, settings) -> None:
    store = TranslationKeyStore(session, settings)
    key = store.create(PROJECT_ID, "same", base_text="Same")
    store.confirm(key.id)

    report = transfer.commit(session, settings, PROJECT_ID, {"same": {"en": "Same"}})

    assert report["updated"] == 1
    assert store.get(key.id).status == "unconfirmed"
