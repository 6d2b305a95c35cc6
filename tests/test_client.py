from __future__ import annotations

import requests

from localedesk.client import TranslationClient, interpolate


class FakeResponse:
    def __init__(self, payload, status_code: int = 200) -> None:
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, responses: dict[str, FakeResponse]) -> None:
        self.responses = responses
        self.calls: list[dict] = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers})
        key = f"{params['locale']}:{params['namespace']}"
        response = self.responses.get(key)
        if response is None:
            raise requests.ConnectionError("offline")
        return response


def _client(responses: dict[str, FakeResponse]) -> tuple[TranslationClient, FakeSession]:
    http = FakeSession(responses)
    client = TranslationClient("trn_abc_def", "p1", base_url="http://api.test/api/translations/", session=http)
    return client, http


def test_interpolate_replaces_named_placeholders() -> None:
    assert interpolate("Hi {{name}}, {{ count }} new", {"name": "Ann", "count": 3}) == "Hi Ann, 3 new"
    assert interpolate("Keep {{other}}", {"name": "x"}) == "Keep {{other}}"


def test_fetch_sends_credentials_and_caches() -> None:
    client, http = _client({"fr:default": FakeResponse({"hello": "Bonjour"})})

    first = client.fetch_translations("fr")
    second = client.fetch_translations("fr")

    assert first == second == {"hello": "Bonjour"}
    assert len(http.calls) == 1
    assert http.calls[0]["url"] == "http://api.test/api/translations"
    assert http.calls[0]["headers"] == {"Authorization": "Bearer trn_abc_def", "Project-ID": "p1"}


def test_fetch_failure_returns_empty_map_and_is_not_cached() -> None:
    client, http = _client({"de:default": FakeResponse({"error": "Unauthorized"}, status_code=401)})

    assert client.fetch_translations("de") == {}
    assert client.fetch_translations("es") == {}
    assert client.fetch_translations("de") == {}
    assert len(http.calls) == 3


def test_non_object_payload_is_ignored() -> None:
    client, _ = _client({"en:default": FakeResponse(["not", "a", "map"])})

    assert client.fetch_translations() == {}


def test_fetch_many_merges_namespaces_in_order() -> None:
    client, _ = _client(
        {
            "en:default": FakeResponse({"title": "Shop", "cta": "Buy"}),
            "en:checkout": FakeResponse({"cta": "Pay now"}),
        }
    )

    assert client.fetch_many("en", ["default", "checkout"]) == {"title": "Shop", "cta": "Pay now"}


def test_translate_falls_back_to_key() -> None:
    translations = {"greet": "Hello, {{name}}!", "blank": ""}

    assert TranslationClient.translate("greet", {"name": "Sam"}, translations) == "Hello, Sam!"
    assert TranslationClient.translate("blank", None, translations) == "blank"
    assert TranslationClient.translate("missing") == "missing"


def test_get_translator_binds_locale_and_clear_cache_refetches() -> None:
    client, http = _client({"fr:default": FakeResponse({"bye": "Au revoir {{name}}"})})

    t = client.get_translator("fr")
    assert t("bye", {"name": "Léa"}) == "Au revoir Léa"
    assert t("unknown") == "unknown"

    client.clear_cache()
    client.fetch_translations("fr")
    assert len(http.calls) == 2
