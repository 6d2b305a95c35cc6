from __future__ import annotations

import importlib.util
import json
from pathlib import Path


def _load_module():
    script_path = Path(__file__).resolve().parents[1] / "scripts" / "run_bulk_auto_translate.py"
    spec = importlib.util.spec_from_file_location("run_bulk_auto_translate", script_path)
    module = importlib.util.module_from_spec(spec)
    assert spec and spec.loader
    spec.loader.exec_module(module)
    return module


def test_parse_languages_drops_blanks() -> None:
    module = _load_module()

    assert module.parse_languages(" fr, ,de ,") == ["fr", "de"]


def test_main_requires_project_id(monkeypatch) -> None:
    module = _load_module()
    monkeypatch.delenv("LOCALEDESK_PROJECT_ID", raising=False)

    assert module.main(["--languages", "fr"]) == 2


def test_main_requires_languages() -> None:
    module = _load_module()

    assert module.main(["--project-id", "p1", "--languages", " , "]) == 2


def test_main_posts_languages_and_reports_failures(monkeypatch, capsys) -> None:
    module = _load_module()
    sent = {}

    def fake_post(url, payload, *, user, timeout):
        sent.update(url=url, payload=payload, user=user)
        return {"succeeded": 1, "failed": 1, "errors": [{"key": "b", "error": "down"}]}

    monkeypatch.setattr(module, "post_json", fake_post)

    code = module.main(
        ["--base-url", "http://api.test/", "--project-id", "p1", "--languages", "fr,de", "--user", "ops"]
    )

    assert code == 1
    assert sent == {
        "url": "http://api.test/admin/projects/p1/auto-translate",
        "payload": {"languages": ["fr", "de"]},
        "user": "ops",
    }
    assert json.loads(capsys.readouterr().out)["failed"] == 1
