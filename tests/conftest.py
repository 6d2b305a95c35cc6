from __future__ import annotations

import time
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from localedesk.config import Settings
from localedesk.database import Database, create_database
from localedesk.errors import NetworkError
from localedesk.gateway import AutoTranslateGateway
from localedesk.main import bootstrap_project, create_app
from localedesk.projects import ProjectStore

PROJECT_ID = "p1"


class FakeProvider:
    """Returns canned translations; languages in ``failing`` raise NetworkError."""

    def __init__(
        self,
        responses: dict[str, str] | None = None,
        failing: set[str] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.responses = responses or {}
        self.failing = failing or set()
        self.delay = delay
        self.calls: list[tuple[str, str, str, str]] = []

    def translate(self, text: str, source_language: str, target_language: str, credential: str) -> str:
        self.calls.append((text, source_language, target_language, credential))
        if self.delay:
            time.sleep(self.delay)
        if target_language in self.failing:
            raise NetworkError(f"provider down for {target_language}")
        return self.responses.get(target_language, f"[{target_language}] {text}")


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite:///:memory:",
        auto_translate_wait_seconds=2.0,
        log_level="WARNING",
    )


@pytest.fixture()
def database(settings: Settings) -> Iterator[Database]:
    db = create_database(settings.database_url)
    db.create_all()
    with db.get_session() as session:
        ProjectStore(session, settings).create("Test project", project_id=PROJECT_ID)
        bootstrap_project(session, settings, PROJECT_ID)
    yield db
    db.engine.dispose()


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def gateway(provider: FakeProvider) -> AutoTranslateGateway:
    return AutoTranslateGateway(provider)


@pytest.fixture()
def session(database: Database):
    with database.get_session() as session:
        yield session


@pytest.fixture()
def set_secret(database: Database, settings: Settings):
    def apply(secret: str | None = "secret-key") -> None:
        with database.get_session() as session:
            ProjectStore(session, settings).update_settings(
                PROJECT_ID, translation_api_key=secret or ""
            )

    return apply


@pytest.fixture()
def client(settings: Settings, database: Database, gateway: AutoTranslateGateway) -> Iterator[TestClient]:
    app = create_app(settings, database=database, gateway=gateway)
    with TestClient(app) as test_client:
        yield test_client
