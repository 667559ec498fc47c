from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from formsaas.app import create_app
from formsaas.config import Settings
from formsaas.storage import init_storage

PASSWORD = "s3cret-pass"


class FakeUpload:
    """Stands in for starlette's UploadFile in unit tests."""

    def __init__(self, filename: str, content: bytes, content_type: str = "text/plain") -> None:
        self.filename = filename
        self.content_type = content_type
        self._content = content

    async def read(self) -> bytes:
        return self._content


def make_settings(tmp_path: Path, backend: str, **overrides: Any) -> Settings:
    return Settings(
        storage_backend=backend,
        sqlite_path=tmp_path / "app.db",
        json_path=tmp_path / "jsonstore.json",
        upload_dir=tmp_path / "uploads",
        session_secret="test-secret",
        **overrides,
    )


@pytest.fixture(params=["sqlite", "json"])
def settings(request: pytest.FixtureRequest, tmp_path: Path) -> Settings:
    return make_settings(tmp_path, request.param)


@pytest.fixture
def storage(settings: Settings) -> Any:
    return init_storage(settings)


@pytest.fixture
def app(settings: Settings) -> Any:
    return create_app(settings)


@pytest.fixture
def client(app: Any) -> TestClient:
    return TestClient(app)


def sign_in(app: Any, username: str, company_name: str) -> tuple[TestClient, str]:
    """Register a company through the HTTP surface and return a logged-in client."""
    client = TestClient(app)
    client.post(
        "/register",
        data={"username": username, "password": PASSWORD, "companyName": company_name},
    )
    response = client.post(
        "/login",
        data={"username": username, "password": PASSWORD},
        follow_redirects=False,
    )
    assert response.status_code == 303
    tenant = app.state.storage.tenants.get_tenant_by_username(username)
    return client, tenant.id


@pytest.fixture
def acme(app: Any) -> tuple[TestClient, str]:
    return sign_in(app, "acme", "Acme Corp")


@pytest.fixture
def globex(app: Any) -> tuple[TestClient, str]:
    return sign_in(app, "globex", "Globex")
