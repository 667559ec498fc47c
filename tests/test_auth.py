from __future__ import annotations

import pytest

from formsaas.auth import authenticate, hash_password, register_tenant, verify_password
from formsaas.errors import ValidationError


def test_password_hashing() -> None:
    hashed = hash_password("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("anything", "")


def test_register_and_authenticate(storage) -> None:
    tenant = register_tenant(storage, " acme ", "pw", " Acme Corp ")
    assert tenant.username == "acme"
    assert tenant.company_name == "Acme Corp"
    assert authenticate(storage, "acme", "pw").id == tenant.id
    assert authenticate(storage, "acme", "nope") is None
    assert authenticate(storage, "ghost", "pw") is None


def test_register_rejects_missing_fields_and_duplicates(storage) -> None:
    with pytest.raises(ValidationError):
        register_tenant(storage, "acme", "", "Acme")
    register_tenant(storage, "acme", "pw", "Acme")
    with pytest.raises(ValidationError) as exc_info:
        register_tenant(storage, "acme", "pw2", "Other")
    assert exc_info.value.messages == ["Username is already taken."]


def test_register_page_flow(client, app) -> None:
    response = client.post(
        "/register",
        data={"username": "acme", "password": "pw", "companyName": "Acme"},
        files={"logo": ("logo.png", b"\x89PNG", "image/png")},
        follow_redirects=False,
    )
    assert response.status_code == 303
    tenant = app.state.storage.tenants.get_tenant_by_username("acme")
    assert tenant.logo_path.startswith("/uploads/")

    again = client.post("/register", data={"username": "acme", "password": "x", "companyName": "B"})
    assert "Username is already taken." in again.text

    missing = client.post("/register", data={"username": "", "password": "x", "companyName": "B"})
    assert "All fields are required." in missing.text


def test_login_logout(client) -> None:
    client.post("/register", data={"username": "acme", "password": "pw", "companyName": "Acme"})
    bad = client.post("/login", data={"username": "acme", "password": "bad"})
    assert "Invalid username or password." in bad.text
    client.post("/login", data={"username": "acme", "password": "pw"})
    assert client.get("/dashboard", follow_redirects=False).status_code == 200
    client.get("/logout")
    assert client.get("/dashboard", follow_redirects=False).status_code == 303
