from __future__ import annotations

import logging
from typing import Any, Protocol

from fastapi import Request
from passlib.context import CryptContext

from formsaas.errors import ValidationError
from formsaas.tenants import Tenant, TenantIdentity
from formsaas.utils import new_ulid

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

SESSION_KEY = "tenant"


class LoginRequired(Exception):
    pass


class AuthProvider(Protocol):
    def current_tenant(self, request: Request) -> TenantIdentity | None: ...

    def login(self, request: Request, tenant: Tenant) -> None: ...

    def logout(self, request: Request) -> None: ...


class SessionAuthProvider:
    """Keeps only the tenant id and company name in the signed session cookie."""

    def current_tenant(self, request: Request) -> TenantIdentity | None:
        raw = request.session.get(SESSION_KEY)
        if not isinstance(raw, dict) or not raw.get("id"):
            return None
        return TenantIdentity(id=str(raw["id"]), company_name=str(raw.get("company_name") or ""))

    def login(self, request: Request, tenant: Tenant) -> None:
        identity = tenant.identity()
        request.session[SESSION_KEY] = {"id": identity.id, "company_name": identity.company_name}

    def logout(self, request: Request) -> None:
        request.session.clear()


def require_tenant(request: Request) -> TenantIdentity:
    tenant = request.app.state.auth_provider.current_tenant(request)
    if tenant is None:
        raise LoginRequired()
    return tenant


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def check_registration(username: Any, password: Any, company_name: Any) -> None:
    if not all(isinstance(v, str) and v.strip() for v in (username, password, company_name)):
        raise ValidationError("All fields are required.")


def register_tenant(
    storage: Any,
    username: str,
    password: str,
    company_name: str,
    logo_path: str | None = None,
) -> Tenant:
    check_registration(username, password, company_name)
    username = username.strip()
    if storage.tenants.get_tenant_by_username(username):
        raise ValidationError("Username is already taken.")
    tenant = Tenant(
        id=new_ulid(),
        username=username,
        password_hash=hash_password(password),
        company_name=company_name.strip(),
        logo_path=logo_path,
    )
    storage.tenants.create_tenant(tenant)
    logger.info("Tenant registered: id=%s", tenant.id)
    return tenant


def authenticate(storage: Any, username: str, password: str) -> Tenant | None:
    tenant = storage.tenants.get_tenant_by_username((username or "").strip())
    if tenant is None or not verify_password(password or "", tenant.password_hash):
        return None
    return tenant
