from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from formsaas.utils import now_utc, parse_dt, to_iso


@dataclass(frozen=True)
class TenantIdentity:
    """What the session knows about the signed-in company."""

    id: str
    company_name: str


@dataclass(frozen=True)
class TenantProfile:
    id: str
    company_name: str
    logo_path: str | None = None


@dataclass(frozen=True)
class Tenant:
    id: str
    username: str
    password_hash: str
    company_name: str
    logo_path: str | None = None
    created_at: datetime = dataclasses.field(default_factory=now_utc)

    def identity(self) -> TenantIdentity:
        return TenantIdentity(id=self.id, company_name=self.company_name)

    def profile(self) -> TenantProfile:
        return TenantProfile(id=self.id, company_name=self.company_name, logo_path=self.logo_path)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "password_hash": self.password_hash,
            "company_name": self.company_name,
            "logo_path": self.logo_path,
            "created_at": to_iso(self.created_at),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Tenant:
        return cls(
            id=record["id"],
            username=record["username"],
            password_hash=record.get("password_hash", ""),
            company_name=record.get("company_name", ""),
            logo_path=record.get("logo_path") or None,
            created_at=parse_dt(record.get("created_at")),
        )
