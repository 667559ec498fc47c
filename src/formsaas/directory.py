from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from formsaas.forms import FormDefinition
from formsaas.tenants import TenantProfile


@dataclass(frozen=True)
class DirectoryEntry:
    form: FormDefinition
    tenant: TenantProfile | None


@dataclass(frozen=True)
class Directory:
    tenants: list[TenantProfile]
    entries: list[DirectoryEntry]

    def forms_of(self, tenant_id: str) -> list[FormDefinition]:
        return [entry.form for entry in self.entries if entry.form.owner_tenant_id == tenant_id]

    def unowned_forms(self) -> list[FormDefinition]:
        return [entry.form for entry in self.entries if entry.tenant is None]


def list_public(storage: Any) -> Directory:
    profiles = {tenant.id: tenant.profile() for tenant in storage.tenants.list_tenants()}
    entries = [
        DirectoryEntry(form=form, tenant=profiles.get(form.owner_tenant_id))
        for form in storage.forms.list_forms()
    ]
    return Directory(tenants=list(profiles.values()), entries=entries)


def list_owned(storage: Any, tenant_id: str) -> list[FormDefinition]:
    return [
        form
        for form in storage.forms.list_forms_by_owner(tenant_id)
        if form.owner_tenant_id == tenant_id
    ]
