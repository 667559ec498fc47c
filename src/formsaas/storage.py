from __future__ import annotations

from typing import Any, Protocol

from formsaas.config import Settings, ensure_dirs
from formsaas.forms import FormDefinition
from formsaas.submissions import Submission
from formsaas.tenants import Tenant


class TenantRepository(Protocol):
    def list_tenants(self) -> list[Tenant]: ...

    def get_tenant(self, tenant_id: str) -> Tenant | None: ...

    def get_tenant_by_username(self, username: str) -> Tenant | None: ...

    def create_tenant(self, tenant: Tenant) -> None: ...


class FormRepository(Protocol):
    def list_forms(self) -> list[FormDefinition]: ...

    def list_forms_by_owner(self, owner_tenant_id: str) -> list[FormDefinition]: ...

    def get_form(self, form_id: str) -> FormDefinition | None: ...

    def create_form(self, form: FormDefinition) -> None: ...

    def update_form(self, form: FormDefinition) -> FormDefinition: ...


class SubmissionRepository(Protocol):
    def list_submissions(self, form_id: str) -> list[Submission]: ...

    def create_submission(self, submission: Submission) -> None: ...


class FileRepository(Protocol):
    def create_file(self, file_meta: dict[str, Any]) -> None: ...

    def get_file_by_name(self, stored_name: str) -> dict[str, Any] | None: ...

    def delete_file_by_name(self, stored_name: str) -> None: ...


class Storage(Protocol):
    tenants: TenantRepository
    forms: FormRepository
    submissions: SubmissionRepository
    files: FileRepository


def init_storage(settings: Settings) -> Storage:
    from formsaas.repo_json import JSONStorage
    from formsaas.repo_sqlite import SQLiteStorage

    ensure_dirs(settings)
    if settings.storage_backend == "json":
        return JSONStorage(settings.json_path)
    return SQLiteStorage(settings.sqlite_path)
