from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from filelock import FileLock, Timeout
from tinydb import Query, TinyDB

from formsaas.errors import NotFound, StorageFailure
from formsaas.forms import FormDefinition
from formsaas.submissions import Submission
from formsaas.tenants import Tenant
from formsaas.utils import parse_dt, to_iso

LOCK_TIMEOUT_SECONDS = 10


class JSONRepoBase:
    def __init__(self, path: Path, lock: FileLock) -> None:
        self._path = path
        self._lock = lock

    @contextmanager
    def _db(self) -> Iterator[TinyDB]:
        try:
            with self._lock.acquire(timeout=LOCK_TIMEOUT_SECONDS):
                db = TinyDB(self._path)
                try:
                    yield db
                finally:
                    db.close()
        except Timeout as exc:
            raise StorageFailure(f"Timed out waiting for {self._path}") from exc
        except (OSError, ValueError) as exc:
            raise StorageFailure(f"Cannot access {self._path}: {exc}") from exc


class JSONTenantRepo(JSONRepoBase):
    def list_tenants(self) -> list[Tenant]:
        with self._db() as db:
            items = db.table("tenants").all()
        tenants = [Tenant.from_record(item) for item in items]
        return sorted(tenants, key=lambda x: x.company_name)

    def get_tenant(self, tenant_id: str) -> Tenant | None:
        with self._db() as db:
            item = db.table("tenants").get(Query().id == tenant_id)
        return Tenant.from_record(item) if item else None

    def get_tenant_by_username(self, username: str) -> Tenant | None:
        with self._db() as db:
            item = db.table("tenants").get(Query().username == username)
        return Tenant.from_record(item) if item else None

    def create_tenant(self, tenant: Tenant) -> None:
        with self._db() as db:
            db.table("tenants").insert(tenant.to_record())


class JSONFormRepo(JSONRepoBase):
    def list_forms(self) -> list[FormDefinition]:
        with self._db() as db:
            items = db.table("forms").all()
        forms = [FormDefinition.from_record(item) for item in items]
        return sorted(forms, key=lambda x: x.created_at, reverse=True)

    def list_forms_by_owner(self, owner_tenant_id: str) -> list[FormDefinition]:
        with self._db() as db:
            items = db.table("forms").search(Query().owner_tenant_id == owner_tenant_id)
        forms = [FormDefinition.from_record(item) for item in items]
        return sorted(forms, key=lambda x: x.created_at, reverse=True)

    def get_form(self, form_id: str) -> FormDefinition | None:
        with self._db() as db:
            item = db.table("forms").get(Query().id == form_id)
        return FormDefinition.from_record(item) if item else None

    def create_form(self, form: FormDefinition) -> None:
        with self._db() as db:
            db.table("forms").insert(form.to_record())

    def update_form(self, form: FormDefinition) -> FormDefinition:
        with self._db() as db:
            table = db.table("forms")
            item = table.get(Query().id == form.id)
            if not item:
                raise NotFound("form", form.id)
            record = form.to_record()
            # identity columns stay as first stored
            for key in ("id", "owner_tenant_id", "created_at"):
                record[key] = item[key]
            table.update(record, Query().id == form.id)
        return FormDefinition.from_record(record)


class JSONSubmissionRepo(JSONRepoBase):
    def list_submissions(self, form_id: str) -> list[Submission]:
        with self._db() as db:
            items = db.table("submissions").search(Query().form_id == form_id)
        submissions = [Submission.from_record(item) for item in items]
        return sorted(submissions, key=lambda x: x.submitted_at, reverse=True)

    def create_submission(self, submission: Submission) -> None:
        with self._db() as db:
            db.table("submissions").insert(submission.to_record())


class JSONFileRepo(JSONRepoBase):
    def create_file(self, file_meta: dict[str, Any]) -> None:
        record = self._to_record(file_meta)
        with self._db() as db:
            db.table("files").insert(record)

    def get_file_by_name(self, stored_name: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("files").get(Query().stored_name == stored_name)
        return self._from_record(item) if item else None

    def delete_file_by_name(self, stored_name: str) -> None:
        with self._db() as db:
            db.table("files").remove(Query().stored_name == stored_name)

    @staticmethod
    def _to_record(file_meta: dict[str, Any]) -> dict[str, Any]:
        created_at = file_meta["created_at"]
        return {
            "id": file_meta["id"],
            "stored_name": file_meta["stored_name"],
            "form_id": file_meta.get("form_id"),
            "original_name": file_meta["original_name"],
            "stored_path": file_meta["stored_path"],
            "content_type": file_meta["content_type"],
            "size": file_meta["size"],
            "created_at": to_iso(created_at) if isinstance(created_at, datetime) else created_at,
        }

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "stored_name": record["stored_name"],
            "form_id": record.get("form_id"),
            "original_name": record.get("original_name", ""),
            "stored_path": record.get("stored_path", ""),
            "content_type": record.get("content_type", ""),
            "size": record.get("size", 0),
            "created_at": parse_dt(record.get("created_at")),
        }


class JSONStorage:
    def __init__(self, path: Path) -> None:
        self._lock = FileLock(f"{path}.lock")
        self.tenants = JSONTenantRepo(path, self._lock)
        self.forms = JSONFormRepo(path, self._lock)
        self.submissions = JSONSubmissionRepo(path, self._lock)
        self.files = JSONFileRepo(path, self._lock)
