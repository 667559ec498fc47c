from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from formsaas.errors import NotFound, StorageFailure
from formsaas.fields import Field
from formsaas.forms import FormDefinition
from formsaas.models import Base, FileModel, FormModel, SubmissionModel, TenantModel
from formsaas.submissions import Submission
from formsaas.tenants import Tenant
from formsaas.utils import dumps_json, loads_json, parse_dt


class SQLiteRepoBase:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self._Session() as session:
                yield session
        except SQLAlchemyError as exc:
            raise StorageFailure(f"Database error: {exc.__class__.__name__}") from exc


class SQLiteTenantRepo(SQLiteRepoBase):
    def list_tenants(self) -> list[Tenant]:
        with self._session() as session:
            rows = session.query(TenantModel).order_by(TenantModel.company_name).all()
            return [self._to_tenant(row) for row in rows]

    def get_tenant(self, tenant_id: str) -> Tenant | None:
        with self._session() as session:
            row = session.get(TenantModel, tenant_id)
            return self._to_tenant(row) if row else None

    def get_tenant_by_username(self, username: str) -> Tenant | None:
        with self._session() as session:
            row = (
                session.query(TenantModel)
                .filter(TenantModel.username == username)
                .first()
            )
            return self._to_tenant(row) if row else None

    def create_tenant(self, tenant: Tenant) -> None:
        with self._session() as session:
            session.add(
                TenantModel(
                    id=tenant.id,
                    username=tenant.username,
                    password_hash=tenant.password_hash,
                    company_name=tenant.company_name,
                    logo_path=tenant.logo_path,
                    created_at=tenant.created_at,
                )
            )
            session.commit()

    @staticmethod
    def _to_tenant(row: TenantModel) -> Tenant:
        return Tenant(
            id=row.id,
            username=row.username,
            password_hash=row.password_hash,
            company_name=row.company_name,
            logo_path=row.logo_path,
            created_at=parse_dt(row.created_at),
        )


class SQLiteFormRepo(SQLiteRepoBase):
    def list_forms(self) -> list[FormDefinition]:
        with self._session() as session:
            rows = session.query(FormModel).order_by(FormModel.created_at.desc()).all()
            return [self._to_form(row) for row in rows]

    def list_forms_by_owner(self, owner_tenant_id: str) -> list[FormDefinition]:
        with self._session() as session:
            rows = (
                session.query(FormModel)
                .filter(FormModel.owner_tenant_id == owner_tenant_id)
                .order_by(FormModel.created_at.desc())
                .all()
            )
            return [self._to_form(row) for row in rows]

    def get_form(self, form_id: str) -> FormDefinition | None:
        with self._session() as session:
            row = session.get(FormModel, form_id)
            return self._to_form(row) if row else None

    def create_form(self, form: FormDefinition) -> None:
        with self._session() as session:
            session.add(
                FormModel(
                    id=form.id,
                    owner_tenant_id=form.owner_tenant_id,
                    title=form.title,
                    fields_json=dumps_json([field.to_record() for field in form.fields]),
                    template=form.template,
                    allow_file=form.allow_file,
                    created_at=form.created_at,
                    updated_at=form.updated_at,
                )
            )
            session.commit()

    def update_form(self, form: FormDefinition) -> FormDefinition:
        with self._session() as session:
            row = session.get(FormModel, form.id)
            if not row:
                raise NotFound("form", form.id)
            row.title = form.title
            row.fields_json = dumps_json([field.to_record() for field in form.fields])
            row.template = form.template
            row.allow_file = form.allow_file
            row.updated_at = form.updated_at
            session.commit()
            session.refresh(row)
            return self._to_form(row)

    @staticmethod
    def _to_form(row: FormModel) -> FormDefinition:
        return FormDefinition(
            id=row.id,
            owner_tenant_id=row.owner_tenant_id,
            title=row.title or "",
            fields=tuple(Field.from_record(item) for item in loads_json(row.fields_json) or []),
            template=row.template or "default",
            allow_file=bool(row.allow_file),
            created_at=parse_dt(row.created_at),
            updated_at=parse_dt(row.updated_at or row.created_at),
        )


class SQLiteSubmissionRepo(SQLiteRepoBase):
    def list_submissions(self, form_id: str) -> list[Submission]:
        with self._session() as session:
            rows = (
                session.query(SubmissionModel)
                .filter(SubmissionModel.form_id == form_id)
                .order_by(SubmissionModel.submitted_at.desc())
                .all()
            )
            return [self._to_submission(row) for row in rows]

    def create_submission(self, submission: Submission) -> None:
        with self._session() as session:
            session.add(
                SubmissionModel(
                    id=submission.id,
                    form_id=submission.form_id,
                    data_json=dumps_json(submission.data),
                    file_path=submission.file_path,
                    submitted_at=submission.submitted_at,
                )
            )
            session.commit()

    @staticmethod
    def _to_submission(row: SubmissionModel) -> Submission:
        return Submission(
            id=row.id,
            form_id=row.form_id,
            data=loads_json(row.data_json) or {},
            file_path=row.file_path,
            submitted_at=parse_dt(row.submitted_at),
        )


class SQLiteFileRepo(SQLiteRepoBase):
    def create_file(self, file_meta: dict[str, Any]) -> None:
        with self._session() as session:
            session.add(
                FileModel(
                    id=file_meta["id"],
                    stored_name=file_meta["stored_name"],
                    form_id=file_meta.get("form_id"),
                    original_name=file_meta["original_name"],
                    stored_path=file_meta["stored_path"],
                    content_type=file_meta["content_type"],
                    size=file_meta["size"],
                    created_at=file_meta["created_at"],
                )
            )
            session.commit()

    def get_file_by_name(self, stored_name: str) -> dict[str, Any] | None:
        with self._session() as session:
            row = (
                session.query(FileModel)
                .filter(FileModel.stored_name == stored_name)
                .first()
            )
            if not row:
                return None
            return {
                "id": row.id,
                "stored_name": row.stored_name,
                "form_id": row.form_id,
                "original_name": row.original_name,
                "stored_path": row.stored_path,
                "content_type": row.content_type,
                "size": row.size,
                "created_at": parse_dt(row.created_at),
            }


    def delete_file_by_name(self, stored_name: str) -> None:
        with self._session() as session:
            row = (
                session.query(FileModel)
                .filter(FileModel.stored_name == stored_name)
                .first()
            )
            if row:
                session.delete(row)
                session.commit()


class SQLiteStorage:
    def __init__(self, db_path: Path) -> None:
        self._engine = create_engine(f"sqlite:///{db_path}", future=True)
        self._Session = sessionmaker(self._engine, expire_on_commit=False)
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StorageFailure(f"Cannot initialize database at {db_path}") from exc
        self.tenants = SQLiteTenantRepo(self._Session)
        self.forms = SQLiteFormRepo(self._Session)
        self.submissions = SQLiteSubmissionRepo(self._Session)
        self.files = SQLiteFileRepo(self._Session)
