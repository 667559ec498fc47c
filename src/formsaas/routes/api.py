from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from formsaas.auth import require_tenant
from formsaas.directory import list_owned, list_public
from formsaas.forms import FormDefinition
from formsaas.guard import get_owned_form
from formsaas.submissions import Submission
from formsaas.tenants import TenantIdentity, TenantProfile
from formsaas.utils import to_iso

router = APIRouter()


def form_output(form: FormDefinition) -> dict[str, Any]:
    return {
        "id": form.id,
        "owner_tenant_id": form.owner_tenant_id,
        "title": form.title,
        "fields": [field.to_record() for field in form.fields],
        "template": form.template,
        "allow_file": form.allow_file,
        "created_at": to_iso(form.created_at),
        "updated_at": to_iso(form.updated_at),
    }


def tenant_output(tenant: TenantProfile | None) -> dict[str, Any] | None:
    if tenant is None:
        return None
    return {"id": tenant.id, "company_name": tenant.company_name, "logo_path": tenant.logo_path}


def submission_output(submission: Submission) -> dict[str, Any]:
    return {
        "id": submission.id,
        "form_id": submission.form_id,
        "data": submission.data,
        "file_path": submission.file_path,
        "submitted_at": to_iso(submission.submitted_at),
    }


@router.get("/api/forms", tags=["api"])
async def api_list_forms(request: Request) -> JSONResponse:
    directory = list_public(request.app.state.storage)
    return JSONResponse(
        [
            {**form_output(entry.form), "company": tenant_output(entry.tenant)}
            for entry in directory.entries
        ]
    )


@router.get("/api/dashboard/forms", tags=["api"])
async def api_owned_forms(
    request: Request, tenant: TenantIdentity = Depends(require_tenant)
) -> JSONResponse:
    forms = list_owned(request.app.state.storage, tenant.id)
    return JSONResponse([form_output(form) for form in forms])


@router.get("/api/forms/{form_id}/submissions", tags=["api"])
async def api_list_submissions(
    request: Request, form_id: str, tenant: TenantIdentity = Depends(require_tenant)
) -> JSONResponse:
    storage = request.app.state.storage
    get_owned_form(storage, form_id, tenant.id)
    submissions = storage.submissions.list_submissions(form_id)
    return JSONResponse([submission_output(item) for item in submissions])
