from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, HTMLResponse

from formsaas.directory import list_public
from formsaas.errors import NotFound, StorageFailure, ValidationError
from formsaas.forms import FormDefinition
from formsaas.guard import get_form_or_404
from formsaas.rendering import render
from formsaas.submissions import build_submission, collect_data, first_upload
from formsaas.tenants import TenantProfile

logger = logging.getLogger(__name__)

router = APIRouter()

ATTACHMENT_FIELD = "attachment"


def _owner_profile(storage: Any, form: FormDefinition) -> TenantProfile | None:
    tenant = storage.tenants.get_tenant(form.owner_tenant_id)
    return tenant.profile() if tenant else None


def _discard_attachment(request: Request, file_path: str) -> None:
    try:
        request.app.state.file_store.discard(file_path)
    except StorageFailure:
        logger.exception("Orphaned attachment left behind: %s", file_path)


@router.get("/", response_class=HTMLResponse, tags=["public"])
async def index(request: Request) -> HTMLResponse:
    directory = list_public(request.app.state.storage)
    return render(request, "index.html", {"directory": directory})


@router.get("/form/{form_id}", response_class=HTMLResponse, tags=["public"])
async def public_form(request: Request, form_id: str) -> HTMLResponse:
    storage = request.app.state.storage
    form = get_form_or_404(storage, form_id)
    return render(
        request,
        "form_public.html",
        {"form": form, "company": _owner_profile(storage, form), "values": {}, "errors": []},
    )


@router.post("/form/{form_id}", response_class=HTMLResponse, tags=["public"])
async def submit_form(request: Request, form_id: str) -> HTMLResponse:
    storage = request.app.state.storage
    form = get_form_or_404(storage, form_id)
    form_data = await request.form()
    try:
        submission = await build_submission(
            form,
            form_data,
            first_upload(form_data, ATTACHMENT_FIELD),
            request.app.state.file_store,
        )
    except ValidationError as exc:
        values = collect_data(form, form_data)
        return render(
            request,
            "form_public.html",
            {
                "form": form,
                "company": _owner_profile(storage, form),
                "values": values,
                "errors": exc.messages,
            },
        )
    try:
        storage.submissions.create_submission(submission)
    except StorageFailure:
        if submission.file_path:
            _discard_attachment(request, submission.file_path)
        raise
    logger.info("Submission stored: id=%s form=%s", submission.id, form.id)
    return render(request, "thanks.html", {"form": form})


@router.get("/uploads/{stored_name}", tags=["public"])
async def download_file(request: Request, stored_name: str) -> FileResponse:
    resolved = request.app.state.file_store.resolve(stored_name)
    if resolved is None:
        raise NotFound("file", stored_name)
    path, original_name = resolved
    return FileResponse(path, filename=original_name)


@router.get("/healthz", tags=["system"])
async def healthz() -> dict[str, str]:
    return {"status": "ok"}
