from __future__ import annotations

import csv
import io
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from formsaas.auth import require_tenant
from formsaas.directory import list_owned
from formsaas.errors import ValidationError
from formsaas.forms import create_form, draft_from_payload, edit_form, payload_from_form_data
from formsaas.guard import get_form_or_404, get_owned_form
from formsaas.rendering import render
from formsaas.submissions import submission_table
from formsaas.tenants import TenantIdentity

logger = logging.getLogger(__name__)

router = APIRouter()

EXPORT_FORMATS = {"csv": (",", "text/csv"), "tsv": ("\t", "text/tab-separated-values")}


@router.get("/dashboard", response_class=HTMLResponse, tags=["dashboard"])
async def dashboard(
    request: Request, tenant: TenantIdentity = Depends(require_tenant)
) -> HTMLResponse:
    forms = list_owned(request.app.state.storage, tenant.id)
    return render(request, "dashboard.html", {"forms": forms})


@router.get("/form/new", response_class=HTMLResponse, tags=["dashboard"])
async def new_form(
    request: Request, tenant: TenantIdentity = Depends(require_tenant)
) -> HTMLResponse:
    return render(request, "form_builder.html", {"form": None, "errors": []})


@router.post("/form/new", response_class=HTMLResponse, tags=["dashboard"])
async def create_form_view(
    request: Request, tenant: TenantIdentity = Depends(require_tenant)
) -> HTMLResponse:
    storage = request.app.state.storage
    payload = payload_from_form_data(await request.form())
    try:
        form = create_form(tenant.id, payload)
    except ValidationError as exc:
        return render(
            request,
            "form_builder.html",
            {"form": draft_from_payload(payload), "errors": exc.messages},
        )
    storage.forms.create_form(form)
    logger.info("Form created: id=%s owner=%s", form.id, tenant.id)
    return RedirectResponse("/dashboard", status_code=303)


@router.get("/form/edit/{form_id}", response_class=HTMLResponse, tags=["dashboard"])
async def edit_form_page(
    request: Request, form_id: str, tenant: TenantIdentity = Depends(require_tenant)
) -> HTMLResponse:
    form = get_owned_form(request.app.state.storage, form_id, tenant.id)
    return render(request, "form_builder.html", {"form": form, "errors": []})


@router.post("/form/edit/{form_id}", response_class=HTMLResponse, tags=["dashboard"])
async def edit_form_view(
    request: Request, form_id: str, tenant: TenantIdentity = Depends(require_tenant)
) -> HTMLResponse:
    storage = request.app.state.storage
    existing = get_form_or_404(storage, form_id)
    payload = payload_from_form_data(await request.form())
    try:
        updated = edit_form(existing, tenant.id, payload)
    except ValidationError as exc:
        return render(
            request,
            "form_builder.html",
            {"form": draft_from_payload(payload, form_id=form_id), "errors": exc.messages},
        )
    storage.forms.update_form(updated)
    logger.info("Form updated: id=%s owner=%s", form_id, tenant.id)
    return RedirectResponse("/dashboard", status_code=303)


@router.get("/form/submissions/{form_id}", response_class=HTMLResponse, tags=["dashboard"])
async def list_submissions(
    request: Request, form_id: str, tenant: TenantIdentity = Depends(require_tenant)
) -> HTMLResponse:
    storage = request.app.state.storage
    form = get_owned_form(storage, form_id, tenant.id)
    submissions = storage.submissions.list_submissions(form_id)
    headers, rows = submission_table(form, submissions)
    return render(
        request,
        "submissions.html",
        {"form": form, "submissions": submissions, "headers": headers, "rows": rows},
    )


@router.get("/form/submissions/{form_id}/export", tags=["dashboard"])
async def export_submissions(
    request: Request, form_id: str, tenant: TenantIdentity = Depends(require_tenant)
) -> PlainTextResponse:
    storage = request.app.state.storage
    form = get_owned_form(storage, form_id, tenant.id)
    headers, rows = submission_table(form, storage.submissions.list_submissions(form_id))

    fmt = request.query_params.get("format", "csv")
    if fmt not in EXPORT_FORMATS:
        fmt = "csv"
    delimiter, content_type = EXPORT_FORMATS[fmt]

    output = io.StringIO()
    writer = csv.writer(output, delimiter=delimiter)
    writer.writerow(headers)
    writer.writerows(rows)

    filename = f"submissions-{form_id}.{fmt}"
    return PlainTextResponse(
        output.getvalue(),
        media_type=content_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
