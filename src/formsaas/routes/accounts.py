from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from formsaas.auth import authenticate, check_registration, register_tenant
from formsaas.errors import ValidationError
from formsaas.rendering import render
from formsaas.submissions import is_upload

router = APIRouter()

INVALID_CREDENTIALS = "Invalid username or password."


@router.get("/register", response_class=HTMLResponse, tags=["accounts"])
async def register_page(request: Request) -> HTMLResponse:
    return render(request, "register.html", {"errors": [], "values": {}})


@router.post("/register", response_class=HTMLResponse, tags=["accounts"])
async def register(request: Request) -> HTMLResponse:
    storage = request.app.state.storage
    form_data = await request.form()
    username = str(form_data.get("username", ""))
    password = str(form_data.get("password", ""))
    company_name = str(form_data.get("companyName", ""))
    values = {"username": username, "companyName": company_name}
    try:
        check_registration(username, password, company_name)
        logo = form_data.get("logo")
        logo_path = None
        if is_upload(logo):
            logo_path = await request.app.state.file_store.save(logo)
        register_tenant(storage, username, password, company_name, logo_path=logo_path)
    except ValidationError as exc:
        return render(request, "register.html", {"errors": exc.messages, "values": values})
    return RedirectResponse("/login", status_code=303)


@router.get("/login", response_class=HTMLResponse, tags=["accounts"])
async def login_page(request: Request) -> HTMLResponse:
    return render(request, "login.html", {"errors": []})


@router.post("/login", response_class=HTMLResponse, tags=["accounts"])
async def login(request: Request) -> HTMLResponse:
    storage = request.app.state.storage
    form_data = await request.form()
    tenant = authenticate(
        storage, str(form_data.get("username", "")), str(form_data.get("password", ""))
    )
    if tenant is None:
        return render(request, "login.html", {"errors": [INVALID_CREDENTIALS]})
    request.app.state.auth_provider.login(request, tenant)
    return RedirectResponse("/dashboard", status_code=303)


@router.get("/logout", tags=["accounts"])
async def logout(request: Request) -> RedirectResponse:
    request.app.state.auth_provider.logout(request)
    return RedirectResponse("/", status_code=303)
