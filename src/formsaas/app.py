from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from formsaas.auth import LoginRequired, SessionAuthProvider
from formsaas.config import BASE_DIR, Settings, ensure_dirs
from formsaas.errors import AccessDenied, NotFound, StorageFailure, ValidationError
from formsaas.fields import FieldType, input_type
from formsaas.forms import TEMPLATE_CHOICES
from formsaas.routes.accounts import router as accounts_router
from formsaas.routes.api import router as api_router
from formsaas.routes.dashboard import router as dashboard_router
from formsaas.routes.public import router as public_router
from formsaas.storage import init_storage
from formsaas.uploads import FileStore

logger = logging.getLogger(__name__)


def format_dt(value: Any) -> str:
    if isinstance(value, datetime):
        return value.astimezone().strftime("%Y-%m-%d %H:%M")
    return str(value or "")


def iso_dt(value: Any) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        else:
            value = value.astimezone(timezone.utc)
        return value.isoformat()
    return ""


def _wants_json(request: Request) -> bool:
    return request.url.path.startswith("/api/")


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(LoginRequired)
    async def login_required(request: Request, exc: LoginRequired) -> Response:
        if _wants_json(request):
            return JSONResponse({"detail": "Authentication required"}, status_code=401)
        return RedirectResponse("/login", status_code=303)

    @app.exception_handler(AccessDenied)
    async def access_denied(request: Request, exc: AccessDenied) -> Response:
        if _wants_json(request):
            return JSONResponse({"detail": "Access refused"}, status_code=403)
        return PlainTextResponse("Access refused", status_code=403)

    @app.exception_handler(NotFound)
    async def not_found(request: Request, exc: NotFound) -> Response:
        message = "Form not found" if exc.kind == "form" else "Not found"
        if _wants_json(request):
            return JSONResponse({"detail": message}, status_code=404)
        return PlainTextResponse(message, status_code=404)

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError) -> Response:
        if _wants_json(request):
            return JSONResponse({"detail": exc.messages}, status_code=400)
        return PlainTextResponse("\n".join(exc.messages), status_code=400)

    @app.exception_handler(StorageFailure)
    async def storage_failure(request: Request, exc: StorageFailure) -> Response:
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        if _wants_json(request):
            return JSONResponse({"detail": "Server error"}, status_code=500)
        return PlainTextResponse("Server error", status_code=500)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    ensure_dirs(settings)
    storage = init_storage(settings)

    app = FastAPI(
        openapi_tags=[
            {"name": "public", "description": "Public directory and forms (HTML)"},
            {"name": "accounts", "description": "Company registration and login (HTML)"},
            {"name": "dashboard", "description": "Company dashboard (HTML)"},
            {"name": "api", "description": "REST API"},
            {"name": "system", "description": "System"},
        ]
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_max_age,
        same_site="lax",
    )

    app.state.settings = settings
    app.state.storage = storage
    app.state.file_store = FileStore(settings, storage.files)
    app.state.auth_provider = SessionAuthProvider()

    templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
    app.state.templates = templates

    templates.env.globals["field_input_type"] = input_type
    templates.env.globals["field_types"] = [field_type.value for field_type in FieldType]
    templates.env.globals["template_choices"] = TEMPLATE_CHOICES
    templates.env.globals["format_dt"] = format_dt
    templates.env.globals["iso_dt"] = iso_dt

    install_error_handlers(app)

    # dashboard routes first: /form/new must win over /form/{form_id}
    app.include_router(accounts_router)
    app.include_router(dashboard_router)
    app.include_router(public_router)
    app.include_router(api_router)

    return app
