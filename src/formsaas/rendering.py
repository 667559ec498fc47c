from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import HTMLResponse


def render(
    request: Request,
    name: str,
    context: dict[str, Any] | None = None,
    status_code: int = 200,
) -> HTMLResponse:
    templates = request.app.state.templates
    current_tenant = request.app.state.auth_provider.current_tenant(request)
    return templates.TemplateResponse(
        request,
        name,
        {"current_tenant": current_tenant, **(context or {})},
        status_code=status_code,
    )
