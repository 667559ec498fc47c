from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from formsaas.errors import AccessDenied, NotFound

if TYPE_CHECKING:
    from formsaas.forms import FormDefinition

logger = logging.getLogger(__name__)


def authorize(form: FormDefinition, acting_tenant_id: str | None) -> None:
    """Allow only the owning company through; the owner is never disclosed."""
    if not acting_tenant_id or form.owner_tenant_id != acting_tenant_id:
        logger.warning("Access refused: form=%s tenant=%s", form.id, acting_tenant_id)
        raise AccessDenied()


def get_form_or_404(storage: Any, form_id: str) -> FormDefinition:
    form = storage.forms.get_form(form_id)
    if form is None:
        raise NotFound("form", form_id)
    return form


def get_owned_form(storage: Any, form_id: str, acting_tenant_id: str | None) -> FormDefinition:
    form = get_form_or_404(storage, form_id)
    authorize(form, acting_tenant_id)
    return form
