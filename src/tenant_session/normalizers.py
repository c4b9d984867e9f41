from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from .exceptions import DirectoryUnavailable
from .models import CurrentTenantEnvelope, Tenant, TenantListEnvelope, TenantSelection

logger = logging.getLogger(__name__)


def normalize_tenant_listing(payload: Any) -> list[Tenant]:
    if not isinstance(payload, Mapping):
        raise DirectoryUnavailable("Directory returned an unreadable tenant listing", code="MALFORMED_RESPONSE")
    if payload.get("success") is not True:
        message = str(payload.get("message") or "Failed to load available tenants")
        raise DirectoryUnavailable(message, code="DIRECTORY_REJECTED", trace_id=_trace_id(payload))
    try:
        envelope = TenantListEnvelope.model_validate(payload)
    except ValidationError as exc:
        raise DirectoryUnavailable(
            "Directory returned an unreadable tenant listing",
            code="MALFORMED_RESPONSE",
            trace_id=_trace_id(payload),
        ) from exc
    return list(envelope.data)


def normalize_current_tenant(payload: Any) -> Tenant | None:
    if not isinstance(payload, Mapping) or payload.get("success") is not True:
        return None
    try:
        return CurrentTenantEnvelope.model_validate(payload).data
    except ValidationError:
        logger.warning("current_tenant_unreadable")
        return None


def normalize_selection(payload: Any, requested_tenant_id: str) -> TenantSelection:
    """Fold every accepted select-tenant response shape into one TenantSelection.

    Accepted shapes: the pair itself, or the pair nested one level under
    ``data``; the credential may be named ``accessToken`` or ``token``. A
    response without a tenant echo yields a minimal tenant for the requested id.
    """
    body: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}
    if body.get("success") is False:
        message = str(body.get("message") or "Failed to switch tenant")
        raise DirectoryUnavailable(message, code="DIRECTORY_REJECTED", trace_id=_trace_id(body))

    nested = body.get("data")
    if isinstance(nested, Mapping):
        body = nested

    access_token = _first_token(body.get("accessToken"), body.get("token"))
    tenant = _coerce_tenant(body.get("tenant"))
    if tenant is None:
        return TenantSelection(
            tenant=Tenant.minimal(requested_tenant_id),
            access_token=access_token,
            tenant_echoed=False,
        )
    if tenant.id != requested_tenant_id:
        raise DirectoryUnavailable(
            f"Directory selected tenant {tenant.id} instead of {requested_tenant_id}",
            code="SELECTION_MISMATCH",
        )
    return TenantSelection(tenant=tenant, access_token=access_token)


def _coerce_tenant(raw: Any) -> Tenant | None:
    if not isinstance(raw, Mapping):
        return None
    try:
        return Tenant.model_validate(raw)
    except ValidationError:
        logger.warning("selection_tenant_unreadable", extra={"fields": sorted(str(key) for key in raw)})
        return None


def _first_token(*candidates: Any) -> str | None:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return None


def _trace_id(payload: Mapping[str, Any]) -> str | None:
    trace_id = payload.get("trace_id") or payload.get("traceId")
    return str(trace_id) if trace_id else None
