from __future__ import annotations

import base64
import json
from typing import Any

TENANT_CLAIMS = ("tenantId", "tenant_id", "tid")


def decode_claims(token: str | None) -> dict[str, Any] | None:
    """Payload segment of a JWT, or None for opaque or corrupt tokens."""
    if not token:
        return None
    parts = token.split(".")
    if len(parts) != 3:
        return None

    payload_part = parts[1]
    padded = payload_part + ("=" * (-len(payload_part) % 4))
    try:
        decoded = base64.urlsafe_b64decode(padded.encode("utf-8")).decode("utf-8")
        payload = json.loads(decoded)
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def credential_tenant_id(token: str | None) -> str | None:
    claims = decode_claims(token)
    if not claims:
        return None
    for key in TENANT_CLAIMS:
        value = claims.get(key)
        if value not in (None, ""):
            return str(value)
    tenant = claims.get("tenant")
    if isinstance(tenant, dict) and tenant.get("id"):
        return str(tenant["id"])
    return None


def is_scoped_to(token: str | None, tenant_id: str) -> bool:
    scope = credential_tenant_id(token)
    return scope is None or scope == tenant_id
