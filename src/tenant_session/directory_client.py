from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from .exceptions import ApiError, DirectoryUnavailable
from .http_client import TENANT_CONTEXT, AsyncHttpClient
from .models import Tenant, TenantSelection
from .normalizers import normalize_current_tenant, normalize_selection, normalize_tenant_listing

logger = logging.getLogger(__name__)


@dataclass
class TenantDirectoryClient:
    """Remote tenant directory: listing, current tenant and tenant selection.

    ``token_provider`` and ``tenant_provider`` are read on every call so the
    headers always reflect the latest credential and active tenant. Every call
    is bound to the ``tenant`` context of the HTTP client and fails with
    ``REQUEST_CANCELLED`` when the active tenant changes while it is in flight.
    """

    http: AsyncHttpClient
    token_provider: Callable[[], str | None]
    tenant_provider: Callable[[], tuple[str | None, str | None]] | None = None
    base_path: str = "/TenantSelector"

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if self.tenant_provider:
            tenant_id, tenant_slug = self.tenant_provider()
            if tenant_id:
                headers["X-Tenant-Id"] = tenant_id
            if tenant_slug:
                headers["X-Tenant-Slug"] = tenant_slug
        return headers

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        try:
            return await self.http.request(method, f"{self.base_path}/{endpoint}", headers=self._headers(), **kwargs)
        except ApiError as exc:
            logger.warning(
                "directory_call_failed",
                extra={"endpoint": endpoint, "code": exc.code, "status_code": exc.status_code},
            )
            raise DirectoryUnavailable(
                exc.message,
                code=exc.code,
                trace_id=exc.trace_id,
                status_code=exc.status_code or None,
            ) from exc

    async def list_tenants(self) -> list[Tenant]:
        payload = await self._request("GET", "my-tenants", context_key=TENANT_CONTEXT)
        return normalize_tenant_listing(payload)

    async def get_current_tenant(self) -> Tenant | None:
        payload = await self._request("GET", "current-tenant", context_key=TENANT_CONTEXT)
        return normalize_current_tenant(payload)

    async def select_tenant(self, tenant_id: str) -> TenantSelection:
        payload = await self._request(
            "POST",
            "select-tenant",
            json_body={"tenantId": tenant_id},
            context_key=TENANT_CONTEXT,
        )
        return normalize_selection(payload, tenant_id)
