from __future__ import annotations

from dataclasses import dataclass, field

from .models import Tenant


@dataclass(frozen=True)
class SessionState:
    current_tenant: Tenant | None = None
    available_tenants: tuple[Tenant, ...] = field(default_factory=tuple)
    is_loading: bool = False
    error: str | None = None

    @property
    def current_tenant_id(self) -> str | None:
        return self.current_tenant.id if self.current_tenant else None

    def find_tenant(self, tenant_id: str) -> Tenant | None:
        for tenant in self.available_tenants:
            if tenant.id == tenant_id:
                return tenant
        return None
