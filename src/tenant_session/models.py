from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Tenant(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: str
    slug: str = ""
    domain: Optional[str] = None
    name: Optional[str] = None
    settings: Any = None
    created_at: str = Field(default="", alias="createdAt")

    @property
    def display_name(self) -> str:
        return self.name or self.slug

    @classmethod
    def minimal(cls, tenant_id: str) -> "Tenant":
        """Stand-in for a selected tenant whose record the directory did not echo."""
        return cls(
            id=tenant_id,
            slug="",
            domain="",
            created_at=datetime.now(timezone.utc).isoformat(),
        )

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class TenantListEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = False
    message: str = ""
    data: List[Tenant] = Field(default_factory=list)


class CurrentTenantEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = False
    data: Optional[Tenant] = None


class TenantSelection(BaseModel):
    """Canonical result of a tenant selection call."""

    model_config = ConfigDict(frozen=True)

    tenant: Tenant
    access_token: Optional[str] = None
    tenant_echoed: bool = True
