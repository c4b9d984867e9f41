from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None
    trace_id: str | None
    status_code: int
    raw_payload: object | None = None

    def __str__(self) -> str:
        trace = f" trace_id={self.trace_id}" if self.trace_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{trace}"


class AuthError(ApiError):
    """Authentication failed or the credential is no longer valid."""


class ForbiddenError(ApiError):
    """Credential is valid but not allowed to act on the tenant."""


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    pass


class ConflictError(ApiError):
    """409 or conflict-style errors."""


class RateLimitError(ApiError):
    """429 throttling error."""


class ServerError(ApiError):
    """5xx server-side failures."""


class TransportError(ApiError):
    """Network failure, timeout, or a request dropped by a tenant context switch."""


class TenantSessionError(Exception):
    """Base class for failures of the tenant session core."""


@dataclass
class DirectoryUnavailable(TenantSessionError):
    message: str
    code: str = "DIRECTORY_UNAVAILABLE"
    trace_id: str | None = None
    status_code: int | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class TenantNotFound(TenantSessionError):
    tenant_id: str

    def __str__(self) -> str:
        return f"Tenant not found: {self.tenant_id}"


class MalformedPersistedState(TenantSessionError):
    """Persisted tenant record could not be parsed."""


@dataclass
class CredentialPropagationFailure(TenantSessionError):
    tenant_id: str
    reason: str

    def __str__(self) -> str:
        return f"Credential for tenant {self.tenant_id} could not be applied: {self.reason}"


class CredentialScopeMismatch(CredentialPropagationFailure):
    """Returned credential is scoped to a different tenant than the one selected."""


class AlreadyInitialized(TenantSessionError):
    pass
