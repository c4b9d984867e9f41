from .auth import AuthBoundary, AuthSession
from .auto_select import AutoSelectionPolicy
from .bootstrap import TenantSessionRuntime, build_tenant_session
from .config import ClientConfig, ConfigError, load_config
from .directory_client import TenantDirectoryClient
from .events import TenantChangeBus, TenantChanged
from .exceptions import (
    AlreadyInitialized,
    ApiError,
    CredentialPropagationFailure,
    CredentialScopeMismatch,
    DirectoryUnavailable,
    MalformedPersistedState,
    TenantNotFound,
    TenantSessionError,
    TransportError,
)
from .http_client import AsyncHttpClient
from .manager import TenantSessionManager
from .models import Tenant, TenantSelection
from .session_store import SessionStore
from .state import SessionState
from .storage import FileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "AlreadyInitialized",
    "ApiError",
    "AsyncHttpClient",
    "AuthBoundary",
    "AuthSession",
    "AutoSelectionPolicy",
    "ClientConfig",
    "ConfigError",
    "CredentialPropagationFailure",
    "CredentialScopeMismatch",
    "DirectoryUnavailable",
    "FileStorage",
    "KeyValueStorage",
    "MalformedPersistedState",
    "MemoryStorage",
    "SessionState",
    "SessionStore",
    "Tenant",
    "TenantChangeBus",
    "TenantChanged",
    "TenantDirectoryClient",
    "TenantNotFound",
    "TenantSelection",
    "TenantSessionError",
    "TenantSessionManager",
    "TenantSessionRuntime",
    "TransportError",
    "build_tenant_session",
    "load_config",
]
