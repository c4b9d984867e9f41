from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable, TypeVar

from .auth import AuthBoundary
from .credentials import credential_tenant_id, is_scoped_to
from .directory_client import TenantDirectoryClient
from .events import TenantChangeBus, TenantChanged
from .exceptions import (
    AlreadyInitialized,
    CredentialPropagationFailure,
    CredentialScopeMismatch,
    DirectoryUnavailable,
    TenantNotFound,
    TenantSessionError,
)
from .logger import log_action
from .models import Tenant
from .session_store import SessionStore
from .state import SessionState

logger = logging.getLogger(__name__)

T = TypeVar("T")
StateListener = Callable[[SessionState, SessionState], None]

MODULE = "tenant_session"


class TenantSessionManager:
    """Owns the tenant session state and is the only writer of the SessionStore.

    ``initialize``, ``refresh_tenants``, ``switch_tenant`` and ``logout`` run
    one at a time behind a lock; a call made while another is in flight waits
    for it instead of interleaving with it. Listeners registered with
    ``subscribe`` see every state transition as ``(previous, current)``.
    """

    def __init__(
        self,
        directory: TenantDirectoryClient,
        store: SessionStore,
        auth: AuthBoundary,
        bus: TenantChangeBus | None = None,
        *,
        operation_timeout_seconds: float = 30.0,
        credential_attempts: int = 2,
    ) -> None:
        self._directory = directory
        self._store = store
        self._auth = auth
        self._bus = bus or TenantChangeBus()
        self._operation_timeout_seconds = operation_timeout_seconds
        self._credential_attempts = max(1, credential_attempts)
        self._state = SessionState()
        self._listeners: list[StateListener] = []
        self._lock = asyncio.Lock()
        self._initialized = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def bus(self) -> TenantChangeBus:
        return self._bus

    @property
    def initialized(self) -> bool:
        return self._initialized

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def initialize(self) -> None:
        """Load the persisted tenant and the directory listing.

        Waits for the authentication subsystem to finish its own start-up.
        Directory failures end up in ``state.error``; they are not raised.
        """
        if self._initialized:
            raise AlreadyInitialized("Tenant session is already initialized")
        self._initialized = True

        if self._auth.is_loading:
            logger.info("tenant_init_waiting_for_auth")
            await self._auth.wait_until_ready()

        async with self._lock:
            self._update(is_loading=True, error=None)
            try:
                self._update(current_tenant=self._store.load())
                await self._refresh_locked()
            except DirectoryUnavailable as exc:
                log_action(
                    logger,
                    MODULE,
                    "initialize",
                    self._state.current_tenant_id,
                    "degraded",
                    trace_id=exc.trace_id,
                    level=logging.WARNING,
                    error_code=exc.code,
                )
            else:
                log_action(
                    logger,
                    MODULE,
                    "initialize",
                    self._state.current_tenant_id,
                    "success",
                    available=len(self._state.available_tenants),
                )
            finally:
                self._update(is_loading=False)

    async def refresh_tenants(self) -> list[Tenant]:
        async with self._lock:
            self._update(is_loading=True, error=None)
            try:
                return await self._refresh_locked()
            finally:
                self._update(is_loading=False)

    async def switch_tenant(self, tenant_id: str) -> Tenant:
        async with self._lock:
            if self._state.find_tenant(tenant_id) is None:
                log_action(logger, MODULE, "switch_tenant", tenant_id, "not_found", level=logging.WARNING)
                raise TenantNotFound(tenant_id)

            previous = self._state.current_tenant
            self._update(is_loading=True, error=None)
            try:
                selection = await self._bounded(self._directory.select_tenant(tenant_id), "select tenant")
                tenant = selection.tenant
                token = selection.access_token
                if token and not is_scoped_to(token, tenant.id):
                    raise CredentialScopeMismatch(
                        tenant.id,
                        reason=f"credential is scoped to tenant {credential_tenant_id(token)}",
                    )
                snapshot = self._store.snapshot()
                previous_token = self._auth.access_token
                self._store.save(tenant)
                if token:
                    self._propagate_credential(tenant.id, token, snapshot, previous_token)
            except (TenantSessionError, OSError) as exc:
                self._update(is_loading=False, error=f"Failed to switch tenant: {exc}")
                log_action(
                    logger,
                    MODULE,
                    "switch_tenant",
                    tenant_id,
                    "failure",
                    trace_id=getattr(exc, "trace_id", None),
                    level=logging.WARNING,
                    error=type(exc).__name__,
                )
                raise
            except BaseException:
                self._update(is_loading=False)
                raise

            self._update(current_tenant=tenant, is_loading=False)
            log_action(
                logger,
                MODULE,
                "switch_tenant",
                tenant.id,
                "success",
                previous_tenant_id=previous.id if previous else None,
                credential_rotated=bool(token),
                tenant_echoed=selection.tenant_echoed,
            )
            await self._bus.publish(TenantChanged(previous=previous, current=tenant, credential_rotated=bool(token)))
            return tenant

    async def logout(self) -> None:
        """Forget the active tenant and the persisted credential."""
        async with self._lock:
            previous = self._state.current_tenant
            self._store.clear()
            self._store.clear_access_token()
            self._initialized = False
            self._update(current_tenant=None, available_tenants=(), is_loading=False, error=None)
            log_action(logger, MODULE, "logout", previous.id if previous else None, "success")
            if previous is not None:
                await self._bus.publish(TenantChanged(previous=previous, current=None, reason="logout"))

    async def _refresh_locked(self) -> list[Tenant]:
        try:
            tenants = await self._bounded(self._directory.list_tenants(), "list tenants")
        except DirectoryUnavailable as exc:
            self._update(error=f"Failed to load available tenants: {exc}")
            logger.warning("tenant_refresh_failed", extra={"code": exc.code, "trace_id": exc.trace_id})
            raise
        self._update(available_tenants=tuple(tenants))
        return tenants

    async def _bounded(self, call: Awaitable[T], operation: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self._operation_timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise DirectoryUnavailable(
                f"Directory did not answer to {operation} within {self._operation_timeout_seconds}s",
                code="TIMEOUT_ERROR",
            ) from exc

    def _propagate_credential(
        self,
        tenant_id: str,
        token: str,
        snapshot: dict[str, str | None],
        previous_token: str | None,
    ) -> None:
        last_error: Exception | None = None
        for attempt in range(1, self._credential_attempts + 1):
            try:
                self._auth.update_access_token(token)
                self._store.save_access_token(token)
                return
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "credential_propagation_retry",
                    extra={"tenant_id": tenant_id, "attempt": attempt, "error": type(exc).__name__},
                )

        self._store.restore(snapshot)
        if previous_token is not None:
            try:
                self._auth.update_access_token(previous_token)
            except Exception:
                logger.exception("credential_rollback_failed", extra={"tenant_id": tenant_id})
        log_action(logger, MODULE, "credential_rollback", tenant_id, "rolled_back", level=logging.ERROR)
        raise CredentialPropagationFailure(tenant_id, reason=str(last_error)) from last_error

    def _update(self, **changes: object) -> None:
        previous = self._state
        current = replace(previous, **changes)
        if current == previous:
            return
        self._state = current
        for listener in list(self._listeners):
            try:
                listener(previous, current)
            except Exception:
                logger.exception("session_listener_failed")
