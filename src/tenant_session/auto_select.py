from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .exceptions import TenantSessionError
from .manager import TenantSessionManager
from .state import SessionState

logger = logging.getLogger(__name__)


class AutoSelectionPolicy:
    """Activates the first available tenant when none is active.

    Fires once per transition into "no tenant, tenants known, idle". After a
    failed automatic switch it stays disarmed until a tenant becomes active,
    the listing empties, or a later operation finishes without error, so the
    failure is not retried in a loop.
    """

    def __init__(self, manager: TenantSessionManager) -> None:
        self._manager = manager
        self._armed = True
        self._pending: asyncio.Task[None] | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @staticmethod
    def choose(state: SessionState) -> str | None:
        if state.current_tenant is None and state.available_tenants and not state.is_loading:
            return state.available_tenants[0].id
        return None

    @property
    def pending(self) -> asyncio.Task[None] | None:
        return self._pending

    def attach(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._manager.subscribe(self._on_state_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def wait_idle(self) -> None:
        while self._pending is not None and not self._pending.done():
            await self._pending

    def _on_state_change(self, previous: SessionState, current: SessionState) -> None:
        if current.current_tenant is not None or not current.available_tenants:
            self._armed = True
            return
        if previous.is_loading and not current.is_loading and current.error is None:
            self._armed = True
        tenant_id = self.choose(current)
        if tenant_id is None:
            return
        if not self._armed or (self._pending is not None and not self._pending.done()):
            return
        self._armed = False
        logger.info("auto_select_tenant", extra={"tenant_id": tenant_id})
        self._pending = asyncio.get_running_loop().create_task(self._select(tenant_id))

    async def _select(self, tenant_id: str) -> None:
        try:
            await self._manager.switch_tenant(tenant_id)
        except (TenantSessionError, OSError) as exc:
            logger.warning("auto_select_failed", extra={"tenant_id": tenant_id, "error": str(exc)})
