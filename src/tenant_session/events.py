from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

from .models import Tenant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantChanged:
    previous: Tenant | None
    current: Tenant | None
    credential_rotated: bool = False
    reason: str = "switch"


TenantChangeHandler = Callable[[TenantChanged], Union[None, Awaitable[None]]]


class TenantChangeBus:
    """Tells tenant-scoped components to drop whatever they hold for the old tenant."""

    def __init__(self) -> None:
        self._handlers: list[TenantChangeHandler] = []

    def subscribe(self, handler: TenantChangeHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    async def publish(self, event: TenantChanged) -> int:
        """Deliver to every handler; returns how many of them failed."""
        failures = 0
        for handler in list(self._handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                failures += 1
                logger.exception(
                    "tenant_change_handler_failed",
                    extra={"handler": getattr(handler, "__qualname__", repr(handler))},
                )
        return failures
