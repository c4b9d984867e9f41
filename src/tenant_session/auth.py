from __future__ import annotations

import asyncio
from typing import Protocol


class AuthBoundary(Protocol):
    """What the tenant session needs from the authentication subsystem."""

    @property
    def is_loading(self) -> bool: ...

    @property
    def access_token(self) -> str | None: ...

    async def wait_until_ready(self) -> None: ...

    def update_access_token(self, access_token: str) -> None: ...


class AuthSession:
    """In-memory credential holder with an initialization barrier.

    Starts in the loading state; whoever restores or establishes the login
    calls mark_ready() once, successful or not.
    """

    def __init__(self, access_token: str | None = None) -> None:
        self._access_token = access_token
        self._ready = asyncio.Event()

    @property
    def is_loading(self) -> bool:
        return not self._ready.is_set()

    @property
    def access_token(self) -> str | None:
        return self._access_token

    def mark_ready(self, access_token: str | None = None) -> None:
        if access_token is not None:
            self._access_token = access_token
        self._ready.set()

    async def wait_until_ready(self) -> None:
        await self._ready.wait()

    def update_access_token(self, access_token: str) -> None:
        if not access_token:
            raise ValueError("access token must not be empty")
        self._access_token = access_token

    def clear(self) -> None:
        self._access_token = None
