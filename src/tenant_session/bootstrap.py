from __future__ import annotations

from dataclasses import dataclass

import httpx

from .auth import AuthSession
from .auto_select import AutoSelectionPolicy
from .config import ClientConfig, load_config
from .directory_client import TenantDirectoryClient
from .events import TenantChangeBus, TenantChanged
from .http_client import TENANT_CONTEXT, AsyncHttpClient
from .manager import TenantSessionManager
from .session_store import SessionStore
from .storage import FileStorage, KeyValueStorage


@dataclass
class TenantSessionRuntime:
    config: ClientConfig
    http: AsyncHttpClient
    auth: AuthSession
    store: SessionStore
    directory: TenantDirectoryClient
    bus: TenantChangeBus
    manager: TenantSessionManager
    auto_select: AutoSelectionPolicy

    async def start(self) -> None:
        await self.manager.initialize()

    async def logout(self) -> None:
        await self.manager.logout()
        self.auth.clear()

    async def aclose(self) -> None:
        self.auto_select.detach()
        await self.http.aclose()


def build_tenant_session(
    config: ClientConfig | None = None,
    *,
    storage: KeyValueStorage | None = None,
    auth: AuthSession | None = None,
    client: httpx.AsyncClient | None = None,
    auto_select: bool = True,
) -> TenantSessionRuntime:
    """Wire one tenant session for the running application.

    The returned AuthSession is still loading; the host marks it ready once
    its own login restore is done, and ``start()`` waits for that.
    """
    config = config or load_config()
    store = SessionStore(storage or FileStorage(directory=config.storage_dir))
    auth = auth or AuthSession(access_token=store.load_access_token())
    http = AsyncHttpClient(config, client=client)
    directory = TenantDirectoryClient(
        http,
        token_provider=lambda: auth.access_token,
        tenant_provider=lambda: (store.current_tenant_id(), store.current_tenant_slug()),
        base_path=config.directory_path,
    )
    bus = TenantChangeBus()

    def _drop_stale_requests(event: TenantChanged) -> None:
        http.switch_context(TENANT_CONTEXT)

    bus.subscribe(_drop_stale_requests)
    manager = TenantSessionManager(
        directory,
        store,
        auth,
        bus,
        operation_timeout_seconds=config.operation_timeout_seconds,
        credential_attempts=config.credential_attempts,
    )
    policy = AutoSelectionPolicy(manager)
    if auto_select:
        policy.attach()
    return TenantSessionRuntime(
        config=config,
        http=http,
        auth=auth,
        store=store,
        directory=directory,
        bus=bus,
        manager=manager,
        auto_select=policy,
    )
