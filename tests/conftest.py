from __future__ import annotations

import base64
import json
from typing import Any

import httpx
import pytest

from tenant_session.auth import AuthSession
from tenant_session.config import ClientConfig
from tenant_session.directory_client import TenantDirectoryClient
from tenant_session.events import TenantChangeBus
from tenant_session.http_client import AsyncHttpClient
from tenant_session.manager import TenantSessionManager
from tenant_session.session_store import SessionStore
from tenant_session.storage import MemoryStorage

BASE_URL = "https://directory.test"


def make_token(scope: str | None = None, **claims: Any) -> str:
    header = base64.urlsafe_b64encode(json.dumps({"alg": "none", "typ": "JWT"}).encode()).decode().rstrip("=")
    body = dict(claims)
    if scope is not None:
        body["tenantId"] = scope
    payload = base64.urlsafe_b64encode(json.dumps(body).encode()).decode().rstrip("=")
    return f"{header}.{payload}.sig"


def tenant_record(tenant_id: str, slug: str, **extra: Any) -> dict[str, Any]:
    return {"id": tenant_id, "slug": slug, "domain": f"{slug}.example.com", "createdAt": "2024-01-01T00:00:00Z", **extra}


class FakeDirectory:
    """Scriptable stand-in for the remote tenant directory."""

    def __init__(self, tenants: list[dict[str, Any]] | None = None) -> None:
        self.tenants = list(tenants or [])
        self.listing_payload: dict[str, Any] | None = None
        self.listing_status = 200
        self.select_payloads: dict[str, Any] = {}
        self.select_status = 200
        self.requests: list[httpx.Request] = []

    def select_returns(self, tenant_id: str, payload: Any) -> None:
        self.select_payloads[tenant_id] = payload

    def calls(self, endpoint: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path.endswith(endpoint)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/my-tenants"):
            if self.listing_status >= 400:
                return httpx.Response(self.listing_status, json={"code": "UPSTREAM", "message": "directory down"})
            payload = self.listing_payload or {"success": True, "message": "ok", "data": self.tenants}
            return httpx.Response(200, json=payload)
        if path.endswith("/current-tenant"):
            return httpx.Response(200, json={"success": bool(self.tenants), "data": self.tenants[0] if self.tenants else None})
        if path.endswith("/select-tenant"):
            tenant_id = json.loads(request.content)["tenantId"]
            if self.select_status >= 400:
                return httpx.Response(self.select_status, json={"code": "UPSTREAM", "message": "selection failed"})
            payload = self.select_payloads.get(tenant_id)
            if payload is None:
                match = next((tenant for tenant in self.tenants if tenant["id"] == tenant_id), None)
                payload = {"tenant": match, "accessToken": make_token(tenant_id)}
            return httpx.Response(200, json=payload)
        return httpx.Response(404, json={"code": "NOT_FOUND", "message": path})


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(
        env_name="test",
        api_base_url=BASE_URL,
        retries=0,
        retry_backoff_seconds=0,
        operation_timeout_seconds=2,
    )


@pytest.fixture
def fake_directory() -> FakeDirectory:
    return FakeDirectory([tenant_record("t1", "acme"), tenant_record("t2", "beta"), tenant_record("t3", "gamma")])


@pytest.fixture
def http(config: ClientConfig, fake_directory: FakeDirectory) -> AsyncHttpClient:
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(fake_directory.handler))
    return AsyncHttpClient(config, client=client)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture
def auth() -> AuthSession:
    session = AuthSession(access_token=make_token(None, sub="user-1"))
    session.mark_ready()
    return session


@pytest.fixture
def directory(http: AsyncHttpClient, auth: AuthSession, store: SessionStore) -> TenantDirectoryClient:
    return TenantDirectoryClient(
        http,
        token_provider=lambda: auth.access_token,
        tenant_provider=lambda: (store.current_tenant_id(), store.current_tenant_slug()),
    )


@pytest.fixture
def bus() -> TenantChangeBus:
    return TenantChangeBus()


@pytest.fixture
def manager(directory: TenantDirectoryClient, store: SessionStore, auth: AuthSession, bus: TenantChangeBus) -> TenantSessionManager:
    return TenantSessionManager(directory, store, auth, bus, operation_timeout_seconds=2, credential_attempts=2)
