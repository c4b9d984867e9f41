from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from .config import ClientConfig
from .exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-ID"
TRACE_HEADER_ALIASES = (TRACE_HEADER, "X-Trace-Id")
TENANT_CONTEXT = "tenant"


def map_error(status_code: int, payload: Mapping[str, object] | None, trace_id: str | None) -> ApiError:
    payload = payload or {}
    code = str(payload.get("code") or "HTTP_ERROR")
    message = str(payload.get("message") or payload.get("error") or f"Server error: {status_code}")
    details = payload.get("details") or payload.get("errors")
    payload_trace_id = payload.get("trace_id")
    resolved_trace_id = str(payload_trace_id) if payload_trace_id is not None else trace_id
    mapped: type[ApiError]
    if status_code == 401:
        mapped = AuthError
    elif status_code == 403:
        mapped = ForbiddenError
    elif status_code == 404:
        mapped = NotFoundError
    elif status_code in {400, 422}:
        mapped = ValidationError
    elif status_code == 409:
        mapped = ConflictError
    elif status_code == 429:
        mapped = RateLimitError
    elif status_code >= 500:
        mapped = ServerError
    else:
        mapped = ApiError
    return mapped(
        code=code,
        message=message,
        details=details,
        trace_id=resolved_trace_id,
        status_code=status_code,
        raw_payload=dict(payload),
    )


@dataclass
class AsyncHttpClient:
    """JSON over HTTP for the directory service.

    GET requests are retried on transport failures and 5xx responses; other
    methods are sent once. Requests bound to a context key are dropped with
    ``REQUEST_CANCELLED`` when the context is switched while they are in flight.
    """

    config: ClientConfig
    client: httpx.AsyncClient | None = None
    _context_versions: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.client is None:
            self.client = httpx.AsyncClient(
                base_url=self.config.api_base_url,
                timeout=self.config.timeout_seconds,
                verify=self.config.verify_ssl,
            )

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        context_key: str | None = None,
    ) -> dict[str, Any]:
        request_headers = {"Accept": "application/json"}
        if headers:
            request_headers.update(headers)
        trace_id = request_headers.setdefault(TRACE_HEADER, str(uuid.uuid4()))

        normalized_method = method.upper()
        normalized_path = path if path.startswith("/") else f"/{path}"
        attempts = self.config.retries + 1 if normalized_method in {"GET", "HEAD"} else 1
        context_version = self.get_context_version(context_key) if context_key else None

        response: httpx.Response | None = None
        for attempt in range(attempts):
            try:
                response = await self.client.request(
                    normalized_method,
                    normalized_path,
                    headers=request_headers,
                    json=json_body,
                    params=params,
                )
            except httpx.HTTPError as exc:
                if attempt >= attempts - 1:
                    raise TransportError(
                        code="TIMEOUT_ERROR" if isinstance(exc, httpx.TimeoutException) else "NETWORK_ERROR",
                        message=str(exc) or "Network error while calling the tenant directory",
                        details={"type": type(exc).__name__},
                        trace_id=trace_id,
                        status_code=0,
                    ) from exc
                logger.warning(
                    "http_retry",
                    extra={"path": normalized_path, "attempt": attempt + 1, "reason": type(exc).__name__},
                )
            else:
                if response.status_code < 500 or attempt >= attempts - 1:
                    break
                logger.warning(
                    "http_retry",
                    extra={"path": normalized_path, "attempt": attempt + 1, "reason": response.status_code},
                )
            await asyncio.sleep(self.config.retry_backoff_seconds * (2**attempt))

        if context_key and self.get_context_version(context_key) != context_version:
            raise TransportError(
                code="REQUEST_CANCELLED",
                message="Request cancelled due to context switch",
                details={"type": "context_switched", "context": context_key},
                trace_id=trace_id,
                status_code=0,
            )

        for key in TRACE_HEADER_ALIASES:
            if response.headers.get(key):
                trace_id = response.headers[key]
                break

        payload = _safe_json(response)
        if response.is_success:
            return payload
        raise map_error(response.status_code, payload, trace_id)

    def switch_context(self, context_key: str) -> int:
        new_version = self.get_context_version(context_key) + 1
        self._context_versions[context_key] = new_version
        return new_version

    def get_context_version(self, context_key: str) -> int:
        return self._context_versions.get(context_key, 0)

    async def aclose(self) -> None:
        await self.client.aclose()


def _safe_json(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        payload = response.json()
    except ValueError:
        return {"message": response.text}
    return payload if isinstance(payload, dict) else {"data": payload}
