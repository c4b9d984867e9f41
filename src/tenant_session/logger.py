from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

_FORBIDDEN_CONTEXT_KEYS = {"token", "access_token", "accesstoken", "authorization", "password"}


def log_action(
    logger: logging.Logger,
    module: str,
    action: str,
    tenant_id: str | None,
    outcome: str,
    trace_id: str | None = None,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    illegal = sorted(key for key in context if key.lower() in _FORBIDDEN_CONTEXT_KEYS)
    if illegal:
        raise ValueError(f"Credential-like keys are forbidden in log context: {illegal}")
    record: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": logging.getLevelName(level),
        "module": module,
        "action": action,
        "tenant_id": tenant_id,
        "trace_id": trace_id,
        "outcome": outcome,
    }
    if context:
        record["context"] = context
    logger.log(level, json.dumps(record, default=str))
