from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from .exceptions import MalformedPersistedState
from .models import Tenant
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

TENANT_ID_KEY = "current_tenant_id"
TENANT_SLUG_KEY = "current_tenant_slug"
TENANT_KEY = "current_tenant"
ACCESS_TOKEN_KEY = "token"
TENANT_KEYS = (TENANT_ID_KEY, TENANT_SLUG_KEY, TENANT_KEY)


@dataclass
class SessionStore:
    storage: KeyValueStorage

    def save(self, tenant: Tenant) -> None:
        self.storage.set_many(
            {
                TENANT_ID_KEY: tenant.id,
                TENANT_SLUG_KEY: tenant.slug,
                TENANT_KEY: json.dumps(tenant.to_record()),
            }
        )

    def read(self) -> Tenant | None:
        """Strict variant of load(): raises MalformedPersistedState on bad data."""
        raw = self.storage.get(TENANT_KEY)
        if raw is None:
            return None
        try:
            tenant = Tenant.model_validate(json.loads(raw))
        except (ValueError, TypeError, ValidationError) as exc:
            raise MalformedPersistedState("Persisted tenant record is not readable") from exc
        stored_id = self.storage.get(TENANT_ID_KEY)
        if stored_id is not None and stored_id != tenant.id:
            raise MalformedPersistedState(
                f"Persisted tenant id {stored_id} does not match tenant record {tenant.id}"
            )
        return tenant

    def load(self) -> Tenant | None:
        try:
            return self.read()
        except MalformedPersistedState as exc:
            logger.warning("persisted_tenant_ignored", extra={"reason": str(exc)})
            return None
        except OSError as exc:
            logger.warning("persisted_tenant_unreachable", extra={"error": type(exc).__name__})
            return None

    def clear(self) -> None:
        self.storage.remove_many(TENANT_KEYS)

    def current_tenant_id(self) -> str | None:
        return self.storage.get(TENANT_ID_KEY)

    def current_tenant_slug(self) -> str | None:
        return self.storage.get(TENANT_SLUG_KEY)

    def save_access_token(self, token: str) -> None:
        self.storage.set_many({ACCESS_TOKEN_KEY: token})

    def load_access_token(self) -> str | None:
        return self.storage.get(ACCESS_TOKEN_KEY)

    def clear_access_token(self) -> None:
        self.storage.remove_many((ACCESS_TOKEN_KEY,))

    def snapshot(self) -> dict[str, str | None]:
        return {key: self.storage.get(key) for key in (*TENANT_KEYS, ACCESS_TOKEN_KEY)}

    def restore(self, snapshot: dict[str, str | None]) -> None:
        """Put back raw values captured by snapshot()."""
        present = {key: value for key, value in snapshot.items() if value is not None}
        absent = [key for key, value in snapshot.items() if value is None]
        if present:
            self.storage.set_many(present)
        if absent:
            self.storage.remove_many(absent)
