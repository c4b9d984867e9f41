from __future__ import annotations

import json

import pytest

from tenant_session.exceptions import MalformedPersistedState
from tenant_session.models import Tenant
from tenant_session.session_store import (
    ACCESS_TOKEN_KEY,
    TENANT_ID_KEY,
    TENANT_KEY,
    TENANT_SLUG_KEY,
    SessionStore,
)
from tenant_session.storage import FileStorage, MemoryStorage


def _tenant(tenant_id: str = "t1", slug: str = "acme") -> Tenant:
    return Tenant(id=tenant_id, slug=slug, domain=f"{slug}.example.com", created_at="2024-01-01T00:00:00Z")


def test_save_writes_all_three_keys() -> None:
    storage = MemoryStorage()
    store = SessionStore(storage)

    store.save(_tenant())

    assert storage.values[TENANT_ID_KEY] == "t1"
    assert storage.values[TENANT_SLUG_KEY] == "acme"
    assert json.loads(storage.values[TENANT_KEY])["createdAt"] == "2024-01-01T00:00:00Z"
    assert store.load() == _tenant()


def test_save_overwrites_previous_tenant() -> None:
    store = SessionStore(MemoryStorage())
    store.save(_tenant("t1", "acme"))

    store.save(_tenant("t2", "beta"))

    assert store.load().id == "t2"
    assert store.current_tenant_slug() == "beta"


@pytest.mark.parametrize(
    "values",
    [
        {TENANT_KEY: "{not json"},
        {TENANT_KEY: json.dumps(["t1"])},
        {TENANT_KEY: json.dumps({"slug": "no-id"})},
        {TENANT_ID_KEY: "t9", TENANT_KEY: json.dumps({"id": "t1", "slug": "acme"})},
    ],
)
def test_malformed_record_loads_as_none(values: dict[str, str]) -> None:
    store = SessionStore(MemoryStorage(dict(values)))

    assert store.load() is None
    with pytest.raises(MalformedPersistedState):
        store.read()


def test_missing_record_loads_as_none() -> None:
    assert SessionStore(MemoryStorage()).load() is None


def test_clear_removes_tenant_keys_only() -> None:
    storage = MemoryStorage()
    store = SessionStore(storage)
    store.save(_tenant())
    store.save_access_token("tok")

    store.clear()

    assert storage.values == {ACCESS_TOKEN_KEY: "tok"}


def test_snapshot_restore_round_trip_removes_new_keys() -> None:
    storage = MemoryStorage()
    store = SessionStore(storage)
    store.save_access_token("old")
    snapshot = store.snapshot()

    store.save(_tenant())
    store.save_access_token("new")
    store.restore(snapshot)

    assert storage.values == {ACCESS_TOKEN_KEY: "old"}


def test_file_storage_survives_new_instances(tmp_path) -> None:
    SessionStore(FileStorage(directory=str(tmp_path))).save(_tenant())

    reopened = SessionStore(FileStorage(directory=str(tmp_path)))

    assert reopened.load() == _tenant()
    assert reopened.current_tenant_id() == "t1"


def test_file_storage_treats_corrupt_file_as_empty(tmp_path) -> None:
    (tmp_path / "session.json").write_text("][", encoding="utf-8")
    storage = FileStorage(directory=str(tmp_path))

    assert storage.get(TENANT_KEY) is None
    storage.set_many({ACCESS_TOKEN_KEY: "tok"})
    assert json.loads((tmp_path / "session.json").read_text(encoding="utf-8")) == {ACCESS_TOKEN_KEY: "tok"}


class UnreachableStorage(MemoryStorage):
    def get(self, key: str) -> str | None:
        raise PermissionError("session storage is locked")


def test_unreachable_storage_loads_as_none() -> None:
    assert SessionStore(UnreachableStorage()).load() is None


def test_file_storage_under_a_regular_file_reads_empty(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = SessionStore(FileStorage(directory=str(blocker / "sub")))

    assert store.load() is None
    assert store.current_tenant_id() is None
    with pytest.raises(OSError):
        store.save(_tenant())
