from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Protocol

from platformdirs import user_data_dir

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set_many(self, values: Mapping[str, str]) -> None: ...

    def remove_many(self, keys: Iterable[str]) -> None: ...


@dataclass
class MemoryStorage:
    values: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set_many(self, values: Mapping[str, str]) -> None:
        self.values.update(values)

    def remove_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.values.pop(key, None)


@dataclass
class FileStorage:
    """Key-value pairs kept in one JSON file that outlives the process.

    Every write replaces the whole file, so a batch of keys lands together.
    """

    app_name: str = "tenant_session"
    filename: str = "session.json"
    directory: str | None = None

    def _path(self) -> Path:
        base = Path(self.directory) if self.directory else Path(user_data_dir(self.app_name, "TenantSession"))
        return base / self.filename

    def _read_all(self) -> dict[str, str]:
        path = self._path()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (ValueError, OSError):
            logger.warning("session_file_unreadable", extra={"file": str(path)})
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _write_all(self, data: Mapping[str, str]) -> None:
        path = self._path()
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{self.filename}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                json.dump(dict(data), fp, indent=2)
            try:
                os.chmod(tmp_name, 0o600)
            except OSError:
                logger.debug("session_file_chmod_skipped", extra={"file": tmp_name})
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set_many(self, values: Mapping[str, str]) -> None:
        data = self._read_all()
        data.update(values)
        self._write_all(data)

    def remove_many(self, keys: Iterable[str]) -> None:
        data = self._read_all()
        doomed = [key for key in keys if key in data]
        if not doomed:
            return
        for key in doomed:
            data.pop(key)
        self._write_all(data)
