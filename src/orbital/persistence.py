"""JSON-file key-value store used to persist selected state across runs."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any
from uuid import uuid4

from .exceptions import PersistenceError

LOGGER = logging.getLogger(__name__)

PROBE_KEY = "__test"


class PersistentStore:
    """Best-effort persisted key-value store.

    Every value is stored under ``prefix + key`` inside a single JSON object.
    ``save``, ``load`` and ``remove`` log failures instead of raising so a
    broken disk never takes state dispatch down with it.
    """

    def __init__(self, path: str | Path, prefix: str = "orbital:persist:") -> None:
        self.path = Path(path).expanduser()
        if self.path.is_dir():
            raise PersistenceError(f"Persistence path {self.path} is a directory.")
        self.prefix = prefix

    def _enforce_permissions(self, path: Path, mode: int = 0o600) -> None:
        """Set POSIX permissions on a file or directory; silently ignores failures."""
        if os.name != "posix":
            return
        try:
            path.chmod(mode)
        except OSError:
            pass

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        payload = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            LOGGER.warning(
                "persistence.format_invalid",
                extra={"event": "persistence.format_invalid", "path": str(self.path)},
            )
            return {}
        return payload

    def _write_all(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        encoded = json.dumps(data, indent=2, ensure_ascii=False)
        temp_path = self.path.with_name(f".{self.path.name}.{uuid4().hex}.tmp")
        try:
            temp_path.write_text(encoded, encoding="utf-8")
            self._enforce_permissions(temp_path)
            os.replace(temp_path, self.path)
        finally:
            if temp_path.exists():
                temp_path.unlink()

    def save(self, key: str, value: Any) -> bool:
        """Persist a JSON-serializable value; return False on failure."""
        try:
            data = self._read_all()
            data[self.prefix + key] = value
            self._write_all(data)
            return True
        except (OSError, TypeError, ValueError) as exc:
            LOGGER.warning(
                "persistence.save_failed",
                extra={"event": "persistence.save_failed", "key": key, "reason": str(exc)},
            )
            return False

    def load(self, key: str) -> Any | None:
        """Return the persisted value, or None when missing or unreadable."""
        try:
            return self._read_all().get(self.prefix + key)
        except (OSError, ValueError) as exc:
            LOGGER.warning(
                "persistence.load_failed",
                extra={"event": "persistence.load_failed", "key": key, "reason": str(exc)},
            )
            return None

    def remove(self, key: str) -> bool:
        try:
            data = self._read_all()
            if self.prefix + key not in data:
                return False
            del data[self.prefix + key]
            self._write_all(data)
            return True
        except (OSError, ValueError) as exc:
            LOGGER.warning(
                "persistence.remove_failed",
                extra={"event": "persistence.remove_failed", "key": key, "reason": str(exc)},
            )
            return False

    def available(self) -> bool:
        """Probe whether the store can be written to."""
        return self.save(PROBE_KEY, "1") and self.remove(PROBE_KEY)
