"""
Session-scoped key-value stores for the result cache.

A store keeps one JSON-compatible mapping per namespace. Stores are
best-effort: absent or unreadable data reads as None and the caller
degrades to an empty cache.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from wikideceased.utils.logging import get_logger

logger = get_logger(__name__)


class SessionStore(ABC):
    """Namespaced get-all/set-all store."""

    @abstractmethod
    def get_all(self, namespace: str) -> Any:
        """Return the raw value stored under namespace, or None if absent."""

    @abstractmethod
    def set_all(self, namespace: str, data: dict[str, str]) -> None:
        """Replace the value stored under namespace."""

    def clear(self, namespace: str) -> None:
        """Drop the value stored under namespace."""
        self.set_all(namespace, {})


class MemoryStore(SessionStore):
    """In-process store; lives as long as the object does."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get_all(self, namespace: str) -> Any:
        return self._data.get(namespace)

    def set_all(self, namespace: str, data: dict[str, str]) -> None:
        self._data[namespace] = dict(data)


class JsonFileStore(SessionStore):
    """Store backed by a single JSON file holding every namespace.

    The file layout is {"<namespace>": {"<title>": "<outcome>", ...}}.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object in {self.path}")
        return data

    def get_all(self, namespace: str) -> Any:
        try:
            return self._read().get(namespace)
        except (OSError, ValueError) as e:
            logger.warning("Session store read failed", path=str(self.path), error=str(e))
            return None

    def set_all(self, namespace: str, data: dict[str, str]) -> None:
        try:
            existing = self._read()
        except (OSError, ValueError) as e:
            logger.warning(
                "Session store unreadable, overwriting", path=str(self.path), error=str(e)
            )
            existing = {}
        existing[namespace] = dict(data)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(existing, f, ensure_ascii=False, indent=2)
        tmp_path.replace(self.path)
