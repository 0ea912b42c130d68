"""
Result cache keyed by subject title.

Only terminal outcomes (deceased/living) are cached; unknown results must be
retried on the next request. Entries are immutable for the session. When a
store is attached, the cache is persisted after every write, best-effort.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from wikideceased.storage.session_store import SessionStore
from wikideceased.utils.logging import get_logger
from wikideceased.utils.schemas import Outcome

logger = get_logger(__name__)

DEFAULT_NAMESPACE = "wiki-deceased-cache"


class CachePayloadError(ValueError):
    """Raised when a stored cache payload cannot be decoded."""


def decode_payload(payload: Any) -> dict[str, Outcome]:
    """Decode a stored payload into cacheable entries.

    Entries that are not terminal outcomes are skipped.

    Raises:
        CachePayloadError: If the payload is not a mapping.
    """
    if not isinstance(payload, dict):
        raise CachePayloadError(f"Expected mapping, got {type(payload).__name__}")

    entries: dict[str, Outcome] = {}
    for title, value in payload.items():
        try:
            outcome = Outcome(value)
        except ValueError:
            logger.debug("Skipping invalid cache entry", title=title, value=value)
            continue
        if isinstance(title, str) and title and outcome.is_terminal:
            entries[title] = outcome
    return entries


class ResultCache:
    """Mapping from subject title to terminal classification outcome.

    Example:
        cache = ResultCache(store=JsonFileStore("data/session_cache.json"))
        cache.load_from(cache.store)
        cache.put("Ada_Lovelace", Outcome.DECEASED)  # persisted
        cache.get("Ada_Lovelace")  # Outcome.DECEASED
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        namespace: str = DEFAULT_NAMESPACE,
        max_entries: int | None = None,
    ) -> None:
        """Initialize an empty cache.

        Args:
            store: Store persisted after each write (None = memory only).
            namespace: Key under which entries are stored.
            max_entries: Optional size cap; oldest entries are evicted first.
        """
        self.store = store
        self.namespace = namespace
        self.max_entries = max_entries
        self._entries: dict[str, Outcome] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, title: object) -> bool:
        return title in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, title: str) -> Outcome | None:
        return self._entries.get(title)

    def put(self, title: str, outcome: Outcome) -> bool:
        """Cache a terminal outcome.

        Args:
            title: Subject title.
            outcome: Classification outcome.

        Returns:
            True if the cache changed.
        """
        if not outcome.is_terminal:
            return False

        existing = self._entries.get(title)
        if existing is not None:
            if existing is not outcome:
                logger.debug(
                    "Ignoring conflicting outcome for cached title",
                    title=title,
                    cached=existing.value,
                    new=outcome.value,
                )
            return False

        if self.max_entries is not None and len(self._entries) >= self.max_entries:
            evicted = next(iter(self._entries))
            del self._entries[evicted]
            logger.debug("Evicted cache entry", title=evicted, max_entries=self.max_entries)

        self._entries[title] = outcome
        if self.store is not None:
            self.save_to(self.store)
        return True

    def snapshot(self) -> dict[str, str]:
        """Return entries as a JSON-compatible mapping."""
        return {title: outcome.value for title, outcome in self._entries.items()}

    def clear(self) -> None:
        self._entries.clear()

    def load_from(self, store: SessionStore) -> int:
        """Hydrate the cache from a store.

        Corrupt or unreadable payloads leave the cache untouched.

        Returns:
            Number of entries loaded.
        """
        try:
            payload = store.get_all(self.namespace)
            if payload is None:
                return 0
            entries = decode_payload(payload)
        except Exception as e:
            logger.warning("Cache load failed, starting empty", namespace=self.namespace, error=str(e))
            return 0

        loaded = 0
        for title, outcome in entries.items():
            if title not in self._entries:
                self._entries[title] = outcome
                loaded += 1
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                del self._entries[next(iter(self._entries))]

        logger.info("Cache loaded", namespace=self.namespace, entries=loaded)
        return loaded

    def save_to(self, store: SessionStore) -> bool:
        """Persist the cache to a store.

        Returns:
            True on success; failures are logged and swallowed.
        """
        try:
            store.set_all(self.namespace, self.snapshot())
            return True
        except Exception as e:
            logger.warning("Cache save failed", namespace=self.namespace, error=str(e))
            return False
