"""
Result caching and session storage.
"""

from wikideceased.storage.result_cache import (
    DEFAULT_NAMESPACE,
    CachePayloadError,
    ResultCache,
    decode_payload,
)
from wikideceased.storage.session_store import JsonFileStore, MemoryStore, SessionStore

__all__ = [
    "DEFAULT_NAMESPACE",
    "CachePayloadError",
    "ResultCache",
    "decode_payload",
    "SessionStore",
    "MemoryStore",
    "JsonFileStore",
]
