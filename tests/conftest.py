"""
Pytest fixtures and configuration for wikideceased tests.

Markers:
- @pytest.mark.unit: Single class/function, no external dependencies
  - DEFAULT: Tests without marker are auto-classified as unit
- @pytest.mark.integration: Multiple components, mocked network

Mock Strategy:
- Network: Prohibited. Use FakeSummaryClient (scheduler/service tests)
  or httpx.MockTransport (SummaryClient tests)
- Session storage: MemoryStore, or JsonFileStore under tmp_path
"""

import asyncio
import os
import time
from pathlib import Path
from typing import Any

import pytest

# Set test environment before importing anything else
os.environ["WIKIDECEASED_CONFIG_DIR"] = str(Path(__file__).parent.parent / "config")

from wikideceased.api.summary import SummaryFetchError
from wikideceased.scheduler.request_scheduler import RequestScheduler
from wikideceased.storage.result_cache import ResultCache
from wikideceased.storage.session_store import MemoryStore
from wikideceased.utils.config import SchedulerConfig, get_settings

DECEASED_PAYLOAD = {
    "title": "John Doe",
    "type": "standard",
    "description": "John Doe (1920–1995) was an American engineer.",
    "extract_html": "<p><b>John Doe</b> was an American engineer.</p>",
}

LIVING_PAYLOAD = {
    "title": "Jane Roe",
    "type": "standard",
    "description": "Jane Roe (born 1980) is an American artist.",
    "extract_html": "<p>Jane Roe is an American artist.</p>",
}


def pytest_collection_modifyitems(config, items):
    """Tests without a classification marker are unit tests."""
    for item in items:
        has_classification = any(
            marker.name in ("unit", "integration") for marker in item.iter_markers()
        )
        if not has_classification:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reload settings for every test so env overrides do not leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeSummaryClient:
    """In-memory summary fetcher that records call timing and overlap.

    Titles missing from payloads fail like an HTTP 404. A payload that is an
    exception instance is raised as-is.
    """

    def __init__(
        self,
        payloads: dict[str, Any] | None = None,
        *,
        delay: float = 0.0,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.payloads = payloads or {}
        self.delay = delay
        self.gate = gate
        self.calls: list[str] = []
        self.started_at: list[float] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def fetch_summary(self, title: str) -> Any:
        self.calls.append(title)
        self.started_at.append(time.monotonic())
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            if title not in self.payloads:
                raise SummaryFetchError(title, "HTTP 404", status=404)
            payload = self.payloads[title]
            if isinstance(payload, Exception):
                raise payload
            return payload
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client_factory():
    """Factory for FakeSummaryClient instances."""
    return FakeSummaryClient


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_scheduler(memory_store: MemoryStore):
    """Factory for schedulers with fast pacing and a memory-backed cache."""

    def _make(
        client: FakeSummaryClient,
        *,
        max_concurrent: int = 4,
        min_interval_seconds: float = 0.0,
        request_timeout_seconds: float = 5.0,
        cache: ResultCache | None = None,
    ) -> RequestScheduler:
        config = SchedulerConfig(
            max_concurrent=max_concurrent,
            min_interval_seconds=min_interval_seconds,
            request_timeout_seconds=request_timeout_seconds,
        )
        if cache is None:
            cache = ResultCache(store=memory_store)
        return RequestScheduler(client, cache, config)

    return _make


@pytest.fixture
def deceased_payload() -> dict[str, Any]:
    return dict(DECEASED_PAYLOAD)


@pytest.fixture
def living_payload() -> dict[str, Any]:
    return dict(LIVING_PAYLOAD)
