"""
Session wiring: cache, store, client, scheduler and service built from settings.
"""

from __future__ import annotations

from types import TracebackType

from wikideceased.api.summary import SummaryClient
from wikideceased.links.decoration import SoupDecorator
from wikideceased.links.discovery import PreviewFilter
from wikideceased.pipeline.service import Decorate, LinkClassificationService
from wikideceased.scheduler.request_scheduler import RequestScheduler, SummaryFetcher
from wikideceased.storage.result_cache import ResultCache
from wikideceased.storage.session_store import JsonFileStore, SessionStore
from wikideceased.utils.config import Settings, get_settings
from wikideceased.utils.logging import get_logger

logger = get_logger(__name__)


class ClassificationSession:
    """One browsing session's classification pipeline.

    Example:
        async with ClassificationSession() as session:
            outcome = await session.scheduler.request("Ada_Lovelace")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: SessionStore | None = None,
        client: SummaryFetcher | None = None,
        origin: str | None = None,
    ) -> None:
        """Build the pipeline.

        Args:
            settings: Settings (defaults to get_settings()).
            store: Cache store (defaults to a JsonFileStore at cache.session_file).
            client: Summary fetcher (defaults to SummaryClient for the origin).
            origin: Site origin overriding settings.api.origin.
        """
        self.settings = settings or get_settings()
        self.origin = (origin or self.settings.api.origin).rstrip("/")

        self.store = store if store is not None else JsonFileStore(self.settings.cache.session_file)
        self.cache = ResultCache(
            store=self.store,
            namespace=self.settings.cache.namespace,
            max_entries=self.settings.cache.max_entries,
        )
        self.cache.load_from(self.store)

        if client is None:
            api_config = self.settings.api.model_copy(update={"origin": self.origin})
            client = SummaryClient(api_config)
        self.scheduler = RequestScheduler(client, self.cache, self.settings.scheduler)

    def create_service(self, decorate: Decorate | None = None) -> LinkClassificationService:
        """Create a link service sharing this session's scheduler."""
        return LinkClassificationService(
            self.scheduler,
            decorate or SoupDecorator(),
            origin=self.origin,
            config=self.settings.service,
            is_preview=PreviewFilter(self.settings.service.preview_selectors),
        )

    async def aclose(self) -> None:
        await self.scheduler.aclose()
        logger.debug("Session closed", cached=len(self.cache))

    async def __aenter__(self) -> ClassificationSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
