"""
Page summary API client.

GET <origin>/api/rest_v1/page/summary/<percent-encoded-title>
"""

from typing import Any
from urllib.parse import quote

import httpx

from wikideceased.utils.config import APIConfig
from wikideceased.utils.logging import get_logger

logger = get_logger(__name__)

# Characters encodeURIComponent leaves unescaped
_TITLE_SAFE_CHARS = "-_.!~*'()"


class SummaryFetchError(Exception):
    """Raised when a summary cannot be fetched.

    Attributes:
        title: Subject title that was requested.
        status: HTTP status code, or None for transport failures.
    """

    def __init__(self, title: str, message: str, status: int | None = None):
        super().__init__(message)
        self.title = title
        self.status = status


class SummaryClient:
    """Async client for the page summary endpoint."""

    def __init__(
        self,
        config: APIConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize client.

        Args:
            config: API configuration (defaults to APIConfig()).
            client: Pre-built httpx client (tests inject one with a MockTransport).
        """
        self.config = config or APIConfig()
        self.base_url = self.config.origin.rstrip("/") + self.config.summary_path
        self.default_headers = {
            "User-Agent": self.config.user_agent,
            "Accept": "application/json",
        }
        self._session = client
        self._owns_session = client is None

    async def _get_session(self) -> httpx.AsyncClient:
        """Get HTTP session (lazy initialization)."""
        if self._session is None:
            self._session = httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                headers=self.default_headers,
            )
        return self._session

    def summary_url(self, title: str) -> str:
        return self.base_url + quote(title, safe=_TITLE_SAFE_CHARS)

    async def fetch_summary(self, title: str) -> dict[str, Any]:
        """Fetch the raw summary payload for a title.

        Args:
            title: Subject title.

        Returns:
            Decoded JSON body.

        Raises:
            SummaryFetchError: On transport failure, non-200 status or a non-JSON body.
        """
        session = await self._get_session()
        url = self.summary_url(title)

        try:
            response = await session.get(url, headers=self.default_headers)
        except httpx.HTTPError as e:
            raise SummaryFetchError(title, f"Transport failure: {e}") from e

        if response.status_code != 200:
            raise SummaryFetchError(
                title, f"HTTP {response.status_code}", status=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise SummaryFetchError(title, "Response body is not JSON", status=200) from e

    async def close(self) -> None:
        """Close the session."""
        if self._session is not None and self._owns_session:
            await self._session.aclose()
            logger.debug("Summary client closed")
        self._session = None
