"""
Link discovery over parsed HTML documents.

Provides:
- LinkHandle: a link target plus a per-link "processed" marker
- SoupLinkSource: finds unprocessed article links in a BeautifulSoup document
  and publishes links inserted later as a feed of batches
- PreviewFilter: detects links inside transient preview surfaces
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable, Sequence
from typing import Any

import soupsieve as sv
from bs4 import BeautifulSoup, Tag

from wikideceased.utils.logging import get_logger

logger = get_logger(__name__)

PROCESSED_ATTR = "data-processed"
ARTICLE_LINK_SELECTOR = 'a[href*="/wiki/"]'


class LinkHandle(ABC):
    """A candidate link and its processed marker."""

    element: Any = None

    @property
    @abstractmethod
    def href(self) -> str | None:
        """Raw link target."""

    @abstractmethod
    def is_processed(self) -> bool:
        """Whether the link was already handled in this session."""

    @abstractmethod
    def mark_processed(self) -> None:
        """Set the processed marker."""


class StaticLinkHandle(LinkHandle):
    """Link handle with no backing document."""

    def __init__(self, href: str | None, element: Any = None) -> None:
        self._href = href
        self.element = element
        self._processed = False

    @property
    def href(self) -> str | None:
        return self._href

    def is_processed(self) -> bool:
        return self._processed

    def mark_processed(self) -> None:
        self._processed = True

    def __repr__(self) -> str:
        return f"StaticLinkHandle({self._href!r})"


class SoupLinkHandle(LinkHandle):
    """Link handle backed by an <a> tag; the marker is a data attribute."""

    def __init__(self, tag: Tag) -> None:
        self.element = tag

    @property
    def href(self) -> str | None:
        href = self.element.get("href")
        return href if isinstance(href, str) else None

    def is_processed(self) -> bool:
        return self.element.has_attr(PROCESSED_ATTR)

    def mark_processed(self) -> None:
        self.element[PROCESSED_ATTR] = "true"

    def __repr__(self) -> str:
        return f"SoupLinkHandle({self.href!r})"


class PreviewFilter:
    """Matches links that sit inside a preview surface.

    A link is inside a preview surface when it, or any ancestor below <body>,
    matches one of the configured CSS selectors.
    """

    def __init__(self, selectors: Iterable[str]) -> None:
        self.selectors: list[str] = []
        self._patterns: list[sv.SoupSieve] = []
        for selector in selectors:
            try:
                self._patterns.append(sv.compile(selector))
                self.selectors.append(selector)
            except sv.SelectorSyntaxError as e:
                logger.warning("Ignoring invalid preview selector", selector=selector, error=str(e))

    def matching_selector(self, link: LinkHandle) -> str | None:
        """Return the first selector matching the link's ancestry, if any."""
        node = link.element
        if not isinstance(node, Tag):
            return None

        while isinstance(node, Tag) and node.name not in ("body", "[document]"):
            for selector, pattern in zip(self.selectors, self._patterns, strict=True):
                if pattern.match(node):
                    return selector
            node = node.parent
        return None

    def __call__(self, link: LinkHandle) -> bool:
        selector = self.matching_selector(link)
        if selector is not None:
            logger.debug("Link excluded - found in preview container", selector=selector)
            return True
        return False


class SoupLinkSource:
    """Discovers article links in a document and feeds later insertions.

    Example:
        source = SoupLinkSource(BeautifulSoup(html, "html.parser"))
        service.submit(source.discover())
        source.insert('<p><a href="/wiki/Alan_Turing">Turing</a></p>')
        source.close()
        await service.consume(source.changes())
    """

    _CLOSED = object()

    def __init__(self, soup: BeautifulSoup) -> None:
        self.soup = soup
        self._changes: asyncio.Queue[Any] = asyncio.Queue()

    def discover(self, root: Tag | None = None) -> list[SoupLinkHandle]:
        """Find article links not yet marked processed.

        Args:
            root: Subtree to search (defaults to the whole document).
        """
        scope = root if root is not None else self.soup
        links = [
            SoupLinkHandle(tag)
            for tag in _select_with_self(scope, ARTICLE_LINK_SELECTOR)
            if not tag.has_attr(PROCESSED_ATTR)
        ]
        logger.debug("Found article links to process", count=len(links))
        return links

    def insert(self, html: str, parent: Tag | None = None) -> list[SoupLinkHandle]:
        """Insert an HTML fragment and publish its article links as a change batch.

        Args:
            html: Fragment markup.
            parent: Element to append to (defaults to <body>, else the document).

        Returns:
            Handles for the newly inserted article links.
        """
        target = parent or self.soup.body or self.soup
        fragment = BeautifulSoup(html, "html.parser")

        inserted: list[SoupLinkHandle] = []
        for node in list(fragment.contents):
            node = node.extract()
            target.append(node)
            if isinstance(node, Tag):
                inserted.extend(self.discover(node))

        if inserted:
            self._changes.put_nowait(inserted)
        return inserted

    def close(self) -> None:
        """End the change feed."""
        self._changes.put_nowait(self._CLOSED)

    async def changes(self) -> AsyncIterator[Sequence[SoupLinkHandle]]:
        """Yield batches of inserted links until close() is called."""
        while True:
            batch = await self._changes.get()
            if batch is self._CLOSED:
                return
            yield batch


def _select_with_self(root: Tag, selector: str) -> list[Tag]:
    """Like Tag.select, but includes root itself when it matches."""
    matches = list(root.select(selector))
    if root.name != "[document]" and sv.match(selector, root):
        matches.insert(0, root)
    return matches
