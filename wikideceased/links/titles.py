"""
Subject title extraction from link targets.
"""

from urllib.parse import parse_qs, unquote, urljoin, urlparse

ARTICLE_PREFIX = "/wiki/"
NAMESPACE_DELIMITER = ":"


def title_from_href(href: str | None, origin: str) -> str | None:
    """Extract the subject title a link points at.

    Only same-origin article links qualify. Rejected:
    - other origins and non-article paths
    - namespaced pages (Talk:, User:, Special:, ...)
    - links to missing pages (redlink=1)
    - section links (any fragment)

    Args:
        href: Raw href attribute (absolute or relative).
        origin: Site origin, e.g. "https://en.wikipedia.org".

    Returns:
        Percent-decoded title with spaces folded to underscores, or None.
    """
    if not href:
        return None

    try:
        base = urlparse(origin)
        url = urlparse(urljoin(origin.rstrip("/") + "/", href.strip()))
    except ValueError:
        return None

    if url.scheme != base.scheme or url.netloc.lower() != base.netloc.lower():
        return None
    if not url.path.startswith(ARTICLE_PREFIX):
        return None
    if url.fragment:
        return None
    if parse_qs(url.query).get("redlink") == ["1"]:
        return None

    title = unquote(url.path[len(ARTICLE_PREFIX) :]).replace(" ", "_")
    if not title or NAMESPACE_DELIMITER in title:
        return None
    return title
