"""
Link discovery, subject title extraction and decoration.
"""

from wikideceased.links.decoration import (
    SoupDecorator,
    inject_stylesheet,
    mark_as_deceased,
    render_stylesheet,
)
from wikideceased.links.discovery import (
    LinkHandle,
    PreviewFilter,
    SoupLinkHandle,
    SoupLinkSource,
    StaticLinkHandle,
)
from wikideceased.links.titles import title_from_href

__all__ = [
    "LinkHandle",
    "StaticLinkHandle",
    "SoupLinkHandle",
    "SoupLinkSource",
    "PreviewFilter",
    "SoupDecorator",
    "mark_as_deceased",
    "render_stylesheet",
    "inject_stylesheet",
    "title_from_href",
]
