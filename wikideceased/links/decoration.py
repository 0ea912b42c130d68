"""
Decoration of links whose subject is deceased.
"""

from bs4 import BeautifulSoup, Tag

from wikideceased.links.discovery import LinkHandle
from wikideceased.utils.config import StyleConfig
from wikideceased.utils.logging import get_logger

logger = get_logger(__name__)

DECEASED_CLASS = "wikideceased"
ANNOTATION = "deceased"
STYLESHEET_ID = "wikideceased-styles"


def mark_as_deceased(tag: Tag) -> bool:
    """Add the deceased class and tooltip annotation to a link tag.

    Idempotent.

    Returns:
        True if the tag was changed.
    """
    changed = False

    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    if DECEASED_CLASS not in classes:
        tag["class"] = [*classes, DECEASED_CLASS]
        changed = True

    title = tag.get("title") or ""
    if ANNOTATION not in title:
        tag["title"] = f"{title} • {ANNOTATION}" if title else ANNOTATION
        changed = True

    return changed


class SoupDecorator:
    """Decoration collaborator for links backed by BeautifulSoup tags."""

    def __init__(self) -> None:
        self.decorated = 0

    def __call__(self, link: LinkHandle) -> None:
        if not isinstance(link.element, Tag):
            logger.debug("Cannot decorate link without a tag", href=link.href)
            return
        if mark_as_deceased(link.element):
            self.decorated += 1
            logger.debug(
                "Marked as deceased",
                text=link.element.get_text(strip=True),
                href=link.href,
            )


def render_stylesheet(style: StyleConfig) -> str:
    """Render the CSS rule applied to decorated links."""
    declarations = [
        f"color: {style.text_color} !important;",
        f"font-weight: {style.font_weight} !important;",
        f"text-decoration: {style.text_decoration} !important;",
        f"opacity: {style.opacity} !important;",
    ]
    if style.use_background:
        declarations += [
            f"background-color: {style.background_color} !important;",
            "padding: 2px 4px !important;",
            "border-radius: 2px !important;",
        ]
    if style.custom_css:
        declarations.append(style.custom_css.strip())

    selectors = ",\n".join(
        f"a.{DECEASED_CLASS}{state}" for state in ("", ":visited", ":hover", ":active")
    )
    body = "\n".join(f"  {line}" for line in declarations)
    return f"{selectors} {{\n{body}\n}}\n"


def inject_stylesheet(soup: BeautifulSoup, css: str) -> Tag:
    """Insert (or replace) the decoration stylesheet in the document head."""
    existing = soup.find(id=STYLESHEET_ID)
    if existing is not None:
        existing.decompose()

    head = soup.head
    if head is None:
        head = soup.new_tag("head")
        if soup.html is not None:
            soup.html.insert(0, head)
        else:
            soup.insert(0, head)

    style_tag = soup.new_tag("style", id=STYLESHEET_ID)
    style_tag.string = css
    head.append(style_tag)
    return style_tag
