"""
Main entry point for wikideceased.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from bs4 import BeautifulSoup

from wikideceased.links.decoration import SoupDecorator, inject_stylesheet, render_stylesheet
from wikideceased.links.discovery import SoupLinkSource
from wikideceased.pipeline.session import ClassificationSession
from wikideceased.storage.session_store import JsonFileStore
from wikideceased.utils.config import Settings, get_settings
from wikideceased.utils.logging import configure_logging, get_logger


async def classify_titles(settings: Settings, titles: list[str]) -> int:
    """Classify subject titles and print one `title<TAB>outcome` line each."""
    async with ClassificationSession(settings) as session:
        outcomes = await asyncio.gather(*(session.scheduler.request(t) for t in titles))
        for title, outcome in zip(titles, outcomes, strict=True):
            print(f"{title}\t{outcome.value}")
    return 0


async def annotate_file(
    settings: Settings,
    input_path: Path,
    output_path: Path | None,
    origin: str | None,
) -> int:
    """Decorate deceased-subject links in an HTML file."""
    logger = get_logger(__name__)
    soup = BeautifulSoup(input_path.read_text(encoding="utf-8"), "html.parser")
    source = SoupLinkSource(soup)
    decorator = SoupDecorator()

    async with ClassificationSession(settings, origin=origin) as session:
        service = session.create_service(decorator)
        service.submit(source.discover())
        await service.join()
        logger.info("Annotation finished", **{k: v for k, v in service.stats().items() if k != "scheduler"})

    inject_stylesheet(soup, render_stylesheet(settings.style))
    html = str(soup)
    if output_path is None:
        sys.stdout.write(html)
    else:
        output_path.write_text(html, encoding="utf-8")
    print(f"Marked {decorator.decorated} link(s) as deceased.", file=sys.stderr)
    return 0


def show_cache(settings: Settings, clear: bool) -> int:
    """Print or clear the session cache file."""
    store = JsonFileStore(settings.cache.session_file)
    if clear:
        store.clear(settings.cache.namespace)
        print("Session cache cleared.")
        return 0

    entries = store.get_all(settings.cache.namespace) or {}
    if not isinstance(entries, dict):
        print("Session cache is unreadable.", file=sys.stderr)
        return 1
    for title, outcome in sorted(entries.items()):
        print(f"{title}\t{outcome}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wikideceased",
        description="Mark links to biographies of deceased people",
    )
    parser.add_argument("--log-level", type=str, help="Override settings.general.log_level")
    parser.add_argument("--session-file", type=Path, help="Session cache file")
    parser.add_argument(
        "--console-log", action="store_true", help="Human-readable logs instead of JSON"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    classify_parser = subparsers.add_parser("classify", help="Classify subject titles")
    classify_parser.add_argument("titles", nargs="+", help="Subject titles (e.g. Ada_Lovelace)")

    annotate_parser = subparsers.add_parser("annotate", help="Annotate links in an HTML file")
    annotate_parser.add_argument("input", type=Path, help="HTML file to annotate")
    annotate_parser.add_argument("--output", "-o", type=Path, help="Output file (default: stdout)")
    annotate_parser.add_argument("--origin", type=str, help="Site origin of the document")

    cache_parser = subparsers.add_parser("cache", help="Show the session cache")
    cache_parser.add_argument("--clear", action="store_true", help="Clear the session cache")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    settings = get_settings()
    if args.session_file is not None:
        settings = settings.model_copy(
            update={
                "cache": settings.cache.model_copy(update={"session_file": str(args.session_file)})
            }
        )

    configure_logging(log_level=args.log_level, json_format=not args.console_log)

    if args.command == "classify":
        return asyncio.run(classify_titles(settings, args.titles))
    if args.command == "annotate":
        return asyncio.run(annotate_file(settings, args.input, args.output, args.origin))
    return show_cache(settings, args.clear)


if __name__ == "__main__":
    sys.exit(main())
