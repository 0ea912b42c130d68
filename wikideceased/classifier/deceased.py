"""
Deceased classifier for page summaries.

Decides whether a biography subject is deceased from the summary text alone:

- description: a life-span range such as "(1920–1995)" or "(1920 - 1995)"
- extract_html: a past-tense lead sentence ("... was an American engineer")
  close to the start of the extract

This is a heuristic. Missed deceased subjects are acceptable; the lead-only
window keeps mid-article past tense from producing false positives.
"""

import re

from wikideceased.utils.logging import get_logger
from wikideceased.utils.schemas import Outcome, SummaryRecord

logger = get_logger(__name__)

# Only the opening of the extract is inspected
EXTRACT_WINDOW = 200

LIFESPAN_PATTERN = re.compile(r"\(\s*\d{4}\s*[–-]\s*\d{4}\s*\)")
PAST_TENSE_LEAD_PATTERN = re.compile(r">\s*was\s+(a|an)\b", re.IGNORECASE)


def has_lifespan(description: str) -> bool:
    """Check a description for a parenthesized birth–death year range."""
    return bool(LIFESPAN_PATTERN.search(description))


def has_past_tense_lead(extract_html: str) -> bool:
    """Check the start of an HTML extract for a "was a/an" lead after a tag boundary."""
    return bool(PAST_TENSE_LEAD_PATTERN.search(extract_html[:EXTRACT_WINDOW]))


def classify(record: SummaryRecord | None) -> Outcome:
    """Classify a summary record.

    Args:
        record: Validated summary, or None when the fetch failed.

    Returns:
        Outcome.UNKNOWN for a missing record, DECEASED when either pattern
        matches, LIVING otherwise.
    """
    if record is None:
        return Outcome.UNKNOWN

    if has_lifespan(record.description):
        logger.debug("Found lifespan pattern in description", description=record.description)
        return Outcome.DECEASED

    if has_past_tense_lead(record.extract_html):
        logger.debug("Found past-tense lead in extract", title=record.title)
        return Outcome.DECEASED

    return Outcome.LIVING
