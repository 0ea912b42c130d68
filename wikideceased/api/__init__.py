"""
Summary API access.
"""

from wikideceased.api.summary import SummaryClient, SummaryFetchError

__all__ = [
    "SummaryClient",
    "SummaryFetchError",
]
