"""
Pydantic schemas and shared types passed between modules.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class Outcome(str, Enum):
    """Classification result for one biography subject."""

    DECEASED = "deceased"
    LIVING = "living"
    UNKNOWN = "unknown"  # Fetch failed or payload unusable; never cached

    @property
    def is_terminal(self) -> bool:
        """Whether this outcome may be cached for the session."""
        return self is not Outcome.UNKNOWN


class SummaryRecord(BaseModel):
    """Fields of a page summary response relevant to classification.

    Transient: built from the API payload, classified, then dropped.
    """

    model_config = ConfigDict(extra="ignore")

    extract_html: str = Field(..., description="HTML-bearing lead extract")
    description: str = Field(default="", description="Short descriptive phrase")
    title: str | None = Field(default=None, description="Page title as returned by the API")
    type: str | None = Field(default=None, description="Summary type (standard, disambiguation, ...)")

    @classmethod
    def from_payload(cls, payload: Any) -> "SummaryRecord | None":
        """Validate a decoded JSON payload.

        Returns:
            SummaryRecord, or None when the payload is not a usable summary.
        """
        if not isinstance(payload, dict):
            return None
        data = dict(payload)
        # The API omits or nulls description for many pages
        if data.get("description") is None:
            data.pop("description", None)
        try:
            return cls.model_validate(data)
        except ValidationError:
            return None
