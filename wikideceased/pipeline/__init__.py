"""
Link classification pipeline.
"""

from wikideceased.pipeline.service import LinkClassificationService
from wikideceased.pipeline.session import ClassificationSession

__all__ = [
    "LinkClassificationService",
    "ClassificationSession",
]
