"""
Summary classification.
"""

from wikideceased.classifier.deceased import classify, has_lifespan, has_past_tense_lead

__all__ = [
    "classify",
    "has_lifespan",
    "has_past_tense_lead",
]
