"""Feedbox database models."""

from feedbox.models.base import Base
from feedbox.models.feedback import FeedbackEntry, MAX_FEEDBACK_ID, newest_first, parse_timestamp

__all__ = [
    "Base",
    "FeedbackEntry",
    "MAX_FEEDBACK_ID",
    "newest_first",
    "parse_timestamp",
]
