"""Feedback entry model."""

from datetime import datetime, timezone
from typing import List

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from feedbox.models.base import Base

# Ids live in a 32-bit INTEGER column
MAX_FEEDBACK_ID = 2**31 - 1


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime; naive values are UTC.

    Raises ValueError if the value is not ISO-8601.
    """
    candidate = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    parsed = datetime.fromisoformat(candidate)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class FeedbackEntry(Base):
    """One feedback submission."""

    __tablename__ = "feedbacks"
    # Ids are never handed out twice, even after the newest row is deleted
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    relationship: Mapped[str] = mapped_column(String(100), nullable=False)
    mood: Mapped[str] = mapped_column(String(32), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    # Client-supplied ISO-8601 string, kept verbatim
    timestamp: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    @property
    def instant(self) -> datetime:
        """Point in time of ``timestamp``; unparseable legacy rows sort oldest."""
        try:
            return parse_timestamp(self.timestamp)
        except ValueError:
            return datetime.min.replace(tzinfo=timezone.utc)

    def __repr__(self) -> str:
        return f"<FeedbackEntry {self.id} {self.name} ({self.timestamp})>"


def newest_first(entries: List[FeedbackEntry]) -> List[FeedbackEntry]:
    """Order entries by timestamp instant, newest first; ties keep input order."""
    return sorted(entries, key=lambda e: e.instant, reverse=True)
