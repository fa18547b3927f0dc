"""Feedbox API routes."""

from feedbox.api.feedback import FeedbackController

__all__ = ["FeedbackController"]
