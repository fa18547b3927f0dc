"""Feedback API endpoints."""

import json
import logging
from datetime import datetime, timezone
from typing import Annotated, List, Optional

from litestar import Controller, Request, delete, get, post
from litestar.exceptions import HTTPException
from litestar.params import Dependency, Parameter
from litestar.response import Response
from litestar.status_codes import HTTP_200_OK, HTTP_500_INTERNAL_SERVER_ERROR
from pydantic import BaseModel, ConfigDict, Field, field_validator

from feedbox.errors import PersistenceError, ValidationError
from feedbox.models import MAX_FEEDBACK_ID, FeedbackEntry, parse_timestamp
from feedbox.store import FeedbackStore
from feedbox.utils.logging import log_request_error

logger = logging.getLogger("Feedbox.feedback")

StoreDependency = Annotated[FeedbackStore, Dependency(skip_validation=True)]


# --- Request/Response Schemas ---

class FeedbackRequest(BaseModel):
    """Request to submit feedback."""
    name: str = Field(..., min_length=1, max_length=200, description="Submitter's name")
    relationship: str = Field(..., max_length=100, description="How the submitter knows the recipient")
    mood: str = Field(..., max_length=32, description="Mood emoji")
    message: str = Field(..., min_length=1, description="Feedback message")
    rating: int = Field(..., ge=1, le=5, description="Star rating")
    timestamp: str = Field(..., max_length=64, description="Client-side ISO-8601 submission time")

    @field_validator("name", "message")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        # Checked, not stripped: accepted values are stored verbatim
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("timestamp")
    @classmethod
    def check_iso_timestamp(cls, value: str) -> str:
        try:
            parse_timestamp(value)
        except ValueError as e:
            raise ValueError("timestamp must be an ISO-8601 datetime") from e
        return value


class FeedbackResponse(BaseModel):
    """A persisted feedback entry."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    relationship: str
    mood: str
    message: str
    rating: int
    timestamp: str


class DeleteResponse(BaseModel):
    """Acknowledgement for a delete."""
    success: bool


class StatsResponse(BaseModel):
    """Summary figures for the admin dashboard."""
    total: int
    average_rating: float
    unique_people: int


def to_response(entry: FeedbackEntry) -> FeedbackResponse:
    return FeedbackResponse.model_validate(entry)


def average_rating(entries: List[FeedbackEntry]) -> float:
    """Mean rating rounded to one decimal, 0 when there are no entries."""
    if not entries:
        return 0
    return round(sum(e.rating for e in entries) / len(entries), 1)


def unique_people(entries: List[FeedbackEntry]) -> int:
    return len({e.name for e in entries})


def parse_feedback_id(raw: Optional[str]) -> int:
    """Parse the ``id`` query parameter of a delete request."""
    if raw is None or not raw.strip():
        raise ValidationError("Missing feedback id")
    try:
        return int(raw)
    except ValueError as e:
        raise ValidationError(f"Invalid feedback id: {raw!r}") from e


def can_exist(feedback_id: int) -> bool:
    """Whether an id fits the id column; larger values cannot match any row."""
    return 1 <= feedback_id <= MAX_FEEDBACK_ID


# --- Controller ---

class FeedbackController(Controller):
    """API endpoints for submitting and managing feedback."""

    path = "/api/feedback"
    tags = ["feedback"]

    @post("/", status_code=HTTP_200_OK)
    async def create_feedback(
        self,
        request: Request,
        data: FeedbackRequest,
        store: StoreDependency,
    ) -> FeedbackResponse:
        """Submit feedback; the server assigns the id."""
        try:
            entry = await store.insert(data.model_dump())
        except PersistenceError as e:
            log_request_error(request, e, message="Failed to save feedback", operation="insert")
            raise HTTPException(
                detail="Failed to save feedback",
                status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            ) from e

        logger.info(f"Feedback {entry.id} saved from {data.name} ({data.relationship})")
        return to_response(entry)

    @get("/")
    async def list_feedback(self, request: Request, store: StoreDependency) -> List[FeedbackResponse]:
        """All feedback, newest timestamp first."""
        entries = await self._fetch_all(request, store)
        logger.debug(f"Fetched {len(entries)} feedback entries")
        return [to_response(e) for e in entries]

    @delete("/", status_code=HTTP_200_OK)
    async def delete_feedback(
        self,
        request: Request,
        store: StoreDependency,
        feedback_id: Annotated[Optional[str], Parameter(query="id", required=False)] = None,
    ) -> DeleteResponse:
        """Delete by id. Unknown ids still succeed."""
        target = parse_feedback_id(feedback_id)
        if not can_exist(target):
            logger.debug(f"Feedback id {target} is out of range, nothing to delete")
            return DeleteResponse(success=True)
        try:
            await store.delete(target)
        except PersistenceError as e:
            log_request_error(request, e, message="Failed to delete feedback", feedback_id=target)
            raise HTTPException(
                detail="Failed to delete feedback",
                status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            ) from e

        logger.info(f"Feedback {target} deleted")
        return DeleteResponse(success=True)

    @get("/stats")
    async def feedback_stats(self, request: Request, store: StoreDependency) -> StatsResponse:
        """Entry count, average rating and number of distinct submitters."""
        entries = await self._fetch_all(request, store)
        return StatsResponse(
            total=len(entries),
            average_rating=average_rating(entries),
            unique_people=unique_people(entries),
        )

    @get("/export")
    async def export_feedback(self, request: Request, store: StoreDependency) -> Response:
        """Download all feedback as a JSON file."""
        entries = await self._fetch_all(request, store)
        payload = [to_response(e).model_dump() for e in entries]
        filename = f"feedbacks-{datetime.now(timezone.utc).date().isoformat()}.json"
        return Response(
            content=json.dumps(payload, indent=2, ensure_ascii=False),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    async def _fetch_all(self, request: Request, store: FeedbackStore) -> List[FeedbackEntry]:
        try:
            return await store.list()
        except PersistenceError as e:
            log_request_error(request, e, message="Failed to fetch feedbacks", operation="list")
            raise HTTPException(
                detail="Failed to fetch feedbacks",
                status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            ) from e
