"""FastAPI application for the feedback triage pipeline."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv(Path(__file__).parent / ".env")

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

import redis.asyncio as redis

import config
from classify import FeedbackClassifier
from drafting import TicketDrafter
from ingest import ThemeClusterer
from ingest.pipeline import PipelineResult, PipelineService
from llm import get_optional_llm
from models import (
    DateRange,
    DraftedTicket,
    EditedDraft,
    FeedbackCategory,
    FeedbackSource,
    PipelineJob,
    PipelineNotification,
    Priority,
    QueueStats,
    ReviewFilters,
    ReviewStatus,
    ScrapeConfig,
    TicketPlatform,
)
from redis_setup import close_redis, health_check as redis_health_check, init_redis
from review import (
    InvalidTransitionError,
    ReviewQueue,
    TicketNotConfirmedError,
    load_queue,
    save_queue,
)
from scrapers import RedditScraper
from tickets import TicketResult
from tracing import init_weave

# Global state (set up at import, wired to Redis during startup)
_queue = ReviewQueue()
_pipeline: PipelineService | None = None
_redis_client: redis.Redis | None = None
_persist_lock = asyncio.Lock()


def get_pipeline() -> PipelineService:
    """Return the pipeline service, building it on first use."""
    global _pipeline
    if _pipeline is None or _pipeline.queue is not _queue:
        llm = get_optional_llm(config.LLM_PROVIDER)
        _pipeline = PipelineService(
            classifier=FeedbackClassifier(llm),
            drafter=TicketDrafter(llm),
            clusterer=ThemeClusterer(llm),
            queue=_queue,
        )
    return _pipeline


async def _persist() -> None:
    """Save the queue snapshot if Redis is connected.

    Saves are serialized so a slower save never overwrites a newer snapshot.
    """
    if _redis_client is None:
        return
    try:
        async with _persist_lock:
            await save_queue(_redis_client, _queue)
    except redis.RedisError as e:
        logger.error("Failed to persist review queue: %s", e)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Application lifespan for startup/shutdown."""
    global _redis_client  # noqa: PLW0603

    # Startup
    logger.info("Starting up...")

    # Initialize Weave for observability (before any @weave.op decorated functions)
    if init_weave():
        logger.info("Weave observability enabled")

    get_pipeline()

    if config.PERSIST_QUEUE:
        try:
            _redis_client = await init_redis()
            await load_queue(_redis_client, _queue)
        except (redis.RedisError, OSError) as e:
            logger.warning("Redis unavailable, review queue will not be persisted: %s", e)
            _redis_client = None

    yield

    # Shutdown
    logger.info("Shutting down...")
    if _redis_client is not None:
        await _persist()
        await close_redis()
        _redis_client = None


app = FastAPI(
    title="Feedback Triage API",
    description="Classify customer feedback, draft tickets and review them before filing",
    version="0.1.0",
    lifespan=lifespan,
)


class SourceRecord(BaseModel):
    """A raw record from one feedback source."""

    kind: str = Field(description="Source kind: reddit, twitter, slack, support, call or file")
    data: dict[str, Any] = Field(description="The raw record as delivered by the source")


class ProcessRequest(BaseModel):
    """Request to run the pipeline."""

    records: list[SourceRecord] = Field(default_factory=list)
    reddit: ScrapeConfig | None = Field(
        default=None, description="Optionally fetch a subreddit and process its posts too"
    )
    limit: int = Field(default=config.PIPELINE_DEFAULT_LIMIT, ge=1, le=100)
    company_context: str | None = None
    cluster: bool = Field(default=False, description="Draft one ticket per theme cluster")


class ApproveRequest(BaseModel):
    """Approve a draft, optionally recording the ticket filed for it."""

    platform: TicketPlatform = "linear"
    ticket_id: str | None = None
    ticket_url: str | None = None
    reviewed_by: str | None = None


class RejectRequest(BaseModel):
    reason: str | None = None
    reviewed_by: str | None = None


class SelectRequest(BaseModel):
    """Replace the selection with the given ids, or every pending draft in view."""

    draft_ids: list[str] = Field(default_factory=list)
    select_all: bool = False


class BulkApproveRequest(BaseModel):
    platform: TicketPlatform = "linear"


class BulkRejectRequest(BaseModel):
    reason: str | None = None


def _get_draft_or_404(draft_id: str) -> DraftedTicket:
    draft = _queue.get(draft_id)
    if draft is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return draft


# Health endpoints


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    if _redis_client is None:
        return {"status": "ok", "redis": {"status": "disabled"}, "drafts": len(_queue.drafts)}

    redis_status = await redis_health_check()
    return {
        "status": "ok" if redis_status["status"] == "healthy" else "degraded",
        "redis": redis_status,
        "drafts": len(_queue.drafts),
    }


# Pipeline endpoints


@app.post("/pipeline/process")
async def process_feedback(request: ProcessRequest) -> PipelineResult:
    """Normalize, classify and draft tickets for the given feedback.

    Args:
        request: Raw records and/or a subreddit to fetch, plus run options.

    Returns:
        PipelineResult with counts and the drafts added to the review queue.
    """
    records = [(record.kind, record.data) for record in request.records]

    if request.reddit is not None:
        try:
            posts = await RedditScraper().fetch(request.reddit)
        except Exception as e:
            logger.exception("Failed to fetch r/%s: %s", request.reddit.subreddit, e)
            raise HTTPException(
                status_code=502,
                detail=f"Failed to fetch Reddit posts: {str(e)}",
            ) from e
        records.extend(("reddit", post) for post in posts)

    logger.info("Received pipeline request with %d records", len(records))

    try:
        result = await get_pipeline().process(
            records,
            limit=request.limit,
            company_context=request.company_context,
            cluster=request.cluster,
        )
    except Exception as e:
        logger.exception("Pipeline run failed: %s", e)
        raise HTTPException(
            status_code=500,
            detail=f"Pipeline run failed: {str(e)}",
        ) from e
    finally:
        await _persist()

    return result


@app.get("/jobs")
async def get_jobs() -> list[PipelineJob]:
    """Recent pipeline jobs, newest first."""
    return _queue.jobs


# Draft endpoints


@app.get("/drafts")
async def get_drafts(
    status: ReviewStatus | Literal["all"] | None = None,
    category: FeedbackCategory | Literal["all"] | None = None,
    priority: Priority | Literal["all"] | None = None,
    source: FeedbackSource | Literal["all"] | None = None,
    search: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[DraftedTicket]:
    """List drafts matching the given filters, most recent first.

    start and end bound the draft creation time; either side may be left open.
    """
    date_range = None
    if start is not None or end is not None:
        date_range = DateRange(
            start=start or datetime.min.replace(tzinfo=timezone.utc),
            end=end or datetime.max.replace(tzinfo=timezone.utc),
        )
    filters = ReviewFilters(
        status=status,
        category=category,
        priority=priority,
        source=source,
        search=search,
        date_range=date_range,
    )
    return _queue.get_filtered_drafts(filters)


@app.get("/drafts/stats")
async def get_draft_stats() -> QueueStats:
    """Counts by status, category, priority and source."""
    return _queue.get_stats()


@app.delete("/drafts")
async def clear_drafts() -> dict:
    """Remove every draft from the queue."""
    _queue.clear_drafts()
    await _persist()
    return {"cleared": True}


@app.post("/drafts/select")
async def select_drafts(request: SelectRequest) -> dict:
    """Replace the current selection."""
    if request.select_all:
        _queue.select_all()
    else:
        _queue.deselect_all()
        for draft_id in request.draft_ids:
            _queue.select(draft_id)
    return {"selected_ids": _queue.selected_ids}


@app.post("/drafts/bulk-approve")
async def bulk_approve(request: BulkApproveRequest) -> list[DraftedTicket]:
    """Approve every selected draft."""
    try:
        approved = _queue.bulk_approve(request.platform)
    except TicketNotConfirmedError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await _persist()
    return approved


@app.post("/drafts/bulk-reject")
async def bulk_reject(request: BulkRejectRequest) -> list[DraftedTicket]:
    """Reject every selected draft."""
    rejected = _queue.bulk_reject(request.reason)
    await _persist()
    return rejected


@app.get("/drafts/{draft_id}")
async def get_draft(draft_id: str) -> DraftedTicket:
    """Get a draft by ID."""
    return _get_draft_or_404(draft_id)


@app.post("/drafts/{draft_id}/approve")
async def approve_draft(draft_id: str, request: ApproveRequest) -> DraftedTicket:
    """Approve a draft.

    When ticket_id is given the filed ticket is recorded on the draft.
    """
    _get_draft_or_404(draft_id)

    ticket_result = None
    if request.ticket_id:
        ticket_result = TicketResult(
            success=True,
            platform=request.platform,
            ticket_id=request.ticket_id,
            ticket_url=request.ticket_url,
        )

    try:
        draft = _queue.approve(
            draft_id,
            request.platform,
            ticket_result=ticket_result,
            reviewed_by=request.reviewed_by,
        )
    except (InvalidTransitionError, TicketNotConfirmedError) as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    await _persist()
    return draft


@app.post("/drafts/{draft_id}/reject")
async def reject_draft(draft_id: str, request: RejectRequest) -> DraftedTicket:
    """Reject a draft with an optional reason."""
    _get_draft_or_404(draft_id)
    try:
        draft = _queue.reject(draft_id, request.reason, reviewed_by=request.reviewed_by)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    await _persist()
    return draft


@app.patch("/drafts/{draft_id}")
async def edit_draft(draft_id: str, edited: EditedDraft) -> DraftedTicket:
    """Store an edited version of the draft."""
    _get_draft_or_404(draft_id)
    try:
        draft = _queue.edit(draft_id, edited)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    await _persist()
    return draft


@app.delete("/drafts/{draft_id}")
async def delete_draft(draft_id: str) -> dict:
    """Remove a draft from the queue."""
    if not _queue.remove_draft(draft_id):
        raise HTTPException(status_code=404, detail="Draft not found")
    await _persist()
    return {"deleted": draft_id}


# Notification endpoints


@app.get("/notifications")
async def get_notifications() -> dict:
    """Recent notifications, newest first, with the unread count."""
    notifications: list[PipelineNotification] = _queue.notifications
    return {
        "unread": _queue.get_unread_notification_count(),
        "notifications": [n.model_dump(mode="json") for n in notifications],
    }


@app.post("/notifications/{notification_id}/read")
async def mark_notification_read(notification_id: str) -> dict:
    """Mark a notification as read."""
    if not _queue.mark_notification_read(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    await _persist()
    return {"read": notification_id}


@app.delete("/notifications")
async def clear_notifications() -> dict:
    """Remove every notification."""
    _queue.clear_notifications()
    await _persist()
    return {"cleared": True}
