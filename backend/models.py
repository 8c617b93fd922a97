"""Pydantic models for the feedback pipeline."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

FeedbackSource = Literal["reddit", "twitter", "slack", "support", "call", "file"]
FeedbackCategory = Literal[
    "bug", "feature_request", "praise", "question", "complaint", "other"
]
Priority = Literal["low", "medium", "high", "urgent"]
Sentiment = Literal["positive", "negative", "neutral"]
CustomerSegment = Literal["enterprise", "mid-market", "smb", "unknown"]
ReviewStatus = Literal["pending", "approved", "rejected", "edited"]
TicketPlatform = Literal["linear", "jira", "github", "notion"]

CATEGORIES: tuple[str, ...] = (
    "bug",
    "feature_request",
    "praise",
    "question",
    "complaint",
    "other",
)
PRIORITIES: tuple[str, ...] = ("urgent", "high", "medium", "low")

# Ordering used wherever priorities are compared
PRIORITY_ORDER: dict[str, int] = {"urgent": 4, "high": 3, "medium": 2, "low": 1}


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# Raw source records


class ScrapeConfig(BaseModel):
    """Configuration for a subreddit fetch."""

    subreddit: str = Field(description="Subreddit to fetch (without r/ prefix)")
    max_posts: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Maximum number of posts to fetch",
    )
    sort_by: Literal["new", "hot", "top"] = Field(
        default="new",
        description="How to sort posts: 'new', 'hot', 'top'",
    )

class RedditPost(BaseModel):
    """A post as returned by Reddit's JSON API."""

    id: str = ""
    title: str = ""
    selftext: str = ""
    author: str = ""
    subreddit: str = ""
    score: int = 0
    num_comments: int = 0
    created_utc: float = 0
    permalink: str = ""
    url: str = ""
    is_self: bool = False


class TweetMetrics(BaseModel):
    retweet_count: int = 0
    reply_count: int = 0
    like_count: int = 0
    quote_count: int = 0


class TweetHashtag(BaseModel):
    tag: str = ""


class TweetMention(BaseModel):
    username: str = ""


class TweetEntities(BaseModel):
    hashtags: list[TweetHashtag] = Field(default_factory=list)
    mentions: list[TweetMention] = Field(default_factory=list)


class Tweet(BaseModel):
    """A tweet as returned by the Twitter v2 search API."""

    id: str = ""
    text: str = ""
    author_id: str = ""
    author_username: str | None = None
    author_name: str | None = None
    created_at: str = ""
    public_metrics: TweetMetrics | None = None
    entities: TweetEntities | None = None


class FileRow(BaseModel):
    """A single row parsed out of an uploaded feedback file."""

    id: str = ""
    content: str = ""
    source: str = ""
    author: str | None = None
    date: str | None = None
    file_name: str | None = None


# Canonical feedback


class FeedbackMetadata(BaseModel):
    """Source-specific metadata. Never used for identity."""

    model_config = ConfigDict(frozen=True)

    subreddit: str | None = None
    hashtags: list[str] | None = None
    mentions: list[str] | None = None
    reply_count: int | None = None
    retweet_count: int | None = None
    like_count: int | None = None
    is_retweet: bool | None = None
    is_reply: bool | None = None
    file_name: str | None = None
    original_source: str | None = None


class FeedbackItem(BaseModel):
    """A piece of feedback normalized from any source.

    Created once by the normalizer and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier for this feedback item")
    source: FeedbackSource = Field(description="Source platform")
    source_id: str = Field(description="Identifier native to the source")
    source_url: str = Field(default="", description="Permalink to the original")
    title: str | None = Field(default=None, description="Post title if available")
    content: str = Field(default="", description="The feedback text")
    author: str = Field(default="", description="Author display name")
    author_handle: str | None = Field(default=None, description="Author handle")
    created_at: datetime = Field(description="When the feedback was posted")
    fetched_at: datetime = Field(description="When the feedback was ingested")
    engagement_score: int = Field(default=0, ge=0, le=100)
    metadata: FeedbackMetadata = Field(default_factory=FeedbackMetadata)


class ClassificationResult(BaseModel):
    """Judgment attached to exactly one FeedbackItem."""

    # LLM responses use camelCase keys; Python code uses field names
    model_config = ConfigDict(
        frozen=True, extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    category: FeedbackCategory
    confidence: int = Field(ge=0, le=100)
    priority: Priority
    priority_reasons: list[str] = Field(default_factory=list)
    sentiment: Sentiment
    keywords: list[str] = Field(default_factory=list, max_length=10)
    customer_segment: CustomerSegment
    duplicate_of: str | None = None
    duplicate_confidence: int | None = None


class ClassifiedFeedback(BaseModel):
    """A feedback item paired with its classification."""

    model_config = ConfigDict(frozen=True)

    item: FeedbackItem
    classification: ClassificationResult


# Tickets


class TicketDraft(BaseModel):
    """Ticket text produced by the drafter."""

    model_config = ConfigDict(
        extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    title: str
    description: str
    suggested_labels: list[str] = Field(default_factory=list)
    suggested_priority: Priority


class EditedDraft(BaseModel):
    """Human override of a draft; takes precedence over the original."""

    title: str
    description: str
    priority: Priority
    labels: list[str] = Field(default_factory=list)


class CreatedTicket(BaseModel):
    platform: TicketPlatform
    ticket_id: str
    ticket_url: str


class SuggestedTicket(BaseModel):
    title: str
    description: str
    labels: list[str] = Field(default_factory=list)


class ClusteredFeedback(BaseModel):
    """Feedback items grouped under one theme. Recomputed on every run."""

    id: str
    theme: str
    summary: str
    items: list[ClassifiedFeedback]
    category: FeedbackCategory
    priority: Priority
    sentiment: Sentiment
    mention_count: int
    sources: list[str]
    suggested_ticket: SuggestedTicket


class DraftedTicket(BaseModel):
    """The unit stored and managed by the review queue."""

    id: str
    feedback_item: FeedbackItem
    classification: ClassificationResult
    draft: TicketDraft
    status: ReviewStatus = "pending"
    edited_draft: EditedDraft | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    rejection_reason: str | None = None
    created_ticket: CreatedTicket | None = None
    cluster_items: list[FeedbackItem] = Field(
        default_factory=list,
        description="Every feedback item a cluster draft covers, representative included",
    )
    created_at: datetime
    updated_at: datetime

    def covered_items(self) -> list[FeedbackItem]:
        """Feedback items this draft accounts for."""
        return self.cluster_items or [self.feedback_item]

    def effective_draft(self) -> EditedDraft:
        """Return the draft text to use downstream (edited if present)."""
        if self.edited_draft is not None:
            return self.edited_draft
        return EditedDraft(
            title=self.draft.title,
            description=self.draft.description,
            priority=self.draft.suggested_priority,
            labels=list(self.draft.suggested_labels),
        )


# Review queue state


class DateRange(BaseModel):
    start: datetime
    end: datetime


class ReviewFilters(BaseModel):
    """Filters for the review queue. None or 'all' means unconstrained."""

    status: ReviewStatus | Literal["all"] | None = None
    category: FeedbackCategory | Literal["all"] | None = None
    priority: Priority | Literal["all"] | None = None
    source: FeedbackSource | Literal["all"] | None = None
    search: str | None = None
    date_range: DateRange | None = None


class QueueStats(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_priority: dict[str, int] = Field(default_factory=dict)
    by_source: dict[str, int] = Field(default_factory=dict)


NotificationType = Literal[
    "new_feedback",
    "ticket_drafted",
    "ticket_created",
    "pipeline_error",
    "classification_complete",
]


class PipelineNotification(BaseModel):
    id: str
    type: NotificationType
    title: str
    message: str
    related_id: str | None = None
    created_at: datetime
    read: bool = False


class PipelineJob(BaseModel):
    id: str
    type: Literal["ingest", "classify", "draft"]
    status: Literal["running", "completed", "failed"] = "running"
    started_at: datetime
    completed_at: datetime | None = None
    items_processed: int = 0
    items_failed: int = 0
    errors: list[str] = Field(default_factory=list)
