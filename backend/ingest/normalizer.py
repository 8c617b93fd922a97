"""Convert source-specific records into FeedbackItems."""

import hashlib
import logging
import math
import re
import secrets
import string
import time
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from functools import cmp_to_key
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from models import (
    FeedbackItem,
    FeedbackMetadata,
    FileRow,
    RedditPost,
    Tweet,
    utcnow,
)

logger = logging.getLogger(__name__)

# Reddit engagement saturates at these values
REDDIT_SCORE_CEILING = 500
REDDIT_COMMENTS_CEILING = 100

# Weighted tweet interactions that count as 100/100 engagement
TWEET_ENGAGEMENT_CEILING = 1000

# Two engagement scores closer than this are considered equal when sorting
ENGAGEMENT_TIE_BAND = 20

DEDUPE_PREFIX_LENGTH = 200

_PUNCTUATION_RE = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")

# Sources without a dedicated record shape
TEXT_SOURCES = ("slack", "support", "call")

_ID_ALPHABET = string.ascii_lowercase + string.digits

RecordT = TypeVar("RecordT", bound=BaseModel)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 rounding up."""
    return int(math.floor(value + 0.5))


def strip_punctuation(text: str) -> str:
    return _PUNCTUATION_RE.sub("", text)


def _generate_feedback_id(source: str, source_id: str) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"fb_{source}_{source_id}_{int(time.time() * 1000)}_{suffix}"


def content_source_id(content: str) -> str:
    """Stable stand-in id for records that arrive without one."""
    digest = hashlib.sha1(content.encode("utf-8")).hexdigest()[:12]
    return f"content-{digest}"


def _parse_record(model: type[RecordT], raw: Any) -> RecordT:
    """Validate a raw record, replacing invalid fields with their defaults.

    Every field on the record models has a default, so this never raises.
    """
    if isinstance(raw, model):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        logger.warning("Expected a mapping for %s, got %s", model.__name__, type(raw))
        return model()

    data = {k: v for k, v in raw.items() if v is not None}
    try:
        return model.model_validate(data)
    except ValidationError as e:
        bad_fields = {err["loc"][0] for err in e.errors() if err["loc"]}
        logger.warning(
            "Dropping invalid %s fields: %s",
            model.__name__,
            ", ".join(sorted(str(f) for f in bad_fields)),
        )
        cleaned = {k: v for k, v in data.items() if k not in bad_fields}
        try:
            return model.model_validate(cleaned)
        except ValidationError:
            return model()


def _parse_timestamp(value: str | None, fallback: datetime) -> datetime:
    if not value:
        return fallback
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable timestamp %r, using ingestion time", value)
        return fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _ensure_full_reddit_url(url: str) -> str:
    """Ensure the URL is a full Reddit URL."""
    if not url:
        return ""
    if url.startswith("/"):
        return f"https://www.reddit.com{url}"
    if not url.startswith("http"):
        return f"https://www.reddit.com/{url}"
    return url


# Engagement


def reddit_engagement_score(score: int, num_comments: int) -> int:
    """Engagement on 0-100: 60% from upvotes, 40% from comments."""
    score_ratio = min(max(score, 0) / REDDIT_SCORE_CEILING, 1)
    comment_ratio = min(max(num_comments, 0) / REDDIT_COMMENTS_CEILING, 1)
    return round_half_up(score_ratio * 60 + comment_ratio * 40)


def tweet_engagement_score(tweet: Tweet) -> int:
    """Weighted interaction count normalized to 0-100."""
    metrics = tweet.public_metrics
    if metrics is None:
        return 0

    weighted = (
        metrics.like_count * 1
        + metrics.retweet_count * 2
        + metrics.reply_count * 1.5
        + metrics.quote_count * 2.5
    )
    return max(0, min(round_half_up(weighted / TWEET_ENGAGEMENT_CEILING * 100), 100))


# Normalization


def normalize_reddit_post(raw: RedditPost | Mapping[str, Any]) -> FeedbackItem:
    """Normalize a Reddit post to a FeedbackItem."""
    post = _parse_record(RedditPost, raw)
    fetched_at = utcnow()
    content = post.selftext or post.title
    source_id = post.id or content_source_id(content)
    created_at = (
        datetime.fromtimestamp(post.created_utc, tz=timezone.utc)
        if post.created_utc
        else fetched_at
    )

    return FeedbackItem(
        id=_generate_feedback_id("reddit", source_id),
        source="reddit",
        source_id=source_id,
        source_url=_ensure_full_reddit_url(post.permalink),
        title=post.title or None,
        content=content,
        author=post.author,
        author_handle=f"u/{post.author}" if post.author else None,
        created_at=created_at,
        fetched_at=fetched_at,
        engagement_score=reddit_engagement_score(post.score, post.num_comments),
        metadata=FeedbackMetadata(
            subreddit=post.subreddit or None,
            reply_count=post.num_comments,
        ),
    )


def normalize_tweet(raw: Tweet | Mapping[str, Any]) -> FeedbackItem:
    """Normalize a tweet to a FeedbackItem."""
    tweet = _parse_record(Tweet, raw)
    fetched_at = utcnow()
    source_id = tweet.id or content_source_id(tweet.text)
    metrics = tweet.public_metrics
    entities = tweet.entities

    return FeedbackItem(
        id=_generate_feedback_id("twitter", source_id),
        source="twitter",
        source_id=source_id,
        source_url=f"https://twitter.com/{tweet.author_username or 'i'}/status/{tweet.id}",
        content=tweet.text,
        author=tweet.author_name or tweet.author_username or "Unknown",
        author_handle=f"@{tweet.author_username}" if tweet.author_username else None,
        created_at=_parse_timestamp(tweet.created_at, fetched_at),
        fetched_at=fetched_at,
        engagement_score=tweet_engagement_score(tweet),
        metadata=FeedbackMetadata(
            hashtags=[h.tag for h in entities.hashtags] if entities else [],
            mentions=[m.username for m in entities.mentions] if entities else [],
            reply_count=metrics.reply_count if metrics else None,
            retweet_count=metrics.retweet_count if metrics else None,
            like_count=metrics.like_count if metrics else None,
            # Retweets are filtered out upstream by the search query
            is_retweet=False,
            is_reply=tweet.text.startswith("@"),
        ),
    )


def normalize_file_row(
    raw: FileRow | Mapping[str, Any],
    source: str = "file",
) -> FeedbackItem:
    """Normalize a row parsed from an uploaded file or another text-only source."""
    row = _parse_record(FileRow, raw)
    fetched_at = utcnow()
    source_id = row.id or content_source_id(row.content)

    return FeedbackItem(
        id=_generate_feedback_id(source, source_id),
        source=source,
        source_id=source_id,
        source_url="",
        content=row.content,
        author=row.author or "Unknown",
        created_at=_parse_timestamp(row.date, fetched_at),
        fetched_at=fetched_at,
        engagement_score=0,
        metadata=FeedbackMetadata(
            file_name=row.file_name,
            original_source=row.source or None,
        ),
    )


_NORMALIZERS = {
    "reddit": normalize_reddit_post,
    "twitter": normalize_tweet,
    "file": normalize_file_row,
}


def normalize(raw: Any, source_kind: str) -> FeedbackItem:
    """Map one raw source record to a FeedbackItem. Never raises.

    Text-only sources (slack, support, call) are read as file rows; unknown
    source kinds become file rows that remember the kind as original_source.
    """
    normalizer = _NORMALIZERS.get(source_kind)
    if normalizer is not None:
        return normalizer(raw)
    if source_kind in TEXT_SOURCES:
        return normalize_file_row(raw, source=source_kind)

    logger.debug("Unknown source kind %r, treating as file row", source_kind)
    row = _parse_record(FileRow, raw)
    if not row.source:
        row = row.model_copy(update={"source": source_kind})
    return normalize_file_row(row)


# Collections


def normalize_content(content: str) -> str:
    """Canonical form of content used for duplicate detection."""
    text = strip_punctuation(content.lower())
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return text[:DEDUPE_PREFIX_LENGTH]


def dedupe(
    new_items: Iterable[FeedbackItem],
    existing_items: Iterable[FeedbackItem] = (),
) -> list[FeedbackItem]:
    """Drop new items whose normalized content was already seen.

    Exact-match only: an item is dropped if it matches an existing item or an
    item accepted earlier in the same batch.
    """
    seen = {normalize_content(item.content) for item in existing_items}
    accepted = []
    for item in new_items:
        normalized = normalize_content(item.content)
        if normalized in seen:
            continue
        seen.add(normalized)
        accepted.append(item)
    return accepted


def _compare_priority(a: FeedbackItem, b: FeedbackItem) -> int:
    engagement_diff = b.engagement_score - a.engagement_score
    if abs(engagement_diff) > ENGAGEMENT_TIE_BAND:
        return engagement_diff

    # Within the tie band, newer first
    delta = (b.created_at - a.created_at).total_seconds()
    return (delta > 0) - (delta < 0)


def sort_by_priority(items: Iterable[FeedbackItem]) -> list[FeedbackItem]:
    """Stable sort: engagement descending, newer first within the tie band.

    Scores within ENGAGEMENT_TIE_BAND of each other compare as equal on
    engagement, so this is not a total order on score alone.
    """
    return sorted(items, key=cmp_to_key(_compare_priority))


def format_feedback_for_context(items: list[FeedbackItem]) -> str:
    """Render feedback items as a numbered block for LLM prompts."""
    if not items:
        return "No feedback items found."

    blocks = []
    for i, item in enumerate(items, start=1):
        if item.source == "reddit":
            source = f"Reddit r/{item.metadata.subreddit or 'unknown'}"
        elif item.source == "twitter":
            source = "Twitter/X"
        else:
            source = item.source

        lines = [
            f"[{i}] {source} - {item.author_handle or item.author}",
            f"Engagement: {item.engagement_score}/100",
        ]
        if item.title:
            lines.append(f'"{item.title}"')
        lines.append(f'"{item.content}"')
        lines.append(f"Source: {item.source_url}")
        blocks.append("\n".join(lines))

    return "\n\n---\n\n".join(blocks)
