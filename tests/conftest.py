"""Shared fixtures: feedback factories."""

from datetime import datetime, timezone
from typing import Any

import pytest

from models import ClassificationResult, ClassifiedFeedback, FeedbackItem

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_item():
    """Factory for FeedbackItems with sensible defaults."""
    counter = iter(range(1, 10_000))

    def _make(
        content: str = "Something happened",
        source: str = "reddit",
        engagement_score: int = 0,
        created_at: datetime | None = None,
        title: str | None = None,
        source_id: str | None = None,
        **kwargs: Any,
    ) -> FeedbackItem:
        n = next(counter)
        return FeedbackItem(
            id=kwargs.pop("id", f"fb_{source}_{n}"),
            source=source,
            source_id=source_id or str(n),
            source_url=kwargs.pop("source_url", f"https://example.com/{n}"),
            title=title,
            content=content,
            author=kwargs.pop("author", "alice"),
            created_at=created_at or BASE_TIME,
            fetched_at=BASE_TIME,
            engagement_score=engagement_score,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_classification():
    """Factory for ClassificationResults."""

    def _make(
        category: str = "bug",
        priority: str = "medium",
        sentiment: str = "negative",
        **kwargs: Any,
    ) -> ClassificationResult:
        return ClassificationResult(
            category=category,
            confidence=kwargs.pop("confidence", 80),
            priority=priority,
            priority_reasons=kwargs.pop("priority_reasons", []),
            sentiment=sentiment,
            keywords=kwargs.pop("keywords", []),
            customer_segment=kwargs.pop("customer_segment", "unknown"),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_pair(make_item, make_classification):
    """Factory for ClassifiedFeedback pairs."""

    def _make(
        content: str,
        category: str = "bug",
        priority: str = "medium",
        sentiment: str = "negative",
        **item_kwargs: Any,
    ) -> ClassifiedFeedback:
        return ClassifiedFeedback(
            item=make_item(content, **item_kwargs),
            classification=make_classification(category, priority, sentiment),
        )

    return _make


@pytest.fixture
def valid_classification_response() -> dict[str, Any]:
    """An LLM classification response in the wire (camelCase) shape."""
    return {
        "category": "bug",
        "confidence": 92,
        "priority": "high",
        "priorityReasons": ["Data loss"],
        "sentiment": "negative",
        "keywords": ["export", "csv"],
        "customerSegment": "smb",
        "duplicateOf": None,
        "duplicateConfidence": None,
    }
