"""Keyword heuristics used when no LLM is available."""

from collections import Counter

from ingest.normalizer import strip_punctuation
from models import (
    ClassificationResult,
    CustomerSegment,
    FeedbackCategory,
    FeedbackItem,
    Priority,
    Sentiment,
)

HEURISTIC_CONFIDENCE = 60
HIGH_ENGAGEMENT_THRESHOLD = 70
MAX_KEYWORDS = 5

# Checked in order; first match wins
CATEGORY_RULES: tuple[tuple[FeedbackCategory, tuple[str, ...]], ...] = (
    ("bug", ("bug", "broken", "error", "crash", "not working")),
    ("feature_request", ("feature", "would be great", "please add", "wish", "need")),
    ("praise", ("love", "amazing", "great", "awesome")),
    ("question", ("how do", "how to", "?")),
    ("complaint", ("terrible", "worst", "hate", "disappointed")),
)

POSITIVE_WORDS = ("love", "great", "amazing", "awesome", "excellent", "best")
NEGATIVE_WORDS = ("hate", "terrible", "worst", "broken", "frustrated", "disappointed")

ENTERPRISE_PRIORITY_TERMS = ("enterprise", "team of", "company")
BLOCKER_TERMS = ("blocking", "blocker")

SEGMENT_RULES: tuple[tuple[CustomerSegment, tuple[str, ...]], ...] = (
    ("enterprise", ("enterprise", "sso", "500", "1000")),
    ("mid-market", ("team", "company")),
    ("smb", ("personal", "solo")),
)

STOP_WORDS = frozenset(
    """
    the a an is are was were be been being have has had do does did will would
    could should may might must shall can need dare to of in for on with at by
    from as into through during before after above below between under again
    further then once here there when where why how all each few more most other
    some such no nor not only own same so than too very just and but if or
    because until while this that these those i me my we our you your it its
    they them
    """.split()
)


def _contains_any(text: str, terms: tuple[str, ...]) -> bool:
    return any(term in text for term in terms)


def detect_category(text: str) -> FeedbackCategory:
    for category, terms in CATEGORY_RULES:
        if _contains_any(text, terms):
            return category
    return "other"


def detect_sentiment(text: str) -> Sentiment:
    if _contains_any(text, POSITIVE_WORDS):
        return "positive"
    if _contains_any(text, NEGATIVE_WORDS):
        return "negative"
    return "neutral"


def detect_priority(text: str, engagement_score: int) -> tuple[Priority, list[str]]:
    priority: Priority = "medium"
    reasons: list[str] = []

    if _contains_any(text, ENTERPRISE_PRIORITY_TERMS):
        priority = "high"
        reasons.append("Enterprise mention")

    if _contains_any(text, BLOCKER_TERMS):
        priority = "urgent"
        reasons.append("Blocker mentioned")

    if engagement_score > HIGH_ENGAGEMENT_THRESHOLD:
        if priority == "medium":
            priority = "high"
        reasons.append("High engagement")

    return priority, reasons


def detect_segment(text: str) -> CustomerSegment:
    for segment, terms in SEGMENT_RULES:
        if _contains_any(text, terms):
            return segment
    return "unknown"


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """Most frequent non-stop-words longer than three characters.

    Ties keep first-encountered order.
    """
    words = strip_punctuation(text.lower()).split()
    counts = Counter(w for w in words if len(w) > 3 and w not in STOP_WORDS)
    return [word for word, _ in counts.most_common(limit)]


class HeuristicClassifier:
    """Deterministic keyword classifier. Total: never raises."""

    def classify(self, item: FeedbackItem) -> ClassificationResult:
        text = (item.content + (item.title or "")).lower()
        priority, reasons = detect_priority(text, item.engagement_score)

        return ClassificationResult(
            category=detect_category(text),
            confidence=HEURISTIC_CONFIDENCE,
            priority=priority,
            priority_reasons=reasons,
            sentiment=detect_sentiment(text),
            keywords=extract_keywords(text),
            customer_segment=detect_segment(text),
        )
