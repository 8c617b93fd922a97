"""Deterministic ticket templates used when no LLM is available."""

import re

from models import (
    ClassificationResult,
    ClassifiedFeedback,
    FeedbackItem,
    SuggestedTicket,
    TicketDraft,
)

# Category to title verb mapping
CATEGORY_PREFIX = {
    "bug": "Fix",
    "feature_request": "Add",
    "complaint": "Address",
    "question": "Document",
    "praise": "Note",
    "other": "Review",
}
DEFAULT_PREFIX = "Review"

SOURCE_LABELS = {
    "reddit": "Reddit",
    "twitter": "X/Twitter",
    "slack": "Slack",
    "support": "Support",
    "call": "Call",
}

TITLE_MAX_LENGTH = 70
QUOTE_MAX_LENGTH = 500
MAX_KEYWORD_LABELS = 2
MAX_KEYWORD_LABEL_LENGTH = 20

CLUSTER_MAX_QUOTES = 5
CLUSTER_QUOTE_LENGTH = 150

_SENTENCE_END_RE = re.compile(r"[.!?]")


def truncate(text: str, max_length: int) -> str:
    """Cut text to max_length characters, ending with '...' when cut."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def format_category(category: str) -> str:
    """'feature_request' -> 'Feature Request'."""
    return " ".join(word[:1].upper() + word[1:] for word in category.split("_"))


def category_label(category: str) -> str:
    return category.replace("_", "-")


def source_label(source: str) -> str:
    return SOURCE_LABELS.get(source, source)


def default_title(item: FeedbackItem, classification: ClassificationResult) -> str:
    """Format the ticket title from the item title or first sentence."""
    prefix = CATEGORY_PREFIX.get(classification.category, DEFAULT_PREFIX)

    if item.title:
        return f"{prefix}: {truncate(item.title, TITLE_MAX_LENGTH)}"

    first_sentence = _SENTENCE_END_RE.split(item.content)[0].strip()
    return f"{prefix}: {truncate(first_sentence, TITLE_MAX_LENGTH)}"


def default_description(item: FeedbackItem, classification: ClassificationResult) -> str:
    """Format the markdown ticket body.

    Args:
        item: The originating feedback.
        classification: Its classification.

    Returns:
        Markdown-formatted description.
    """
    subreddit = f" r/{item.metadata.subreddit}" if item.metadata.subreddit else ""
    category = format_category(classification.category)
    reasons = (
        f"- **Priority Reasons:** {', '.join(classification.priority_reasons)}"
        if classification.priority_reasons
        else ""
    )

    parts = [
        "## Context",
        f"Feedback received from {source_label(item.source)}{subreddit} "
        f"by {item.author_handle or item.author}.",
        f"Classified as **{category}** with **{classification.priority}** priority.",
        "",
        "## User Quote",
        f'> "{truncate(item.content, QUOTE_MAX_LENGTH)}"',
        "",
        "## Classification Details",
        f"- **Category:** {category}",
        f"- **Sentiment:** {classification.sentiment}",
        f"- **Confidence:** {classification.confidence}%",
        f"- **Customer Segment:** {classification.customer_segment}",
        reasons,
        "",
        "## Keywords",
        " ".join(f"`{keyword}`" for keyword in classification.keywords),
        "",
        "## Source",
        f"[View original]({item.source_url})",
    ]
    return "\n".join(parts)


def default_labels(classification: ClassificationResult) -> list[str]:
    """Get the labels to suggest for a classified item."""
    labels = [category_label(classification.category)]

    if classification.priority in ("urgent", "high"):
        labels.append(classification.priority)

    if classification.customer_segment == "enterprise":
        labels.append("enterprise")

    labels.extend(
        keyword
        for keyword in classification.keywords[:MAX_KEYWORD_LABELS]
        if len(keyword) <= MAX_KEYWORD_LABEL_LENGTH
    )
    return labels


def default_draft(item: FeedbackItem, classification: ClassificationResult) -> TicketDraft:
    return TicketDraft(
        title=default_title(item, classification),
        description=default_description(item, classification),
        suggested_labels=default_labels(classification),
        suggested_priority=classification.priority,
    )


def capitalize_words(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in text.split(" "))


def cluster_ticket(
    theme: str,
    members: list[ClassifiedFeedback],
    category: str,
    priority: str,
) -> SuggestedTicket:
    """Format one ticket covering every member of a theme cluster."""
    count = len(members)
    prefix = CATEGORY_PREFIX.get(category, DEFAULT_PREFIX)
    title = f"{prefix}: {capitalize_words(theme)} ({count} mentions)"

    quotes = []
    for idx, member in enumerate(members[:CLUSTER_MAX_QUOTES], start=1):
        content = member.item.content
        quote = content[:CLUSTER_QUOTE_LENGTH]
        if len(content) > CLUSTER_QUOTE_LENGTH:
            quote += "..."
        quotes.append(f'{idx}. "{quote}" - {member.item.source}')

    sources = list(dict.fromkeys(member.item.source for member in members))
    negative = sum(1 for m in members if m.classification.sentiment == "negative")
    sentiment = "Mostly negative" if negative > count / 2 else "Mixed"

    parts = [
        "## Summary",
        f"{count} customer{'s' if count > 1 else ''} reported issues related to **{theme}**.",
        "",
        "## Customer Quotes",
        *quotes,
    ]
    if count > CLUSTER_MAX_QUOTES:
        parts.extend(["", f"... and {count - CLUSTER_MAX_QUOTES} more"])
    parts.extend(
        [
            "",
            "## Sources",
            ", ".join(sources),
            "",
            "## Analysis",
            f"- **Category:** {category}",
            f"- **Priority:** {priority}",
            f"- **Sentiment:** {sentiment}",
            f"- **Total mentions:** {count}",
            "",
            "---",
            f"_Auto-generated - Clustered from {count} feedback items_",
        ]
    )

    labels = [category_label(category), priority, f"mentions-{count}"]
    return SuggestedTicket(title=title, description="\n".join(parts), labels=labels)
