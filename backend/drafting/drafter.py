"""Ticket drafter: LLM-written drafts with a deterministic template fallback."""

import asyncio
import logging
import secrets
import string
import time
from collections.abc import Sequence

from pydantic import ValidationError

import config
from drafting.prompts import DRAFT_SCHEMA, build_system_prompt
from drafting.templates import default_draft, source_label
from llm.base import BaseLLM
from models import (
    ClassificationResult,
    ClassifiedFeedback,
    ClusteredFeedback,
    DraftedTicket,
    FeedbackItem,
    TicketDraft,
    utcnow,
)

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits
MAX_CLUSTER_KEYWORDS = 10


def generate_draft_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"draft_{int(time.time() * 1000)}_{suffix}"


def format_draft_request(item: FeedbackItem, classification: ClassificationResult) -> str:
    """Render the feedback and its classification for the drafting prompt."""
    lines = [
        "Feedback to draft ticket from:",
        "",
        f"Source: {source_label(item.source)}",
    ]
    if item.metadata.subreddit:
        lines.append(f"Subreddit: r/{item.metadata.subreddit}")
    lines.extend(
        [
            f"Author: {item.author_handle or item.author}",
            f"URL: {item.source_url}",
            "",
            "Classification:",
            f"- Category: {classification.category}",
            f"- Priority: {classification.priority}",
            f"- Sentiment: {classification.sentiment}",
            f"- Customer Segment: {classification.customer_segment}",
            f"- Keywords: {', '.join(classification.keywords)}",
            "",
        ]
    )
    if item.title:
        lines.append(f"Title: {item.title}")
    lines.extend(["Content:", f'"{item.content}"'])
    return "\n".join(lines)


class TicketDrafter:
    """Drafts ticket text for classified feedback."""

    def __init__(
        self,
        llm: BaseLLM | None = None,
        timeout: float = config.LLM_TIMEOUT_SECONDS,
        batch_size: int = config.DRAFT_BATCH_SIZE,
    ):
        self.llm = llm
        self.timeout = timeout
        self.batch_size = max(1, batch_size)

    async def draft(
        self,
        item: FeedbackItem,
        classification: ClassificationResult,
        company_context: str | None = None,
    ) -> TicketDraft:
        """Draft a ticket. Never raises; falls back to the default template."""
        if self.llm is None:
            return default_draft(item, classification)

        try:
            response = await asyncio.wait_for(
                self.llm.complete(
                    format_draft_request(item, classification),
                    schema=DRAFT_SCHEMA,
                    system=build_system_prompt(company_context),
                ),
                timeout=self.timeout,
            )
            return TicketDraft.model_validate(response, strict=True)
        except asyncio.TimeoutError:
            logger.warning("Drafting timed out for %s, using template", item.id)
        except ValidationError as e:
            logger.warning("Malformed draft for %s, using template: %s", item.id, e)
        except Exception as e:
            logger.error("Drafting failed for %s, using template: %s", item.id, e)

        return default_draft(item, classification)

    async def draft_batch(
        self,
        pairs: Sequence[ClassifiedFeedback],
        company_context: str | None = None,
    ) -> dict[str, TicketDraft]:
        """Draft tickets in concurrent groups of batch_size.

        Returns:
            Mapping of item id to draft, one entry per input item.
        """
        results: dict[str, TicketDraft] = {}

        for start in range(0, len(pairs), self.batch_size):
            group = pairs[start : start + self.batch_size]
            outcomes = await asyncio.gather(
                *(self.draft(p.item, p.classification, company_context) for p in group),
                return_exceptions=True,
            )
            for pair, outcome in zip(group, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error("Drafting failed for %s: %s", pair.item.id, outcome)
                    outcome = default_draft(pair.item, pair.classification)
                results[pair.item.id] = outcome

        logger.info("Drafted %d tickets", len(results))
        return results


def create_drafted_ticket(
    item: FeedbackItem,
    classification: ClassificationResult,
    draft: TicketDraft,
) -> DraftedTicket:
    """Create a pending DraftedTicket for the review queue."""
    now = utcnow()
    return DraftedTicket(
        id=generate_draft_id(),
        feedback_item=item,
        classification=classification,
        draft=draft,
        status="pending",
        created_at=now,
        updated_at=now,
    )


def cluster_to_drafted_ticket(cluster: ClusteredFeedback) -> DraftedTicket:
    """Create one pending DraftedTicket covering a whole cluster.

    The first member is the representative feedback item and every member is
    kept in cluster_items; the classification is a new value built from the
    cluster aggregates.
    """
    representative = cluster.items[0]
    base = representative.classification
    keywords = [k for k in cluster.theme.split(" + ") if k][:MAX_CLUSTER_KEYWORDS]

    classification = ClassificationResult(
        category=cluster.category,
        confidence=min(m.classification.confidence for m in cluster.items),
        priority=cluster.priority,
        priority_reasons=list(
            dict.fromkeys(r for m in cluster.items for r in m.classification.priority_reasons)
        ),
        sentiment=cluster.sentiment,
        keywords=keywords,
        customer_segment=base.customer_segment,
    )
    ticket = cluster.suggested_ticket
    draft = TicketDraft(
        title=ticket.title,
        description=ticket.description,
        suggested_labels=list(ticket.labels),
        suggested_priority=cluster.priority,
    )
    drafted = create_drafted_ticket(representative.item, classification, draft)
    return drafted.model_copy(update={"cluster_items": [m.item for m in cluster.items]})
