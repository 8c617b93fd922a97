"""Pipeline orchestration: normalize, classify, optionally cluster, draft, queue."""

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, Field

import config
from classify.classifier import FeedbackClassifier
from drafting.drafter import TicketDrafter, cluster_to_drafted_ticket, create_drafted_ticket
from ingest.cluster import ThemeClusterer
from ingest.normalizer import dedupe, normalize, sort_by_priority
from models import ClassifiedFeedback, DraftedTicket, utcnow
from review.queue import ReviewQueue

logger = logging.getLogger(__name__)


class PipelineResult(BaseModel):
    """Outcome of one pipeline run."""

    job_id: str
    received: int = 0
    new_items: int = 0
    processed: int = 0
    clusters: int = 0
    drafts: list[DraftedTicket] = Field(default_factory=list)


class PipelineService:
    """Turns raw feedback records into drafts waiting in the review queue."""

    def __init__(
        self,
        classifier: FeedbackClassifier,
        drafter: TicketDrafter,
        clusterer: ThemeClusterer,
        queue: ReviewQueue,
    ):
        self.classifier = classifier
        self.drafter = drafter
        self.clusterer = clusterer
        self.queue = queue

    async def process(
        self,
        records: Iterable[tuple[str, Any]],
        limit: int = config.PIPELINE_DEFAULT_LIMIT,
        company_context: str | None = None,
        cluster: bool = False,
    ) -> PipelineResult:
        """Run the pipeline over raw records.

        Args:
            records: (source_kind, raw record) pairs, e.g. ("reddit", post_dict).
            limit: Maximum number of new items processed, highest priority first.
            company_context: Optional product context passed to the LLM prompts.
            cluster: If True, draft one ticket per theme cluster instead of
                one per item.

        Returns:
            PipelineResult with counts and the drafts added to the queue.
        """
        job = self.queue.start_job("ingest")
        records = list(records)
        result = PipelineResult(job_id=job.id, received=len(records))

        try:
            items = [normalize(raw, kind) for kind, raw in records]
            existing = [item for draft in self.queue.drafts for item in draft.covered_items()]
            fresh = sort_by_priority(dedupe(items, existing))
            result.new_items = len(fresh)
            selected = fresh[: max(0, limit)]

            logger.info(
                "Pipeline job %s: %d records, %d new, processing %d",
                job.id,
                len(records),
                len(fresh),
                len(selected),
            )

            if not selected:
                self.queue.update_job(
                    job.id, status="completed", completed_at=utcnow(), items_processed=0
                )
                self.queue.add_notification(
                    "new_feedback",
                    "No new feedback",
                    "No new feedback found. Try different sources or check back later.",
                    related_id=job.id,
                )
                return result

            classifications = await self.classifier.classify_batch(selected, company_context)
            pairs = [
                ClassifiedFeedback(item=item, classification=classifications[item.id])
                for item in selected
            ]

            if cluster:
                clusters = await self.clusterer.cluster(pairs)
                result.clusters = len(clusters)
                drafted = [cluster_to_drafted_ticket(c) for c in clusters]
            else:
                drafts = await self.drafter.draft_batch(pairs, company_context)
                drafted = [
                    create_drafted_ticket(p.item, p.classification, drafts[p.item.id])
                    for p in pairs
                ]
        except Exception as e:
            logger.exception("Pipeline job %s failed", job.id)
            self.queue.update_job(
                job.id, status="failed", completed_at=utcnow(), errors=[str(e)]
            )
            self.queue.add_notification(
                "pipeline_error", "Pipeline failed", str(e), related_id=job.id
            )
            raise

        added = self.queue.add_drafts(drafted)
        result.processed = len(selected)
        result.drafts = added

        self.queue.update_job(
            job.id,
            status="completed",
            completed_at=utcnow(),
            items_processed=len(selected),
        )

        urgent = sum(1 for d in added if d.classification.priority == "urgent")
        message = f"{len(added)} new tickets drafted from {len(selected)} feedback items."
        if urgent:
            message += f" {urgent} marked urgent."
        self.queue.add_notification(
            "ticket_drafted", "Tickets ready for review", message, related_id=job.id
        )
        return result
