"""Review queue: the authoritative collection of drafted tickets.

Each draft moves through a small state machine:

    pending -> edited -> approved | rejected
    pending ----------> approved | rejected

approved and rejected are terminal. Drafts stay visible in the queue after a
decision; only remove_draft and clear_drafts delete them.

All mutations are synchronous replace-in-place updates of whole draft records,
which assumes a single writer.
"""

import logging
import secrets
import string
import time
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

import config
from models import (
    CATEGORIES,
    PRIORITIES,
    CreatedTicket,
    DraftedTicket,
    EditedDraft,
    NotificationType,
    PipelineJob,
    PipelineNotification,
    QueueStats,
    ReviewFilters,
    ReviewStatus,
    TicketPlatform,
    utcnow,
)
from review.repository import DraftRepository, InMemoryDraftRepository
from tickets.base import TicketResult

logger = logging.getLogger(__name__)

ACTIONABLE_STATUSES: tuple[ReviewStatus, ...] = ("pending", "edited")

TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"edited", "approved", "rejected"}),
    "edited": frozenset({"edited", "approved", "rejected"}),
    "approved": frozenset(),
    "rejected": frozenset(),
}

_ID_ALPHABET = string.ascii_lowercase + string.digits


class InvalidTransitionError(ValueError):
    """Raised when a draft cannot move to the requested status."""

    def __init__(self, draft_id: str, current: str, target: str):
        super().__init__(f"Draft {draft_id} cannot go from {current} to {target}")
        self.draft_id = draft_id
        self.current = current
        self.target = target


class TicketNotConfirmedError(ValueError):
    """Raised on approval without a created ticket when confirmation is required."""


class QueueSnapshot(BaseModel):
    """The persisted part of the queue."""

    drafts: list[DraftedTicket] = Field(default_factory=list)
    notifications: list[PipelineNotification] = Field(default_factory=list)


def _generate_id(prefix: str) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _source_keys(draft: DraftedTicket) -> set[tuple[str, str]]:
    return {(item.source, item.source_id) for item in draft.covered_items() if item.source_id}


def _is_set(value: str | None) -> bool:
    return bool(value) and value != "all"


def matches_filters(draft: DraftedTicket, filters: ReviewFilters) -> bool:
    """Return True if the draft passes every provided filter dimension."""
    if _is_set(filters.status) and draft.status != filters.status:
        return False
    if _is_set(filters.category) and draft.classification.category != filters.category:
        return False
    if _is_set(filters.priority) and draft.classification.priority != filters.priority:
        return False
    if _is_set(filters.source) and draft.feedback_item.source != filters.source:
        return False

    if filters.search:
        needle = filters.search.lower()
        haystacks = (
            draft.feedback_item.content,
            draft.feedback_item.title or "",
            draft.draft.title,
            draft.draft.description,
        )
        if not any(needle in text.lower() for text in haystacks):
            return False

    if filters.date_range:
        created_at = _as_utc(draft.created_at)
        start = _as_utc(filters.date_range.start)
        end = _as_utc(filters.date_range.end)
        if created_at < start or created_at > end:
            return False

    return True


class ReviewQueue:
    """Drafted tickets plus selection, filters, notifications and job log."""

    def __init__(
        self,
        repository: DraftRepository | None = None,
        require_created_ticket: bool = config.REVIEW_REQUIRE_CREATED_TICKET,
        max_notifications: int = config.MAX_NOTIFICATIONS,
        max_jobs: int = config.MAX_JOBS,
    ):
        """Initialize the queue.

        Args:
            repository: Draft storage. Defaults to an in-memory repository.
            require_created_ticket: If True, approval needs a successful ticket
                result. By default a draft can be approved without one.
            max_notifications: Number of notifications kept.
            max_jobs: Number of pipeline jobs kept.
        """
        self.repository = repository if repository is not None else InMemoryDraftRepository()
        self.require_created_ticket = require_created_ticket
        self.max_notifications = max_notifications
        self.max_jobs = max_jobs

        self.filters = ReviewFilters()
        self.selected_ids: list[str] = []
        self.notifications: list[PipelineNotification] = []
        self.jobs: list[PipelineJob] = []

    # Drafts

    @property
    def drafts(self) -> list[DraftedTicket]:
        return self.repository.get_all()

    def get(self, draft_id: str) -> DraftedTicket | None:
        return self.repository.get(draft_id)

    def _queued_keys(self) -> set[tuple[str, str]]:
        return {key for draft in self.repository.get_all() for key in _source_keys(draft)}

    def add_draft(self, draft: DraftedTicket) -> bool:
        """Prepend a draft. Returns False if its feedback is already queued."""
        return bool(self.add_drafts([draft]))

    def add_drafts(self, drafts: Iterable[DraftedTicket]) -> list[DraftedTicket]:
        """Prepend drafts, keeping their relative order.

        Drafts covering a (source, source_id) that is already queued, or
        repeated within this call, are skipped. Cluster drafts cover every
        member item.

        Returns:
            The drafts that were added.
        """
        accepted: list[DraftedTicket] = []
        seen = self._queued_keys()

        for draft in drafts:
            keys = _source_keys(draft)
            duplicate = self.repository.get(draft.id) is not None or not keys.isdisjoint(seen)
            if duplicate:
                logger.info(
                    "Skipping duplicate draft for %s:%s",
                    draft.feedback_item.source,
                    draft.feedback_item.source_id,
                )
                continue
            seen.update(keys)
            accepted.append(draft)

        for draft in reversed(accepted):
            self.repository.upsert(draft)

        if accepted:
            logger.info("Added %d drafts to the review queue", len(accepted))
        return accepted

    def update_draft(self, draft_id: str, updates: dict[str, Any]) -> DraftedTicket | None:
        """Apply a partial update and bump updated_at. Status is not editable here."""
        draft = self.repository.get(draft_id)
        if draft is None:
            return None

        allowed = {k: v for k, v in updates.items() if k not in ("id", "status", "created_at")}
        updated = draft.model_copy(update={**allowed, "updated_at": utcnow()})
        self.repository.upsert(updated)
        return updated

    def remove_draft(self, draft_id: str) -> bool:
        self._deselect(draft_id)
        return self.repository.remove_by_id(draft_id)

    def clear_drafts(self) -> None:
        self.repository.clear()
        self.selected_ids = []
        logger.info("Cleared the review queue")

    # Review actions

    def _transition(
        self,
        draft_id: str,
        target: ReviewStatus,
        updates: dict[str, Any],
    ) -> DraftedTicket | None:
        draft = self.repository.get(draft_id)
        if draft is None:
            return None
        if target not in TRANSITIONS[draft.status]:
            raise InvalidTransitionError(draft_id, draft.status, target)

        updated = draft.model_copy(update={**updates, "status": target, "updated_at": utcnow()})
        self.repository.upsert(updated)
        logger.info("Draft %s: %s -> %s", draft_id, draft.status, target)
        return updated

    def approve(
        self,
        draft_id: str,
        platform: TicketPlatform,
        ticket_result: TicketResult | None = None,
        reviewed_by: str | None = None,
    ) -> DraftedTicket | None:
        """Mark a draft approved.

        The created ticket is attached when ticket_result reports success. Without
        one the draft is still approved, unless require_created_ticket is set.

        Returns:
            The updated draft, or None if the id is unknown.

        Raises:
            InvalidTransitionError: If the draft was already approved or rejected.
            TicketNotConfirmedError: If a created ticket is required but missing.
        """
        created_ticket = None
        if ticket_result is not None and ticket_result.success and ticket_result.ticket_id:
            created_ticket = CreatedTicket(
                platform=platform,
                ticket_id=ticket_result.ticket_id,
                ticket_url=ticket_result.ticket_url or "",
            )

        current = self.get(draft_id)
        if current is None:
            return None
        if "approved" not in TRANSITIONS[current.status]:
            raise InvalidTransitionError(draft_id, current.status, "approved")
        if self.require_created_ticket and created_ticket is None:
            raise TicketNotConfirmedError(
                f"Draft {draft_id} cannot be approved without a created ticket"
            )

        now = utcnow()
        updated = self._transition(
            draft_id,
            "approved",
            {"reviewed_at": now, "reviewed_by": reviewed_by, "created_ticket": created_ticket},
        )
        if updated is not None:
            self._deselect(draft_id)
        return updated

    def reject(
        self,
        draft_id: str,
        reason: str | None = None,
        reviewed_by: str | None = None,
    ) -> DraftedTicket | None:
        """Mark a draft rejected, keeping the reason."""
        updated = self._transition(
            draft_id,
            "rejected",
            {"rejection_reason": reason, "reviewed_at": utcnow(), "reviewed_by": reviewed_by},
        )
        if updated is not None:
            self._deselect(draft_id)
        return updated

    def edit(self, draft_id: str, edited_draft: EditedDraft) -> DraftedTicket | None:
        """Store a human override of the draft. Does not touch reviewed_at."""
        return self._transition(draft_id, "edited", {"edited_draft": edited_draft})

    # Selection

    def _deselect(self, draft_id: str) -> None:
        self.selected_ids = [sid for sid in self.selected_ids if sid != draft_id]

    def select(self, draft_id: str) -> bool:
        """Add a queued draft to the selection. Unknown ids are ignored."""
        if self.repository.get(draft_id) is None:
            return False
        if draft_id not in self.selected_ids:
            self.selected_ids = [*self.selected_ids, draft_id]
        return True

    def deselect(self, draft_id: str) -> None:
        self._deselect(draft_id)

    def select_all(self) -> list[str]:
        """Select every pending draft in the current filtered view."""
        self.selected_ids = [d.id for d in self.get_filtered_drafts() if d.status == "pending"]
        return list(self.selected_ids)

    def deselect_all(self) -> None:
        self.selected_ids = []

    def bulk_approve(self, platform: TicketPlatform) -> list[DraftedTicket]:
        """Approve every selected draft. Drafts already decided are skipped."""
        approved = []
        for draft_id in list(self.selected_ids):
            try:
                updated = self.approve(draft_id, platform)
            except InvalidTransitionError as e:
                logger.warning("Bulk approve skipped: %s", e)
                self._deselect(draft_id)
                continue
            if updated is not None:
                approved.append(updated)
        return approved

    def bulk_reject(self, reason: str | None = None) -> list[DraftedTicket]:
        """Reject every selected draft. Drafts already decided are skipped."""
        rejected = []
        for draft_id in list(self.selected_ids):
            try:
                updated = self.reject(draft_id, reason)
            except InvalidTransitionError as e:
                logger.warning("Bulk reject skipped: %s", e)
                self._deselect(draft_id)
                continue
            if updated is not None:
                rejected.append(updated)
        return rejected

    # Filters

    def set_filters(self, **filters: Any) -> ReviewFilters:
        """Merge the given filter values into the current filters."""
        self.filters = ReviewFilters.model_validate({**self.filters.model_dump(), **filters})
        return self.filters

    def clear_filters(self) -> None:
        self.filters = ReviewFilters()

    # Derived state

    def get_filtered_drafts(self, filters: ReviewFilters | None = None) -> list[DraftedTicket]:
        active = filters if filters is not None else self.filters
        return [d for d in self.repository.get_all() if matches_filters(d, active)]

    def get_stats(self) -> QueueStats:
        """Counts by status, category, priority and source in one pass."""
        drafts = self.repository.get_all()
        stats = QueueStats(
            total=len(drafts),
            by_category={category: 0 for category in CATEGORIES},
            by_priority={priority: 0 for priority in PRIORITIES},
        )

        for draft in drafts:
            if draft.status in ACTIONABLE_STATUSES:
                stats.pending += 1
            elif draft.status == "approved":
                stats.approved += 1
            elif draft.status == "rejected":
                stats.rejected += 1

            stats.by_category[draft.classification.category] += 1
            stats.by_priority[draft.classification.priority] += 1
            source = draft.feedback_item.source
            stats.by_source[source] = stats.by_source.get(source, 0) + 1

        return stats

    def get_pending_count(self) -> int:
        return sum(1 for d in self.repository.get_all() if d.status in ACTIONABLE_STATUSES)

    def get_urgent_count(self) -> int:
        return sum(
            1
            for d in self.repository.get_all()
            if d.status in ACTIONABLE_STATUSES and d.classification.priority == "urgent"
        )

    # Notifications

    def add_notification(
        self,
        type: NotificationType,
        title: str,
        message: str,
        related_id: str | None = None,
    ) -> PipelineNotification:
        notification = PipelineNotification(
            id=_generate_id("notif"),
            type=type,
            title=title,
            message=message,
            related_id=related_id,
            created_at=utcnow(),
        )
        self.notifications = [notification, *self.notifications][: self.max_notifications]
        return notification

    def mark_notification_read(self, notification_id: str) -> bool:
        for i, notification in enumerate(self.notifications):
            if notification.id == notification_id:
                self.notifications[i] = notification.model_copy(update={"read": True})
                return True
        return False

    def clear_notifications(self) -> None:
        self.notifications = []

    def get_unread_notification_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)

    # Pipeline jobs

    def start_job(self, job_type: str) -> PipelineJob:
        job = PipelineJob(id=_generate_id("job"), type=job_type, started_at=utcnow())
        self.jobs = [job, *self.jobs][: self.max_jobs]
        return job

    def update_job(self, job_id: str, **updates: Any) -> PipelineJob | None:
        for i, job in enumerate(self.jobs):
            if job.id == job_id:
                self.jobs[i] = job.model_copy(update=updates)
                return self.jobs[i]
        return None

    def clear_jobs(self) -> None:
        self.jobs = []

    # Persistence

    def snapshot(self, max_notifications: int = config.PERSISTED_NOTIFICATIONS) -> QueueSnapshot:
        """The state that survives restarts: drafts and recent notifications."""
        return QueueSnapshot(
            drafts=self.repository.get_all(),
            notifications=self.notifications[:max_notifications],
        )

    def restore(self, snapshot: QueueSnapshot) -> None:
        """Replace drafts and notifications with a saved snapshot."""
        self.repository.clear()
        for draft in reversed(snapshot.drafts):
            self.repository.upsert(draft)
        self.notifications = list(snapshot.notifications)
        self.selected_ids = []
