"""Approval flow that goes through a ticket-creation client."""

import logging

from review.queue import ACTIONABLE_STATUSES, InvalidTransitionError, ReviewQueue
from tickets.base import TicketCreator, TicketResult, build_ticket_data

logger = logging.getLogger(__name__)


async def approve_and_create(
    queue: ReviewQueue,
    draft_id: str,
    creator: TicketCreator,
    reviewed_by: str | None = None,
) -> TicketResult | None:
    """Create a ticket for a draft and approve it.

    The ticket is built from the effective draft (the edited version if one
    exists). If creation fails the failure is recorded as a notification and the
    draft is still approved, without a created ticket, unless the queue requires
    one.

    Args:
        queue: The review queue holding the draft.
        draft_id: Id of the draft to approve.
        creator: Client for the target ticket platform.
        reviewed_by: Optional reviewer name.

    Returns:
        The ticket result, or None if the draft is unknown.

    Raises:
        InvalidTransitionError: If the draft was already approved or rejected.
        TicketNotConfirmedError: If creation failed and the queue requires a ticket.
    """
    draft = queue.get(draft_id)
    if draft is None:
        return None
    if draft.status not in ACTIONABLE_STATUSES:
        raise InvalidTransitionError(draft_id, draft.status, "approved")

    data = build_ticket_data(draft)
    try:
        result = await creator.create_ticket(data)
    except Exception as e:
        logger.exception("Ticket creation on %s failed for %s", creator.platform, draft_id)
        result = TicketResult(success=False, platform=creator.platform, error=str(e))

    if result.success:
        queue.approve(draft_id, creator.platform, ticket_result=result, reviewed_by=reviewed_by)
        queue.add_notification(
            "ticket_created",
            "Ticket created",
            f"Created {creator.platform} ticket {result.ticket_id}: {data.title}",
            related_id=draft_id,
        )
        logger.info("Created %s ticket %s for %s", creator.platform, result.ticket_id, draft_id)
        return result

    logger.warning(
        "Ticket creation on %s failed for %s: %s", creator.platform, draft_id, result.error
    )
    queue.add_notification(
        "pipeline_error",
        "Ticket creation failed",
        f"Could not create {creator.platform} ticket: {result.error or 'unknown error'}",
        related_id=draft_id,
    )
    queue.approve(draft_id, creator.platform, ticket_result=result, reviewed_by=reviewed_by)
    return result
