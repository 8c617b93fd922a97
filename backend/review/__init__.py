"""Human review of drafted tickets."""

from review.queue import (
    InvalidTransitionError,
    QueueSnapshot,
    ReviewQueue,
    TicketNotConfirmedError,
    matches_filters,
)
from review.repository import DraftRepository, InMemoryDraftRepository
from review.service import approve_and_create
from review.storage import load_queue, save_queue

__all__ = [
    "DraftRepository",
    "InMemoryDraftRepository",
    "InvalidTransitionError",
    "QueueSnapshot",
    "ReviewQueue",
    "TicketNotConfirmedError",
    "approve_and_create",
    "load_queue",
    "matches_filters",
    "save_queue",
]
