"""Ticket-creation contract shared by Linear, Jira, GitHub and Notion clients."""

from abc import ABC, abstractmethod
from typing import Literal

from pydantic import BaseModel, Field

from models import DraftedTicket, Priority, TicketPlatform

# Platform-native priority values
PRIORITY_MAP: dict[str, dict[str, int | str]] = {
    "linear": {"low": 4, "medium": 3, "high": 2, "urgent": 1},
    "jira": {"low": "Low", "medium": "Medium", "high": "High", "urgent": "Highest"},
    "notion": {"low": "Low", "medium": "Medium", "high": "High", "urgent": "Urgent"},
    "github": {
        "low": "priority: low",
        "medium": "priority: medium",
        "high": "priority: high",
        "urgent": "priority: critical",
    },
}


class TicketSource(BaseModel):
    type: Literal["reddit", "twitter", "support", "call", "manual"] = "manual"
    url: str | None = None
    author: str | None = None


class TicketData(BaseModel):
    """Platform-neutral ticket payload."""

    title: str
    description: str
    priority: Priority | None = None
    labels: list[str] = Field(default_factory=list)
    assignee: str | None = None
    source: TicketSource | None = None


class TicketResult(BaseModel):
    success: bool
    platform: TicketPlatform
    ticket_id: str | None = None
    ticket_url: str | None = None
    error: str | None = None


class TicketCreator(ABC):
    """Abstract base class for issue-tracker clients."""

    @property
    @abstractmethod
    def platform(self) -> TicketPlatform:
        """Return the platform identifier (e.g., 'linear', 'github')."""

    @abstractmethod
    async def create_ticket(self, data: TicketData) -> TicketResult:
        """Create a ticket on the platform.

        Implementations report failures through TicketResult.success rather
        than raising.
        """


def map_priority(platform: str, priority: str) -> int | str | None:
    """Translate a pipeline priority to the platform's value."""
    return PRIORITY_MAP.get(platform, {}).get(priority)


def build_ticket_data(ticket: DraftedTicket) -> TicketData:
    """Build the ticket payload from the effective (edited if present) draft."""
    effective = ticket.effective_draft()
    item = ticket.feedback_item
    source_type = item.source if item.source in ("reddit", "twitter", "support", "call") else "manual"

    return TicketData(
        title=effective.title,
        description=effective.description,
        priority=effective.priority,
        labels=list(effective.labels),
        source=TicketSource(
            type=source_type,
            url=item.source_url or None,
            author=item.author_handle or item.author or None,
        ),
    )
