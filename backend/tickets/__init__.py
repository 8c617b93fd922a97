"""Ticket-creation collaborators."""

from tickets.base import (
    PRIORITY_MAP,
    TicketCreator,
    TicketData,
    TicketResult,
    TicketSource,
    build_ticket_data,
    map_priority,
)

__all__ = [
    "PRIORITY_MAP",
    "TicketCreator",
    "TicketData",
    "TicketResult",
    "TicketSource",
    "build_ticket_data",
    "map_priority",
]
