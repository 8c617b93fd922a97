"""Ticket drafting from classified feedback."""

from drafting.drafter import (
    TicketDrafter,
    cluster_to_drafted_ticket,
    create_drafted_ticket,
    generate_draft_id,
)
from drafting.templates import cluster_ticket, default_draft

__all__ = [
    "TicketDrafter",
    "cluster_ticket",
    "cluster_to_drafted_ticket",
    "create_drafted_ticket",
    "default_draft",
    "generate_draft_id",
]
