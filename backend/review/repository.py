"""Draft repositories backing the review queue."""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from models import DraftedTicket


class DraftRepository(ABC):
    """Storage for drafted tickets, most recent first."""

    @abstractmethod
    def get_all(self) -> list[DraftedTicket]:
        """Return all drafts, most recent first."""

    @abstractmethod
    def get(self, draft_id: str) -> DraftedTicket | None:
        """Return a draft by id, or None."""

    @abstractmethod
    def upsert(self, draft: DraftedTicket) -> None:
        """Prepend a new draft, or replace an existing one in place."""

    @abstractmethod
    def remove_by_id(self, draft_id: str) -> bool:
        """Remove a draft. Returns False if it was not present."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every draft."""


class InMemoryDraftRepository(DraftRepository):
    """Dict-backed repository. Insertion order of the dict is queue order."""

    def __init__(self, drafts: Iterable[DraftedTicket] = ()):
        self._drafts: dict[str, DraftedTicket] = {d.id: d for d in drafts}

    def get_all(self) -> list[DraftedTicket]:
        return list(self._drafts.values())

    def get(self, draft_id: str) -> DraftedTicket | None:
        return self._drafts.get(draft_id)

    def upsert(self, draft: DraftedTicket) -> None:
        if draft.id in self._drafts:
            self._drafts[draft.id] = draft
        else:
            self._drafts = {draft.id: draft, **self._drafts}

    def remove_by_id(self, draft_id: str) -> bool:
        return self._drafts.pop(draft_id, None) is not None

    def clear(self) -> None:
        self._drafts = {}

    def __len__(self) -> int:
        return len(self._drafts)
