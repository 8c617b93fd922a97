"""Base fetcher protocol for feedback sources."""

from abc import ABC, abstractmethod
from typing import Any


class BaseScraper(ABC):
    """Abstract base class for feedback fetchers.

    Fetchers return raw source records; normalization happens in the pipeline.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return the source kind the records belong to (e.g., 'reddit')."""

    @abstractmethod
    async def fetch(self, config: Any) -> list[Any]:
        """Fetch raw records.

        Args:
            config: Source-specific fetch configuration.

        Returns:
            List of raw records accepted by the normalizer for source_name.
        """
