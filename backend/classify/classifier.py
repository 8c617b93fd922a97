"""Feedback classifier: LLM first, keyword heuristics as fallback."""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

import config
from classify.heuristics import HeuristicClassifier
from classify.prompts import CLASSIFICATION_SCHEMA, build_system_prompt
from llm.base import BaseLLM
from models import ClassificationResult, FeedbackItem

logger = logging.getLogger(__name__)

MAX_LLM_KEYWORDS = 10


class ClassificationError(Exception):
    """The primary (LLM) classification strategy could not produce a result."""


def format_item_for_prompt(item: FeedbackItem) -> str:
    """Render the item context sent to the LLM."""
    lines = [f"Source: {item.source}"]
    if item.metadata.subreddit:
        lines.append(f"Subreddit: r/{item.metadata.subreddit}")
    lines.append(f"Author: {item.author_handle or item.author}")
    lines.append(f"Engagement Score: {item.engagement_score}/100")
    lines.append("")
    if item.title:
        lines.append(f"Title: {item.title}")
    lines.append(f"Content: {item.content}")
    return "\n".join(lines)


def parse_classification(response: dict[str, Any]) -> ClassificationResult:
    """Validate an LLM response against the classification schema.

    Confidence is clamped to [0, 100]; any other schema violation is rejected.

    Raises:
        ClassificationError: If the response does not match the schema.
    """
    data = dict(response)

    confidence = data.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise ClassificationError(f"Invalid confidence: {confidence!r}")
    data["confidence"] = max(0, min(100, round(confidence)))

    keywords = data.get("keywords")
    if isinstance(keywords, list):
        data["keywords"] = keywords[:MAX_LLM_KEYWORDS]

    try:
        return ClassificationResult.model_validate(data, strict=True)
    except ValidationError as e:
        raise ClassificationError(f"Schema violation: {e}") from e


class LLMClassifier:
    """Primary strategy: ask the LLM for a classification."""

    def __init__(self, llm: BaseLLM, timeout: float = config.LLM_TIMEOUT_SECONDS):
        self.llm = llm
        self.timeout = timeout

    async def try_primary(
        self,
        item: FeedbackItem,
        company_context: str | None = None,
    ) -> ClassificationResult:
        """Classify via the LLM.

        Raises:
            ClassificationError: On timeout, transport failure or a malformed response.
        """
        try:
            response = await asyncio.wait_for(
                self.llm.complete(
                    format_item_for_prompt(item),
                    schema=CLASSIFICATION_SCHEMA,
                    system=build_system_prompt(company_context),
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ClassificationError(f"LLM timed out after {self.timeout}s") from e
        except Exception as e:
            raise ClassificationError(f"LLM request failed: {e}") from e

        if not isinstance(response, dict):
            raise ClassificationError("LLM response is not a JSON object")
        return parse_classification(response)


class FeedbackClassifier:
    """Classifies feedback items, falling back to heuristics when the LLM fails."""

    def __init__(
        self,
        llm: BaseLLM | None = None,
        timeout: float = config.LLM_TIMEOUT_SECONDS,
        batch_size: int = config.CLASSIFY_BATCH_SIZE,
    ):
        """Initialize the classifier.

        Args:
            llm: The LLM provider. Without one, every item is classified heuristically.
            timeout: Per-call LLM timeout in seconds.
            batch_size: Number of items classified concurrently.
        """
        self.primary = LLMClassifier(llm, timeout=timeout) if llm else None
        self.heuristic = HeuristicClassifier()
        self.batch_size = max(1, batch_size)

    async def classify(
        self,
        item: FeedbackItem,
        company_context: str | None = None,
    ) -> ClassificationResult:
        """Classify one item. Never raises."""
        if self.primary is None:
            return self.heuristic.classify(item)

        try:
            result = await self.primary.try_primary(item, company_context)
        except ClassificationError as e:
            logger.warning("Falling back to heuristic classification for %s: %s", item.id, e)
            return self.heuristic.classify(item)

        logger.debug(
            "Classified %s as %s (confidence: %d)",
            item.id,
            result.category,
            result.confidence,
        )
        return result

    async def classify_batch(
        self,
        items: Sequence[FeedbackItem],
        company_context: str | None = None,
    ) -> dict[str, ClassificationResult]:
        """Classify items in concurrent groups of batch_size.

        Returns:
            Mapping of item id to classification, one entry per input id.
        """
        results: dict[str, ClassificationResult] = {}

        for start in range(0, len(items), self.batch_size):
            group = items[start : start + self.batch_size]
            outcomes = await asyncio.gather(
                *(self.classify(item, company_context) for item in group),
                return_exceptions=True,
            )
            for item, outcome in zip(group, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error("Classification failed for %s: %s", item.id, outcome)
                    outcome = self.heuristic.classify(item)
                results[item.id] = outcome

        logger.info("Classified %d feedback items", len(results))
        return results
