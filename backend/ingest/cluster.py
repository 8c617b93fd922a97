"""Group classified feedback into theme clusters."""

import asyncio
import json
import logging
import secrets
import string
import time
from collections import Counter, defaultdict
from collections.abc import Sequence
from typing import Any

import config
from drafting.templates import cluster_ticket
from ingest.normalizer import strip_punctuation
from llm.base import BaseLLM
from models import (
    PRIORITY_ORDER,
    ClassifiedFeedback,
    ClusteredFeedback,
    Priority,
    Sentiment,
)

logger = logging.getLogger(__name__)

MIN_SHARED_KEYWORDS = 2
KEYWORDS_PER_ITEM = 10
THEME_KEYWORDS = 3
SUMMARY_LENGTH = 200
SUMMARY_QUOTE_LENGTH = 50
SUMMARY_QUOTES = 3

# First-counted wins when sentiment counts are tied
SENTIMENT_TIE_ORDER: tuple[Sentiment, ...] = ("positive", "negative", "neutral")

STOP_WORDS = frozenset(
    """
    the a an is are was were be been being have has had do does did will would
    could should may might must shall can need dare to of in for on with at by
    from as i me my we our you your it its they this that these those what which
    who when where why how all each some any no not and but or if so just very
    really get like want think know see use try
    """.split()
)

AI_CLUSTER_PROMPT = """You are a PM assistant that groups customer feedback into themes.
Given a list of feedback items, identify 3-7 main themes and assign each item to a theme."""

AI_CLUSTER_SCHEMA = {
    "type": "object",
    "properties": {
        "themes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "itemIds": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["name", "itemIds"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["themes"],
    "additionalProperties": False,
}

_ID_ALPHABET = string.ascii_lowercase + string.digits


class ClusteringError(ValueError):
    """The LLM returned themes that could not be used."""


def theme_keywords(text: str) -> list[str]:
    """First KEYWORDS_PER_ITEM distinct non-stop-words longer than three characters."""
    words = strip_punctuation(text.lower()).split()
    distinct = dict.fromkeys(w for w in words if len(w) > 3 and w not in STOP_WORDS)
    return list(distinct)[:KEYWORDS_PER_ITEM]


def _generate_cluster_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"cluster_{int(time.time() * 1000)}_{suffix}"


def aggregate_priority(members: Sequence[ClassifiedFeedback]) -> Priority:
    """Highest priority among members."""
    priority: Priority = "low"
    for member in members:
        if PRIORITY_ORDER[member.classification.priority] > PRIORITY_ORDER[priority]:
            priority = member.classification.priority
    return priority


def aggregate_sentiment(members: Sequence[ClassifiedFeedback]) -> Sentiment:
    """Majority sentiment; ties resolved by SENTIMENT_TIE_ORDER."""
    counts = Counter(member.classification.sentiment for member in members)
    winner = SENTIMENT_TIE_ORDER[0]
    for sentiment in SENTIMENT_TIE_ORDER[1:]:
        if counts[sentiment] > counts[winner]:
            winner = sentiment
    return winner


def summarize(theme: str, members: Sequence[ClassifiedFeedback]) -> str:
    if len(members) == 1:
        return members[0].item.content[:SUMMARY_LENGTH]

    quotes = "; ".join(
        member.item.content[:SUMMARY_QUOTE_LENGTH] for member in members[:SUMMARY_QUOTES]
    )
    return (
        f"{len(members)} users mentioned issues related to {theme}. "
        f"Common concerns include: {quotes}..."
    )


def create_cluster(theme: str, members: list[ClassifiedFeedback]) -> ClusteredFeedback:
    """Build a cluster with aggregates and a suggested ticket.

    All members must share one category.
    """
    category = members[0].classification.category
    priority = aggregate_priority(members)

    return ClusteredFeedback(
        id=_generate_cluster_id(),
        theme=theme,
        summary=summarize(theme, members),
        items=members,
        category=category,
        priority=priority,
        sentiment=aggregate_sentiment(members),
        mention_count=len(members),
        sources=list(dict.fromkeys(member.item.source for member in members)),
        suggested_ticket=cluster_ticket(theme, members, category, priority),
    )


def rank_clusters(clusters: list[ClusteredFeedback]) -> list[ClusteredFeedback]:
    """Sort by priority descending, then mention count descending."""
    return sorted(
        clusters,
        key=lambda c: (PRIORITY_ORDER[c.priority], c.mention_count),
        reverse=True,
    )


def group_by_theme(members: Sequence[ClassifiedFeedback]) -> dict[str, list[ClassifiedFeedback]]:
    """Greedy keyword-overlap grouping within one category.

    Each unassigned item absorbs every other unassigned item sharing at least
    MIN_SHARED_KEYWORDS keywords with it. Groups that end up with the same theme
    name are merged.
    """
    keywords = [theme_keywords(f"{m.item.content} {m.item.title or ''}") for m in members]

    # keyword -> indexes of items containing it
    index: dict[str, list[int]] = defaultdict(list)
    for i, words in enumerate(keywords):
        for word in words:
            index[word].append(i)

    themes: dict[str, list[ClassifiedFeedback]] = {}
    assigned: set[int] = set()

    for i, member in enumerate(members):
        if i in assigned:
            continue

        shared: Counter[int] = Counter()
        for word in keywords[i]:
            shared.update(j for j in index[word] if j != i and j not in assigned)
        similar = sorted(j for j, count in shared.items() if count >= MIN_SHARED_KEYWORDS)

        if similar:
            combined = list(keywords[i])
            for j in similar:
                combined.extend(w for w in keywords[j] if w not in combined)
            theme = " + ".join(combined[:THEME_KEYWORDS])
        else:
            theme = keywords[i][0] if keywords[i] else "Other"

        group = themes.setdefault(theme, [])
        for j in [i, *similar]:
            group.append(members[j])
            assigned.add(j)

    return themes


def cluster_feedback(pairs: Sequence[ClassifiedFeedback]) -> list[ClusteredFeedback]:
    """Deterministic clustering. Clusters never cross category boundaries."""
    if not pairs:
        return []

    by_category: dict[str, list[ClassifiedFeedback]] = {}
    for pair in pairs:
        by_category.setdefault(pair.classification.category, []).append(pair)

    clusters = [
        create_cluster(theme, members)
        for category_members in by_category.values()
        for theme, members in group_by_theme(category_members).items()
    ]

    logger.info("Clustered %d items into %d themes", len(pairs), len(clusters))
    return rank_clusters(clusters)


def _parse_ai_themes(response: dict[str, Any]) -> list[tuple[str, list[str]]]:
    themes = response.get("themes")
    if not isinstance(themes, list) or not themes:
        raise ClusteringError("No themes returned")

    parsed = []
    for theme in themes:
        if not isinstance(theme, dict):
            raise ClusteringError(f"Malformed theme: {theme!r}")
        name = theme.get("name")
        item_ids = theme.get("itemIds")
        if not isinstance(name, str) or not name.strip():
            raise ClusteringError(f"Theme without a name: {theme!r}")
        if not isinstance(item_ids, list) or not all(isinstance(i, str) for i in item_ids):
            raise ClusteringError(f"Theme {name!r} has malformed itemIds")
        parsed.append((name.strip(), item_ids))
    return parsed


class ThemeClusterer:
    """Clusters feedback with an LLM when possible, deterministically otherwise."""

    def __init__(
        self,
        llm: BaseLLM | None = None,
        timeout: float = config.LLM_TIMEOUT_SECONDS,
        min_items: int = config.AI_CLUSTER_MIN_ITEMS,
    ):
        self.llm = llm
        self.timeout = timeout
        self.min_items = min_items

    async def cluster(self, pairs: Sequence[ClassifiedFeedback]) -> list[ClusteredFeedback]:
        """Cluster pairs. Never raises."""
        if self.llm is None or len(pairs) < self.min_items:
            return cluster_feedback(pairs)

        try:
            return await self._cluster_with_llm(pairs)
        except asyncio.TimeoutError:
            logger.warning("AI clustering timed out, using keyword clustering")
        except Exception as e:
            logger.warning("AI clustering failed, using keyword clustering: %s", e)
        return cluster_feedback(pairs)

    async def _cluster_with_llm(
        self, pairs: Sequence[ClassifiedFeedback]
    ) -> list[ClusteredFeedback]:
        payload = [
            {
                "id": pair.item.id,
                "content": pair.item.content[:SUMMARY_LENGTH],
                "category": pair.classification.category,
            }
            for pair in pairs
        ]
        response = await asyncio.wait_for(
            self.llm.complete(json.dumps(payload), schema=AI_CLUSTER_SCHEMA, system=AI_CLUSTER_PROMPT),
            timeout=self.timeout,
        )
        themes = _parse_ai_themes(response)

        by_id = {pair.item.id: pair for pair in pairs}
        assigned: set[str] = set()
        clusters = []

        for name, item_ids in themes:
            # Split each theme by category so clusters never mix categories
            by_category: dict[str, list[ClassifiedFeedback]] = {}
            for item_id in item_ids:
                pair = by_id.get(item_id)
                if pair is None or item_id in assigned:
                    continue
                assigned.add(item_id)
                by_category.setdefault(pair.classification.category, []).append(pair)
            clusters.extend(create_cluster(name, members) for members in by_category.values())

        if not clusters:
            raise ClusteringError("Themes matched no known items")

        leftovers = [pair for pair in pairs if pair.item.id not in assigned]
        if leftovers:
            logger.debug("%d items left unassigned by the LLM", len(leftovers))
            clusters.extend(cluster_feedback(leftovers))

        logger.info("AI clustered %d items into %d themes", len(pairs), len(clusters))
        return rank_clusters(clusters)
