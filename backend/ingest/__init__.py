"""Normalization, clustering and pipeline orchestration."""

from ingest.cluster import ThemeClusterer, cluster_feedback
from ingest.normalizer import (
    dedupe,
    format_feedback_for_context,
    normalize,
    normalize_file_row,
    normalize_reddit_post,
    normalize_tweet,
    sort_by_priority,
)

__all__ = [
    "ThemeClusterer",
    "cluster_feedback",
    "dedupe",
    "format_feedback_for_context",
    "normalize",
    "normalize_file_row",
    "normalize_reddit_post",
    "normalize_tweet",
    "sort_by_priority",
]
