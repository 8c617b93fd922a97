"""Feedback classification."""

from classify.classifier import (
    ClassificationError,
    FeedbackClassifier,
    LLMClassifier,
    parse_classification,
)
from classify.heuristics import HeuristicClassifier, extract_keywords

__all__ = [
    "ClassificationError",
    "FeedbackClassifier",
    "HeuristicClassifier",
    "LLMClassifier",
    "extract_keywords",
    "parse_classification",
]
