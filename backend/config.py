"""Environment-driven settings for the feedback pipeline."""

import os


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# LLM
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

# Batch concurrency (items per concurrent group)
CLASSIFY_BATCH_SIZE = int(os.getenv("CLASSIFY_BATCH_SIZE", "5"))
DRAFT_BATCH_SIZE = int(os.getenv("DRAFT_BATCH_SIZE", "3"))

# Pipeline
PIPELINE_DEFAULT_LIMIT = int(os.getenv("PIPELINE_DEFAULT_LIMIT", "10"))
AI_CLUSTER_MIN_ITEMS = int(os.getenv("AI_CLUSTER_MIN_ITEMS", "5"))

# Review queue
REVIEW_REQUIRE_CREATED_TICKET = _get_bool("REVIEW_REQUIRE_CREATED_TICKET")
MAX_NOTIFICATIONS = int(os.getenv("REVIEW_MAX_NOTIFICATIONS", "50"))
PERSISTED_NOTIFICATIONS = int(os.getenv("REVIEW_PERSISTED_NOTIFICATIONS", "20"))
MAX_JOBS = int(os.getenv("REVIEW_MAX_JOBS", "20"))

# Persistence
PERSIST_QUEUE = _get_bool("PERSIST_QUEUE", default=True)
