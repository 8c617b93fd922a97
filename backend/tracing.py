"""Optional Weave tracing for LLM calls."""

import logging
import os

import weave

logger = logging.getLogger(__name__)

# Track whether Weave has been initialized
_weave_initialized = False


def init_weave() -> bool:
    """Initialize Weave if WANDB_API_KEY is set.

    Uses WEAVE_PROJECT env var for project name (default: feedback-triage).
    Format should be "team/project" or just "project" (uses default team).

    Returns:
        True if Weave was initialized, False otherwise.
    """
    global _weave_initialized
    if _weave_initialized:
        return True

    if not os.getenv("WANDB_API_KEY"):
        logger.debug("WANDB_API_KEY not set, Weave tracing disabled")
        return False

    project_name = os.getenv("WEAVE_PROJECT", "feedback-triage")
    try:
        weave.init(project_name)
    except Exception as e:
        logger.warning("Failed to initialize Weave: %s", e)
        return False

    _weave_initialized = True
    logger.info("Weave initialized for project: %s", project_name)
    return True
