"""Review queue persistence in Redis."""

import logging

import redis.asyncio as redis
from pydantic import TypeAdapter, ValidationError

from models import DraftedTicket, PipelineNotification
from review.queue import QueueSnapshot, ReviewQueue

logger = logging.getLogger(__name__)

# Redis keys
DRAFTS_KEY = "review:drafts"
NOTIFICATIONS_KEY = "review:notifications"

_drafts_adapter = TypeAdapter(list[DraftedTicket])
_notifications_adapter = TypeAdapter(list[PipelineNotification])


async def save_queue(client: redis.Redis, queue: ReviewQueue) -> None:
    """Write the queue's drafts and recent notifications to Redis.

    Args:
        client: Redis client.
        queue: The queue to persist.
    """
    snapshot = queue.snapshot()
    await client.mset(
        {
            DRAFTS_KEY: _drafts_adapter.dump_json(snapshot.drafts).decode(),
            NOTIFICATIONS_KEY: _notifications_adapter.dump_json(snapshot.notifications).decode(),
        }
    )
    logger.debug(
        "Saved review queue (%d drafts, %d notifications)",
        len(snapshot.drafts),
        len(snapshot.notifications),
    )


async def load_queue(client: redis.Redis, queue: ReviewQueue) -> bool:
    """Restore a queue from Redis.

    A missing or corrupt snapshot leaves the queue untouched.

    Args:
        client: Redis client.
        queue: The queue to restore into.

    Returns:
        True if a snapshot was loaded.
    """
    drafts_raw, notifications_raw = await client.mget([DRAFTS_KEY, NOTIFICATIONS_KEY])
    if drafts_raw is None and notifications_raw is None:
        logger.info("No saved review queue found")
        return False

    try:
        drafts = _drafts_adapter.validate_json(drafts_raw) if drafts_raw else []
        notifications = (
            _notifications_adapter.validate_json(notifications_raw) if notifications_raw else []
        )
    except ValidationError as e:
        logger.error("Saved review queue is invalid, ignoring it: %s", e)
        return False

    queue.restore(QueueSnapshot(drafts=drafts, notifications=notifications))
    logger.info(
        "Restored review queue (%d drafts, %d notifications)",
        len(drafts),
        len(notifications),
    )
    return True


async def clear_saved_queue(client: redis.Redis) -> None:
    """Delete the saved snapshot."""
    await client.delete(DRAFTS_KEY, NOTIFICATIONS_KEY)
