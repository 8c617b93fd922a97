"""Reddit fetcher using Reddit's JSON API."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from models import RedditPost, ScrapeConfig
from scrapers.base import BaseScraper

logger = logging.getLogger(__name__)

# Reddit requires a custom User-Agent
USER_AGENT = "FeedbackTriage/1.0"

REDDIT_BASE_URL = "https://www.reddit.com"


def parse_listing(data: dict[str, Any], max_posts: int) -> list[RedditPost]:
    """Extract posts from a Reddit listing response.

    Entries that fail validation are skipped.
    """
    children = data.get("data", {}).get("children", [])
    posts = []

    for child in children[:max_posts]:
        try:
            posts.append(RedditPost.model_validate(child.get("data", {})))
        except ValidationError as e:
            logger.warning("Skipping malformed Reddit post: %s", e)

    return posts


class RedditScraper(BaseScraper):
    """Fetcher for subreddit listings using Reddit's public JSON API.

    Reddit provides JSON data by appending .json to any URL.
    """

    def __init__(
        self,
        base_url: str = REDDIT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def source_name(self) -> str:
        return "reddit"

    async def fetch(self, config: ScrapeConfig) -> list[RedditPost]:
        """Fetch posts from a subreddit.

        Args:
            config: Fetch configuration with subreddit, sort order and limit.

        Returns:
            List of raw Reddit posts.

        Raises:
            httpx.HTTPError: If the request fails.
        """
        url = f"{self.base_url}/r/{config.subreddit}/{config.sort_by}.json"
        params = {"limit": min(config.max_posts, 100)}  # Reddit caps at 100 per request

        logger.info("Fetching r/%s (%s, max_posts: %d)", config.subreddit, config.sort_by, config.max_posts)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(
                url,
                params=params,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
            )
            response.raise_for_status()
            data = response.json()

        posts = parse_listing(data, config.max_posts)
        logger.info("Fetched %d posts from r/%s", len(posts), config.subreddit)
        return posts
