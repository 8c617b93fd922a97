"""Fetchers for feedback sources."""

from scrapers.base import BaseScraper
from scrapers.reddit import RedditScraper, parse_listing

__all__ = ["BaseScraper", "RedditScraper", "parse_listing"]
