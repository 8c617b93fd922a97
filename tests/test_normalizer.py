"""Tests for source normalization, dedupe and priority sorting."""

from datetime import datetime, timedelta, timezone

from ingest.normalizer import (
    dedupe,
    format_feedback_for_context,
    normalize,
    normalize_content,
    normalize_reddit_post,
    normalize_tweet,
    reddit_engagement_score,
    round_half_up,
    sort_by_priority,
)
from models import RedditPost

SSO_POST = {
    "id": "abc123",
    "title": "Need SSO",
    "selftext": "We are blocked without SSO for our enterprise rollout, team of 500",
    "author": "pm_jane",
    "subreddit": "saas",
    "score": 200,
    "num_comments": 40,
    "created_utc": 1714560000,
    "permalink": "/r/saas/comments/abc123/need_sso/",
}


class TestEngagement:
    def test_reddit_engagement_weights_upvotes_and_comments(self):
        assert reddit_engagement_score(200, 40) == 40
        assert reddit_engagement_score(250, 50) == 50

    def test_reddit_engagement_saturates(self):
        assert reddit_engagement_score(5000, 1000) == 100
        assert reddit_engagement_score(-10, 0) == 0

    def test_round_half_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2

    def test_tweet_engagement_weighted_and_capped(self):
        tweet = {
            "id": "1",
            "text": "hi",
            "public_metrics": {
                "like_count": 100,
                "retweet_count": 50,
                "reply_count": 20,
                "quote_count": 4,
            },
        }
        assert normalize_tweet(tweet).engagement_score == 24

        tweet["public_metrics"]["like_count"] = 50_000
        assert normalize_tweet(tweet).engagement_score == 100

    def test_tweet_without_metrics_has_zero_engagement(self):
        assert normalize_tweet({"id": "1", "text": "hi"}).engagement_score == 0


class TestNormalizeReddit:
    def test_sso_post(self):
        item = normalize(SSO_POST, "reddit")

        assert item.source == "reddit"
        assert item.source_id == "abc123"
        assert item.engagement_score == 40
        assert item.title == "Need SSO"
        assert item.content == SSO_POST["selftext"]
        assert item.author == "pm_jane"
        assert item.author_handle == "u/pm_jane"
        assert item.source_url == "https://www.reddit.com/r/saas/comments/abc123/need_sso/"
        assert item.metadata.subreddit == "saas"
        assert item.metadata.reply_count == 40
        assert item.created_at == datetime.fromtimestamp(1714560000, tz=timezone.utc)
        assert item.id.startswith("fb_reddit_abc123_")

    def test_link_post_uses_title_as_content(self):
        item = normalize_reddit_post({"id": "x", "title": "Dark mode please", "selftext": ""})
        assert item.content == "Dark mode please"

    def test_accepts_model_instances(self):
        item = normalize_reddit_post(RedditPost(**SSO_POST))
        assert item.engagement_score == 40

    def test_missing_fields_fill_with_defaults(self):
        item = normalize({}, "reddit")

        assert item.content == ""
        assert item.source_id.startswith("content-")
        assert item.author == ""
        assert item.author_handle is None
        assert item.engagement_score == 0
        assert item.created_at == item.fetched_at

    def test_invalid_fields_are_dropped(self):
        item = normalize({"id": "x", "title": "Hi", "score": "lots", "num_comments": 100}, "reddit")
        assert item.engagement_score == 40
        assert item.title == "Hi"

    def test_non_mapping_record(self):
        item = normalize(None, "reddit")
        assert item.content == ""


class TestNormalizeTweet:
    def test_tweet_fields(self):
        item = normalize(
            {
                "id": "99",
                "text": "@acme the app keeps crashing #bug",
                "author_username": "bob",
                "author_name": "Bob",
                "created_at": "2024-05-01T10:00:00.000Z",
                "public_metrics": {"like_count": 10, "retweet_count": 0, "reply_count": 2, "quote_count": 0},
                "entities": {"hashtags": [{"tag": "bug"}], "mentions": [{"username": "acme"}]},
            },
            "twitter",
        )

        assert item.source == "twitter"
        assert item.source_url == "https://twitter.com/bob/status/99"
        assert item.author == "Bob"
        assert item.author_handle == "@bob"
        assert item.created_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        assert item.metadata.hashtags == ["bug"]
        assert item.metadata.mentions == ["acme"]
        assert item.metadata.is_reply is True
        assert item.metadata.is_retweet is False

    def test_bad_timestamp_falls_back_to_fetch_time(self):
        item = normalize({"id": "1", "text": "hi", "created_at": "yesterday"}, "twitter")
        assert item.created_at == item.fetched_at
        assert item.author == "Unknown"


class TestNormalizeTextSources:
    def test_support_ticket(self):
        item = normalize(
            {"id": "t-1", "content": "Invoice page errors", "author": "Dana", "date": "2024-04-01"},
            "support",
        )
        assert item.source == "support"
        assert item.source_id == "t-1"
        assert item.engagement_score == 0
        assert item.created_at == datetime(2024, 4, 1, tzinfo=timezone.utc)

    def test_file_row(self):
        item = normalize(
            {"id": "r1", "content": "Love it", "source": "typeform", "file_name": "nps.csv"},
            "file",
        )
        assert item.source == "file"
        assert item.author == "Unknown"
        assert item.metadata.file_name == "nps.csv"
        assert item.metadata.original_source == "typeform"

    def test_unknown_kind_becomes_file_row(self):
        item = normalize({"id": "i1", "content": "Where is the export?"}, "intercom")
        assert item.source == "file"
        assert item.metadata.original_source == "intercom"


class TestRecordIdentity:
    def test_rows_without_ids_get_distinct_source_ids(self):
        first = normalize({"content": "Export is broken"}, "support")
        second = normalize({"content": "Please add SAML"}, "support")

        assert first.source_id.startswith("content-")
        assert first.source_id != second.source_id
        assert first.id != second.id

    def test_fallback_source_id_is_stable(self):
        row = {"content": "Export is broken"}
        assert normalize(row, "support").source_id == normalize(row, "support").source_id

    def test_native_ids_are_kept(self):
        assert normalize({"id": "t-9", "content": "x"}, "support").source_id == "t-9"

    def test_ids_are_unique_for_the_same_record(self):
        ids = {normalize(SSO_POST, "reddit").id for _ in range(50)}
        assert len(ids) == 50


def test_normalization_is_idempotent():
    first = normalize(SSO_POST, "reddit")
    second = normalize(SSO_POST, "reddit")

    assert first.content == second.content
    assert first.author == second.author
    assert first.engagement_score == second.engagement_score
    assert first.created_at == second.created_at


class TestDedupe:
    def test_normalized_content(self):
        assert normalize_content("Hello,   World!\n") == "hello world"
        assert len(normalize_content("a" * 500)) == 200

    def test_drops_duplicates_within_batch(self, make_item):
        first = make_item("The export is broken!")
        second = make_item("the export is  BROKEN")
        third = make_item("The export is broken again")

        assert dedupe([first, second, third]) == [first, third]

    def test_drops_items_already_seen(self, make_item):
        existing = [make_item("Please add dark mode")]
        new = [make_item("please add dark mode."), make_item("Add a light mode")]

        result = dedupe(new, existing)

        assert [i.content for i in result] == ["Add a light mode"]

    def test_matches_on_first_200_characters(self, make_item):
        prefix = "x" * 200
        result = dedupe([make_item(prefix + " one"), make_item(prefix + " two")])
        assert len(result) == 1


class TestSortByPriority:
    def test_close_scores_sort_newest_first(self, make_item):
        base = datetime(2024, 5, 1, tzinfo=timezone.utc)
        older_high = make_item("a", engagement_score=80, created_at=base)
        newer_lower = make_item("b", engagement_score=65, created_at=base + timedelta(hours=1))

        assert sort_by_priority([older_high, newer_lower]) == [newer_lower, older_high]

    def test_distant_scores_sort_by_engagement(self, make_item):
        base = datetime(2024, 5, 1, tzinfo=timezone.utc)
        older_high = make_item("a", engagement_score=80, created_at=base)
        newer_low = make_item("b", engagement_score=50, created_at=base + timedelta(hours=1))

        assert sort_by_priority([newer_low, older_high]) == [older_high, newer_low]

    def test_score_difference_of_exactly_twenty_is_a_tie(self, make_item):
        base = datetime(2024, 5, 1, tzinfo=timezone.utc)
        older = make_item("a", engagement_score=70, created_at=base)
        newer = make_item("b", engagement_score=50, created_at=base + timedelta(minutes=5))

        assert sort_by_priority([older, newer]) == [newer, older]

    def test_stable_for_equal_items(self, make_item):
        items = [make_item(str(i), engagement_score=10) for i in range(5)]
        assert sort_by_priority(items) == items


def test_format_feedback_for_context(make_item):
    assert format_feedback_for_context([]) == "No feedback items found."

    text = format_feedback_for_context([make_item("Crashes on login", source="twitter")])
    assert "Twitter/X" in text
    assert "Crashes on login" in text
