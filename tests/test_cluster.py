"""Tests for theme clustering."""

import asyncio

from fakes import FailingLLM, StaticLLM
from ingest.cluster import (
    ThemeClusterer,
    aggregate_priority,
    aggregate_sentiment,
    cluster_feedback,
    group_by_theme,
    theme_keywords,
)


def test_theme_keywords_are_distinct_and_in_order():
    words = theme_keywords("Export export CSV timeout when exporting large reports, the export fails")
    assert words == ["export", "timeout", "exporting", "large", "reports", "fails"]


def test_aggregate_priority_takes_the_highest(make_pair):
    members = [
        make_pair("a", priority="low"),
        make_pair("b", priority="urgent"),
        make_pair("c", priority="high"),
    ]
    assert aggregate_priority(members) == "urgent"


def test_aggregate_sentiment_majority_and_ties(make_pair):
    assert aggregate_sentiment(
        [make_pair("a", sentiment="negative"), make_pair("b", sentiment="negative"), make_pair("c", sentiment="positive")]
    ) == "negative"
    assert aggregate_sentiment(
        [make_pair("a", sentiment="negative"), make_pair("b", sentiment="positive")]
    ) == "positive"
    assert aggregate_sentiment(
        [make_pair("a", sentiment="neutral"), make_pair("b", sentiment="negative")]
    ) == "negative"


def test_group_by_theme_merges_items_sharing_two_keywords(make_pair):
    members = [
        make_pair("Export timeout on large reports"),
        make_pair("Login page is slow"),
        make_pair("Large export hits a timeout every time"),
    ]

    groups = group_by_theme(members)

    assert list(groups) == ["export + timeout + large", "login"]
    assert groups["export + timeout + large"] == [members[0], members[2]]
    assert groups["login"] == [members[1]]


def test_singleton_without_keywords_is_other(make_pair):
    groups = group_by_theme([make_pair("it is so bad")])
    assert list(groups) == ["Other"]


def test_clusters_never_mix_categories(make_pair):
    pairs = [
        make_pair("Export timeout on large reports", category="bug"),
        make_pair("Export timeout on large reports please", category="feature_request"),
        make_pair("Large export hits a timeout", category="bug"),
    ]

    clusters = cluster_feedback(pairs)

    for cluster in clusters:
        categories = {member.classification.category for member in cluster.items}
        assert categories == {cluster.category}
    assert sorted(c.mention_count for c in clusters) == [1, 2]


def test_cluster_aggregates_and_ticket(make_pair):
    pairs = [
        make_pair("Export timeout on large reports", priority="medium", source="reddit"),
        make_pair("Large export hits a timeout", priority="urgent", source="twitter"),
    ]

    [cluster] = cluster_feedback(pairs)

    assert cluster.priority == "urgent"
    assert cluster.sentiment == "negative"
    assert cluster.sources == ["reddit", "twitter"]
    assert cluster.summary.startswith("2 users mentioned issues related to export + timeout + large.")
    assert cluster.suggested_ticket.title == "Fix: Export + Timeout + Large (2 mentions)"
    assert cluster.suggested_ticket.labels == ["bug", "urgent", "mentions-2"]
    assert "## Customer Quotes" in cluster.suggested_ticket.description


def test_singleton_summary_is_truncated_content(make_pair):
    [cluster] = cluster_feedback([make_pair("crash " * 100)])
    assert cluster.summary == ("crash " * 100)[:200]


def test_clusters_ranked_by_priority_then_mentions(make_pair):
    pairs = [
        make_pair("Login page is slow", priority="low"),
        make_pair("Billing invoice wrong amount", priority="high"),
        make_pair("Export timeout on large reports", priority="medium"),
        make_pair("Large export hits a timeout", priority="medium"),
    ]

    clusters = cluster_feedback(pairs)

    assert [c.priority for c in clusters] == ["high", "medium", "low"]


def test_empty_input():
    assert cluster_feedback([]) == []


class TestThemeClusterer:
    def test_small_inputs_skip_the_llm(self, make_pair):
        llm = StaticLLM({"themes": []})
        clusters = asyncio.run(ThemeClusterer(llm, min_items=5).cluster([make_pair("Login is slow")]))

        assert llm.calls == []
        assert len(clusters) == 1

    def test_llm_themes_split_by_category(self, make_pair):
        pairs = [make_pair(f"Sync issue {i}", category="bug") for i in range(4)]
        pairs.append(make_pair("Please add sync for calendars", category="feature_request"))
        pairs.append(make_pair("Dark mode would be nice", category="feature_request"))
        llm = StaticLLM(
            {
                "themes": [
                    {"name": "Sync", "itemIds": [p.item.id for p in pairs[:5]]},
                    {"name": "Missing", "itemIds": ["does-not-exist"]},
                ]
            }
        )

        clusters = asyncio.run(ThemeClusterer(llm, min_items=5).cluster(pairs))

        assert len(llm.calls) == 1
        by_theme = {(c.theme, c.category): c for c in clusters}
        assert by_theme[("Sync", "bug")].mention_count == 4
        assert by_theme[("Sync", "feature_request")].mention_count == 1
        # The unassigned item is clustered deterministically
        assert sum(c.mention_count for c in clusters) == len(pairs)
        for cluster in clusters:
            assert {m.classification.category for m in cluster.items} == {cluster.category}

    def test_malformed_response_falls_back(self, make_pair):
        pairs = [make_pair(f"Export timeout report {i}") for i in range(5)]
        llm = StaticLLM({"themes": [{"name": "", "itemIds": []}]})

        clusters = asyncio.run(ThemeClusterer(llm, min_items=5).cluster(pairs))

        assert sum(c.mention_count for c in clusters) == 5

    def test_llm_failure_falls_back(self, make_pair):
        pairs = [make_pair(f"Export timeout report {i}") for i in range(5)]
        clusters = asyncio.run(ThemeClusterer(FailingLLM(), min_items=5).cluster(pairs))
        assert sum(c.mention_count for c in clusters) == 5
