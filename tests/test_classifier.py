"""Tests for heuristic and LLM-backed classification."""

import asyncio

import pytest

from classify import (
    ClassificationError,
    FeedbackClassifier,
    HeuristicClassifier,
    extract_keywords,
    parse_classification,
)
from classify.heuristics import detect_category, detect_priority, detect_segment, detect_sentiment
from fakes import FailingLLM, SlowLLM, StaticLLM
from ingest.normalizer import normalize
from test_normalizer import SSO_POST


class TestHeuristics:
    def test_bug_keywords_win_over_feature_keywords(self):
        assert detect_category("this is broken and also a feature request") == "bug"

    @pytest.mark.parametrize(
        "text, category",
        [
            ("it keeps crashing with an error", "bug"),
            ("would be great to export pdfs", "feature_request"),
            ("i love this app", "praise"),
            ("how do i reset my password", "question"),
            ("worst update ever", "complaint"),
            ("just checking in", "other"),
        ],
    )
    def test_category_rules(self, text, category):
        assert detect_category(text) == category

    def test_sentiment_uses_its_own_word_lists(self):
        assert detect_sentiment("the great export is broken") == "positive"
        assert detect_sentiment("the export is broken") == "negative"
        assert detect_sentiment("the export works") == "neutral"

    def test_blocker_overrides_engagement_bump(self):
        priority, reasons = detect_priority("this is blocking our launch", 90)

        assert priority == "urgent"
        assert "Blocker mentioned" in reasons
        assert "High engagement" in reasons

    def test_enterprise_mention_and_engagement(self):
        priority, reasons = detect_priority("our company relies on this", 75)
        assert priority == "high"
        assert reasons == ["Enterprise mention", "High engagement"]

    def test_engagement_bumps_medium_to_high(self):
        assert detect_priority("meh", 71) == ("high", ["High engagement"])
        assert detect_priority("meh", 70) == ("medium", [])

    @pytest.mark.parametrize(
        "text, segment",
        [
            ("we need sso", "enterprise"),
            ("our team uses it", "mid-market"),
            ("for my personal blog", "smb"),
            ("hello", "unknown"),
        ],
    )
    def test_segment_rules(self, text, segment):
        assert detect_segment(text) == segment

    def test_keywords_by_frequency_then_first_seen(self):
        text = "Export export EXPORT! Sync sync. Login, billing, invoice, dashboard, the"
        assert extract_keywords(text) == ["export", "sync", "login", "billing", "invoice"]

    def test_keywords_skip_short_and_stop_words(self):
        assert extract_keywords("the app is so bad and slow") == ["slow"]


class TestHeuristicClassifier:
    def test_sso_scenario(self):
        item = normalize(SSO_POST, "reddit")
        result = HeuristicClassifier().classify(item)

        assert item.engagement_score == 40
        assert result.category == "feature_request"
        assert result.customer_segment == "enterprise"
        assert result.priority in ("high", "urgent")
        assert "Enterprise mention" in result.priority_reasons
        assert result.confidence == 60

    def test_deterministic(self, make_item):
        item = make_item("The dashboard is broken for our company", engagement_score=80)
        classifier = HeuristicClassifier()

        first = classifier.classify(item)
        second = classifier.classify(item)

        assert first.model_dump_json() == second.model_dump_json()

    def test_title_is_included(self, make_item):
        item = make_item("", title="App crash on startup")
        assert HeuristicClassifier().classify(item).category == "bug"


class TestParseClassification:
    def test_accepts_camel_case_response(self, valid_classification_response):
        result = parse_classification(valid_classification_response)

        assert result.category == "bug"
        assert result.priority_reasons == ["Data loss"]
        assert result.customer_segment == "smb"

    def test_clamps_confidence(self, valid_classification_response):
        valid_classification_response["confidence"] = 140
        assert parse_classification(valid_classification_response).confidence == 100

        valid_classification_response["confidence"] = -3
        assert parse_classification(valid_classification_response).confidence == 0

        valid_classification_response["confidence"] = 71.6
        assert parse_classification(valid_classification_response).confidence == 72

    def test_truncates_keywords(self, valid_classification_response):
        valid_classification_response["keywords"] = [f"k{i}" for i in range(15)]
        assert len(parse_classification(valid_classification_response).keywords) == 10

    @pytest.mark.parametrize(
        "field, value",
        [
            ("category", "incident"),
            ("priority", "critical"),
            ("confidence", "high"),
            ("confidence", None),
            ("sentiment", 1),
        ],
    )
    def test_rejects_schema_violations(self, valid_classification_response, field, value):
        valid_classification_response[field] = value
        with pytest.raises(ClassificationError):
            parse_classification(valid_classification_response)

    def test_rejects_unknown_fields(self, valid_classification_response):
        valid_classification_response["mood"] = "grumpy"
        with pytest.raises(ClassificationError):
            parse_classification(valid_classification_response)


class TestFeedbackClassifier:
    def test_uses_llm_result(self, make_item, valid_classification_response):
        llm = StaticLLM(valid_classification_response)
        classifier = FeedbackClassifier(llm)

        result = asyncio.run(classifier.classify(make_item("Export drops rows"), "Acme CRM"))

        assert result.confidence == 92
        assert len(llm.calls) == 1
        assert "Acme CRM" in llm.calls[0]["system"]
        assert "Export drops rows" in llm.calls[0]["prompt"]

    def test_without_llm_uses_heuristics(self, make_item):
        result = asyncio.run(FeedbackClassifier().classify(make_item("I love it")))
        assert result.category == "praise"
        assert result.confidence == 60

    def test_llm_failure_falls_back(self, make_item):
        llm = FailingLLM()
        result = asyncio.run(FeedbackClassifier(llm).classify(make_item("It crashes")))

        assert llm.calls == 1
        assert result.category == "bug"
        assert result.confidence == 60

    def test_malformed_response_falls_back(self, make_item):
        llm = StaticLLM({"category": "bug"})
        result = asyncio.run(FeedbackClassifier(llm).classify(make_item("It crashes")))
        assert result.confidence == 60

    def test_timeout_falls_back(self, make_item):
        classifier = FeedbackClassifier(SlowLLM(), timeout=0.01)
        result = asyncio.run(classifier.classify(make_item("It crashes")))
        assert result.confidence == 60

    def test_batch_returns_one_result_per_item(self, make_item):
        items = [make_item(f"Item {i} is broken") for i in range(12)]
        classifier = FeedbackClassifier(FailingLLM(), batch_size=5)

        results = asyncio.run(classifier.classify_batch(items))

        assert set(results) == {item.id for item in items}
        assert all(r.category == "bug" for r in results.values())

    def test_batch_isolates_unexpected_errors(self, make_item, monkeypatch):
        items = [make_item("fine"), make_item("explodes")]
        classifier = FeedbackClassifier()
        original = classifier.classify

        async def flaky(item, company_context=None):
            if item.content == "explodes":
                raise RuntimeError("boom")
            return await original(item, company_context)

        monkeypatch.setattr(classifier, "classify", flaky)
        results = asyncio.run(classifier.classify_batch(items))

        assert set(results) == {items[0].id, items[1].id}
        assert results[items[1].id].confidence == 60
