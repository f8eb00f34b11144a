"""
Unit tests for key event counting, "why hot" reasons and evidence strings.
"""
from abm_engine.scoring.evidence import (
    build_evidence_strings,
    build_why_hot,
    count_key_events,
    count_unique_visitors,
    key_event_key,
    top_lane,
)
from abm_engine.scoring.types import EventRuleData, RawEvent

from conftest import NOW


class TestKeyEvents:
    def test_keys(self):
        assert key_event_key("page_view", "pricing") == "pricing_page_view"
        assert key_event_key("page_view", None) == "other_page_view"
        assert key_event_key("cta_click", None, "request_reservation") == "cta_click_request_reservation"
        assert key_event_key("cta_click") == "cta_click"
        assert key_event_key("form_submitted") == "form_submitted"

    def test_counts(self):
        events = [
            RawEvent(event_name="page_view", occurred_at=NOW, content_type="pricing"),
            RawEvent(event_name="page_view", occurred_at=NOW, content_type="pricing"),
            RawEvent(event_name="form_started", occurred_at=NOW),
        ]
        assert count_key_events(events) == {"form_started": 1, "pricing_page_view": 2}

    def test_unique_visitors(self):
        events = [
            RawEvent(event_name="page_view", occurred_at=NOW, distinct_visitor_id="a"),
            RawEvent(event_name="page_view", occurred_at=NOW, distinct_visitor_id="a"),
            RawEvent(event_name="page_view", occurred_at=NOW, distinct_visitor_id=""),
            RawEvent(event_name="page_view", occurred_at=NOW),
        ]
        assert count_unique_visitors(events) == 1


class TestTopLane:
    def test_argmax(self):
        assert top_lane({"Launch": 3.0, "Operations": 7.5}) == "Operations"

    def test_empty_is_other(self):
        assert top_lane({}) == "other"


class TestWhyHot:
    def test_ranked_by_count_then_key(self):
        counts = {"pricing_page_view": 2, "form_started": 2, "blog_page_view": 5, "security_page_view": 1}
        assert build_why_hot(counts) == ["5× blog page view", "2× Form Started", "2× Pricing"]

    def test_zero_counts_dropped(self):
        assert build_why_hot({"pricing_page_view": 0}) == []


class TestEvidenceStrings:
    def test_template_substitutes_count(self):
        rules = [EventRuleData(
            id="r1", priority=10, event_name="page_view", match_type="path_prefix",
            match_value="/pricing", content_type="pricing", evidence_template="Viewed pricing {COUNT}×",
        )]
        assert build_evidence_strings({"pricing_page_view": 3}, rules) == ["Viewed pricing 3×"]

    def test_first_template_wins(self):
        rules = [
            EventRuleData(id="a", priority=1, event_name="form_submitted", match_type="contains",
                          match_value="", evidence_template="Submitted {count} forms"),
            EventRuleData(id="b", priority=2, event_name="form_submitted", match_type="contains",
                          match_value="", evidence_template="ignored"),
        ]
        assert build_evidence_strings({"form_submitted": 2}, rules) == ["Submitted 2 forms"]

    def test_fallback_is_humanized(self):
        assert build_evidence_strings({"cta_click_demo": 1}) == ["cta click demo (1×)"]

    def test_at_most_six(self):
        counts = {f"k{i}": i + 1 for i in range(10)}
        out = build_evidence_strings(counts)
        assert len(out) == 6
        assert out[0] == "k9 (10×)"
