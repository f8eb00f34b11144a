"""
Unit tests for the event classifier (path / event name → content type, lane).
"""
import random

import pytest

from abm_engine.core.errors import MalformedRule
from abm_engine.scoring.event_rules import UNCLASSIFIED, classify_event, rule_matches
from abm_engine.scoring.types import EventRuleData


def _rule(priority, match_type, match_value, event_name="page_view", **kw) -> EventRuleData:
    return EventRuleData(
        id=f"r{priority}",
        priority=priority,
        event_name=event_name,
        match_type=match_type,
        match_value=match_value,
        **kw,
    )


class TestMatchTypes:
    def test_path_prefix(self):
        r = _rule(1, "path_prefix", "/pricing")
        assert rule_matches(r, "/pricing/enterprise")
        assert not rule_matches(r, "/blog/pricing")

    def test_contains(self):
        assert rule_matches(_rule(1, "contains", "launch"), "/services/launch-support")

    def test_equals(self):
        r = _rule(1, "equals", "/contact")
        assert rule_matches(r, "/contact")
        assert not rule_matches(r, "/contact/thanks")

    def test_regex(self):
        r = _rule(1, "path_regex", r"^/services/(launch|ops)")
        assert rule_matches(r, "/services/ops/ground")
        assert not rule_matches(r, "/about/services/ops")

    def test_case_insensitive(self):
        assert rule_matches(_rule(1, "path_prefix", "/Pricing"), "/PRICING/teams")
        assert rule_matches(_rule(1, "path_regex", r"/SECURITY$"), "/trust/security")

    def test_missing_path(self):
        assert not rule_matches(_rule(1, "contains", "pricing"), None)

    def test_malformed_regex_raises(self):
        with pytest.raises(MalformedRule):
            rule_matches(_rule(1, "path_regex", "/pricing("), "/pricing")


class TestClassifyEvent:
    def test_lowest_priority_wins_regardless_of_order(self):
        rules = [
            _rule(50, "contains", "pricing", content_type="generic", lane="Other"),
            _rule(10, "path_prefix", "/pricing", content_type="pricing", lane="Launch"),
            _rule(30, "contains", "/pri", content_type="partial", lane="Ops"),
        ]
        for seed in range(4):
            shuffled = list(rules)
            random.Random(seed).shuffle(shuffled)
            c = classify_event("/pricing", "page_view", shuffled)
            assert c.content_type == "pricing"
            assert c.lane == "Launch"

    def test_event_name_must_match(self):
        rules = [_rule(1, "contains", "/pricing", event_name="cta_click", content_type="pricing")]
        assert classify_event("/pricing", "page_view", rules) == UNCLASSIFIED

    def test_wildcard_event_name(self):
        rules = [_rule(1, "contains", "/security", event_name="*", content_type="security", lane="Trust")]
        c = classify_event("/trust/security", "cta_click", rules)
        assert c.content_type == "security"
        assert c.lane == "Trust"

    def test_malformed_regex_skipped(self):
        rules = [
            _rule(1, "path_regex", "[unclosed", content_type="broken"),
            _rule(2, "path_prefix", "/pricing", content_type="pricing"),
        ]
        assert classify_event("/pricing", "page_view", rules).content_type == "pricing"

    def test_disabled_rule_ignored(self):
        rules = [
            _rule(1, "path_prefix", "/pricing", content_type="disabled", enabled=False),
            _rule(2, "path_prefix", "/pricing", content_type="pricing"),
        ]
        assert classify_event("/pricing", "page_view", rules).content_type == "pricing"

    def test_no_match_is_other(self):
        c = classify_event("/careers", "page_view", [_rule(1, "path_prefix", "/pricing", content_type="pricing")])
        assert c.content_type == "other"
        assert c.lane == "other"
        assert c.weight_override is None

    def test_missing_rule_values_default_to_other(self):
        c = classify_event("/pricing", "page_view", [_rule(1, "path_prefix", "/pricing", weight_override=40)])
        assert c.content_type == "other"
        assert c.lane == "other"
        assert c.weight_override == 40
