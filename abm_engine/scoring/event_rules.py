"""
Event classifier — maps (path, event_name) to (content_type, lane, weight_override).

Rules are evaluated by ascending priority (lower number wins); the first
eligible rule whose pattern matches decides. A rule is eligible when its
event_name equals the event's or contains the "*" wildcard marker.
Matching is case-insensitive on both the path and the match value.

    path_prefix   path starts with value
    contains      value is a substring of path
    equals        path == value
    path_regex    regex search against the path

A malformed path_regex never aborts classification: the rule is logged and
treated as non-matching.
"""
from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache
from typing import Optional

import structlog

from abm_engine.core.errors import MalformedRule
from abm_engine.scoring.types import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_LANE,
    EventClassification,
    EventRuleData,
)

logger = structlog.get_logger()

WILDCARD = "*"

MATCH_PATH_PREFIX = "path_prefix"
MATCH_CONTAINS = "contains"
MATCH_EQUALS = "equals"
MATCH_PATH_REGEX = "path_regex"
MATCH_TYPES = (MATCH_PATH_PREFIX, MATCH_CONTAINS, MATCH_EQUALS, MATCH_PATH_REGEX)

UNCLASSIFIED = EventClassification()


@lru_cache(maxsize=512)
def _compile(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


def _is_eligible(rule: EventRuleData, event_name: str) -> bool:
    return rule.event_name == event_name or WILDCARD in (rule.event_name or "")


def rule_matches(rule: EventRuleData, path: Optional[str]) -> bool:
    """Raises MalformedRule for an uncompilable path_regex."""
    value = (rule.match_value or "").lower()
    p = (path or "").lower()

    if rule.match_type == MATCH_PATH_PREFIX:
        return p.startswith(value)
    if rule.match_type == MATCH_CONTAINS:
        return value in p
    if rule.match_type == MATCH_EQUALS:
        return p == value
    if rule.match_type == MATCH_PATH_REGEX:
        try:
            return _compile(rule.match_value or "").search(p) is not None
        except re.error as e:
            raise MalformedRule(rule.id, rule.match_value, str(e)) from e
    return False


def ordered_rules(rules: Iterable[EventRuleData]) -> list[EventRuleData]:
    """Ascending priority; equal priorities keep their given order."""
    return sorted((r for r in rules if r.enabled), key=lambda r: r.priority)


def classify_event(
    path: Optional[str],
    event_name: str,
    rules: Iterable[EventRuleData],
) -> EventClassification:
    for rule in ordered_rules(rules):
        if not _is_eligible(rule, event_name):
            continue
        try:
            matched = rule_matches(rule, path)
        except MalformedRule as e:
            logger.warning("event_rule_malformed", rule_id=e.rule_id, pattern=e.pattern, error=e.reason)
            continue
        if matched:
            return EventClassification(
                content_type=rule.content_type or DEFAULT_CONTENT_TYPE,
                lane=rule.lane or DEFAULT_LANE,
                weight_override=rule.weight_override,
            )
    return UNCLASSIFIED
