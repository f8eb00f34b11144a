"""
Program classifier — rule-based relevance scoring for procurement records.

# ═══════════════════════════════════════════════════════════════════
# Evaluation order (first two short-circuit):
#   0. Agency blacklist   — substring on agency text → suppressed, score 0
#   1. Suppression rules  — DESC priority; first match suppresses
#   2. Positive rules     — DESC priority; every match adds its score
#   3. Clamp score to [0, 100], confidence = min(1, score / 80)
#
# A suppression rule with suppress_score_threshold only fires when the
# score accumulated so far is >= the threshold. Suppression runs before
# any positive rule, so the score at that point is always 0 and a
# positive threshold never fires.
# ═══════════════════════════════════════════════════════════════════
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

import structlog

from abm_engine.core.metrics import PROGRAM_CLASSIFICATIONS
from abm_engine.schemas.program import (
    CLASSIFICATION_VERSION,
    ClassificationResult,
    MatchReason,
    ProgramRecord,
)

logger = structlog.get_logger()

ALL_FIELDS = "*"
SEARCHABLE_FIELDS = ("title", "summary", "agency", "naics", "psc", "url")
# url is matched on its own only, never through "*"
COMBINED_FIELDS = ("title", "summary", "agency", "naics", "psc")

MATCH_CONTAINS = "contains"
MATCH_EQUALS = "equals"
MATCH_REGEX = "regex"

DEFAULT_ADD_SCORE = 20
CONFIDENCE_DIVISOR = 80
MAX_SCORE = 100


@dataclass(frozen=True)
class ProgramRuleData:
    id: Optional[str]
    priority: int = 0
    match_field: Optional[str] = None
    match_type: Optional[str] = None
    match_value: Optional[str] = None
    service_lane: Optional[str] = None
    topic: Optional[str] = None
    add_score: Optional[int] = DEFAULT_ADD_SCORE
    notes: Optional[str] = None


@dataclass(frozen=True)
class SuppressionRuleData:
    id: Optional[str]
    priority: int = 0
    match_field: Optional[str] = None
    match_type: Optional[str] = None
    match_value: Optional[str] = None
    suppress_reason: Optional[str] = None
    suppress_score_threshold: Optional[int] = None


@dataclass(frozen=True)
class BlacklistEntryData:
    id: Optional[str]
    agency_pattern: str
    notes: Optional[str] = None


# ── Field extraction ──

def _searchable(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return " ".join(
            json.dumps(v, separators=(",", ":")) if isinstance(v, (dict, list)) else str(v)
            for v in value
        )
    if isinstance(value, dict):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def program_fields(record: Union[ProgramRecord, Mapping[str, Any]]) -> dict[str, str]:
    """Lower-cased searchable text per field, plus the combined "*" field."""
    if isinstance(record, ProgramRecord):
        record = record.model_dump()
    fields = {name: _searchable(record.get(name)).lower() for name in SEARCHABLE_FIELDS}
    fields[ALL_FIELDS] = " ".join(fields[name] for name in COMBINED_FIELDS)
    return fields


# ── Matching ──

def text_matches(
    fields: Mapping[str, str],
    match_field: Optional[str],
    match_type: Optional[str],
    match_value: Optional[str],
    default_field: str = "title",
) -> bool:
    haystack = fields.get(match_field or default_field, "")
    if not haystack:
        return False
    value = (match_value or "").lower()
    if not value:
        return False

    if match_type == MATCH_EQUALS:
        return haystack == value
    if match_type == MATCH_REGEX:
        try:
            return re.search(match_value, haystack, re.IGNORECASE) is not None
        except re.error as exc:
            logger.warning("program_rule_malformed", pattern=match_value, error=str(exc))
            return False
    # contains, and any unknown type
    if "|" in value:
        return any(part.strip() and part.strip() in haystack for part in value.split("|"))
    return value in haystack


def _suppressed(reason: str, reason_type: str, rule_id: Optional[str]) -> ClassificationResult:
    return ClassificationResult(
        service_lane=None,
        topic=None,
        relevance_score=0,
        match_confidence=0.0,
        match_reasons=[MatchReason(type=reason_type, rule_id=rule_id, reason=reason)],
        suppressed=True,
        suppressed_reason=reason,
        classification_version=CLASSIFICATION_VERSION,
    )


def classify_program(
    record: Union[ProgramRecord, Mapping[str, Any]],
    blacklist: Iterable[BlacklistEntryData] = (),
    suppression_rules: Iterable[SuppressionRuleData] = (),
    positive_rules: Iterable[ProgramRuleData] = (),
) -> ClassificationResult:
    """
    Classify one program record against an already-loaded rule set.

    Rule lists must be enabled-only and sorted by descending priority
    (the ClassificationRegistry hands them over that way).
    """
    fields = program_fields(record)

    # ── 0. Agency blacklist ──
    agency = fields["agency"]
    for entry in blacklist:
        pattern = (entry.agency_pattern or "").lower()
        if pattern and pattern in agency:
            reason = entry.notes or f"Agency blacklisted: {entry.agency_pattern}"
            return _suppressed(reason, "agency_blacklist", entry.id)

    score = 0

    # ── 1. Suppression rules ──
    for rule in suppression_rules:
        if not text_matches(fields, rule.match_field, rule.match_type, rule.match_value, default_field=ALL_FIELDS):
            continue
        if rule.suppress_score_threshold is not None and score < rule.suppress_score_threshold:
            continue
        return _suppressed(rule.suppress_reason or "Matched suppression rule", "suppression", rule.id)

    # ── 2. Positive rules ──
    lane: Optional[str] = None
    topic: Optional[str] = None
    reasons: list[MatchReason] = []
    for rule in positive_rules:
        if not text_matches(fields, rule.match_field, rule.match_type, rule.match_value):
            continue
        add = DEFAULT_ADD_SCORE if rule.add_score is None else rule.add_score
        score += add
        if not lane or rule.priority > 0:
            lane = rule.service_lane or lane
            topic = rule.topic or topic
        label = rule.notes or f"Matched '{(rule.match_value or '')[:50]}'"
        reasons.append(MatchReason(type="rule", rule_id=rule.id, label=label, add_score=add, weight=add))

    # ── 3. Normalize ──
    score = min(MAX_SCORE, max(0, score))
    confidence = min(1.0, score / CONFIDENCE_DIVISOR)

    return ClassificationResult(
        service_lane=lane,
        topic=topic,
        relevance_score=score,
        match_confidence=confidence,
        match_reasons=reasons,
        suppressed=False,
        suppressed_reason=None,
        classification_version=CLASSIFICATION_VERSION,
    )


class ProgramClassifier:
    """Classifies records against the rules currently held by a ClassificationRegistry."""

    def __init__(self, registry):
        self.registry = registry

    async def classify(self, record: Union[ProgramRecord, Mapping[str, Any]]) -> ClassificationResult:
        result = classify_program(
            record,
            blacklist=await self.registry.get_blacklist(),
            suppression_rules=await self.registry.get_suppression_rules(),
            positive_rules=await self.registry.get_positive_rules(),
        )
        PROGRAM_CLASSIFICATIONS.labels(outcome=result.relevance_band).inc()
        logger.debug(
            "program_classified",
            relevance_score=result.relevance_score,
            service_lane=result.service_lane,
            suppressed=result.suppressed,
        )
        return result
