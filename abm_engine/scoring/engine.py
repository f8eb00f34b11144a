"""
Account Intent Scoring Engine

Orchestrates, for one account's event set:
  1. Weight resolution (rule override, else weight table)
  2. Window split by event age (7d / prev 7d / 30d)
  3. Decayed raw sums + per-lane sums
  4. Normalised 0-100 score → stage
  5. Week-over-week surge ratio → surge level
  6. Top lane + key event counts + why-hot / evidence strings

Pure: no I/O, no clock reads. Both the batch and the real-time recompute
call this with the same inputs and get the same snapshot fields.
"""
from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from abm_engine.scoring import decay, evidence
from abm_engine.scoring.normalize import classify_stage, classify_surge, normalize
from abm_engine.scoring.types import (
    IntentScoreResult,
    RawEvent,
    ScoreConfigData,
    WeightedEvent,
)
from abm_engine.scoring.weights import WeightTable, resolve_weight


def _canonical_order(events: Iterable[RawEvent]) -> list[RawEvent]:
    # Float sums depend on summation order; fix it so any source order
    # produces bit-identical aggregates.
    return sorted(
        events,
        key=lambda e: (
            e.occurred_at.timestamp(),
            e.event_name,
            e.path or "",
            e.content_type or "",
            e.lane or "",
            e.cta_id or "",
            e.distinct_visitor_id or "",
        ),
    )


def weigh_events(
    events: Iterable[RawEvent],
    weights: WeightTable,
    now: datetime,
) -> list[WeightedEvent]:
    weighted = []
    for e in _canonical_order(events):
        if e.weight_override is not None:
            w = e.weight_override
        else:
            w = resolve_weight(weights, e.event_name, e.content_type, e.cta_id)
        weighted.append(WeightedEvent(event=e, weight=float(w), age_days=e.age_days(now)))
    return weighted


def compute_intent_score(
    events: Iterable[RawEvent],
    config: ScoreConfigData,
    weights: WeightTable,
    now: datetime,
    rules: Optional[Iterable] = None,
) -> IntentScoreResult:
    """
    Main scoring entry point for one account.

    `rules` are only consulted for evidence templates; events must already
    carry their content_type / lane.
    """
    events = list(events)

    # ── Step 1-2: weights + windows ──
    weighted = weigh_events(events, weights, now)
    windows = decay.split_windows(weighted)

    # ── Step 3: decayed sums ──
    raw = decay.compute_raw_scores(windows, config.lambda_decay)
    lanes_7d, lanes_30d = decay.compute_lane_scores(windows, config.lambda_decay)

    # ── Step 4-5: classification axes ──
    intent_score = normalize(raw.raw_30d, config.normalize_k)
    stage = classify_stage(intent_score, config)
    ratio, surge_level = classify_surge(raw.raw_7d, raw.raw_prev_7d, config)

    # ── Step 6: lane + evidence ──
    events_7d = [w.event for w in windows.events_7d]
    key_counts = evidence.count_key_events(events_7d)

    return IntentScoreResult(
        raw_7d=raw.raw_7d,
        raw_prev_7d=raw.raw_prev_7d,
        raw_30d=raw.raw_30d,
        intent_score=intent_score,
        intent_stage=stage.value,
        surge_ratio=ratio,
        surge_level=surge_level.value,
        top_lane=evidence.top_lane(lanes_7d),
        lane_scores_7d=lanes_7d,
        lane_scores_30d=lanes_30d,
        key_event_counts=key_counts,
        unique_visitors_7d=evidence.count_unique_visitors(events_7d),
        why_hot=tuple(evidence.build_why_hot(key_counts)),
        evidence=tuple(evidence.build_evidence_strings(key_counts, rules or ())),
        last_seen_at=max((e.occurred_at for e in events), default=None),
    )
