"""
Exponential decay aggregation.

    decay(a)        = exp(-λ · a)
    contribution    = w · decay(a)

Three rolling windows, decided once per pass from each event's age:

    7d       0 ≤ a < 7
    prev_7d  7 ≤ a < 14
    30d      0 ≤ a < 30

Every sum here is pointwise over independent events, so recomputing the
same event set always yields the same aggregates.
"""
from __future__ import annotations

import math
from collections.abc import Iterable

from abm_engine.scoring.types import EventWindows, RawScores, WeightedEvent

DEFAULT_LAMBDA = 0.1

WINDOW_7D = 7.0
WINDOW_14D = 14.0
WINDOW_30D = 30.0


def decay(age_days: float, lambda_decay: float = DEFAULT_LAMBDA) -> float:
    return math.exp(-lambda_decay * age_days)


def contribution(weight: float, age_days: float, lambda_decay: float = DEFAULT_LAMBDA) -> float:
    return weight * decay(age_days, lambda_decay)


def split_windows(events: Iterable[WeightedEvent]) -> EventWindows:
    e7, prev7, e30 = [], [], []
    for ev in events:
        a = ev.age_days
        if a < WINDOW_7D:
            e7.append(ev)
        elif a < WINDOW_14D:
            prev7.append(ev)
        if a < WINDOW_30D:
            e30.append(ev)
    return EventWindows(tuple(e7), tuple(prev7), tuple(e30))


def decayed_sum(events: Iterable[WeightedEvent], lambda_decay: float = DEFAULT_LAMBDA) -> float:
    return sum(contribution(e.weight, e.age_days, lambda_decay) for e in events)


def compute_raw_scores(windows: EventWindows, lambda_decay: float = DEFAULT_LAMBDA) -> RawScores:
    return RawScores(
        raw_7d=decayed_sum(windows.events_7d, lambda_decay),
        raw_prev_7d=decayed_sum(windows.events_prev_7d, lambda_decay),
        raw_30d=decayed_sum(windows.events_30d, lambda_decay),
    )


def lane_scores(events: Iterable[WeightedEvent], lambda_decay: float = DEFAULT_LAMBDA) -> dict[str, float]:
    lanes: dict[str, float] = {}
    for e in events:
        lanes[e.lane] = lanes.get(e.lane, 0.0) + contribution(e.weight, e.age_days, lambda_decay)
    return lanes


def compute_lane_scores(
    windows: EventWindows,
    lambda_decay: float = DEFAULT_LAMBDA,
) -> tuple[dict[str, float], dict[str, float]]:
    """Returns (lane_scores_7d, lane_scores_30d)."""
    return (
        lane_scores(windows.events_7d, lambda_decay),
        lane_scores(windows.events_30d, lambda_decay),
    )
