"""
Score normalisation and the two independent classification axes.

    intent_score = round(100 · (1 − exp(−raw_30d / k)))        k default 80

    Stage:   score ≤ cold_max → Cold
             score ≤ warm_max → Warm
             else             → Hot

    Surge:   ratio = (raw_7d + 5) / (raw_prev_7d + 5)
             ratio ≥ exploding_min → Exploding
             ratio ≥ surging_min   → Surging
             else                  → Normal

Stage and surge are independent: a Cold account can be Exploding.
"""
from __future__ import annotations

import math
from typing import Optional

from abm_engine.schemas.intent import IntentStage, SurgeLevel
from abm_engine.scoring.types import ScoreConfigData

DEFAULT_NORMALIZE_K = 80.0
SURGE_SMOOTHING = 5.0


def round_half_away_from_zero(value: float) -> int:
    # builtin round() is banker's rounding; scores use the conventional rule
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def normalize(raw_30d: float, normalize_k: Optional[float] = DEFAULT_NORMALIZE_K) -> int:
    k = normalize_k or DEFAULT_NORMALIZE_K
    return round_half_away_from_zero(100 * (1 - math.exp(-raw_30d / k)))


def classify_stage(intent_score: int, config: Optional[ScoreConfigData] = None) -> IntentStage:
    config = config or ScoreConfigData()
    if intent_score <= config.cold_max:
        return IntentStage.COLD
    if intent_score <= config.warm_max:
        return IntentStage.WARM
    return IntentStage.HOT


def surge_ratio(raw_7d: float, raw_prev_7d: float) -> float:
    return (raw_7d + SURGE_SMOOTHING) / (raw_prev_7d + SURGE_SMOOTHING)


def classify_surge(
    raw_7d: float,
    raw_prev_7d: float,
    config: Optional[ScoreConfigData] = None,
) -> tuple[float, SurgeLevel]:
    config = config or ScoreConfigData()
    ratio = surge_ratio(raw_7d, raw_prev_7d)
    if ratio >= config.surge_exploding_min:
        return ratio, SurgeLevel.EXPLODING
    if ratio >= config.surge_surging_min:
        return ratio, SurgeLevel.SURGING
    return ratio, SurgeLevel.NORMAL
