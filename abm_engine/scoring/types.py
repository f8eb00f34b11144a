"""
Immutable values flowing through the intent scoring pipeline.

Registry loaders convert ORM rows into these so a computation never sees
a config change half-way through a run.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from abm_engine.core.errors import InvalidScoreConfig

SECONDS_PER_DAY = 86_400.0
DEFAULT_LANE = "other"
DEFAULT_CONTENT_TYPE = "other"


@dataclass(frozen=True)
class ScoreConfigData:
    id: Optional[str] = None
    name: str = "default_v1"
    lambda_decay: float = 0.1
    normalize_k: float = 80.0
    cold_max: int = 34
    warm_max: int = 69
    surge_surging_min: float = 1.5
    surge_exploding_min: float = 2.5
    status: str = "active"

    def __post_init__(self):
        if not self.cold_max < self.warm_max:
            raise InvalidScoreConfig(
                f"cold_max ({self.cold_max}) must be below warm_max ({self.warm_max})"
            )
        if not self.surge_surging_min < self.surge_exploding_min:
            raise InvalidScoreConfig(
                f"surge_surging_min ({self.surge_surging_min}) must be below "
                f"surge_exploding_min ({self.surge_exploding_min})"
            )
        if self.normalize_k <= 0:
            raise InvalidScoreConfig(f"normalize_k must be positive, got {self.normalize_k}")


@dataclass(frozen=True)
class EventRuleData:
    id: Optional[str]
    priority: int
    event_name: str
    match_type: str
    match_value: str
    content_type: Optional[str] = None
    lane: Optional[str] = None
    weight_override: Optional[int] = None
    evidence_template: Optional[str] = None
    score_config_id: Optional[str] = None
    enabled: bool = True


@dataclass(frozen=True)
class EventClassification:
    content_type: str = DEFAULT_CONTENT_TYPE
    lane: str = DEFAULT_LANE
    weight_override: Optional[int] = None


def as_utc(ts: datetime) -> datetime:
    # sqlite hands back naive datetimes; everything is stored as UTC
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


@dataclass(frozen=True)
class RawEvent:
    event_name: str
    occurred_at: datetime
    path: str = ""
    content_type: Optional[str] = None
    lane: Optional[str] = None
    cta_id: Optional[str] = None
    distinct_visitor_id: Optional[str] = None
    weight_override: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "occurred_at", as_utc(self.occurred_at))

    def age_days(self, now: datetime) -> float:
        """Age at computation time. Future timestamps (clock skew) count as age 0."""
        age = (as_utc(now) - self.occurred_at).total_seconds() / SECONDS_PER_DAY
        return max(0.0, age)


@dataclass(frozen=True)
class WeightedEvent:
    """A RawEvent with its resolved weight and its age, fixed once per pass."""
    event: RawEvent
    weight: float
    age_days: float

    @property
    def lane(self) -> str:
        return self.event.lane or DEFAULT_LANE


@dataclass(frozen=True)
class EventWindows:
    events_7d: tuple[WeightedEvent, ...] = ()
    events_prev_7d: tuple[WeightedEvent, ...] = ()
    events_30d: tuple[WeightedEvent, ...] = ()


@dataclass(frozen=True)
class RawScores:
    raw_7d: float
    raw_prev_7d: float
    raw_30d: float


@dataclass(frozen=True)
class IntentScoreResult:
    raw_7d: float
    raw_prev_7d: float
    raw_30d: float
    intent_score: int
    intent_stage: str
    surge_ratio: float
    surge_level: str
    top_lane: str
    lane_scores_7d: dict[str, float] = field(default_factory=dict)
    lane_scores_30d: dict[str, float] = field(default_factory=dict)
    key_event_counts: dict[str, int] = field(default_factory=dict)
    unique_visitors_7d: int = 0
    why_hot: tuple[str, ...] = ()
    evidence: tuple[str, ...] = ()
    last_seen_at: Optional[datetime] = None

    def snapshot_fields(self) -> dict:
        """Columns of the daily snapshot row, in persistence naming."""
        return {
            "raw_score_7d": self.raw_7d,
            "raw_score_prev_7d": self.raw_prev_7d,
            "raw_score_30d": self.raw_30d,
            "intent_score": self.intent_score,
            "intent_stage": self.intent_stage,
            "surge_ratio": self.surge_ratio,
            "surge_level": self.surge_level,
            "top_lane": self.top_lane,
            "lane_scores_7d_json": dict(self.lane_scores_7d),
            "lane_scores_30d_json": dict(self.lane_scores_30d),
            "key_events_7d_json": dict(self.key_event_counts),
            "unique_people_7d": self.unique_visitors_7d,
        }
