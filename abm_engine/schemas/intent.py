"""
Account intent outputs.

The stage and surge enums are the values persisted on daily snapshots and
on the account projection; dashboards filter on them.
"""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class IntentStage(str, Enum):
    COLD = "Cold"
    WARM = "Warm"
    HOT = "Hot"


class SurgeLevel(str, Enum):
    NORMAL = "Normal"
    SURGING = "Surging"
    EXPLODING = "Exploding"


class RecomputeMode(str, Enum):
    BATCH = "batch"
    REALTIME = "realtime"


class SnapshotResponse(BaseModel):
    """One row of the daily account timeline."""
    account_id: str
    date: date
    score_config_id: Optional[str] = None
    raw_score_7d: float
    raw_score_prev_7d: float
    raw_score_30d: float
    intent_score: int = Field(ge=0, le=100)
    intent_stage: IntentStage
    surge_ratio: float
    surge_level: SurgeLevel
    top_lane: str
    lane_scores_7d: dict[str, float] = {}
    lane_scores_30d: dict[str, float] = {}
    key_event_counts: dict[str, int] = {}
    unique_visitors_7d: int = 0
    why_hot: list[str] = []


class AccountIntentResponse(BaseModel):
    account_id: str
    domain: str
    name: Optional[str] = None
    intent_score: int = 0
    intent_stage: Optional[IntentStage] = None
    surge_level: Optional[SurgeLevel] = None
    top_lane: Optional[str] = None
    intent_evidence_7d: list[str] = []
    why_hot: list[str] = []
    last_seen_at: Optional[datetime] = None
    score_updated_at: Optional[datetime] = None


class RecomputeAllRequest(BaseModel):
    range_days: Optional[int] = Field(None, description="Trailing window, clamped to [1, 365]")
    account_keys: Optional[list[str]] = Field(None, description="Optional allow-list of account domains")


class RecomputeSummary(BaseModel):
    mode: RecomputeMode
    status: str
    snapshot_date: date
    event_source: Optional[str] = None
    accounts_seen: int = 0
    accounts_processed: int = 0
    accounts_skipped: int = 0
    accounts_created: int = 0
    elapsed_seconds: float = 0.0
