"""
Accounts, their raw intent signals and the daily intent snapshots.

daily_account_intent is unique per (prospect_company_id, date); a recompute
replaces the day's row in full. The score columns on prospect_companies
mirror the latest snapshot and are a cache only.
"""
from sqlalchemy import (
    Column, Date, DateTime, Float, ForeignKey, Index, Integer, JSON, String, UniqueConstraint,
)

from abm_engine.models.database import Base, new_uuid, utcnow


class ProspectCompany(Base):
    __tablename__ = "prospect_companies"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=True)
    domain = Column(String(255), nullable=False, unique=True, index=True)

    # ── Projection of the latest snapshot ──
    intent_score = Column(Integer, nullable=False, default=0)
    intent_stage = Column(String(32), nullable=True)
    surge_level = Column(String(32), nullable=True)
    top_lane = Column(String(64), nullable=True)
    score_7d_raw = Column(Float, nullable=True)
    score_30d_raw = Column(Float, nullable=True)
    intent_evidence_7d = Column(JSON, nullable=True)
    last_seen_at = Column(DateTime(timezone=True), nullable=True)
    score_updated_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<ProspectCompany {self.domain} score={self.intent_score}>"


class IntentSignal(Base):
    """Locally stored behavioural signal (webhook ingest, procurement matches)."""
    __tablename__ = "intent_signals"
    __table_args__ = (Index("ix_intent_signals_company_occurred", "prospect_company_id", "occurred_at"),)

    id = Column(String(36), primary_key=True, default=new_uuid)
    prospect_company_id = Column(
        String(36), ForeignKey("prospect_companies.id", ondelete="CASCADE"), nullable=False,
    )
    signal_type = Column(String(64), nullable=True)    # page_view, cta_click, form_submitted, ...
    topic = Column(String(128), nullable=True)         # content type
    service_lane = Column(String(64), nullable=True)
    weight = Column(Integer, nullable=True, default=1)
    occurred_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class DailyAccountIntent(Base):
    __tablename__ = "daily_account_intent"
    __table_args__ = (
        UniqueConstraint("prospect_company_id", "date", name="dai_company_date_unique"),
        Index("dai_dashboard_idx", "date", "intent_stage", "top_lane", "surge_level"),
    )

    id = Column(String(36), primary_key=True, default=new_uuid)
    prospect_company_id = Column(
        String(36), ForeignKey("prospect_companies.id", ondelete="CASCADE"), nullable=False,
    )
    date = Column(Date, nullable=False)
    score_config_id = Column(String(36), nullable=True)

    # ── Decayed aggregates ──
    raw_score_7d = Column(Float, nullable=True)
    raw_score_prev_7d = Column(Float, nullable=True)
    raw_score_30d = Column(Float, nullable=True)

    # ── Classification ──
    intent_score = Column(Integer, nullable=True)
    intent_stage = Column(String(32), nullable=True)
    surge_ratio = Column(Float, nullable=True)
    surge_level = Column(String(32), nullable=True)
    top_lane = Column(String(64), nullable=True)

    # ── Breakdown ──
    unique_people_7d = Column(Integer, nullable=True)
    lane_scores_7d_json = Column(JSON, nullable=True)
    lane_scores_30d_json = Column(JSON, nullable=True)
    key_events_7d_json = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
