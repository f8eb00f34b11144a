"""
002 — Accounts, intent signals and daily intent snapshots

Revision ID: 002
Create Date: 2026-10-01
"""
from alembic import op
import sqlalchemy as sa

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "prospect_companies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("domain", sa.String(255), nullable=False),

        sa.Column("intent_score", sa.Integer, nullable=False, server_default="0"),
        sa.Column("intent_stage", sa.String(32), nullable=True),
        sa.Column("surge_level", sa.String(32), nullable=True),
        sa.Column("top_lane", sa.String(64), nullable=True),
        sa.Column("score_7d_raw", sa.Float, nullable=True),
        sa.Column("score_30d_raw", sa.Float, nullable=True),
        sa.Column("intent_evidence_7d", sa.JSON, nullable=True),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("score_updated_at", sa.DateTime(timezone=True), nullable=True),

        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_prospect_companies_domain", "prospect_companies", ["domain"], unique=True)

    op.create_table(
        "intent_signals",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "prospect_company_id", sa.String(36),
            sa.ForeignKey("prospect_companies.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("signal_type", sa.String(64), nullable=True),
        sa.Column("topic", sa.String(128), nullable=True),
        sa.Column("service_lane", sa.String(64), nullable=True),
        sa.Column("weight", sa.Integer, nullable=True, server_default="1"),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_intent_signals_occurred_at", "intent_signals", ["occurred_at"])
    op.create_index(
        "ix_intent_signals_company_occurred", "intent_signals",
        ["prospect_company_id", "occurred_at"],
    )

    op.create_table(
        "daily_account_intent",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "prospect_company_id", sa.String(36),
            sa.ForeignKey("prospect_companies.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("score_config_id", sa.String(36), nullable=True),

        sa.Column("raw_score_7d", sa.Float, nullable=True),
        sa.Column("raw_score_prev_7d", sa.Float, nullable=True),
        sa.Column("raw_score_30d", sa.Float, nullable=True),

        sa.Column("intent_score", sa.Integer, nullable=True),
        sa.Column("intent_stage", sa.String(32), nullable=True),
        sa.Column("surge_ratio", sa.Float, nullable=True),
        sa.Column("surge_level", sa.String(32), nullable=True),
        sa.Column("top_lane", sa.String(64), nullable=True),

        sa.Column("unique_people_7d", sa.Integer, nullable=True),
        sa.Column("lane_scores_7d_json", sa.JSON, nullable=True),
        sa.Column("lane_scores_30d_json", sa.JSON, nullable=True),
        sa.Column("key_events_7d_json", sa.JSON, nullable=True),

        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("prospect_company_id", "date", name="dai_company_date_unique"),
    )
    op.create_index(
        "dai_dashboard_idx", "daily_account_intent",
        ["date", "intent_stage", "top_lane", "surge_level"],
    )


def downgrade() -> None:
    op.drop_table("daily_account_intent")
    op.drop_table("intent_signals")
    op.drop_table("prospect_companies")
