"""
001 — Scoring registry tables

abm_score_configs, abm_score_weights, abm_event_rules,
abm_prompt_templates, abm_admin_audit_log

Revision ID: 001
Create Date: 2026-10-01
"""
from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "abm_score_configs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="draft"),
        sa.Column("lambda_decay", sa.Float, nullable=False, server_default="0.1"),
        sa.Column("normalize_k", sa.Integer, nullable=False, server_default="80"),
        sa.Column("cold_max", sa.Integer, nullable=False, server_default="34"),
        sa.Column("warm_max", sa.Integer, nullable=False, server_default="69"),
        sa.Column("surge_surging_min", sa.Float, nullable=False, server_default="1.5"),
        sa.Column("surge_exploding_min", sa.Float, nullable=False, server_default="2.5"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("cold_max < warm_max", name="ck_score_config_stage_order"),
        sa.CheckConstraint("surge_surging_min < surge_exploding_min", name="ck_score_config_surge_order"),
    )
    op.create_index("ix_score_configs_status", "abm_score_configs", ["status"])

    op.create_table(
        "abm_score_weights",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "score_config_id", sa.String(36),
            sa.ForeignKey("abm_score_configs.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("event_name", sa.String(64), nullable=False),
        sa.Column("content_type", sa.String(64), nullable=True),
        sa.Column("cta_id", sa.String(64), nullable=True),
        sa.Column("weight", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_abm_score_weights_score_config_id", "abm_score_weights", ["score_config_id"])

    op.create_table(
        "abm_event_rules",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("priority", sa.Integer, nullable=False, server_default="100"),
        sa.Column("event_name", sa.String(64), nullable=False),
        sa.Column("match_type", sa.String(32), nullable=False),
        sa.Column("match_value", sa.String(512), nullable=False),
        sa.Column("content_type", sa.String(64), nullable=True),
        sa.Column("lane", sa.String(64), nullable=True),
        sa.Column("weight_override", sa.Integer, nullable=True),
        sa.Column("evidence_template", sa.Text, nullable=True),
        sa.Column("score_config_id", sa.String(36), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_event_rules_config_enabled_priority", "abm_event_rules",
        ["score_config_id", "enabled", "priority"],
    )

    op.create_table(
        "abm_prompt_templates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("lane", sa.String(64), nullable=False, server_default="*"),
        sa.Column("persona", sa.String(32), nullable=False, server_default="*"),
        sa.Column("intent_stage", sa.String(32), nullable=False, server_default="*"),
        sa.Column("version", sa.String(32), nullable=True),
        sa.Column("system_prompt", sa.Text, nullable=False),
        sa.Column("user_prompt_template", sa.Text, nullable=False),
        sa.Column("max_words", sa.Integer, nullable=False, server_default="180"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_prompt_templates_lookup", "abm_prompt_templates",
        ["lane", "persona", "intent_stage", "enabled"],
    )

    op.create_table(
        "abm_admin_audit_log",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("entity_type", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=True),
        sa.Column("changes", sa.JSON, nullable=True),
        sa.Column("actor", sa.String(100), nullable=False, server_default="system"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_abm_admin_audit_log_created_at", "abm_admin_audit_log", ["created_at"])


def downgrade() -> None:
    op.drop_table("abm_admin_audit_log")
    op.drop_table("abm_prompt_templates")
    op.drop_table("abm_event_rules")
    op.drop_table("abm_score_weights")
    op.drop_table("abm_score_configs")
