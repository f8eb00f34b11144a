"""
003 — Program classification rules: positive rules, suppression rules,
agency blacklist

Revision ID: 003
Create Date: 2026-10-02
"""
from alembic import op
import sqlalchemy as sa

revision = "003"
down_revision = "002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "abm_program_rules",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("match_field", sa.String(64), nullable=True),
        sa.Column("match_type", sa.String(32), nullable=True),
        sa.Column("match_value", sa.Text, nullable=True),
        sa.Column("service_lane", sa.String(64), nullable=True),
        sa.Column("topic", sa.String(128), nullable=True),
        sa.Column("add_score", sa.Integer, nullable=False, server_default="20"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_program_rules_enabled_priority", "abm_program_rules", ["enabled", "priority"])

    op.create_table(
        "abm_program_suppression_rules",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("match_field", sa.String(64), nullable=True),
        sa.Column("match_type", sa.String(32), nullable=True),
        sa.Column("match_value", sa.Text, nullable=True),
        sa.Column("suppress_reason", sa.String(255), nullable=True),
        sa.Column("suppress_score_threshold", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_suppression_rules_enabled_priority", "abm_program_suppression_rules", ["enabled", "priority"],
    )

    op.create_table(
        "abm_agency_blacklist",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("agency_pattern", sa.String(255), nullable=False),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("notes", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_abm_agency_blacklist_enabled", "abm_agency_blacklist", ["enabled"])


def downgrade() -> None:
    op.drop_table("abm_agency_blacklist")
    op.drop_table("abm_program_suppression_rules")
    op.drop_table("abm_program_rules")
