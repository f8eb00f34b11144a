"""
005 — Seed program intelligence rules

Agency blacklist, suppression rules for non-space facilities/maintenance
work and positive rules per service lane.

Revision ID: 005
Create Date: 2026-10-02
"""
import uuid

from alembic import op
import sqlalchemy as sa

revision = "005"
down_revision = "004"
branch_labels = None
depends_on = None

AGENCY_BLACKLIST = [
    ("VETERANS AFFAIRS", "VA contracts typically non-space (healthcare, benefits, facilities)"),
]

# (priority, match_field, match_value, suppress_reason) — all "contains"
SUPPRESSION_RULES = [
    (100, "*", "HVAC|air conditioner|plumbing|janitorial|roof|generator maintenance|actuator|valve|"
               "starter motor|UPS|fuel card|office supplies|medical coding|claims review",
     "Non-space facilities/maintenance"),
    (90, "title", "HVAC", "HVAC"),
    (90, "title", "plumbing", "Plumbing"),
    (90, "title", "actuator", "Generic actuator"),
    (90, "title", "janitorial", "Janitorial"),
    (90, "title", "office supplies", "Office supplies"),
    (90, "title", "medical coding", "Medical coding"),
    (90, "title", "claims review", "Claims review"),
]

# (priority, match_value, service_lane, topic, add_score) — all "*" / "contains"
POSITIVE_RULES = [
    (100, "hosted payload|payload integration|payload accommodation|rideshare payload|secondary payload",
     "hosted_payload", "Hosted Payload", 40),
    (100, "launch services|launch vehicle|rideshare|payload to orbit|launch integration",
     "launch", "Launch", 40),
    (100, "ground station|TT&C|telemetry tracking|antenna|downlink|uplink|X-band|S-band|Ka-band",
     "ground_station", "Ground Station", 35),
    (100, "orbital transfer|space tug|OTV|rendezvous|proximity ops|station-keeping",
     "relocation", "Mobility/Relocation", 40),
    (100, "on-orbit servicing|inspection|rpo|life extension|debris removal|refueling",
     "isam", "ISAM", 40),
    (100, "reentry|return capsule|downmass|in-space manufacturing return",
     "reentry_return", "Return", 35),
    (80, "spacecraft", "launch", "Spacecraft", 25),
    (80, "satellite", "launch", "Satellite", 25),
    (80, "space", "launch", "Space", 20),
    (80, "orbital", "launch", "Orbital", 25),
    (80, "LEO|GEO|MEO", "launch", "Orbit", 20),
]

blacklist = sa.table(
    "abm_agency_blacklist",
    sa.column("id", sa.String), sa.column("agency_pattern", sa.String),
    sa.column("enabled", sa.Boolean), sa.column("notes", sa.String),
)
suppression_rules = sa.table(
    "abm_program_suppression_rules",
    sa.column("id", sa.String), sa.column("enabled", sa.Boolean), sa.column("priority", sa.Integer),
    sa.column("match_field", sa.String), sa.column("match_type", sa.String),
    sa.column("match_value", sa.Text), sa.column("suppress_reason", sa.String),
)
program_rules = sa.table(
    "abm_program_rules",
    sa.column("id", sa.String), sa.column("enabled", sa.Boolean), sa.column("priority", sa.Integer),
    sa.column("match_field", sa.String), sa.column("match_type", sa.String),
    sa.column("match_value", sa.Text), sa.column("service_lane", sa.String),
    sa.column("topic", sa.String), sa.column("add_score", sa.Integer),
)


def upgrade() -> None:
    op.bulk_insert(blacklist, [
        {"id": str(uuid.uuid4()), "agency_pattern": pattern, "enabled": True, "notes": notes}
        for pattern, notes in AGENCY_BLACKLIST
    ])
    op.bulk_insert(suppression_rules, [
        {
            "id": str(uuid.uuid4()),
            "enabled": True,
            "priority": priority,
            "match_field": field,
            "match_type": "contains",
            "match_value": value,
            "suppress_reason": reason,
        }
        for priority, field, value, reason in SUPPRESSION_RULES
    ])
    op.bulk_insert(program_rules, [
        {
            "id": str(uuid.uuid4()),
            "enabled": True,
            "priority": priority,
            "match_field": "*",
            "match_type": "contains",
            "match_value": value,
            "service_lane": lane,
            "topic": topic,
            "add_score": add_score,
        }
        for priority, value, lane, topic, add_score in POSITIVE_RULES
    ])


def downgrade() -> None:
    op.execute("DELETE FROM abm_program_rules")
    op.execute("DELETE FROM abm_program_suppression_rules")
    op.execute("DELETE FROM abm_agency_blacklist")
