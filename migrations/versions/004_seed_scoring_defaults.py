"""
004 — Seed the default_v1 scoring config

Active score config, its event weights, the URL → content type / lane event
rules and the catch-all narrative template. Baseline that can be adjusted
through the admin API.

Revision ID: 004
Create Date: 2026-10-02
"""
import uuid

from alembic import op
import sqlalchemy as sa

revision = "004"
down_revision = "003"
branch_labels = None
depends_on = None

DEFAULT_CONFIG_NAME = "default_v1"

PAGE_VIEW_WEIGHTS = {
    "pricing": 25,
    "request_reservation": 30,
    "integrations": 18,
    "security": 18,
    "case_study": 12,
    "service_page": 10,
    "directory_page": 8,
    "docs": 6,
    "blog": 3,
    "comparison": 15,
    "other": 1,
}

CTA_WEIGHTS = {
    "request_reservation": 25,
    "contact_sales": 20,
}

FORM_WEIGHTS = {
    "form_started": 20,
    "form_submitted": 60,
}

# (match_type, match_value, content_type, lane, priority) — all for page_view
EVENT_RULES = [
    # ── Service lanes ──
    ("path_prefix", "/services/launch", "service_page", "Launch", 1),
    ("path_prefix", "/services/relocation", "service_page", "Orbit Transfer (On-Orbit)", 1),
    ("path_prefix", "/relocation", "service_page", "Orbit Transfer (On-Orbit)", 1),
    ("contains", "fuel", "service_page", "Refuel", 2),
    ("contains", "refuel", "service_page", "Refuel", 2),
    ("contains", "docking", "service_page", "Docking", 2),
    ("contains", "rendezvous", "service_page", "Docking", 2),
    ("contains", "isam", "service_page", "Upgrade", 2),
    ("contains", "upgrade", "service_page", "Upgrade", 2),
    ("contains", "servicing", "service_page", "Upgrade", 2),
    ("path_prefix", "/news/deorbit-as-a-service", "service_page", "Disposal", 1),
    ("contains", "deorbit", "service_page", "Disposal", 2),
    ("contains", "reentry", "service_page", "Disposal", 2),
    ("contains", "disposal", "service_page", "Disposal", 2),
    ("contains", "graveyard", "service_page", "Disposal", 2),
    # ── Ground station pages ──
    ("path_prefix", "/ground-station-pricing", "pricing", "Other", 5),
    ("path_prefix", "/optical-ground-stations-lasercom", "service_page", "Other", 5),
    ("path_prefix", "/leop-ground-station-support", "service_page", "Other", 5),
    ("path_prefix", "/ground-station-api-pass-orchestration", "service_page", "Other", 5),
    ("path_prefix", "/s-band-ttc-services", "service_page", "Other", 5),
    ("path_prefix", "/x-band-downlink-services", "service_page", "Other", 5),
    ("path_prefix", "/satellite-contact-scheduling", "service_page", "Other", 5),
    ("path_prefix", "/direct-to-cloud-downlink", "service_page", "Other", 5),
    ("path_prefix", "/mission-operations-support", "service_page", "Other", 5),
    ("path_prefix", "/on-demand-vs-reserved-satellite-contacts", "service_page", "Other", 5),
    ("path_prefix", "/ground-station", "service_page", "Other", 6),
    # ── Generic content types ──
    ("path_prefix", "/pricing", "pricing", "Other", 10),
    ("path_prefix", "/request-reservation", "request_reservation", "Other", 15),
    ("path_prefix", "/services", "service_page", "Other", 20),
    ("path_prefix", "/security", "security", "Other", 20),
    ("path_prefix", "/integrations", "integrations", "Other", 20),
    ("path_prefix", "/request", "request_reservation", "Other", 25),
    ("contains", "case-study", "case_study", "Other", 30),
    ("contains", "comparison", "comparison", "Other", 35),
    ("path_prefix", "/docs", "docs", "Other", 40),
    ("path_prefix", "/blog", "blog", "Other", 50),
]

SYSTEM_PROMPT = (
    "You are an elite B2B ABM strategist. Generate concise, actionable account summaries "
    "for sales and marketing. Be specific about why the account is hot, what they likely "
    "care about, and what to do next. Do not invent facts. If something is uncertain, "
    "label it as a hypothesis."
)

USER_PROMPT_TEMPLATE = """Create an "Account Brief" for the account in the JSON below.
Output exactly in this structure:

Why they're hot (3 bullets) - cite observed behaviors only
Likely buying stage - one sentence
Primary service interest - one sentence referencing lane scores
Recommended next action (Sales) - 3 bullets
Recommended next action (Marketing) - 3 bullets
Personalization angle - 2 bullets with suggested messaging themes
Risks / unknowns - 2 bullets

Keep it under {{MAX_WORDS}} words.
JSON: {{JSON_HERE}}"""

score_configs = sa.table(
    "abm_score_configs",
    sa.column("id", sa.String), sa.column("name", sa.String), sa.column("status", sa.String),
    sa.column("lambda_decay", sa.Float), sa.column("normalize_k", sa.Integer),
    sa.column("cold_max", sa.Integer), sa.column("warm_max", sa.Integer),
    sa.column("surge_surging_min", sa.Float), sa.column("surge_exploding_min", sa.Float),
)
score_weights = sa.table(
    "abm_score_weights",
    sa.column("id", sa.String), sa.column("score_config_id", sa.String),
    sa.column("event_name", sa.String), sa.column("content_type", sa.String),
    sa.column("cta_id", sa.String), sa.column("weight", sa.Integer),
)
event_rules = sa.table(
    "abm_event_rules",
    sa.column("id", sa.String), sa.column("enabled", sa.Boolean), sa.column("priority", sa.Integer),
    sa.column("event_name", sa.String), sa.column("match_type", sa.String),
    sa.column("match_value", sa.String), sa.column("content_type", sa.String), sa.column("lane", sa.String),
)
prompt_templates = sa.table(
    "abm_prompt_templates",
    sa.column("id", sa.String), sa.column("enabled", sa.Boolean),
    sa.column("lane", sa.String), sa.column("persona", sa.String), sa.column("intent_stage", sa.String),
    sa.column("version", sa.String), sa.column("system_prompt", sa.Text),
    sa.column("user_prompt_template", sa.Text), sa.column("max_words", sa.Integer),
)


def _id() -> str:
    return str(uuid.uuid4())


def upgrade() -> None:
    config_id = _id()
    op.bulk_insert(score_configs, [{
        "id": config_id,
        "name": DEFAULT_CONFIG_NAME,
        "status": "active",
        "lambda_decay": 0.1,
        "normalize_k": 80,
        "cold_max": 34,
        "warm_max": 69,
        "surge_surging_min": 1.5,
        "surge_exploding_min": 2.5,
    }])

    # ── Weights ──
    weights = []
    for content_type, weight in PAGE_VIEW_WEIGHTS.items():
        weights.append({"event_name": "page_view", "content_type": content_type, "cta_id": None, "weight": weight})
    for cta_id, weight in CTA_WEIGHTS.items():
        weights.append({"event_name": "cta_click", "content_type": None, "cta_id": cta_id, "weight": weight})
    for event_name, weight in FORM_WEIGHTS.items():
        weights.append({"event_name": event_name, "content_type": None, "cta_id": None, "weight": weight})
    op.bulk_insert(score_weights, [{"id": _id(), "score_config_id": config_id, **w} for w in weights])

    # ── Event rules (global) ──
    op.bulk_insert(event_rules, [
        {
            "id": _id(),
            "enabled": True,
            "priority": priority,
            "event_name": "page_view",
            "match_type": match_type,
            "match_value": match_value,
            "content_type": content_type,
            "lane": lane,
        }
        for match_type, match_value, content_type, lane, priority in EVENT_RULES
    ])

    # ── Narrative template ──
    op.bulk_insert(prompt_templates, [{
        "id": _id(),
        "enabled": True,
        "lane": "*",
        "persona": "*",
        "intent_stage": "*",
        "version": "1.0",
        "system_prompt": SYSTEM_PROMPT,
        "user_prompt_template": USER_PROMPT_TEMPLATE,
        "max_words": 180,
    }])


def downgrade() -> None:
    op.execute("DELETE FROM abm_prompt_templates WHERE lane = '*' AND persona = '*' AND intent_stage = '*'")
    op.execute("DELETE FROM abm_event_rules WHERE score_config_id IS NULL")
    op.execute(
        f"DELETE FROM abm_score_configs WHERE name = '{DEFAULT_CONFIG_NAME}'"
    )
