"""
Scoring registry tables — everything an admin can recalibrate without a
deploy: score configs, event weights, event rules, narrative templates.
"""
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, JSON, String, Text

from abm_engine.models.database import Base, new_uuid, utcnow


class AbmScoreConfig(Base):
    __tablename__ = "abm_score_configs"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(64), nullable=False)
    status = Column(String(32), nullable=False, default="draft")  # draft | active | archived

    # ── Scoring parameters ──
    lambda_decay = Column(Float, nullable=False, default=0.1)
    normalize_k = Column(Integer, nullable=False, default=80)
    cold_max = Column(Integer, nullable=False, default=34)
    warm_max = Column(Integer, nullable=False, default=69)
    surge_surging_min = Column(Float, nullable=False, default=1.5)
    surge_exploding_min = Column(Float, nullable=False, default=2.5)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<AbmScoreConfig {self.name} status={self.status}>"


class AbmScoreWeight(Base):
    __tablename__ = "abm_score_weights"

    id = Column(String(36), primary_key=True, default=new_uuid)
    score_config_id = Column(
        String(36), ForeignKey("abm_score_configs.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    event_name = Column(String(64), nullable=False)
    content_type = Column(String(64), nullable=True)
    cta_id = Column(String(64), nullable=True)
    weight = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class AbmEventRule(Base):
    __tablename__ = "abm_event_rules"
    __table_args__ = (Index("ix_event_rules_config_enabled_priority", "score_config_id", "enabled", "priority"),)

    id = Column(String(36), primary_key=True, default=new_uuid)
    enabled = Column(Boolean, nullable=False, default=True)
    priority = Column(Integer, nullable=False, default=100)  # ascending: lower wins
    event_name = Column(String(64), nullable=False)           # exact, or containing "*"
    match_type = Column(String(32), nullable=False)           # path_prefix | contains | equals | path_regex
    match_value = Column(String(512), nullable=False)
    content_type = Column(String(64), nullable=True)
    lane = Column(String(64), nullable=True)
    weight_override = Column(Integer, nullable=True)
    evidence_template = Column(Text, nullable=True)           # e.g. "Viewed pricing {count}×"
    score_config_id = Column(String(36), nullable=True)       # NULL = global rule
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class AbmPromptTemplate(Base):
    """Narrative templates, selected by (lane, persona, intent_stage) with '*' wildcards."""
    __tablename__ = "abm_prompt_templates"
    __table_args__ = (Index("ix_prompt_templates_lookup", "lane", "persona", "intent_stage", "enabled"),)

    id = Column(String(36), primary_key=True, default=new_uuid)
    enabled = Column(Boolean, nullable=False, default=True)
    lane = Column(String(64), nullable=False, default="*")
    persona = Column(String(32), nullable=False, default="*")
    intent_stage = Column(String(32), nullable=False, default="*")
    version = Column(String(32), nullable=True)
    system_prompt = Column(Text, nullable=False)
    user_prompt_template = Column(Text, nullable=False)
    max_words = Column(Integer, nullable=False, default=180)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class AbmAdminAuditLog(Base):
    """Every admin write to the registry is recorded here."""
    __tablename__ = "abm_admin_audit_log"

    id = Column(String(36), primary_key=True, default=new_uuid)
    action = Column(String(32), nullable=False)        # CREATED | UPDATED | DELETED | ACTIVATED | REORDERED
    entity_type = Column(String(64), nullable=False)   # table name
    entity_id = Column(String(64), nullable=True)
    changes = Column(JSON, nullable=True)
    actor = Column(String(100), nullable=False, default="system")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
