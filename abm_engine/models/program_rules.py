"""
Program classification rules.

Both rule tables are evaluated by DESCENDING priority (higher number first),
the opposite of abm_event_rules.
"""
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from abm_engine.models.database import Base, new_uuid, utcnow


class AbmProgramRule(Base):
    __tablename__ = "abm_program_rules"
    __table_args__ = (Index("ix_program_rules_enabled_priority", "enabled", "priority"),)

    id = Column(String(36), primary_key=True, default=new_uuid)
    enabled = Column(Boolean, nullable=False, default=True)
    priority = Column(Integer, nullable=False, default=0)
    match_field = Column(String(64), nullable=True)    # title | summary | agency | naics | psc | url | *
    match_type = Column(String(32), nullable=True)     # contains | equals | regex
    match_value = Column(Text, nullable=True)
    service_lane = Column(String(64), nullable=True)
    topic = Column(String(128), nullable=True)
    add_score = Column(Integer, nullable=False, default=20)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class AbmProgramSuppressionRule(Base):
    __tablename__ = "abm_program_suppression_rules"
    __table_args__ = (Index("ix_suppression_rules_enabled_priority", "enabled", "priority"),)

    id = Column(String(36), primary_key=True, default=new_uuid)
    enabled = Column(Boolean, nullable=False, default=True)
    priority = Column(Integer, nullable=False, default=0)
    match_field = Column(String(64), nullable=True)
    match_type = Column(String(32), nullable=True)
    match_value = Column(Text, nullable=True)
    suppress_reason = Column(String(255), nullable=True)
    suppress_score_threshold = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class AbmAgencyBlacklist(Base):
    __tablename__ = "abm_agency_blacklist"

    id = Column(String(36), primary_key=True, default=new_uuid)
    agency_pattern = Column(String(255), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True, index=True)
    notes = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
