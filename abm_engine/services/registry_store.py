"""
Database loader behind the registries.

Every load opens its own short session and converts ORM rows into frozen
values, so cached entries never hold on to a session.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from abm_engine.models.program_rules import AbmAgencyBlacklist, AbmProgramRule, AbmProgramSuppressionRule
from abm_engine.models.registry import AbmEventRule, AbmPromptTemplate, AbmScoreConfig, AbmScoreWeight
from abm_engine.scoring.types import EventRuleData, ScoreConfigData
from abm_engine.scoring.weights import WeightTable
from abm_engine.services.program_classifier import BlacklistEntryData, ProgramRuleData, SuppressionRuleData
from abm_engine.services.registry import PromptTemplateData


def score_config_from_row(row: AbmScoreConfig) -> ScoreConfigData:
    return ScoreConfigData(
        id=row.id,
        name=row.name,
        lambda_decay=float(row.lambda_decay),
        normalize_k=float(row.normalize_k),
        cold_max=int(row.cold_max),
        warm_max=int(row.warm_max),
        surge_surging_min=float(row.surge_surging_min),
        surge_exploding_min=float(row.surge_exploding_min),
        status=row.status,
    )


def event_rule_from_row(row: AbmEventRule) -> EventRuleData:
    return EventRuleData(
        id=row.id,
        priority=row.priority,
        event_name=row.event_name,
        match_type=row.match_type,
        match_value=row.match_value,
        content_type=row.content_type,
        lane=row.lane,
        weight_override=row.weight_override,
        evidence_template=row.evidence_template,
        score_config_id=row.score_config_id,
        enabled=row.enabled,
    )


class RegistryStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ── Scoring ──

    async def load_active_configs(self) -> list[ScoreConfigData]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AbmScoreConfig).where(AbmScoreConfig.status == "active")
            )
            return [score_config_from_row(r) for r in result.scalars().all()]

    async def load_weights(self, score_config_id: str) -> WeightTable:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AbmScoreWeight).where(AbmScoreWeight.score_config_id == score_config_id)
            )
            rows = result.scalars().all()
        return WeightTable.from_rows((r.event_name, r.content_type, r.cta_id, r.weight) for r in rows)

    async def load_event_rules(self, score_config_id: Optional[str]) -> list[EventRuleData]:
        scope = AbmEventRule.score_config_id.is_(None)
        if score_config_id:
            scope = or_(scope, AbmEventRule.score_config_id == score_config_id)
        async with self._session_factory() as session:
            result = await session.execute(
                select(AbmEventRule)
                .where(AbmEventRule.enabled.is_(True), scope)
                .order_by(AbmEventRule.priority.asc(), AbmEventRule.created_at.asc())
            )
            return [event_rule_from_row(r) for r in result.scalars().all()]

    async def load_prompt_templates(self) -> list[PromptTemplateData]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AbmPromptTemplate)
                .where(AbmPromptTemplate.enabled.is_(True))
                .order_by(AbmPromptTemplate.created_at.desc())
            )
            return [
                PromptTemplateData(
                    id=r.id,
                    lane=r.lane,
                    persona=r.persona,
                    intent_stage=r.intent_stage,
                    system_prompt=r.system_prompt,
                    user_prompt_template=r.user_prompt_template,
                    max_words=r.max_words,
                    version=r.version,
                )
                for r in result.scalars().all()
            ]

    # ── Classification ──

    async def load_blacklist(self) -> list[BlacklistEntryData]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AbmAgencyBlacklist).where(AbmAgencyBlacklist.enabled.is_(True))
            )
            return [
                BlacklistEntryData(id=r.id, agency_pattern=r.agency_pattern, notes=r.notes)
                for r in result.scalars().all()
            ]

    async def load_suppression_rules(self) -> list[SuppressionRuleData]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AbmProgramSuppressionRule)
                .where(AbmProgramSuppressionRule.enabled.is_(True))
                .order_by(AbmProgramSuppressionRule.priority.desc(), AbmProgramSuppressionRule.created_at.asc())
            )
            return [
                SuppressionRuleData(
                    id=r.id,
                    priority=r.priority,
                    match_field=r.match_field,
                    match_type=r.match_type,
                    match_value=r.match_value,
                    suppress_reason=r.suppress_reason,
                    suppress_score_threshold=r.suppress_score_threshold,
                )
                for r in result.scalars().all()
            ]

    async def load_positive_rules(self) -> list[ProgramRuleData]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AbmProgramRule)
                .where(AbmProgramRule.enabled.is_(True))
                .order_by(AbmProgramRule.priority.desc(), AbmProgramRule.created_at.asc())
            )
            return [
                ProgramRuleData(
                    id=r.id,
                    priority=r.priority,
                    match_field=r.match_field,
                    match_type=r.match_type,
                    match_value=r.match_value,
                    service_lane=r.service_lane,
                    topic=r.topic,
                    add_score=r.add_score,
                    notes=r.notes,
                )
                for r in result.scalars().all()
            ]
