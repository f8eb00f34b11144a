"""
Admin / Registry API — recalibrate scoring and classification without a deploy,
plus recompute job triggers.

Endpoints:
  GET/POST/PUT /v1/admin/score-configs, POST .../{id}/activate
  GET/PUT      /v1/admin/score-configs/{id}/weights      (wire-key map)
  CRUD         /v1/admin/event-rules, POST /event-rules/reorder
  CRUD         /v1/admin/program-rules, /suppression-rules, /agency-blacklist
  GET          /v1/admin/prompt-templates/resolve
  POST         /v1/admin/cache/invalidate
  GET          /v1/admin/audit-log

  POST /v1/admin/recompute-intent
    → Batch recompute of every account's daily intent snapshot
  POST /v1/admin/recompute-intent/{account_id}
    → Real-time recompute of one account

Every registry write is audit-logged and invalidates the affected registry.
"""
from __future__ import annotations

import re
from dataclasses import asdict
from typing import Any, Literal, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from abm_engine.api.deps import get_actor, get_classification_registry, get_recompute_job, get_scoring_registry
from abm_engine.core.errors import AccountNotFound, InvalidScoreConfig
from abm_engine.models.database import Base, get_db
from abm_engine.models.program_rules import AbmAgencyBlacklist, AbmProgramRule, AbmProgramSuppressionRule
from abm_engine.models.registry import AbmAdminAuditLog, AbmEventRule, AbmScoreConfig, AbmScoreWeight
from abm_engine.schemas.intent import RecomputeAllRequest, RecomputeSummary
from abm_engine.scoring.types import ScoreConfigData
from abm_engine.scoring.weights import WeightTable
from abm_engine.services.recompute_intent import AccountIntentRecomputeJob
from abm_engine.services.registry import ClassificationRegistry, ScoringRegistry

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/admin", tags=["admin"])


# ── Pydantic Schemas ──

class ScoreConfigResponse(BaseModel):
    id: str
    name: str
    status: str
    lambda_decay: float
    normalize_k: int
    cold_max: int
    warm_max: int
    surge_surging_min: float
    surge_exploding_min: float

    model_config = {"from_attributes": True}


class ScoreConfigCreate(BaseModel):
    name: str
    lambda_decay: float = Field(0.1, gt=0)
    normalize_k: int = Field(80, gt=0)
    cold_max: int = 34
    warm_max: int = 69
    surge_surging_min: float = 1.5
    surge_exploding_min: float = 2.5


class ScoreConfigUpdate(BaseModel):
    name: Optional[str] = None
    lambda_decay: Optional[float] = Field(None, gt=0)
    normalize_k: Optional[int] = Field(None, gt=0)
    cold_max: Optional[int] = None
    warm_max: Optional[int] = None
    surge_surging_min: Optional[float] = None
    surge_exploding_min: Optional[float] = None


EventMatchType = Literal["path_prefix", "contains", "equals", "path_regex"]
ProgramMatchType = Literal["contains", "equals", "regex"]
ProgramMatchField = Literal["title", "summary", "agency", "naics", "psc", "url", "*"]


class EventRuleResponse(BaseModel):
    id: str
    enabled: bool
    priority: int
    event_name: str
    match_type: str
    match_value: str
    content_type: Optional[str]
    lane: Optional[str]
    weight_override: Optional[int]
    evidence_template: Optional[str]
    score_config_id: Optional[str]
    notes: Optional[str]

    model_config = {"from_attributes": True}


class EventRuleCreate(BaseModel):
    enabled: bool = True
    priority: int = 100
    event_name: str
    match_type: EventMatchType
    match_value: str
    content_type: Optional[str] = None
    lane: Optional[str] = None
    weight_override: Optional[int] = None
    evidence_template: Optional[str] = None
    score_config_id: Optional[str] = None
    notes: Optional[str] = None


class EventRuleUpdate(BaseModel):
    enabled: Optional[bool] = None
    priority: Optional[int] = None
    event_name: Optional[str] = None
    match_type: Optional[EventMatchType] = None
    match_value: Optional[str] = None
    content_type: Optional[str] = None
    lane: Optional[str] = None
    weight_override: Optional[int] = None
    evidence_template: Optional[str] = None
    notes: Optional[str] = None


class ReorderRequest(BaseModel):
    rule_ids: list[str] = Field(min_length=1)
    step: int = Field(10, gt=0)


class ProgramRuleResponse(BaseModel):
    id: str
    enabled: bool
    priority: int
    match_field: Optional[str]
    match_type: Optional[str]
    match_value: Optional[str]
    service_lane: Optional[str]
    topic: Optional[str]
    add_score: int
    notes: Optional[str]

    model_config = {"from_attributes": True}


class ProgramRuleCreate(BaseModel):
    enabled: bool = True
    priority: int = 0
    match_field: ProgramMatchField = "title"
    match_type: ProgramMatchType = "contains"
    match_value: str
    service_lane: Optional[str] = None
    topic: Optional[str] = None
    add_score: int = 20
    notes: Optional[str] = None


class ProgramRuleUpdate(BaseModel):
    enabled: Optional[bool] = None
    priority: Optional[int] = None
    match_field: Optional[ProgramMatchField] = None
    match_type: Optional[ProgramMatchType] = None
    match_value: Optional[str] = None
    service_lane: Optional[str] = None
    topic: Optional[str] = None
    add_score: Optional[int] = None
    notes: Optional[str] = None


class SuppressionRuleResponse(BaseModel):
    id: str
    enabled: bool
    priority: int
    match_field: Optional[str]
    match_type: Optional[str]
    match_value: Optional[str]
    suppress_reason: Optional[str]
    suppress_score_threshold: Optional[int]

    model_config = {"from_attributes": True}


class SuppressionRuleCreate(BaseModel):
    enabled: bool = True
    priority: int = 0
    match_field: ProgramMatchField = "*"
    match_type: ProgramMatchType = "contains"
    match_value: str
    suppress_reason: Optional[str] = None
    suppress_score_threshold: Optional[int] = None


class SuppressionRuleUpdate(BaseModel):
    enabled: Optional[bool] = None
    priority: Optional[int] = None
    match_field: Optional[ProgramMatchField] = None
    match_type: Optional[ProgramMatchType] = None
    match_value: Optional[str] = None
    suppress_reason: Optional[str] = None
    suppress_score_threshold: Optional[int] = None


class BlacklistEntryResponse(BaseModel):
    id: str
    agency_pattern: str
    enabled: bool
    notes: Optional[str]

    model_config = {"from_attributes": True}


class BlacklistEntryCreate(BaseModel):
    agency_pattern: str = Field(min_length=1)
    enabled: bool = True
    notes: Optional[str] = None


class BlacklistEntryUpdate(BaseModel):
    agency_pattern: Optional[str] = Field(None, min_length=1)
    enabled: Optional[bool] = None
    notes: Optional[str] = None


class PromptTemplateResolved(BaseModel):
    id: Optional[str]
    lane: str
    persona: str
    intent_stage: str
    version: Optional[str]
    system_prompt: str
    user_prompt_template: str
    max_words: int


# ── Helpers ──

def _check_regex(match_type: Optional[str], match_value: Optional[str], regex_type: str) -> None:
    if match_type != regex_type or not match_value:
        return
    try:
        re.compile(match_value)
    except re.error as e:
        raise HTTPException(422, f"Invalid regex {match_value!r}: {e}")


def _jsonable(values: dict[str, Any]) -> dict[str, Any]:
    return {k: (v if isinstance(v, (str, int, float, bool, type(None))) else str(v)) for k, v in values.items()}


async def _audit(db: AsyncSession, action: str, entity_type: str, entity_id: Optional[str], changes: dict, actor: str):
    db.add(AbmAdminAuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        changes=_jsonable(changes),
        actor=actor,
    ))


async def _get_or_404(db: AsyncSession, model: type[Base], entity_id: str):
    row = await db.get(model, entity_id)
    if row is None:
        raise HTTPException(404, f"{model.__tablename__} {entity_id} not found")
    return row


async def _create(db: AsyncSession, model: type[Base], values: dict, actor: str):
    row = model(**values)
    db.add(row)
    await db.flush()
    await _audit(db, "CREATED", model.__tablename__, row.id, values, actor)
    await db.commit()
    await db.refresh(row)
    logger.info("registry_row_created", table=model.__tablename__, id=row.id, actor=actor)
    return row


async def _update(db: AsyncSession, model: type[Base], entity_id: str, updates: dict, actor: str):
    if not updates:
        raise HTTPException(400, "No fields to update")
    row = await _get_or_404(db, model, entity_id)
    changes = {}
    for field, new_val in updates.items():
        changes[field] = {"old": getattr(row, field), "new": new_val}
        setattr(row, field, new_val)
    await _audit(db, "UPDATED", model.__tablename__, entity_id, {k: _jsonable(v) for k, v in changes.items()}, actor)
    await db.commit()
    await db.refresh(row)
    logger.info("registry_row_updated", table=model.__tablename__, id=entity_id, fields=list(updates), actor=actor)
    return row


async def _delete(db: AsyncSession, model: type[Base], entity_id: str, actor: str) -> dict:
    row = await _get_or_404(db, model, entity_id)
    await db.delete(row)
    await _audit(db, "DELETED", model.__tablename__, entity_id, {}, actor)
    await db.commit()
    logger.info("registry_row_deleted", table=model.__tablename__, id=entity_id, actor=actor)
    return {"status": "deleted", "id": entity_id}


# ══ Score configs ═════════════════════════════════════════════════════════

@router.get("/score-configs", response_model=list[ScoreConfigResponse])
async def list_score_configs(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(AbmScoreConfig).order_by(AbmScoreConfig.created_at.desc()))
    return result.scalars().all()


@router.post("/score-configs", response_model=ScoreConfigResponse, status_code=201)
async def create_score_config(
    body: ScoreConfigCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    try:
        ScoreConfigData(**body.model_dump())
    except InvalidScoreConfig as e:
        raise HTTPException(422, str(e))
    return await _create(db, AbmScoreConfig, {**body.model_dump(), "status": "draft"}, actor)


@router.put("/score-configs/{config_id}", response_model=ScoreConfigResponse)
async def update_score_config(
    config_id: str,
    body: ScoreConfigUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ScoringRegistry = Depends(get_scoring_registry),
):
    row = await _get_or_404(db, AbmScoreConfig, config_id)
    updates = body.model_dump(exclude_none=True)
    merged = {f: getattr(row, f) for f in ScoreConfigCreate.model_fields} | updates
    try:
        ScoreConfigData(**merged)
    except InvalidScoreConfig as e:
        raise HTTPException(422, str(e))
    row = await _update(db, AbmScoreConfig, config_id, updates, actor)
    registry.invalidate()
    return row


@router.post("/score-configs/{config_id}/activate", response_model=ScoreConfigResponse)
async def activate_score_config(
    config_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ScoringRegistry = Depends(get_scoring_registry),
):
    """Make this the single active config; any other active config is archived."""
    row = await _get_or_404(db, AbmScoreConfig, config_id)

    await db.execute(
        update(AbmScoreConfig)
        .where(AbmScoreConfig.status == "active", AbmScoreConfig.id != config_id)
        .values(status="archived")
        .execution_options(synchronize_session=False)
    )
    row.status = "active"
    await _audit(db, "ACTIVATED", AbmScoreConfig.__tablename__, config_id, {"name": row.name}, actor)
    await db.commit()
    await db.refresh(row)

    registry.invalidate()
    logger.info("score_config_activated", config_id=config_id, name=row.name, actor=actor)
    return row


@router.get("/score-configs/{config_id}/weights", response_model=dict[str, int])
async def get_weights(config_id: str, db: AsyncSession = Depends(get_db)):
    await _get_or_404(db, AbmScoreConfig, config_id)
    result = await db.execute(select(AbmScoreWeight).where(AbmScoreWeight.score_config_id == config_id))
    rows = result.scalars().all()
    return WeightTable.from_rows((r.event_name, r.content_type, r.cta_id, r.weight) for r in rows).to_wire()


@router.put("/score-configs/{config_id}/weights", response_model=dict[str, int])
async def replace_weights(
    config_id: str,
    weights: dict[str, int],
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ScoringRegistry = Depends(get_scoring_registry),
):
    """Replace the whole weight table with a {"event:content_type:cta_id": weight} map."""
    await _get_or_404(db, AbmScoreConfig, config_id)
    try:
        table = WeightTable.from_wire(weights)
    except ValueError as e:
        raise HTTPException(422, str(e))

    existing = await db.execute(select(AbmScoreWeight).where(AbmScoreWeight.score_config_id == config_id))
    for row in existing.scalars().all():
        await db.delete(row)
    for wire_key, weight in table.to_wire().items():
        event_name, content_type, cta_id = wire_key.split(":")
        db.add(AbmScoreWeight(
            score_config_id=config_id,
            event_name=event_name,
            content_type=content_type or None,
            cta_id=cta_id or None,
            weight=weight,
        ))
    await _audit(db, "UPDATED", AbmScoreWeight.__tablename__, config_id, {"weights": len(table)}, actor)
    await db.commit()

    registry.invalidate()
    logger.info("score_weights_replaced", config_id=config_id, count=len(table), actor=actor)
    return table.to_wire()


# ══ Event rules ═══════════════════════════════════════════════════════════

@router.get("/event-rules", response_model=list[EventRuleResponse])
async def list_event_rules(score_config_id: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    stmt = select(AbmEventRule).order_by(AbmEventRule.priority.asc(), AbmEventRule.created_at.asc())
    if score_config_id:
        stmt = stmt.where(
            (AbmEventRule.score_config_id == score_config_id) | AbmEventRule.score_config_id.is_(None)
        )
    result = await db.execute(stmt)
    return result.scalars().all()


@router.post("/event-rules", response_model=EventRuleResponse, status_code=201)
async def create_event_rule(
    body: EventRuleCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ScoringRegistry = Depends(get_scoring_registry),
):
    _check_regex(body.match_type, body.match_value, "path_regex")
    row = await _create(db, AbmEventRule, body.model_dump(), actor)
    registry.invalidate()
    return row


@router.put("/event-rules/{rule_id}", response_model=EventRuleResponse)
async def update_event_rule(
    rule_id: str,
    body: EventRuleUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ScoringRegistry = Depends(get_scoring_registry),
):
    updates = body.model_dump(exclude_none=True)
    current = await _get_or_404(db, AbmEventRule, rule_id)
    _check_regex(
        updates.get("match_type", current.match_type),
        updates.get("match_value", current.match_value),
        "path_regex",
    )
    row = await _update(db, AbmEventRule, rule_id, updates, actor)
    registry.invalidate()
    return row


@router.delete("/event-rules/{rule_id}")
async def delete_event_rule(
    rule_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ScoringRegistry = Depends(get_scoring_registry),
):
    result = await _delete(db, AbmEventRule, rule_id, actor)
    registry.invalidate()
    return result


@router.post("/event-rules/reorder", response_model=list[EventRuleResponse])
async def reorder_event_rules(
    body: ReorderRequest,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ScoringRegistry = Depends(get_scoring_registry),
):
    """Assign ascending priorities (step, 2*step, ...) in the given order."""
    result = await db.execute(select(AbmEventRule).where(AbmEventRule.id.in_(body.rule_ids)))
    rows = {r.id: r for r in result.scalars().all()}
    missing = [rid for rid in body.rule_ids if rid not in rows]
    if missing:
        raise HTTPException(404, f"Unknown event rules: {', '.join(missing)}")

    for i, rid in enumerate(body.rule_ids, start=1):
        rows[rid].priority = i * body.step
    await _audit(db, "REORDERED", AbmEventRule.__tablename__, None, {"rule_ids": ",".join(body.rule_ids)}, actor)
    await db.commit()

    registry.invalidate()
    ordered = [rows[rid] for rid in body.rule_ids]
    for row in ordered:
        await db.refresh(row)
    return ordered


# ══ Program classification rules ══════════════════════════════════════════

@router.get("/program-rules", response_model=list[ProgramRuleResponse])
async def list_program_rules(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(AbmProgramRule).order_by(AbmProgramRule.priority.desc()))
    return result.scalars().all()


@router.post("/program-rules", response_model=ProgramRuleResponse, status_code=201)
async def create_program_rule(
    body: ProgramRuleCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ClassificationRegistry = Depends(get_classification_registry),
):
    _check_regex(body.match_type, body.match_value, "regex")
    row = await _create(db, AbmProgramRule, body.model_dump(), actor)
    registry.invalidate()
    return row


@router.put("/program-rules/{rule_id}", response_model=ProgramRuleResponse)
async def update_program_rule(
    rule_id: str,
    body: ProgramRuleUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ClassificationRegistry = Depends(get_classification_registry),
):
    updates = body.model_dump(exclude_none=True)
    current = await _get_or_404(db, AbmProgramRule, rule_id)
    _check_regex(updates.get("match_type", current.match_type), updates.get("match_value", current.match_value), "regex")
    row = await _update(db, AbmProgramRule, rule_id, updates, actor)
    registry.invalidate()
    return row


@router.delete("/program-rules/{rule_id}")
async def delete_program_rule(
    rule_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ClassificationRegistry = Depends(get_classification_registry),
):
    result = await _delete(db, AbmProgramRule, rule_id, actor)
    registry.invalidate()
    return result


@router.get("/suppression-rules", response_model=list[SuppressionRuleResponse])
async def list_suppression_rules(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(AbmProgramSuppressionRule).order_by(AbmProgramSuppressionRule.priority.desc())
    )
    return result.scalars().all()


@router.post("/suppression-rules", response_model=SuppressionRuleResponse, status_code=201)
async def create_suppression_rule(
    body: SuppressionRuleCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ClassificationRegistry = Depends(get_classification_registry),
):
    _check_regex(body.match_type, body.match_value, "regex")
    row = await _create(db, AbmProgramSuppressionRule, body.model_dump(), actor)
    registry.invalidate()
    return row


@router.put("/suppression-rules/{rule_id}", response_model=SuppressionRuleResponse)
async def update_suppression_rule(
    rule_id: str,
    body: SuppressionRuleUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ClassificationRegistry = Depends(get_classification_registry),
):
    updates = body.model_dump(exclude_none=True)
    current = await _get_or_404(db, AbmProgramSuppressionRule, rule_id)
    _check_regex(updates.get("match_type", current.match_type), updates.get("match_value", current.match_value), "regex")
    row = await _update(db, AbmProgramSuppressionRule, rule_id, updates, actor)
    registry.invalidate()
    return row


@router.delete("/suppression-rules/{rule_id}")
async def delete_suppression_rule(
    rule_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ClassificationRegistry = Depends(get_classification_registry),
):
    result = await _delete(db, AbmProgramSuppressionRule, rule_id, actor)
    registry.invalidate()
    return result


@router.get("/agency-blacklist", response_model=list[BlacklistEntryResponse])
async def list_agency_blacklist(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(AbmAgencyBlacklist).order_by(AbmAgencyBlacklist.agency_pattern))
    return result.scalars().all()


@router.post("/agency-blacklist", response_model=BlacklistEntryResponse, status_code=201)
async def create_blacklist_entry(
    body: BlacklistEntryCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ClassificationRegistry = Depends(get_classification_registry),
):
    row = await _create(db, AbmAgencyBlacklist, body.model_dump(), actor)
    registry.invalidate()
    return row


@router.put("/agency-blacklist/{entry_id}", response_model=BlacklistEntryResponse)
async def update_blacklist_entry(
    entry_id: str,
    body: BlacklistEntryUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ClassificationRegistry = Depends(get_classification_registry),
):
    row = await _update(db, AbmAgencyBlacklist, entry_id, body.model_dump(exclude_none=True), actor)
    registry.invalidate()
    return row


@router.delete("/agency-blacklist/{entry_id}")
async def delete_blacklist_entry(
    entry_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
    registry: ClassificationRegistry = Depends(get_classification_registry),
):
    result = await _delete(db, AbmAgencyBlacklist, entry_id, actor)
    registry.invalidate()
    return result


# ══ Narrative templates / caches / audit ══════════════════════════════════

@router.get("/prompt-templates/resolve", response_model=PromptTemplateResolved)
async def resolve_prompt_template(
    lane: Optional[str] = None,
    persona: Optional[str] = None,
    intent_stage: Optional[str] = None,
    registry: ScoringRegistry = Depends(get_scoring_registry),
):
    template = await registry.get_prompt_template(lane, persona, intent_stage)
    if template is None:
        raise HTTPException(404, "No prompt template matches")
    return PromptTemplateResolved(**asdict(template))


@router.post("/cache/invalidate")
async def invalidate_caches(
    scoring: ScoringRegistry = Depends(get_scoring_registry),
    classification: ClassificationRegistry = Depends(get_classification_registry),
):
    scoring.invalidate()
    classification.invalidate()
    return {"status": "invalidated", "registries": [scoring.name, classification.name]}


@router.get("/audit-log")
async def list_audit_log(limit: int = 50, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(AbmAdminAuditLog).order_by(AbmAdminAuditLog.created_at.desc()).limit(min(max(limit, 1), 500))
    )
    return [
        {
            "id": r.id,
            "action": r.action,
            "entity_type": r.entity_type,
            "entity_id": r.entity_id,
            "changes": r.changes,
            "actor": r.actor,
            "created_at": r.created_at,
        }
        for r in result.scalars().all()
    ]


# ══ Batch Job Triggers ════════════════════════════════════════════════════

@router.post(
    "/recompute-intent",
    response_model=RecomputeSummary,
    summary="Recompute daily intent snapshots for all accounts",
    description=(
        "Runs the daily account intent batch on demand. Pulls the trailing "
        "window of events from PostHog (or intent_signals when PostHog is "
        "unavailable), scores every business account and upserts today's "
        "daily_account_intent row. Safe to re-run: the day's row is replaced."
    ),
)
async def trigger_recompute_all(
    body: Optional[RecomputeAllRequest] = None,
    actor: str = Depends(get_actor),
    job: AccountIntentRecomputeJob = Depends(get_recompute_job),
):
    body = body or RecomputeAllRequest()
    logger.info("intent_recompute_triggered", triggered_by=actor, range_days=body.range_days)
    try:
        return await job.run_batch(range_days=body.range_days, account_keys=body.account_keys)
    except Exception as e:
        logger.error("intent_recompute_failed", error=str(e), triggered_by=actor)
        raise HTTPException(status_code=500, detail=f"Intent recompute failed: {e}")


@router.post("/recompute-intent/{account_id}", response_model=RecomputeSummary)
async def trigger_recompute_one(
    account_id: str,
    actor: str = Depends(get_actor),
    job: AccountIntentRecomputeJob = Depends(get_recompute_job),
):
    try:
        return await job.run_one(account_id)
    except AccountNotFound as e:
        raise HTTPException(404, str(e))
    except Exception as e:
        logger.error("account_intent_recompute_failed", account_id=account_id, error=str(e), triggered_by=actor)
        raise HTTPException(status_code=500, detail=f"Intent recompute failed: {e}")
