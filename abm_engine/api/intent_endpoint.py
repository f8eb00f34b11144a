"""
Read side of account intent.

GET /v1/intent/accounts/{account_id}            → score projection + why-hot of the latest day
GET /v1/intent/accounts/{account_id}/snapshots  → daily timeline, newest first
GET /v1/intent/health
"""
from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from abm_engine.core.config import get_settings
from abm_engine.models.database import get_db
from abm_engine.scoring.evidence import build_why_hot
from abm_engine.schemas.intent import AccountIntentResponse, SnapshotResponse
from abm_engine.services.intent_repository import IntentRepository

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/intent", tags=["intent"])


@router.get("/accounts/{account_id}", response_model=AccountIntentResponse)
async def get_account_intent(account_id: str, db: AsyncSession = Depends(get_db)):
    repo = IntentRepository(db)
    account = await repo.get_account(account_id)
    if account is None:
        raise HTTPException(404, f"Account {account_id} not found")
    latest = await repo.list_snapshots(account_id, limit=1)
    return AccountIntentResponse(
        account_id=account.id,
        domain=account.domain,
        name=account.name,
        intent_score=account.intent_score or 0,
        intent_stage=account.intent_stage,
        surge_level=account.surge_level,
        top_lane=account.top_lane,
        intent_evidence_7d=account.intent_evidence_7d or [],
        why_hot=build_why_hot(latest[0].key_events_7d_json or {}) if latest else [],
        last_seen_at=account.last_seen_at,
        score_updated_at=account.score_updated_at,
    )


@router.get("/accounts/{account_id}/snapshots", response_model=list[SnapshotResponse])
async def list_account_snapshots(
    account_id: str,
    limit: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    repo = IntentRepository(db)
    if await repo.get_account(account_id) is None:
        raise HTTPException(404, f"Account {account_id} not found")

    rows = await repo.list_snapshots(account_id, limit=limit)
    return [
        SnapshotResponse(
            account_id=r.prospect_company_id,
            date=r.date,
            score_config_id=r.score_config_id,
            raw_score_7d=r.raw_score_7d or 0.0,
            raw_score_prev_7d=r.raw_score_prev_7d or 0.0,
            raw_score_30d=r.raw_score_30d or 0.0,
            intent_score=r.intent_score or 0,
            intent_stage=r.intent_stage,
            surge_ratio=r.surge_ratio or 0.0,
            surge_level=r.surge_level,
            top_lane=r.top_lane or "other",
            lane_scores_7d=r.lane_scores_7d_json or {},
            lane_scores_30d=r.lane_scores_30d_json or {},
            key_event_counts=r.key_events_7d_json or {},
            unique_visitors_7d=r.unique_people_7d or 0,
            why_hot=build_why_hot(r.key_events_7d_json or {}),
        )
        for r in rows
    ]


@router.get("/health", tags=["health"])
async def health():
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "event_source": "posthog" if settings.posthog_configured else "intent_signals",
    }
