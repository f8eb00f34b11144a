"""
POST /v1/programs/classify

Classifies one procurement record against the current rule set. Used by the
ingest jobs and by the admin UI to preview rule changes.
"""
from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from abm_engine.api.deps import get_program_classifier
from abm_engine.schemas.program import ClassifyResponse, ProgramRecord
from abm_engine.services.program_classifier import ProgramClassifier

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/programs", tags=["programs"])


@router.post(
    "/classify",
    response_model=ClassifyResponse,
    summary="Classify a procurement program",
    description="Blacklist → suppression rules → positive rules. Returns relevance, lane/topic and matched reasons.",
)
async def classify(
    record: ProgramRecord,
    classifier: ProgramClassifier = Depends(get_program_classifier),
) -> ClassifyResponse:
    result = await classifier.classify(record)
    return ClassifyResponse(result=result, relevance_band=result.relevance_band)
