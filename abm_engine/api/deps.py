"""
Request-scoped access to the long-lived objects built in main.lifespan.
"""
from fastapi import Request

from abm_engine.services.program_classifier import ProgramClassifier
from abm_engine.services.recompute_intent import AccountIntentRecomputeJob
from abm_engine.services.registry import ClassificationRegistry, ScoringRegistry


def get_scoring_registry(request: Request) -> ScoringRegistry:
    return request.app.state.scoring_registry


def get_classification_registry(request: Request) -> ClassificationRegistry:
    return request.app.state.classification_registry


def get_recompute_job(request: Request) -> AccountIntentRecomputeJob:
    return request.app.state.recompute_job


def get_program_classifier(request: Request) -> ProgramClassifier:
    return ProgramClassifier(request.app.state.classification_registry)


def get_actor(request: Request) -> str:
    return request.headers.get("X-Actor", "system")
