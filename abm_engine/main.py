"""
ABM Intent Engine — FastAPI Application Entry Point

POST /v1/admin/recompute-intent      → batch intent recompute
POST /v1/programs/classify           → program relevance classification
GET  /v1/intent/accounts/{id}        → account intent projection
GET  /v1/intent/health               → health check
GET  /docs                           → OpenAPI / Swagger UI
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from abm_engine.api.admin_endpoint import router as admin_router
from abm_engine.api.intent_endpoint import router as intent_router
from abm_engine.api.program_endpoint import router as program_router
from abm_engine.core.config import get_settings
from abm_engine.core.logging import configure_logging
from abm_engine.models.database import async_session
from abm_engine.services.recompute_intent import build_job
from abm_engine.services.registry import ClassificationRegistry, ScoringRegistry
from abm_engine.services.registry_store import RegistryStore

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    store = RegistryStore(async_session)
    app.state.scoring_registry = ScoringRegistry(store, ttl_seconds=settings.scoring_registry_ttl_seconds)
    app.state.classification_registry = ClassificationRegistry(
        store, ttl_seconds=settings.classification_registry_ttl_seconds,
    )
    app.state.recompute_job = build_job(app.state.scoring_registry, async_session, settings)
    logger.info(
        "abm_engine_starting",
        env=settings.app_env,
        posthog=settings.posthog_configured,
    )
    yield
    logger.info("abm_engine_shutting_down")


app = FastAPI(
    title="ABM Intent Engine",
    description="Decay-weighted account intent scoring and rule-based program classification",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (admin UI) ──
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_methods=["POST", "GET", "PUT", "DELETE"],
    allow_headers=["*"],
)

# ── Prometheus metrics ──
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── Routes ──
app.include_router(admin_router)
app.include_router(intent_router)
app.include_router(program_router)


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": get_settings().app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "recompute": "POST /v1/admin/recompute-intent",
    }
