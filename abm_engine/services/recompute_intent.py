"""
recompute_intent.py
───────────────────
Account intent recompute: turns behavioural events into one daily intent
snapshot per account and refreshes the account's score projection.

    LoadConfig → LoadEvents → per account (Classify → Aggregate → Score → Upsert) → Done
                         └── any fatal error → Aborted

Batch     — every account seen in the trailing window (PostHog, falling back
            to intent_signals), strictly sequential. Scheduled daily.
Real-time — one account, intent_signals over the trailing 30 days. Called
            after a new signal is stored.

Both modes run the same pipeline, so the same event set gives the same
snapshot fields. Re-running on the same day replaces that day's row.

Usage:
  python -m abm_engine.services.recompute_intent [--range-days 30] [--account acme.com ...]
  OR via the admin endpoint: POST /v1/admin/recompute-intent
"""
from __future__ import annotations

import argparse
import asyncio
import sys
import time
from datetime import datetime, timezone
from typing import Iterable, Optional

import structlog

from abm_engine.core.config import Settings, get_settings
from abm_engine.core.domains import is_personal_domain, normalize_account_key
from abm_engine.core.errors import AccountNotFound, ExternalSourceUnavailable, IntentEngineError
from abm_engine.core.metrics import (
    ACCOUNTS_SCORED,
    EVENT_SOURCE_FALLBACKS,
    RECOMPUTE_DURATION,
    RECOMPUTE_RUNS,
)
from abm_engine.schemas.intent import RecomputeMode, RecomputeSummary
from abm_engine.scoring.engine import compute_intent_score
from abm_engine.scoring.event_rules import classify_event
from abm_engine.scoring.types import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_LANE,
    EventRuleData,
    IntentScoreResult,
    RawEvent,
    ScoreConfigData,
)
from abm_engine.scoring.weights import WeightTable
from abm_engine.services.event_sources import IntentSignalSource, PostHogEventSource, clamp_range_days
from abm_engine.services.intent_repository import SNAPSHOT_LOCKS, IntentRepository, KeyedLocks

logger = structlog.get_logger()

REALTIME_RANGE_DAYS = 30


def _known(value: Optional[str], unknown: str) -> Optional[str]:
    return value if value and value != unknown else None


def classify_events(events: Iterable[RawEvent], rules: list[EventRuleData]) -> list[RawEvent]:
    """
    Fill content_type / lane / weight_override from the event rules.

    A value the source already knows wins over the rule's; "other" counts
    as unknown.
    """
    classified = []
    for e in events:
        c = classify_event(e.path, e.event_name, rules)
        classified.append(RawEvent(
            event_name=e.event_name,
            occurred_at=e.occurred_at,
            path=e.path,
            content_type=_known(e.content_type, DEFAULT_CONTENT_TYPE) or c.content_type,
            lane=_known(e.lane, DEFAULT_LANE) or c.lane,
            cta_id=e.cta_id,
            distinct_visitor_id=e.distinct_visitor_id,
            weight_override=e.weight_override if e.weight_override is not None else c.weight_override,
        ))
    return classified


def projection_fields(result: IntentScoreResult, now: datetime) -> dict:
    fields = {
        "intent_score": result.intent_score,
        "intent_stage": result.intent_stage,
        "surge_level": result.surge_level,
        "top_lane": result.top_lane,
        "score_7d_raw": result.raw_7d,
        "score_30d_raw": result.raw_30d,
        "intent_evidence_7d": list(result.evidence),
        "score_updated_at": now,
    }
    if result.last_seen_at is not None:
        fields["last_seen_at"] = result.last_seen_at
    return fields


class AccountIntentRecomputeJob:
    def __init__(
        self,
        registry,
        session_factory,
        primary_source=None,
        fallback_source=None,
        locks: KeyedLocks = SNAPSHOT_LOCKS,
        settings: Optional[Settings] = None,
    ):
        self.registry = registry
        self.session_factory = session_factory
        self.primary_source = primary_source
        self.fallback_source = fallback_source or IntentSignalSource(session_factory)
        self.locks = locks
        self.settings = settings or get_settings()

    # ── LoadConfig ──

    async def _load_scoring(self) -> tuple[ScoreConfigData, WeightTable, list[EventRuleData]]:
        config = await self.registry.get_active_config()
        weights = await self.registry.get_weights(config.id)
        rules = await self.registry.get_event_rules(config.id)
        return config, weights, rules

    # ── LoadEvents ──

    async def _load_batch_events(self, range_days: int, now: datetime) -> tuple[str, dict[str, list[RawEvent]]]:
        if self.primary_source is not None:
            try:
                return self.primary_source.name, await self.primary_source.fetch_events(range_days, now)
            except ExternalSourceUnavailable as e:
                EVENT_SOURCE_FALLBACKS.inc()
                logger.warning(
                    "event_source_fallback",
                    source=e.source,
                    reason=e.reason,
                    fallback=self.fallback_source.name,
                )
        return self.fallback_source.name, await self.fallback_source.fetch_events(range_days, now)

    # ── Per account ──

    async def _score_and_persist(
        self,
        repo: IntentRepository,
        account_id: str,
        events: list[RawEvent],
        config: ScoreConfigData,
        weights: WeightTable,
        rules: list[EventRuleData],
        now: datetime,
    ) -> IntentScoreResult:
        result = compute_intent_score(classify_events(events, rules), config, weights, now, rules=rules)
        snapshot_date = now.date()

        async with self.locks.hold((account_id, snapshot_date)):
            await repo.upsert_snapshot(
                account_id,
                snapshot_date,
                {"score_config_id": config.id, **result.snapshot_fields()},
            )
            await repo.update_account_projection(account_id, projection_fields(result, now))
            await repo.session.commit()
        return result

    # ═══════════════════════════════════════════════════════════════
    # Batch
    # ═══════════════════════════════════════════════════════════════

    async def run_batch(
        self,
        range_days: Optional[int] = None,
        account_keys: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> RecomputeSummary:
        mode = RecomputeMode.BATCH
        now = now or datetime.now(timezone.utc)
        days = clamp_range_days(range_days, default=self.settings.intent_range_days)
        allow = {normalize_account_key(k) for k in account_keys} if account_keys else None
        started = time.perf_counter()
        logger.info("intent_recompute_started", mode=mode.value, range_days=days, allow_list=bool(allow))

        try:
            config, weights, rules = await self._load_scoring()
            source_name, by_account = await self._load_batch_events(days, now)

            processed = skipped = created = 0
            for raw_key in sorted(by_account):
                key = normalize_account_key(raw_key)
                if not key or is_personal_domain(key) or (allow is not None and key not in allow):
                    skipped += 1
                    continue

                async with self.session_factory() as session:
                    repo = IntentRepository(session)
                    account, was_created = await repo.find_or_create_account(key)
                    result = await self._score_and_persist(
                        repo, account.id, by_account[raw_key], config, weights, rules, now,
                    )
                created += int(was_created)
                processed += 1
                ACCOUNTS_SCORED.labels(mode=mode.value).inc()
                logger.debug(
                    "account_intent_scored",
                    domain=key,
                    intent_score=result.intent_score,
                    intent_stage=result.intent_stage,
                    surge_level=result.surge_level,
                )
        except Exception:
            RECOMPUTE_RUNS.labels(mode=mode.value, status="aborted").inc()
            logger.exception("intent_recompute_aborted", mode=mode.value)
            raise

        elapsed = time.perf_counter() - started
        RECOMPUTE_RUNS.labels(mode=mode.value, status="success").inc()
        RECOMPUTE_DURATION.labels(mode=mode.value).observe(elapsed)

        summary = RecomputeSummary(
            mode=mode,
            status="success",
            snapshot_date=now.date(),
            event_source=source_name,
            accounts_seen=len(by_account),
            accounts_processed=processed,
            accounts_skipped=skipped,
            accounts_created=created,
            elapsed_seconds=round(elapsed, 3),
        )
        logger.info("intent_recompute_complete", **summary.model_dump(mode="json"))
        return summary

    # ═══════════════════════════════════════════════════════════════
    # Real-time
    # ═══════════════════════════════════════════════════════════════

    async def run_one(self, account_id: str, now: Optional[datetime] = None) -> RecomputeSummary:
        mode = RecomputeMode.REALTIME
        now = now or datetime.now(timezone.utc)
        started = time.perf_counter()

        try:
            config, weights, rules = await self._load_scoring()
            async with self.session_factory() as session:
                repo = IntentRepository(session)
                account = await repo.get_account(account_id)
                if account is None:
                    raise AccountNotFound(account_id)
                events = await self.fallback_source.fetch_account_events(
                    account_id, days=REALTIME_RANGE_DAYS, now=now,
                )
                result = await self._score_and_persist(repo, account_id, events, config, weights, rules, now)
        except Exception:
            RECOMPUTE_RUNS.labels(mode=mode.value, status="aborted").inc()
            raise

        elapsed = time.perf_counter() - started
        RECOMPUTE_RUNS.labels(mode=mode.value, status="success").inc()
        RECOMPUTE_DURATION.labels(mode=mode.value).observe(elapsed)
        ACCOUNTS_SCORED.labels(mode=mode.value).inc()
        logger.info(
            "account_intent_recomputed",
            account_id=account_id,
            events=len(events),
            intent_score=result.intent_score,
            intent_stage=result.intent_stage,
        )
        return RecomputeSummary(
            mode=mode,
            status="success",
            snapshot_date=now.date(),
            event_source=self.fallback_source.name,
            accounts_seen=1,
            accounts_processed=1,
            elapsed_seconds=round(elapsed, 3),
        )

    async def recompute_one_best_effort(self, account_id: str, now: Optional[datetime] = None) -> Optional[RecomputeSummary]:
        """Real-time hook for ingest paths: a failed recompute never fails the caller."""
        try:
            return await self.run_one(account_id, now=now)
        except Exception as e:
            logger.warning("account_intent_recompute_failed", account_id=account_id, error=str(e))
            return None


def build_job(registry, session_factory, settings: Optional[Settings] = None) -> AccountIntentRecomputeJob:
    settings = settings or get_settings()
    primary = PostHogEventSource(settings) if settings.posthog_configured else None
    return AccountIntentRecomputeJob(
        registry,
        session_factory,
        primary_source=primary,
        fallback_source=IntentSignalSource(session_factory),
        settings=settings,
    )


async def run_recompute_all(range_days: Optional[int] = None, account_keys: Optional[list[str]] = None) -> RecomputeSummary:
    from abm_engine.models.database import async_session, engine
    from abm_engine.services.registry import ScoringRegistry
    from abm_engine.services.registry_store import RegistryStore

    settings = get_settings()
    registry = ScoringRegistry(RegistryStore(async_session), ttl_seconds=settings.scoring_registry_ttl_seconds)
    try:
        return await build_job(registry, async_session, settings).run_batch(range_days, account_keys)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    from abm_engine.core.logging import configure_logging

    configure_logging()
    parser = argparse.ArgumentParser(description="Recompute daily account intent snapshots")
    parser.add_argument("--range-days", type=int, default=None)
    parser.add_argument("--account", action="append", dest="account_keys", default=None)
    args = parser.parse_args()

    try:
        summary = asyncio.run(run_recompute_all(args.range_days, args.account_keys))
        print(f"✓ Intent recomputed: {summary.accounts_processed} accounts "
              f"({summary.accounts_created} new, {summary.accounts_skipped} skipped) "
              f"from {summary.event_source} in {summary.elapsed_seconds}s")
    except IntentEngineError as e:
        print(f"✗ Recompute aborted: {e}", file=sys.stderr)
        sys.exit(1)
