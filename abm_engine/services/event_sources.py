"""
Behavioural event sources for the intent recompute.

PostHogEventSource  — primary, HogQL query API over httpx
IntentSignalSource  — secondary, the local intent_signals table

Both hand back RawEvents grouped by account key (normalised domain). Rows
carry content_type / lane only when the source actually knows them;
"other" and empty values are left unset so the event rules can fill them.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from abm_engine.core.config import Settings, get_settings
from abm_engine.core.domains import normalize_account_key
from abm_engine.core.errors import ExternalSourceUnavailable
from abm_engine.models.account_intent import IntentSignal, ProspectCompany
from abm_engine.scoring.types import DEFAULT_CONTENT_TYPE, DEFAULT_LANE, RawEvent
from abm_engine.scoring.weights import PAGE_VIEW

logger = structlog.get_logger()

MIN_RANGE_DAYS = 1
MAX_RANGE_DAYS = 365
MAX_ROW_LIMIT = 100_000

POSTHOG_PAGEVIEW = "$pageview"

# Event taxonomy pulled from PostHog
ABM_EVENT_NAMES = (
    "$pageview",
    "page_view",
    "content_viewed",
    "cta_click",
    "cta_clicked",
    "form_started",
    "form_submitted",
    "widget_opened",
    "widget_step_viewed",
    "widget_field_completed",
    "lead_request_submitted",
)

# Column order of the HogQL result rows
ROW_COLUMNS = (
    "date", "account_key", "event", "content_type", "lane",
    "distinct_id", "pathname", "timestamp", "cta_id",
)


def clamp_range_days(range_days: Optional[int], default: int = 30) -> int:
    try:
        days = int(range_days) if range_days is not None else default
    except (TypeError, ValueError):
        days = default
    return min(max(days, MIN_RANGE_DAYS), MAX_RANGE_DAYS)


def _known(value: Any, unknown: str) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    if not s or s == unknown:
        return None
    return s


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def normalize_event_name(name: Any) -> str:
    s = str(name or PAGE_VIEW)
    return PAGE_VIEW if s == POSTHOG_PAGEVIEW else s


# ═══════════════════════════════════════════════════════════════════
# PostHog
# ═══════════════════════════════════════════════════════════════════

class PostHogEventSource:
    name = "posthog"

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings or get_settings()
        self._client = client

    def build_query(self, range_days: int, limit: int) -> str:
        days = clamp_range_days(range_days)
        limit = min(max(int(limit), 1), MAX_ROW_LIMIT)
        event_list = ", ".join("'" + e.replace("'", "''") + "'" for e in ABM_EVENT_NAMES)
        return f"""
            SELECT
              toDate(timestamp) as date,
              {self.settings.posthog_account_property} as account_key,
              event,
              coalesce(properties.content_type, 'other') as content_type,
              coalesce(properties.service_lane, properties.lane, 'other') as lane,
              distinct_id,
              properties.$current_url as pathname,
              timestamp,
              properties.cta_id as cta_id
            FROM events
            WHERE timestamp >= now() - INTERVAL {days} DAY
              AND event IN ({event_list})
            ORDER BY timestamp
            LIMIT {limit}
        """

    async def _post(self, url: str, payload: dict, headers: dict) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, json=payload, headers=headers)
        async with httpx.AsyncClient(timeout=self.settings.posthog_timeout_seconds) as client:
            return await client.post(url, json=payload, headers=headers)

    async def run_query(self, hogql: str, name: str = "abm-query") -> list:
        s = self.settings
        if not s.posthog_configured:
            raise ExternalSourceUnavailable(self.name, "not configured")

        url = f"{s.posthog_host.rstrip('/')}/api/projects/{s.posthog_project_id}/query/"
        payload = {"query": {"kind": "HogQLQuery", "query": hogql}, "name": name}
        headers = {"Authorization": f"Bearer {s.posthog_api_key}"}
        try:
            response = await self._post(url, payload, headers)
        except httpx.HTTPError as e:
            raise ExternalSourceUnavailable(self.name, f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise ExternalSourceUnavailable(
                self.name, f"query failed {response.status_code}: {response.text[:500]}"
            )
        try:
            data = response.json()
        except ValueError as e:
            raise ExternalSourceUnavailable(self.name, "response is not JSON") from e
        return data.get("results") or []

    @staticmethod
    def parse_row(row: Any) -> Optional[tuple[str, RawEvent]]:
        """One result row (list in column order, or dict) → (account_key, event)."""
        if isinstance(row, dict):
            values = {col: row.get(col) for col in ROW_COLUMNS}
            if values["pathname"] is None:
                values["pathname"] = row.get("$current_url")
        elif isinstance(row, (list, tuple)):
            values = {col: (row[i] if i < len(row) else None) for i, col in enumerate(ROW_COLUMNS)}
        else:
            return None

        account_key = normalize_account_key(values["account_key"])
        if not account_key:
            return None
        occurred_at = _parse_timestamp(values["timestamp"])
        if occurred_at is None:
            return None

        return account_key, RawEvent(
            event_name=normalize_event_name(values["event"]),
            occurred_at=occurred_at,
            path=str(values["pathname"] or ""),
            content_type=_known(values["content_type"], DEFAULT_CONTENT_TYPE),
            lane=_known(values["lane"], DEFAULT_LANE),
            cta_id=_known(values["cta_id"], ""),
            distinct_visitor_id=_known(values["distinct_id"], ""),
        )

    async def fetch_events(self, range_days: int, now: Optional[datetime] = None) -> dict[str, list[RawEvent]]:
        hogql = self.build_query(range_days, self.settings.posthog_row_limit)
        rows = await self.run_query(hogql, name=f"abm-events-{clamp_range_days(range_days)}d")

        by_account: dict[str, list[RawEvent]] = defaultdict(list)
        dropped = 0
        for row in rows:
            parsed = self.parse_row(row)
            if parsed is None:
                dropped += 1
                continue
            key, event = parsed
            by_account[key].append(event)

        logger.info(
            "posthog_events_fetched",
            rows=len(rows),
            dropped=dropped,
            accounts=len(by_account),
        )
        return dict(by_account)


# ═══════════════════════════════════════════════════════════════════
# intent_signals
# ═══════════════════════════════════════════════════════════════════

def event_from_signal(signal: IntentSignal) -> RawEvent:
    # Stored signal weights are not used; weights come from the active config.
    return RawEvent(
        event_name=signal.signal_type or PAGE_VIEW,
        occurred_at=signal.occurred_at,
        content_type=_known(signal.topic, DEFAULT_CONTENT_TYPE),
        lane=_known(signal.service_lane, DEFAULT_LANE),
    )


class IntentSignalSource:
    name = "intent_signals"

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def fetch_events(self, range_days: int, now: Optional[datetime] = None) -> dict[str, list[RawEvent]]:
        since = (now or datetime.now(timezone.utc)) - timedelta(days=clamp_range_days(range_days))
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(IntentSignal, ProspectCompany.domain)
                    .join(ProspectCompany, IntentSignal.prospect_company_id == ProspectCompany.id)
                    .where(IntentSignal.occurred_at >= since)
                )
                rows = result.all()
        except SQLAlchemyError as e:
            raise ExternalSourceUnavailable(self.name, str(e)) from e

        by_account: dict[str, list[RawEvent]] = defaultdict(list)
        for signal, domain in rows:
            key = normalize_account_key(domain)
            if key:
                by_account[key].append(event_from_signal(signal))

        logger.info("intent_signals_fetched", rows=len(rows), accounts=len(by_account))
        return dict(by_account)

    async def fetch_account_events(
        self, account_id: str, days: int = 30, now: Optional[datetime] = None,
    ) -> list[RawEvent]:
        since = (now or datetime.now(timezone.utc)) - timedelta(days=clamp_range_days(days))
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(IntentSignal).where(
                        IntentSignal.prospect_company_id == account_id,
                        IntentSignal.occurred_at >= since,
                    )
                )
                signals = result.scalars().all()
        except SQLAlchemyError as e:
            raise ExternalSourceUnavailable(self.name, str(e)) from e
        return [event_from_signal(s) for s in signals]
