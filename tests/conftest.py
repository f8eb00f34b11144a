"""
Shared fixtures: a file-backed SQLite database per test, registry seeding
helpers and in-memory event sources.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["POSTHOG_ENABLED"] = "false"
os.environ["APP_ENV"] = "test"

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from abm_engine.core.errors import ExternalSourceUnavailable  # noqa: E402
from abm_engine.models import account_intent, program_rules, registry  # noqa: E402,F401
from abm_engine.models.account_intent import IntentSignal, ProspectCompany  # noqa: E402
from abm_engine.models.database import Base  # noqa: E402
from abm_engine.models.registry import AbmEventRule, AbmScoreConfig, AbmScoreWeight  # noqa: E402
from abm_engine.scoring.types import RawEvent  # noqa: E402

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

DEFAULT_WEIGHTS = {
    ("page_view", "pricing", None): 25,
    ("page_view", "other", None): 1,
    ("form_submitted", None, None): 60,
    ("cta_click", None, "contact_sales"): 20,
}

DEFAULT_RULES = [
    dict(priority=10, event_name="page_view", match_type="path_prefix", match_value="/pricing",
         content_type="pricing", lane="Other", evidence_template="Viewed pricing {count}×"),
    dict(priority=20, event_name="page_view", match_type="contains", match_value="/services/launch",
         content_type="service_page", lane="Launch"),
    dict(priority=30, event_name="page_view", match_type="path_prefix", match_value="/blog",
         content_type="blog", lane="Other"),
]


def days_ago(days: float, now: datetime = NOW) -> datetime:
    return now - timedelta(days=days)


def page_view(path: str, age_days: float, visitor: str = "v1", now: datetime = NOW) -> RawEvent:
    return RawEvent(event_name="page_view", occurred_at=days_ago(age_days, now), path=path, distinct_visitor_id=visitor)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeEventSource:
    """Batch event source backed by a dict; optionally fails like an unreachable API."""

    def __init__(self, name: str = "fake", by_account=None, error: str = None):
        self.name = name
        self.by_account = by_account or {}
        self.error = error
        self.calls = []

    async def fetch_events(self, range_days, now=None):
        self.calls.append(range_days)
        if self.error:
            raise ExternalSourceUnavailable(self.name, self.error)
        return {k: list(v) for k, v in self.by_account.items()}


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'abm_test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


async def seed_score_config(
    session_factory,
    weights=None,
    rules=None,
    status="active",
    name="default_v1",
    **params,
) -> str:
    async with session_factory() as session:
        config = AbmScoreConfig(name=name, status=status, **params)
        session.add(config)
        await session.flush()
        for (event_name, content_type, cta_id), weight in (DEFAULT_WEIGHTS if weights is None else weights).items():
            session.add(AbmScoreWeight(
                score_config_id=config.id,
                event_name=event_name,
                content_type=content_type,
                cta_id=cta_id,
                weight=weight,
            ))
        for rule in (DEFAULT_RULES if rules is None else rules):
            session.add(AbmEventRule(**rule))
        await session.commit()
        return config.id


async def seed_account(session_factory, domain: str, signals=(), now: datetime = NOW) -> str:
    """signals: (signal_type, topic, service_lane, age_days) tuples."""
    async with session_factory() as session:
        account = ProspectCompany(domain=domain, name=domain.split(".")[0], intent_score=0)
        session.add(account)
        await session.flush()
        for signal_type, topic, lane, age in signals:
            session.add(IntentSignal(
                prospect_company_id=account.id,
                signal_type=signal_type,
                topic=topic,
                service_lane=lane,
                weight=1,
                occurred_at=days_ago(age, now),
            ))
        await session.commit()
        return account.id
