"""
Tests for account and snapshot persistence.
"""
from datetime import date, timedelta

from abm_engine.services.intent_repository import IntentRepository

from conftest import seed_account

DAY = date(2026, 3, 10)


def _fields(score: int, stage: str = "Cold") -> dict:
    return {
        "raw_score_7d": float(score),
        "raw_score_prev_7d": 0.0,
        "raw_score_30d": float(score),
        "intent_score": score,
        "intent_stage": stage,
        "surge_ratio": 1.0,
        "surge_level": "Normal",
        "top_lane": "Launch",
        "lane_scores_7d_json": {"Launch": float(score)},
        "lane_scores_30d_json": {"Launch": float(score)},
        "key_events_7d_json": {"pricing_page_view": 1},
        "unique_people_7d": 1,
    }


class TestSnapshots:
    async def test_second_upsert_replaces_the_day(self, session_factory):
        account_id = await seed_account(session_factory, "acme.space")
        async with session_factory() as session:
            repo = IntentRepository(session)
            await repo.upsert_snapshot(account_id, DAY, _fields(25))
            await repo.upsert_snapshot(account_id, DAY, _fields(72, stage="Hot"))
            await session.commit()

        async with session_factory() as session:
            repo = IntentRepository(session)
            snap = await repo.find_snapshot(account_id, DAY)
            assert snap.intent_score == 72
            assert snap.intent_stage == "Hot"
            assert snap.lane_scores_7d_json == {"Launch": 72.0}
            assert len(await repo.list_snapshots(account_id)) == 1

    async def test_find_missing_day(self, session_factory):
        account_id = await seed_account(session_factory, "acme.space")
        async with session_factory() as session:
            repo = IntentRepository(session)
            await repo.upsert_snapshot(account_id, DAY, _fields(25))
            await session.commit()
            assert await repo.find_snapshot(account_id, DAY - timedelta(days=1)) is None


class TestAccounts:
    async def test_find_or_create(self, session_factory):
        async with session_factory() as session:
            repo = IntentRepository(session)
            account, created = await repo.find_or_create_account("deep.orbit.co")
            assert created
            assert account.name == "deep orbit"
            again, created = await repo.find_or_create_account("deep.orbit.co")
            assert not created
            assert again.id == account.id
