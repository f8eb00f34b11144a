"""
HTTP tests for the admin, intent and program routers.
"""
from datetime import datetime, timezone

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from abm_engine.main import app
from abm_engine.models.database import get_db
from abm_engine.services.intent_repository import KeyedLocks
from abm_engine.services.recompute_intent import AccountIntentRecomputeJob
from abm_engine.services.registry import ClassificationRegistry, ScoringRegistry
from abm_engine.services.registry_store import RegistryStore

from conftest import seed_account

ACTOR = {"X-Actor": "ops@acme.space"}


class BrokenDatabaseJob:
    """Recompute job whose database goes away part-way through."""

    async def run_batch(self, range_days=None, account_keys=None):
        raise OperationalError("INSERT INTO daily_account_intent", {}, Exception("database is locked"))

    async def run_one(self, account_id):
        raise OperationalError("SELECT", {}, Exception("database is locked"))


@pytest_asyncio.fixture
async def client(session_factory):
    store = RegistryStore(session_factory)
    app.state.scoring_registry = ScoringRegistry(store)
    app.state.classification_registry = ClassificationRegistry(store)
    app.state.recompute_job = AccountIntentRecomputeJob(
        app.state.scoring_registry, session_factory, locks=KeyedLocks(),
    )

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _active_config(client, weights=None) -> str:
    r = await client.post("/v1/admin/score-configs", json={"name": "default_v1"}, headers=ACTOR)
    config_id = r.json()["id"]
    await client.put(
        f"/v1/admin/score-configs/{config_id}/weights",
        json=weights or {"page_view:pricing:": 25, "page_view:other:": 1},
        headers=ACTOR,
    )
    await client.post(f"/v1/admin/score-configs/{config_id}/activate", headers=ACTOR)
    return config_id


class TestScoreConfigAdmin:
    async def test_create_is_draft(self, client):
        r = await client.post("/v1/admin/score-configs", json={"name": "v2", "lambda_decay": 0.2})
        assert r.status_code == 201
        assert r.json()["status"] == "draft"
        assert r.json()["lambda_decay"] == 0.2

    async def test_invalid_thresholds_rejected(self, client):
        r = await client.post("/v1/admin/score-configs", json={"name": "bad", "cold_max": 70, "warm_max": 60})
        assert r.status_code == 422

    async def test_update_validates_merged_values(self, client):
        config_id = (await client.post("/v1/admin/score-configs", json={"name": "v2"})).json()["id"]
        r = await client.put(f"/v1/admin/score-configs/{config_id}", json={"cold_max": 80})
        assert r.status_code == 422
        r = await client.put(f"/v1/admin/score-configs/{config_id}", json={"cold_max": 30})
        assert r.status_code == 200
        assert r.json()["cold_max"] == 30

    async def test_activate_archives_previous(self, client):
        first = await _active_config(client)
        second = await _active_config(client)

        configs = {c["id"]: c["status"] for c in (await client.get("/v1/admin/score-configs")).json()}
        assert configs == {first: "archived", second: "active"}

    async def test_weights_round_trip(self, client):
        config_id = (await client.post("/v1/admin/score-configs", json={"name": "v2"})).json()["id"]
        weights = {"page_view:pricing:": 25, "cta_click::contact_sales": 20, "form_submitted::": 60}
        r = await client.put(f"/v1/admin/score-configs/{config_id}/weights", json=weights)
        assert r.status_code == 200
        assert (await client.get(f"/v1/admin/score-configs/{config_id}/weights")).json() == weights

        r = await client.put(f"/v1/admin/score-configs/{config_id}/weights", json={"form_submitted::": 50})
        assert (await client.get(f"/v1/admin/score-configs/{config_id}/weights")).json() == {"form_submitted::": 50}

    async def test_bad_weight_key_rejected(self, client):
        config_id = (await client.post("/v1/admin/score-configs", json={"name": "v2"})).json()["id"]
        r = await client.put(f"/v1/admin/score-configs/{config_id}/weights", json={"pricing": 25})
        assert r.status_code == 422

    async def test_unknown_config(self, client):
        assert (await client.get("/v1/admin/score-configs/nope/weights")).status_code == 404


class TestEventRuleAdmin:
    async def test_malformed_regex_rejected(self, client):
        r = await client.post("/v1/admin/event-rules", json={
            "event_name": "page_view", "match_type": "path_regex", "match_value": "/pricing(",
        })
        assert r.status_code == 422

    async def test_create_reorder_delete(self, client):
        ids = []
        for value in ("/pricing", "/blog", "/security"):
            r = await client.post("/v1/admin/event-rules", json={
                "event_name": "page_view", "match_type": "path_prefix", "match_value": value,
            })
            assert r.status_code == 201
            ids.append(r.json()["id"])

        r = await client.post("/v1/admin/event-rules/reorder", json={"rule_ids": [ids[2], ids[0], ids[1]]})
        assert [(rule["id"], rule["priority"]) for rule in r.json()] == [(ids[2], 10), (ids[0], 20), (ids[1], 30)]

        listed = (await client.get("/v1/admin/event-rules")).json()
        assert [rule["match_value"] for rule in listed] == ["/security", "/pricing", "/blog"]

        assert (await client.delete(f"/v1/admin/event-rules/{ids[1]}")).status_code == 200
        assert (await client.put(f"/v1/admin/event-rules/{ids[1]}", json={"priority": 1})).status_code == 404

    async def test_reorder_unknown_rule(self, client):
        r = await client.post("/v1/admin/event-rules/reorder", json={"rule_ids": ["missing"]})
        assert r.status_code == 404

    async def test_empty_update_rejected(self, client):
        r = await client.post("/v1/admin/event-rules", json={
            "event_name": "page_view", "match_type": "equals", "match_value": "/contact",
        })
        assert (await client.put(f"/v1/admin/event-rules/{r.json()['id']}", json={})).status_code == 400


class TestAuditAndCaches:
    async def test_writes_are_audited(self, client):
        await _active_config(client)
        entries = (await client.get("/v1/admin/audit-log")).json()
        assert {e["action"] for e in entries} == {"CREATED", "UPDATED", "ACTIVATED"}
        assert all(e["actor"] == "ops@acme.space" for e in entries)

    async def test_invalidate(self, client):
        await _active_config(client)
        await app.state.scoring_registry.get_active_config()
        assert app.state.scoring_registry.cached_keys

        r = await client.post("/v1/admin/cache/invalidate")
        assert r.json()["registries"] == ["scoring", "classification"]
        assert app.state.scoring_registry.cached_keys == []

    async def test_no_prompt_template(self, client):
        assert (await client.get("/v1/admin/prompt-templates/resolve?lane=Launch")).status_code == 404


class TestIntentRecompute:
    async def test_batch_then_read(self, client, session_factory):
        await _active_config(client)
        account_id = await seed_account(
            session_factory, "acme.space",
            signals=[("page_view", "pricing", "Launch", 1)],
            now=datetime.now(timezone.utc),
        )

        r = await client.post("/v1/admin/recompute-intent", json={"range_days": 30}, headers=ACTOR)
        assert r.status_code == 200
        assert r.json()["accounts_processed"] == 1
        assert r.json()["event_source"] == "intent_signals"

        account = (await client.get(f"/v1/intent/accounts/{account_id}")).json()
        assert account["intent_score"] == 25
        assert account["intent_stage"] == "Cold"
        assert account["surge_level"] == "Exploding"
        assert account["top_lane"] == "Launch"
        assert account["why_hot"] == ["1× Pricing"]

        [snap] = (await client.get(f"/v1/intent/accounts/{account_id}/snapshots")).json()
        assert snap["key_event_counts"] == {"pricing_page_view": 1}
        assert snap["lane_scores_7d"].keys() == {"Launch"}
        assert snap["why_hot"] == ["1× Pricing"]

    async def test_why_hot_empty_before_first_recompute(self, client, session_factory):
        account_id = await seed_account(session_factory, "acme.space")
        assert (await client.get(f"/v1/intent/accounts/{account_id}")).json()["why_hot"] == []

    async def test_realtime(self, client, session_factory):
        await _active_config(client)
        account_id = await seed_account(session_factory, "acme.space")

        r = await client.post(f"/v1/admin/recompute-intent/{account_id}")
        assert r.status_code == 200
        assert r.json()["mode"] == "realtime"
        assert (await client.post("/v1/admin/recompute-intent/missing")).status_code == 404

    async def test_without_active_config(self, client):
        r = await client.post("/v1/admin/recompute-intent")
        assert r.status_code == 500
        assert "No active score config" in r.json()["detail"]

    async def test_database_error_reports_cause(self, client):
        app.state.recompute_job = BrokenDatabaseJob()

        r = await client.post("/v1/admin/recompute-intent")
        assert r.status_code == 500
        assert r.json()["detail"].startswith("Intent recompute failed:")
        assert "database is locked" in r.json()["detail"]

        r = await client.post("/v1/admin/recompute-intent/acct-1")
        assert r.status_code == 500
        assert "database is locked" in r.json()["detail"]

    async def test_unknown_account(self, client):
        assert (await client.get("/v1/intent/accounts/missing")).status_code == 404
        assert (await client.get("/v1/intent/accounts/missing/snapshots")).status_code == 404

    async def test_health(self, client):
        r = await client.get("/v1/intent/health")
        assert r.json()["status"] == "ok"
        assert r.json()["event_source"] == "intent_signals"


class TestProgramClassify:
    RECORD = {
        "title": "Satellite ground station operations",
        "summary": "Launch support",
        "agency": "Department of Veterans Affairs",
    }

    async def test_rule_changes_apply_immediately(self, client):
        r = await client.post("/v1/programs/classify", json=self.RECORD)
        assert r.json()["result"]["relevance_score"] == 0
        assert r.json()["relevance_band"] == "low"

        await client.post("/v1/admin/program-rules", json={
            "priority": 10, "match_field": "*", "match_value": "launch",
            "service_lane": "Launch", "topic": "launch_services", "add_score": 40,
        })
        r = await client.post("/v1/programs/classify", json=self.RECORD)
        assert r.json()["result"]["relevance_score"] == 40
        assert r.json()["result"]["service_lane"] == "Launch"
        assert r.json()["relevance_band"] == "relevant"

        await client.post("/v1/admin/agency-blacklist", json={"agency_pattern": "VETERANS AFFAIRS"})
        r = await client.post("/v1/programs/classify", json=self.RECORD)
        assert r.json()["result"]["suppressed"] is True
        assert r.json()["relevance_band"] == "suppressed"

    async def test_suppression_rule(self, client):
        await client.post("/v1/admin/suppression-rules", json={
            "match_value": "operations", "suppress_reason": "Generic ops",
        })
        r = await client.post("/v1/programs/classify", json={"title": "Facility operations"})
        assert r.json()["result"]["suppressed_reason"] == "Generic ops"

    async def test_bad_regex_rule_rejected(self, client):
        r = await client.post("/v1/admin/program-rules", json={"match_type": "regex", "match_value": "(launch"})
        assert r.status_code == 422
