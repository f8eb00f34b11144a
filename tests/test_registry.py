"""
Tests for the TTL-cached registries and the database store behind them.
"""
import asyncio

import pytest

from abm_engine.core.errors import NoActiveConfig
from abm_engine.models.program_rules import AbmProgramRule, AbmProgramSuppressionRule
from abm_engine.models.registry import AbmEventRule, AbmPromptTemplate
from abm_engine.scoring.types import ScoreConfigData
from abm_engine.scoring.weights import WeightKey, WeightTable
from abm_engine.services.registry import (
    ClassificationRegistry,
    PromptTemplateData,
    ScoringRegistry,
    template_lookup_order,
)
from abm_engine.services.registry_store import RegistryStore

from conftest import FakeClock, seed_score_config


def _template(lane, persona, stage, tid=None) -> PromptTemplateData:
    return PromptTemplateData(
        id=tid or f"{lane}/{persona}/{stage}",
        lane=lane,
        persona=persona,
        intent_stage=stage,
        system_prompt="sys",
        user_prompt_template="user",
    )


class FakeStore:
    def __init__(self, configs=None, templates=()):
        self.configs = [ScoreConfigData(id="cfg-1")] if configs is None else configs
        self.templates = list(templates)
        self.loads = {"configs": 0, "weights": 0, "rules": 0, "templates": 0}

    async def load_active_configs(self):
        self.loads["configs"] += 1
        return list(self.configs)

    async def load_weights(self, score_config_id):
        self.loads["weights"] += 1
        return WeightTable.from_wire({"page_view:pricing:": 25})

    async def load_event_rules(self, score_config_id):
        self.loads["rules"] += 1
        return []

    async def load_prompt_templates(self):
        self.loads["templates"] += 1
        return list(self.templates)


class GatedRuleStore:
    """Program-rule store whose first load blocks until the test releases it."""

    def __init__(self):
        self.rules = ["old-rule"]
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.gated = True

    async def load_positive_rules(self):
        snapshot = list(self.rules)
        if self.gated:
            self.gated = False
            self.started.set()
            await self.release.wait()
        return snapshot


class TestTTLCache:
    async def test_cached_within_ttl(self):
        store, clock = FakeStore(), FakeClock()
        reg = ScoringRegistry(store, ttl_seconds=60, clock=clock)
        await reg.get_active_config()
        clock.advance(59)
        await reg.get_active_config()
        assert store.loads["configs"] == 1

    async def test_reload_after_ttl(self):
        store, clock = FakeStore(), FakeClock()
        reg = ScoringRegistry(store, ttl_seconds=60, clock=clock)
        await reg.get_active_config()
        clock.advance(60)
        await reg.get_active_config()
        assert store.loads["configs"] == 2

    async def test_items_expire_independently(self):
        store, clock = FakeStore(), FakeClock()
        reg = ScoringRegistry(store, ttl_seconds=60, clock=clock)
        await reg.get_weights("cfg-1")
        clock.advance(30)
        await reg.get_event_rules("cfg-1")
        clock.advance(40)
        await reg.get_weights("cfg-1")
        await reg.get_event_rules("cfg-1")
        assert store.loads["weights"] == 2
        assert store.loads["rules"] == 1

    async def test_invalidate_forces_reload(self):
        store, clock = FakeStore(), FakeClock()
        reg = ScoringRegistry(store, ttl_seconds=3600, clock=clock)
        await reg.get_active_config()
        await reg.get_weights("cfg-1")
        reg.invalidate()
        assert reg.cached_keys == []
        await reg.get_active_config()
        assert store.loads["configs"] == 2

    async def test_reload_sees_new_values(self):
        store, clock = FakeStore(), FakeClock()
        reg = ScoringRegistry(store, ttl_seconds=60, clock=clock)
        assert (await reg.get_active_config()).id == "cfg-1"
        store.configs = [ScoreConfigData(id="cfg-2")]
        assert (await reg.get_active_config()).id == "cfg-1"
        clock.advance(61)
        assert (await reg.get_active_config()).id == "cfg-2"

    async def test_load_in_flight_during_invalidate_is_not_cached(self):
        store = GatedRuleStore()
        reg = ClassificationRegistry(store, clock=FakeClock())

        in_flight = asyncio.create_task(reg.get_positive_rules())
        await store.started.wait()
        store.rules = ["new-rule"]
        reg.invalidate()
        store.release.set()

        assert await in_flight == ["old-rule"]
        assert reg.cached_keys == []
        assert await reg.get_positive_rules() == ["new-rule"]

    async def test_refresh(self):
        store = FakeStore()
        reg = ScoringRegistry(store, clock=FakeClock())
        config = await reg.refresh()
        assert config.id == "cfg-1"
        assert set(reg.cached_keys) == {"active_configs", ("weights", "cfg-1"), ("event_rules", "cfg-1")}


class TestActiveConfig:
    async def test_none_active(self):
        reg = ScoringRegistry(FakeStore(configs=[]), clock=FakeClock())
        with pytest.raises(NoActiveConfig) as exc:
            await reg.get_active_config()
        assert exc.value.active_count == 0

    async def test_two_active(self):
        reg = ScoringRegistry(FakeStore(configs=[ScoreConfigData(id="a"), ScoreConfigData(id="b")]), clock=FakeClock())
        with pytest.raises(NoActiveConfig) as exc:
            await reg.get_active_config()
        assert exc.value.active_count == 2


class TestPromptTemplates:
    def test_lookup_order(self):
        assert template_lookup_order("Launch", "exec", "Hot") == [
            ("Launch", "exec", "Hot"),
            ("Launch", "exec", "*"),
            ("Launch", "*", "Hot"),
            ("*", "exec", "Hot"),
            ("*", "*", "*"),
        ]

    async def test_most_specific_wins(self):
        templates = [
            _template("*", "*", "*"),
            _template("Launch", "*", "Hot"),
            _template("Launch", "exec", "*"),
        ]
        reg = ScoringRegistry(FakeStore(templates=templates), clock=FakeClock())
        t = await reg.get_prompt_template("Launch", "exec", "Hot")
        assert t.id == "Launch/exec/*"

    async def test_falls_back_to_default(self):
        reg = ScoringRegistry(FakeStore(templates=[_template("*", "*", "*")]), clock=FakeClock())
        t = await reg.get_prompt_template("Operations", "engineer", "Warm")
        assert t.id == "*/*/*"

    async def test_partial_wildcards_not_in_lookup_are_skipped(self):
        reg = ScoringRegistry(FakeStore(templates=[_template("*", "*", "Hot")]), clock=FakeClock())
        assert await reg.get_prompt_template("Launch", "exec", "Hot") is None

    async def test_missing_inputs_are_wildcards(self):
        reg = ScoringRegistry(FakeStore(templates=[_template("*", "*", "*")]), clock=FakeClock())
        assert (await reg.get_prompt_template(None, None, None)).id == "*/*/*"

    async def test_first_loaded_duplicate_wins(self):
        templates = [_template("*", "*", "*", tid="newest"), _template("*", "*", "*", tid="older")]
        reg = ScoringRegistry(FakeStore(templates=templates), clock=FakeClock())
        assert (await reg.get_prompt_template("Launch", "exec", "Hot")).id == "newest"


class TestRegistryStore:
    async def test_active_config_and_weights(self, session_factory):
        config_id = await seed_score_config(session_factory, rules=[])
        await seed_score_config(session_factory, rules=[], weights={}, status="draft", name="draft_v2")
        store = RegistryStore(session_factory)

        configs = await store.load_active_configs()
        assert [c.id for c in configs] == [config_id]
        assert configs[0].normalize_k == 80.0

        weights = await store.load_weights(config_id)
        assert weights.get(WeightKey("page_view", "pricing")) == 25
        assert weights.get(WeightKey("cta_click", "", "contact_sales")) == 20

    async def test_event_rules_global_plus_scoped_ascending(self, session_factory):
        config_id = await seed_score_config(session_factory, rules=[])
        other_id = await seed_score_config(session_factory, rules=[], status="draft", name="other")
        async with session_factory() as s:
            s.add_all([
                AbmEventRule(priority=30, event_name="page_view", match_type="contains", match_value="c"),
                AbmEventRule(priority=10, event_name="page_view", match_type="contains", match_value="a",
                             score_config_id=config_id),
                AbmEventRule(priority=20, event_name="page_view", match_type="contains", match_value="b",
                             enabled=False),
                AbmEventRule(priority=5, event_name="page_view", match_type="contains", match_value="x",
                             score_config_id=other_id),
            ])
            await s.commit()

        rules = await RegistryStore(session_factory).load_event_rules(config_id)
        assert [r.match_value for r in rules] == ["a", "c"]

    async def test_program_rules_descending(self, session_factory):
        async with session_factory() as s:
            s.add_all([
                AbmProgramRule(priority=1, match_value="low"),
                AbmProgramRule(priority=50, match_value="high"),
                AbmProgramRule(priority=10, match_value="off", enabled=False),
                AbmProgramSuppressionRule(priority=2, match_value="s-low"),
                AbmProgramSuppressionRule(priority=9, match_value="s-high"),
            ])
            await s.commit()

        store = RegistryStore(session_factory)
        assert [r.match_value for r in await store.load_positive_rules()] == ["high", "low"]
        assert [r.match_value for r in await store.load_suppression_rules()] == ["s-high", "s-low"]

    async def test_prompt_templates_end_to_end(self, session_factory):
        async with session_factory() as s:
            s.add(AbmPromptTemplate(system_prompt="default", user_prompt_template="u"))
            s.add(AbmPromptTemplate(lane="Launch", persona="exec", system_prompt="launch-exec",
                                    user_prompt_template="u"))
            s.add(AbmPromptTemplate(lane="Launch", persona="exec", intent_stage="Hot", enabled=False,
                                    system_prompt="disabled", user_prompt_template="u"))
            await s.commit()

        reg = ScoringRegistry(RegistryStore(session_factory))
        assert (await reg.get_prompt_template("Launch", "exec", "Hot")).system_prompt == "launch-exec"
        assert (await reg.get_prompt_template("Ground", "exec", "Hot")).system_prompt == "default"
