"""
Configuration registries — TTL-cached views over the admin-editable tables.

# ═══════════════════════════════════════════════════════════════════
# Each cached item carries its own load timestamp; a read after the TTL
# reloads it synchronously from the store. Two concurrent readers of an
# expired item may both reload — the loads are idempotent and the last
# one to finish wins. A load that was running when invalidate() was
# called is returned to its caller but never cached. Refills and
# invalidate() replace whole entries, so a reader never sees a
# half-updated rule list.
# ═══════════════════════════════════════════════════════════════════
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Hashable, Optional

import structlog

from abm_engine.core.errors import NoActiveConfig
from abm_engine.scoring.types import EventRuleData, ScoreConfigData
from abm_engine.scoring.weights import WeightTable

logger = structlog.get_logger()

WILDCARD = "*"

Clock = Callable[[], float]


@dataclass(frozen=True)
class PromptTemplateData:
    id: Optional[str]
    lane: str
    persona: str
    intent_stage: str
    system_prompt: str
    user_prompt_template: str
    max_words: int = 180
    version: Optional[str] = None


def template_lookup_order(lane: str, persona: str, stage: str) -> list[tuple[str, str, str]]:
    """Most specific first; the all-wildcard template is the last resort."""
    return [
        (lane, persona, stage),
        (lane, persona, WILDCARD),
        (lane, WILDCARD, stage),
        (WILDCARD, persona, stage),
        (WILDCARD, WILDCARD, WILDCARD),
    ]


class TTLRegistry:
    """Base for the registries: per-key TTL cache over an async store."""

    name = "registry"

    def __init__(self, store, ttl_seconds: float, clock: Clock = time.monotonic):
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._generation = 0

    async def _cached(self, key: Hashable, loader: Callable[[], Awaitable[Any]]) -> Any:
        entry = self._entries.get(key)
        now = self._clock()
        if entry is not None and now - entry[0] < self._ttl:
            return entry[1]

        generation = self._generation
        value = await loader()
        if generation != self._generation:
            # invalidated while loading: the caller gets the value, the cache does not
            logger.debug("registry_load_discarded", registry=self.name, key=str(key))
            return value
        self._entries = {**self._entries, key: (self._clock(), value)}
        logger.debug("registry_loaded", registry=self.name, key=str(key))
        return value

    def invalidate(self) -> None:
        """Drop every cached item. The next read of each item reloads it."""
        self._generation += 1
        self._entries = {}
        logger.info("registry_invalidated", registry=self.name)

    @property
    def cached_keys(self) -> list:
        return list(self._entries)


class ScoringRegistry(TTLRegistry):
    """Active score config, its weights, event rules and narrative templates."""

    name = "scoring"

    def __init__(self, store, ttl_seconds: float = 60, clock: Clock = time.monotonic):
        super().__init__(store, ttl_seconds, clock)

    async def get_active_config(self) -> ScoreConfigData:
        configs = await self._cached("active_configs", self._store.load_active_configs)
        if len(configs) != 1:
            raise NoActiveConfig(active_count=len(configs))
        return configs[0]

    async def get_weights(self, score_config_id: str) -> WeightTable:
        return await self._cached(
            ("weights", score_config_id),
            lambda: self._store.load_weights(score_config_id),
        )

    async def get_event_rules(self, score_config_id: Optional[str]) -> list[EventRuleData]:
        """Global rules plus those scoped to the config, ascending priority."""
        return await self._cached(
            ("event_rules", score_config_id),
            lambda: self._store.load_event_rules(score_config_id),
        )

    async def get_prompt_template(
        self, lane: Optional[str], persona: Optional[str], intent_stage: Optional[str],
    ) -> Optional[PromptTemplateData]:
        templates = await self._cached("prompt_templates", self._store.load_prompt_templates)
        by_key = {}
        for t in templates:
            by_key.setdefault((t.lane, t.persona, t.intent_stage), t)

        lookup = template_lookup_order(
            lane or WILDCARD, persona or WILDCARD, intent_stage or WILDCARD,
        )
        for key in lookup:
            if key in by_key:
                return by_key[key]
        return None

    async def refresh(self) -> ScoreConfigData:
        """Reload the scoring items for the active config now."""
        self.invalidate()
        config = await self.get_active_config()
        await self.get_weights(config.id)
        await self.get_event_rules(config.id)
        return config


class ClassificationRegistry(TTLRegistry):
    """Agency blacklist, suppression rules and positive program rules."""

    name = "classification"

    def __init__(self, store, ttl_seconds: float = 300, clock: Clock = time.monotonic):
        super().__init__(store, ttl_seconds, clock)

    async def get_blacklist(self) -> list:
        return await self._cached("agency_blacklist", self._store.load_blacklist)

    async def get_suppression_rules(self) -> list:
        return await self._cached("suppression_rules", self._store.load_suppression_rules)

    async def get_positive_rules(self) -> list:
        return await self._cached("positive_rules", self._store.load_positive_rules)

    async def refresh(self) -> None:
        self.invalidate()
        await self.get_blacklist()
        await self.get_suppression_rules()
        await self.get_positive_rules()
