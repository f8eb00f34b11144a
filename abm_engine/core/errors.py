"""
Engine error types.

Only NoActiveConfig / InvalidScoreConfig are fatal for a recompute run.
ExternalSourceUnavailable is recovered by the batch job (fallback source),
MalformedRule is recovered per rule by the classifiers.
"""
from __future__ import annotations


class IntentEngineError(Exception):
    """Base class for all engine errors."""


class NoActiveConfig(IntentEngineError):
    def __init__(self, active_count: int = 0):
        self.active_count = active_count
        if active_count == 0:
            msg = "No active score config"
        else:
            msg = f"Expected exactly one active score config, found {active_count}"
        super().__init__(msg)


class InvalidScoreConfig(IntentEngineError):
    pass


class ExternalSourceUnavailable(IntentEngineError):
    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source} unavailable: {reason}")


class MalformedRule(IntentEngineError):
    def __init__(self, rule_id, pattern: str, reason: str):
        self.rule_id = rule_id
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Rule {rule_id} has malformed pattern {pattern!r}: {reason}")


class AccountNotFound(IntentEngineError):
    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")
