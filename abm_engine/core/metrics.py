"""
Prometheus instruments. Exposed through the /metrics ASGI mount in main.py.
"""
from prometheus_client import Counter, Histogram

RECOMPUTE_RUNS = Counter(
    "abm_intent_recompute_runs_total",
    "Intent recompute invocations",
    ["mode", "status"],
)

ACCOUNTS_SCORED = Counter(
    "abm_intent_accounts_scored_total",
    "Accounts for which a daily snapshot was written",
    ["mode"],
)

EVENT_SOURCE_FALLBACKS = Counter(
    "abm_intent_event_source_fallbacks_total",
    "Batch runs that fell back from the primary event source to local signals",
)

RECOMPUTE_DURATION = Histogram(
    "abm_intent_recompute_seconds",
    "Wall-clock duration of a recompute invocation",
    ["mode"],
)

PROGRAM_CLASSIFICATIONS = Counter(
    "abm_program_classifications_total",
    "Program classification outcomes",
    ["outcome"],
)
