"""
Lane selection and "why hot" evidence.

Key events are counted over the 7-day window under these keys:

    page_view            → "{content_type}_page_view"     e.g. pricing_page_view
    cta_click with id    → "cta_click_{cta_id}"
    anything else        → event_name
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Optional

from abm_engine.scoring.types import DEFAULT_CONTENT_TYPE, DEFAULT_LANE, EventRuleData, RawEvent

WHY_HOT_MAX = 3
EVIDENCE_MAX = 6

KEY_EVENT_LABELS: dict[str, str] = {
    "pricing_page_view": "Pricing",
    "security_page_view": "Security",
    "integrations_page_view": "Integrations",
    "request_reservation_page_view": "Request Reservation",
    "form_started": "Form Started",
    "form_submitted": "Form Submitted",
    "cta_click_request_reservation": "CTA: Request Reservation",
}

_COUNT_PLACEHOLDER = re.compile(r"\{count\}", re.IGNORECASE)


def top_lane(lane_scores_7d: Mapping[str, float]) -> str:
    """Argmax of the 7-day lane map; ties go to the alphabetically first lane."""
    best: Optional[str] = None
    for lane in sorted(lane_scores_7d):
        if best is None or lane_scores_7d[lane] > lane_scores_7d[best]:
            best = lane
    return best if best is not None else DEFAULT_LANE


def key_event_key(event_name: str, content_type: Optional[str] = None, cta_id: Optional[str] = None) -> str:
    if event_name == "page_view":
        return f"{content_type or DEFAULT_CONTENT_TYPE}_page_view"
    if event_name == "cta_click" and cta_id:
        return f"cta_click_{cta_id}"
    return event_name or "other"


def count_key_events(events: Iterable[RawEvent]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for e in events:
        key = key_event_key(e.event_name, e.content_type, e.cta_id)
        counts[key] = counts.get(key, 0) + 1
    return dict(sorted(counts.items()))


def count_unique_visitors(events: Iterable[RawEvent]) -> int:
    return len({e.distinct_visitor_id for e in events if e.distinct_visitor_id})


def humanize_key(key: str) -> str:
    return key.replace("_", " ").strip()


def _ranked(counts: Mapping[str, int], limit: int) -> list[tuple[str, int]]:
    entries = [(k, c) for k, c in (counts or {}).items() if c > 0]
    entries.sort(key=lambda kc: (-kc[1], kc[0]))
    return entries[:limit]


def build_why_hot(counts: Mapping[str, int], max_reasons: int = WHY_HOT_MAX) -> list[str]:
    """['2× Pricing', '1× Form Started', ...]"""
    return [
        f"{count}× {KEY_EVENT_LABELS.get(key) or humanize_key(key)}"
        for key, count in _ranked(counts, max_reasons)
    ]


def _evidence_templates(rules: Iterable[EventRuleData]) -> dict[str, str]:
    """First rule (in the given order) carrying a template wins for its key."""
    templates: dict[str, str] = {}
    for r in rules or ():
        if not r.evidence_template:
            continue
        if r.event_name == "page_view":
            key = f"{r.content_type or DEFAULT_CONTENT_TYPE}_page_view"
        else:
            key = r.event_name or "other"
        templates.setdefault(key, r.evidence_template)
    return templates


def build_evidence_strings(
    counts: Mapping[str, int],
    rules: Iterable[EventRuleData] = (),
    max_strings: int = EVIDENCE_MAX,
) -> list[str]:
    templates = _evidence_templates(rules)
    out = []
    for key, count in _ranked(counts, max_strings):
        template = templates.get(key)
        if template:
            out.append(_COUNT_PLACEHOLDER.sub(str(count), template))
        else:
            out.append(f"{humanize_key(key)} ({count}×)")
    return out
