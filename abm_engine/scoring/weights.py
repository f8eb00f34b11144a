"""
Event weight table and resolution.

Stored weights are keyed by (event_name, content_type, cta_id). The admin UI
and existing stored tables exchange them as the colon-delimited wire key

    "{event_name}:{content_type or ''}:{cta_id or ''}"      e.g. "page_view:pricing:"

Resolution order for an event:
  1. exact key
  2. page_view with a non-empty content_type only: the generic page-view
     weight "page_view::", then "page_view:other:"
  3. "page_view:other:"
  4. 1
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Optional

PAGE_VIEW = "page_view"
DEFAULT_WEIGHT = 1


@dataclass(frozen=True)
class WeightKey:
    event_name: str
    content_type: str = ""
    cta_id: str = ""

    @classmethod
    def of(cls, event_name: str, content_type: Optional[str] = None, cta_id: Optional[str] = None) -> "WeightKey":
        return cls(event_name, content_type or "", cta_id or "")

    @classmethod
    def from_wire(cls, key: str) -> "WeightKey":
        parts = key.split(":")
        if len(parts) != 3 or not parts[0]:
            raise ValueError(f"Weight key must be 'event:content_type:cta_id', got {key!r}")
        return cls(*parts)

    @property
    def wire(self) -> str:
        return f"{self.event_name}:{self.content_type}:{self.cta_id}"


GENERIC_PAGE_VIEW = WeightKey(PAGE_VIEW)
OTHER_PAGE_VIEW = WeightKey(PAGE_VIEW, "other")


class WeightTable:
    """Read-only weight lookup for one score config."""

    def __init__(self, weights: Optional[Mapping[WeightKey, int]] = None):
        self._weights: dict[WeightKey, int] = dict(weights or {})

    @classmethod
    def from_rows(cls, rows: Iterable[tuple[str, Optional[str], Optional[str], int]]) -> "WeightTable":
        return cls({WeightKey.of(e, c, t): w for e, c, t, w in rows})

    @classmethod
    def from_wire(cls, mapping: Mapping[str, int]) -> "WeightTable":
        return cls({WeightKey.from_wire(k): w for k, w in mapping.items()})

    def get(self, key: WeightKey) -> Optional[int]:
        return self._weights.get(key)

    def to_wire(self) -> dict[str, int]:
        return {k.wire: w for k, w in self._weights.items()}

    def __len__(self) -> int:
        return len(self._weights)

    def __contains__(self, key: WeightKey) -> bool:
        return key in self._weights


def resolve_weight(
    weights: WeightTable,
    event_name: str,
    content_type: Optional[str] = None,
    cta_id: Optional[str] = None,
) -> int:
    exact = weights.get(WeightKey.of(event_name, content_type, cta_id))
    if exact is not None:
        return exact

    if event_name == PAGE_VIEW and content_type:
        for key in (GENERIC_PAGE_VIEW, OTHER_PAGE_VIEW):
            fallback = weights.get(key)
            if fallback is not None:
                return fallback

    other = weights.get(OTHER_PAGE_VIEW)
    return other if other is not None else DEFAULT_WEIGHT
