# eventfeed/sources/categories.py
"""
Platform category label -> Ticketmaster segment id.

Unknown labels resolve to "" (no external filter). An unmapped category must
not zero out external results, so this fails open.
"""
from __future__ import annotations

from typing import Dict, Optional

TM_SEGMENT_MAP: Dict[str, str] = {
    "Music": "KZFzniwnSyZfZ7v7nJ",
    "Arts & Theatre": "KZFzniwnSyZfZ7v7na",
    "Sports": "KZFzniwnSyZfZ7v7nE",
    "Film & Cinema": "KZFzniwnSyZfZ7v7nn",
    "Family & Kids": "KZFzniwnSyZfZ7v7n1",
    "Festivals & Lifestyle": "KZFzniwnSyZfZ7v7nn",
    "Other": "",
}

_BY_LOWER = {k.lower(): v for k, v in TM_SEGMENT_MAP.items()}


def resolve_external_category(label: Optional[str]) -> str:
    """Return the Ticketmaster segment id for *label*, or "" for no filter."""
    s = (label or "").strip()
    if not s:
        return ""
    if s in TM_SEGMENT_MAP:
        return TM_SEGMENT_MAP[s]
    return _BY_LOWER.get(s.lower(), "")
