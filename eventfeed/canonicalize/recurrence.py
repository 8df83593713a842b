# eventfeed/canonicalize/recurrence.py
"""
Fold recurring external listings into one card per (title, venue).

Ticketmaster returns one record per performance, so a weekly comedy night
shows up as N near-identical records. Grouping keeps the earliest
occurrence as the card's start_time and lists the others in extra_dates
("+N more dates").

Invariants on the output (per batch):
  - at most one external event per recurrence key
  - start_time is the earliest dated occurrence seen
  - extra_dates: every other occurrence, de-duplicated by timestamp,
    sorted ascending (undated entries last), never equal to start_time
  - extra_count == len(extra_dates)

Local events are returned untouched, in place.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from ..models import CanonicalEvent
from .dedupe_key import compute_recurrence_key
from .timestamps import parse_timestamp

logger = logging.getLogger(__name__)


def _is_earlier(candidate: Optional[str], anchor: Optional[str]) -> bool:
    """True only when both parse and candidate < anchor, or the anchor is undated."""
    cand_dt = parse_timestamp(candidate)
    if cand_dt is None:
        return False
    anchor_dt = parse_timestamp(anchor)
    if anchor_dt is None:
        return True
    return cand_dt < anchor_dt


def _finalize_extra_dates(anchor: Optional[str], extra: Sequence[Optional[str]]) -> List[Optional[str]]:
    anchor_dt = parse_timestamp(anchor)
    anchor_is_undated = anchor_dt is None

    dated: Dict[datetime, str] = {}
    undated: List[Optional[str]] = []
    for value in extra:
        dt = parse_timestamp(value)
        if dt is None:
            # undated occurrence: keep one, unless it merely repeats an undated anchor
            if not anchor_is_undated and not undated:
                undated.append(value)
            continue
        if anchor_dt is not None and dt == anchor_dt:
            continue
        dated.setdefault(dt, value)

    return [dated[k] for k in sorted(dated)] + undated


def dedupe_recurring(
    events: Sequence[CanonicalEvent],
    *,
    keyword: Optional[str] = None,
) -> List[CanonicalEvent]:
    """
    Group external events by recurrence key.

    With a non-empty keyword the batch passes through unchanged: keyword
    search is precise enough that near-duplicates are distinct results.
    """
    if (keyword or "").strip():
        return list(events)

    out: List[CanonicalEvent] = []
    groups: Dict[str, int] = {}          # key -> index in out
    pending: Dict[str, List[Optional[str]]] = {}

    for ev in events:
        if not ev.is_external:
            out.append(ev)
            continue

        key = compute_recurrence_key(
            title=ev.title,
            location=ev.location,
            venue_name=ev.venue_name,
            venue_city=ev.venue_city,
        )

        if key not in groups:
            groups[key] = len(out)
            pending[key] = []
            out.append(ev.model_copy(update={"extra_dates": [], "extra_count": 0}))
            continue

        idx = groups[key]
        current = out[idx]
        if _is_earlier(ev.start_time, current.start_time):
            # swap: the displaced anchor becomes an extra date
            pending[key].append(current.start_time)
            out[idx] = current.model_copy(update={"start_time": ev.start_time})
        else:
            pending[key].append(ev.start_time)

    for key, idx in groups.items():
        anchor = out[idx].start_time
        extra = _finalize_extra_dates(anchor, pending[key])
        out[idx] = out[idx].model_copy(update={"extra_dates": extra, "extra_count": len(extra)})

    folded = sum(1 for ev in events if ev.is_external) - len(groups)
    if folded:
        logger.debug("[dedupe] folded %d recurring occurrences into %d groups", folded, len(groups))
    return out
