from __future__ import annotations

import random
from collections import deque
from datetime import datetime, timezone
from typing import List, Sequence, Tuple

from ..canonicalize.timestamps import parse_timestamp
from ..models import CanonicalEvent

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def _start_key(ev: CanonicalEvent) -> Tuple[int, datetime]:
    dt = parse_timestamp(ev.start_time)
    return (1, _FAR_FUTURE) if dt is None else (0, dt)


def sort_chronological(events: Sequence[CanonicalEvent]) -> List[CanonicalEvent]:
    """Stable sort by start time ascending; undated events go last."""
    return sorted(events, key=_start_key)


def shuffle_events(events: Sequence[CanonicalEvent], rng: random.Random) -> List[CanonicalEvent]:
    out = list(events)
    rng.shuffle(out)
    return out


def interleave_by_origin(events: Sequence[CanonicalEvent], rng: random.Random) -> List[CanonicalEvent]:
    """
    Mix local and external cards without a fixed ratio.

    Each step takes the next card from one origin chosen by a coin flip,
    or from whichever origin still has cards. Order within an origin is kept.
    """
    local = deque(ev for ev in events if not ev.is_external)
    external = deque(ev for ev in events if ev.is_external)

    out: List[CanonicalEvent] = []
    while local or external:
        take_local = rng.random() < 0.5
        if take_local and not local:
            take_local = False
        elif not take_local and not external:
            take_local = True
        out.append(local.popleft() if take_local else external.popleft())
    return out


def order_feed(
    events: Sequence[CanonicalEvent],
    *,
    shuffle: bool,
    rng: random.Random,
) -> List[CanonicalEvent]:
    ordered = shuffle_events(events, rng) if shuffle else sort_chronological(events)
    return interleave_by_origin(ordered, rng)
