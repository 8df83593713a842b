# eventfeed/canonicalize/matching.py
"""
Pure text normalization for fuzzy-equality comparisons.
No DB access, no provider imports.
"""
from __future__ import annotations

import re
from typing import Optional

# "fri", "friday", "tues", "wednesday", ...
_WEEKDAY_RE = re.compile(
    r"\b(?:mon|tue|tues|wed|wednes|thu|thur|thurs|fri|sat|satur|sun)(?:day)?\b"
)
_TIME_RE = re.compile(r"\b\d{1,2}:\d{2}\b")
# multi-show suffix: "... & 2", "... & 9:30", "... & 2 more"
_MULTI_SHOW_RE = re.compile(r"&\s*\d+(?::\d+)?(?:\s+more)?\s*$")
_PUNCT_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def normalize_text(text: Optional[str]) -> str:
    """
    Canonicalize a title or venue name for dedup keys.

    lower -> trim -> drop weekday tokens -> drop HH:MM tokens -> drop trailing
    "& N[:MM]" -> punctuation to spaces -> collapse whitespace -> trim.

    Idempotent: punctuation becomes a space rather than vanishing, so no new
    word tokens can appear on a second pass.
    """
    if not text:
        return ""
    s = str(text).lower().strip()
    s = _WEEKDAY_RE.sub(" ", s)
    s = _TIME_RE.sub(" ", s)
    s = _MULTI_SHOW_RE.sub(" ", s.rstrip())
    s = _PUNCT_RE.sub(" ", s)
    s = _WS_RE.sub(" ", s)
    return s.strip()


def primary_venue_token(
    location: Optional[str],
    venue_name: Optional[str] = None,
    venue_city: Optional[str] = None,
) -> str:
    """Venue part of a "Venue, City" location string, else structured venue name/city."""
    loc = (location or "").strip()
    if loc:
        return loc.split(",", 1)[0].strip()
    return (venue_name or "").strip() or (venue_city or "").strip()
