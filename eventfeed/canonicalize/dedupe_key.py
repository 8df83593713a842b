# eventfeed/canonicalize/dedupe_key.py
"""
Recurrence key contract for external listings.

  key = "<normalized_title>::<normalized_venue>"

  - normalized_title: matching.normalize_text(title)
  - normalized_venue: matching.normalize_text(primary venue token), where the
    token is the part of `location` before the first comma, falling back to
    the structured venue name, then venue city
  - an empty venue becomes "unknown"

Dates never enter the key: the whole point is to fold every occurrence of a
recurring listing into one record.

Examples:
  title="LIVE JAZZ", location="The Globe, London"  -> "live jazz::the globe"
  title="Live Jazz (Fri 19:30)", location="The Globe" -> "live jazz::the globe"
  title="Quiz", location=""                        -> "quiz::unknown"
"""
from __future__ import annotations

from typing import Optional

from .matching import normalize_text, primary_venue_token

UNKNOWN_VENUE = "unknown"


def compute_recurrence_key(
    *,
    title: Optional[str],
    location: Optional[str],
    venue_name: Optional[str] = None,
    venue_city: Optional[str] = None,
) -> str:
    venue = normalize_text(primary_venue_token(location, venue_name, venue_city))
    return f"{normalize_text(title)}::{venue or UNKNOWN_VENUE}"
