# eventfeed/canonicalize/timestamps.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import dateparser


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp (or date) into an aware UTC datetime.

    Accepts "2025-12-01T19:00:00Z", "2025-12-01T19:00Z", "2025-11-05".
    Naive values are treated as UTC. Unparseable input returns None.
    """
    s = (value or "").strip()
    if not s:
        return None

    dt: Optional[datetime] = None
    try:
        dt = datetime.fromisoformat(s[:-1] + "+00:00" if s.endswith(("Z", "z")) else s)
    except ValueError:
        dt = dateparser.parse(
            s,
            languages=["en"],
            settings={"TIMEZONE": "UTC", "RETURN_AS_TIMEZONE_AWARE": True},
        )
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
