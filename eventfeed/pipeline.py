from __future__ import annotations

import argparse
import logging
import os
from typing import Optional

from .models import CanonicalEvent, FilterSet


def _format_event(ev: CanonicalEvent) -> str:
    more = f" (+{ev.extra_count} more dates)" if ev.extra_count else ""
    return (
        f"  [{ev.origin:<8}] {ev.start_time or 'TBA':<25} {ev.title!r}"
        f" @ {ev.location or '-'} | {ev.price}{more}"
    )


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Fetch the merged local + Ticketmaster event feed.")
    parser.add_argument("--keyword", default=None, help="Free-text search (disables recurrence grouping).")
    parser.add_argument("--location", default=None, help="City / location substring.")
    parser.add_argument("--category", default=None, help="Platform category label, e.g. 'Music'.")
    parser.add_argument("--city", default=None, help="City view: shorthand for an unfiltered feed pinned to a city.")
    parser.add_argument("--pages", type=int, default=1, help="Number of pages to load (1 = first page only).")
    parser.add_argument("--seed", type=int, default=None, help="Seed the shuffle / interleave for reproducible output.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # Import here so --help works without supabase / credentials
    import random

    from .feed.views import browse_feed

    rng = random.Random(args.seed) if args.seed is not None else None
    compositor = browse_feed(rng=rng)

    location = args.city or args.location
    filters = FilterSet(keyword=args.keyword, location=location, category_label=args.category)

    print("FEED: start")
    page = compositor.fetch_page(filters, reset=True)
    failed_pages = 0
    pages_run = 1
    if page is None or (page.local_error and page.external_unavailable):
        failed_pages += 1

    while page is not None and pages_run < args.pages and page.can_load_more:
        page = compositor.fetch_page()
        pages_run += 1
        if page is None or (page.local_error and page.external_unavailable):
            failed_pages += 1

    events = compositor.events
    for ev in events:
        print(_format_event(ev))

    local_n = sum(1 for ev in events if not ev.is_external)
    print(
        f"[feed][summary]"
        f" generation={compositor.generation}"
        f" pages={pages_run}"
        f" local={local_n}"
        f" external={len(events) - local_n}"
        f" total={len(events)}"
        f" can_load_more={compositor.can_load_more}"
        f" failed_pages={failed_pages}"
    )

    return 2 if failed_pages == pages_run else 0


if __name__ == "__main__":
    raise SystemExit(main())
