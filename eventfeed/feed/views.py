# eventfeed/feed/views.py
"""
Feed factories for the views that show the merged feed.

Each view instance owns exactly one FeedCompositor; pagination state never
crosses views or users.
"""
from __future__ import annotations

import random
from typing import Optional

from ..db.local_events import CachedCategoryLookup, SupabaseCategoryLookup, SupabaseLocalEventStore
from ..db.supabase_client import get_supabase_client
from ..models import FilterSet
from ..sources.registry import get_external_source
from .compositor import FeedCompositor, FeedPage


def build_compositor(
    *,
    external: str = "ticketmaster",
    rng: Optional[random.Random] = None,
) -> FeedCompositor:
    supabase = get_supabase_client()
    return FeedCompositor(
        SupabaseLocalEventStore(supabase),
        get_external_source(external),
        CachedCategoryLookup(SupabaseCategoryLookup(supabase)),
        rng=rng,
    )


class CityFeed:
    """City landing page: the merged feed pinned to one location."""

    def __init__(self, city: str, compositor: FeedCompositor) -> None:
        self.city = city.strip()
        self.compositor = compositor

    @property
    def title(self) -> str:
        return self.city[:1].upper() + self.city[1:].lower()

    def load(self) -> Optional[FeedPage]:
        return self.compositor.fetch_page(FilterSet(location=self.city.lower()), reset=True)

    def load_more(self) -> Optional[FeedPage]:
        return self.compositor.fetch_page()


def browse_feed(rng: Optional[random.Random] = None) -> FeedCompositor:
    return build_compositor(rng=rng)


def city_feed(city: str, rng: Optional[random.Random] = None) -> CityFeed:
    return CityFeed(city, build_compositor(rng=rng))
