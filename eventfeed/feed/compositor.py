# eventfeed/feed/compositor.py
"""
Feed compositor: one page of mixed local + Ticketmaster cards.

One fetch cycle:
  1. category label -> local category id (injected lookup)
  2. local store page (offset = 0 on reset, else cursor * page_size)
  3. category label -> Ticketmaster segment id (static bridge)
  4. external page (cursor 0 on reset)
  5. map raw provider records
  6. fold recurring external listings (skipped for keyword searches)
  7. shuffle (unfiltered landing feed) or sort by start time, undated last
  8. interleave origins by coin flip
  9. advance both cursors

Failure handling: a failed source contributes zero rows for the cycle and
stops offering "load more"; the other source is still composed. Prior
accumulated events are never dropped by a failure.

Concurrency: one compositor per view. Load-more is single-flight. A reset
(filter change) is always accepted and starts a new generation; a cycle
that finishes after a newer generation started is discarded.
"""
from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .. import config
from ..canonicalize.recurrence import dedupe_recurring
from ..models import CanonicalEvent, FilterSet
from ..db.local_events import local_row_to_canonical
from ..sources.base import BaseExternalSource
from ..sources.categories import resolve_external_category
from ..sources.types import (
    CategoryLookup,
    ExternalSearchResult,
    LocalEventStore,
    external_query_for,
    local_query_for,
)
from .ordering import order_feed
from .pagination import DualPagination

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedPage:
    events: List[CanonicalEvent]          # everything accumulated for this filter cycle
    new_events: List[CanonicalEvent]      # this fetch only
    filters: FilterSet
    pagination: DualPagination
    generation: int
    external_unavailable: bool = False
    local_error: Optional[str] = None

    @property
    def can_load_more(self) -> bool:
        return self.pagination.can_load_more


@dataclass
class _Cycle:
    new_events: List[CanonicalEvent] = field(default_factory=list)
    pagination: DualPagination = field(default_factory=DualPagination)
    external_unavailable: bool = False
    local_error: Optional[str] = None
    local_count: int = 0
    external_count: int = 0
    deduped_count: int = 0


class FeedCompositor:
    def __init__(
        self,
        local_store: LocalEventStore,
        external_source: BaseExternalSource,
        category_lookup: Optional[CategoryLookup] = None,
        *,
        page_size: int = config.FEED_PAGE_SIZE,
        rng: Optional[random.Random] = None,
        resolve_classification: Callable[[Optional[str]], str] = resolve_external_category,
    ) -> None:
        self.local_store = local_store
        self.external_source = external_source
        self.category_lookup = category_lookup
        self.page_size = page_size
        self.rng = rng or random.SystemRandom()
        self.resolve_classification = resolve_classification

        self._lock = threading.Lock()
        self._generation = 0
        self._in_flight = 0
        self._filters = FilterSet()
        self._pagination = DualPagination.initial(page_size)
        self._events: List[CanonicalEvent] = []
        self._external_unavailable = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def events(self) -> List[CanonicalEvent]:
        return list(self._events)

    @property
    def can_load_more(self) -> bool:
        return self._pagination.can_load_more

    def fetch_page(self, filters: Optional[FilterSet] = None, reset: bool = False) -> Optional[FeedPage]:
        """
        reset=True: start a new filter cycle with *filters*.
        reset=False: load the next page of the current cycle (*filters* ignored).

        Returns None when the request was rejected (load-more while a fetch
        is in flight) or its result was superseded by a newer reset.
        """
        with self._lock:
            if reset:
                self._generation += 1
                applied = filters or FilterSet()
                pagination = DualPagination.initial(self.page_size)
            else:
                if self._in_flight:
                    logger.info("[feed] load-more rejected: fetch already in flight")
                    return None
                applied = self._filters
                pagination = self._pagination
                if not pagination.can_load_more:
                    return self._page(new_events=[], local_error=None)
            generation = self._generation
            self._in_flight += 1

        try:
            cycle = self._run_cycle(applied, pagination, reset=reset)
        except BaseException:
            with self._lock:
                self._in_flight -= 1
            raise

        with self._lock:
            self._in_flight -= 1
            if generation != self._generation:
                logger.info(
                    "[feed] discarding stale page generation=%s current=%s",
                    generation, self._generation,
                )
                return None

            self._filters = applied
            self._pagination = cycle.pagination
            # sticky until the next reset; a failed source is not retried on load-more
            self._external_unavailable = cycle.external_unavailable or (
                not reset and self._external_unavailable
            )
            self._events = list(cycle.new_events) if reset else self._events + cycle.new_events

            logger.info(
                "[feed][summary] generation=%s reset=%s local=%d external=%d deduped=%d "
                "total=%d can_load_more=%s external_unavailable=%s",
                generation, reset, cycle.local_count, cycle.external_count, cycle.deduped_count,
                len(self._events), self._pagination.can_load_more, cycle.external_unavailable,
            )
            return self._page(new_events=cycle.new_events, local_error=cycle.local_error)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _page(self, *, new_events: List[CanonicalEvent], local_error: Optional[str]) -> FeedPage:
        return FeedPage(
            events=list(self._events),
            new_events=list(new_events),
            filters=self._filters,
            pagination=self._pagination,
            generation=self._generation,
            external_unavailable=self._external_unavailable,
            local_error=local_error,
        )

    def _resolve_local_category(self, label: Optional[str]) -> tuple[Optional[str], bool]:
        """
        Returns (category_id, unknown). unknown=True means the label names no
        local category, so no local row can match. Lookup failures fail open.
        """
        label = (label or "").strip()
        if not label or self.category_lookup is None:
            return None, False
        try:
            category_id = self.category_lookup.resolve_category_id(label)
        except Exception as e:
            logger.warning("[feed] category lookup failed for %r: %s: %s", label, type(e).__name__, e)
            return None, False
        return category_id, category_id is None

    def _fetch_local(self, filters: FilterSet, offset: int) -> tuple[List[CanonicalEvent], Optional[str]]:
        category_id, unknown = self._resolve_local_category(filters.category_label)
        if unknown:
            logger.info("[feed] no local category %r, skipping local store", filters.category_label)
            return [], None
        query = local_query_for(filters, category_id)
        try:
            result = self.local_store.search(query, offset, self.page_size)
        except Exception as e:
            msg = f"{type(e).__name__}: {e}"
            logger.error("[feed] local store FAILED offset=%s | %s", offset, msg)
            return [], msg
        if result.error:
            logger.error("[feed] local store returned error offset=%s | %s", offset, result.error)
            return [], result.error
        return [local_row_to_canonical(r) for r in result.rows], None

    def _fetch_external(self, filters: FilterSet, cursor: int) -> Optional[ExternalSearchResult]:
        query = external_query_for(filters, self.resolve_classification(filters.category_label))
        try:
            return self.external_source.search(query, cursor)
        except Exception as e:
            logger.warning(
                "[feed] external source unavailable page=%s | %s: %s",
                cursor, type(e).__name__, e,
            )
            return None

    def _run_cycle(self, filters: FilterSet, pagination: DualPagination, *, reset: bool) -> _Cycle:
        cycle = _Cycle(pagination=pagination)

        local_events: List[CanonicalEvent] = []
        if reset or pagination.local.has_more:
            offset = 0 if reset else pagination.local_offset
            local_events, cycle.local_error = self._fetch_local(filters, offset)
            if cycle.local_error is not None:
                cycle.pagination = cycle.pagination.local_failed()
            else:
                cycle.pagination = cycle.pagination.advance_local(len(local_events))

        external_events: List[CanonicalEvent] = []
        if reset or pagination.external.has_more:
            cursor = 0 if reset else pagination.external.cursor
            result = self._fetch_external(filters, cursor)
            if result is None:
                cycle.external_unavailable = True
                cycle.pagination = cycle.pagination.external_failed()
            else:
                mapped = self.external_source.map_records(result.raw_records)
                cycle.external_count = len(mapped)
                external_events = dedupe_recurring(mapped, keyword=filters.keyword)
                cycle.pagination = cycle.pagination.advance_external(result)

        cycle.local_count = len(local_events)
        cycle.deduped_count = len(external_events)
        cycle.new_events = order_feed(
            local_events + external_events,
            shuffle=reset and not filters.has_filters,
            rng=self.rng,
        )
        return cycle
