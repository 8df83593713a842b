# eventfeed/db/local_events.py
"""
Local event store backed by Supabase (public.events + public.categories).

Reads only. Schema used:
  events:     id, title, description, location, date_time, price, is_paid,
              seats_left, created_by, image_url, category_id
  categories: id, name
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx
from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import Client

from .. import config
from ..errors import LocalStoreError, SourceUnavailableError
from ..models import ORIGIN_LOCAL, CanonicalEvent, LocalEventRow
from ..sources.types import LocalQuery, LocalSearchResult

logger = logging.getLogger(__name__)

EVENT_COLUMNS = (
    "id, title, description, location, date_time, price, is_paid, seats_left, "
    "created_by, image_url, category_id, categories(name)"
)


def _describe_error(e: Exception) -> str:
    """PostgREST APIError keeps its payload differently across versions."""
    if isinstance(e, APIError):
        msg = getattr(e, "message", None)
        if msg:
            return str(msg)
        if e.args and isinstance(e.args[0], dict):
            return str(e.args[0].get("message") or e.args[0])
    return f"{type(e).__name__}: {e}"


def _str_or_none(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def row_from_db(r: Mapping[str, Any]) -> Optional[LocalEventRow]:
    """Map a Supabase events row to LocalEventRow. Rows without an id are dropped."""
    rid = _str_or_none(r.get("id"))
    if not rid:
        return None

    cat = r.get("categories")
    category_name = cat.get("name") if isinstance(cat, Mapping) else None

    seats = r.get("seats_left")
    try:
        seats_left = int(seats) if seats is not None else None
    except (TypeError, ValueError):
        seats_left = None

    return LocalEventRow(
        id=rid,
        title=r.get("title") or "",
        start_time=_str_or_none(r.get("date_time")),
        price=r.get("price"),
        is_paid=r.get("is_paid"),
        location=r.get("location"),
        description=r.get("description"),
        image_url=_str_or_none(r.get("image_url")),
        seats_left=seats_left,
        creator_id=_str_or_none(r.get("created_by")),
        category_name=category_name,
    )


def local_row_to_canonical(row: LocalEventRow) -> CanonicalEvent:
    price = row.price
    if price is None or price == "":
        price = "Paid" if row.is_paid else "Free"

    return CanonicalEvent(
        id=row.id,
        title=row.title,
        start_time=row.start_time,
        price=price,
        location=row.location or "",
        description=row.description or "",
        image_url=row.image_url or config.PLACEHOLDER_IMAGE_URL,
        seats_left=row.seats_left,
        category=row.category_name,
        origin=ORIGIN_LOCAL,
        creator_id=row.creator_id,
        is_paid=row.is_paid,
    )


class SupabaseLocalEventStore:
    def __init__(self, supabase: Client) -> None:
        self.supabase = supabase

    def search(self, query: LocalQuery, offset: int, limit: int) -> LocalSearchResult:
        """
        Substring match on title / location, equality on category_id,
        ordered by start time ascending, rows [offset, offset + limit).

        Errors are reported in the result, never raised.
        """
        q = self.supabase.table("events").select(EVENT_COLUMNS)
        if query.keyword:
            q = q.ilike("title", f"%{query.keyword}%")
        if query.location:
            q = q.ilike("location", f"%{query.location}%")
        if query.category_id:
            q = q.eq("category_id", query.category_id)

        try:
            resp = q.order("date_time", desc=False).range(offset, offset + limit - 1).execute()
        except (APIError, httpx.HTTPError) as e:
            msg = _describe_error(e)
            logger.error("[local_store] search FAILED offset=%s limit=%s | %s", offset, limit, msg)
            return LocalSearchResult(rows=[], error=msg)

        data = getattr(resp, "data", None) or []
        rows: List[LocalEventRow] = []
        for r in data:
            if not isinstance(r, Mapping):
                continue
            try:
                row = row_from_db(r)
            except ValidationError as e:
                logger.warning("[local_store] SKIP invalid row id=%r: %s", r.get("id"), e)
                continue
            if row is None:
                logger.warning("[local_store] SKIP row without id: %r", r)
                continue
            rows.append(row)
        return LocalSearchResult(rows=rows)


class SupabaseCategoryLookup:
    def __init__(self, supabase: Client) -> None:
        self.supabase = supabase

    def resolve_category_id(self, name: str) -> Optional[str]:
        try:
            resp = (
                self.supabase.table("categories")
                .select("id, name")
                .eq("name", name)
                .limit(1)
                .execute()
            )
        except (APIError, httpx.HTTPError) as e:
            raise LocalStoreError(f"category lookup failed for {name!r}: {_describe_error(e)}") from e

        data = getattr(resp, "data", None) or []
        if not data or not isinstance(data[0], Mapping):
            return None
        return _str_or_none(data[0].get("id"))


class CachedCategoryLookup:
    """
    Label -> local category id with an explicit cache.

    Hits and known misses (None) are cached. Lookup failures propagate
    uncached, so the caller decides how to degrade and the next fetch cycle
    retries.
    """

    def __init__(self, inner: Any) -> None:
        self.inner = inner
        self._cache: Dict[str, Optional[str]] = {}

    def resolve_category_id(self, name: str) -> Optional[str]:
        key = (name or "").strip()
        if not key:
            return None
        if key in self._cache:
            return self._cache[key]
        try:
            cid = self.inner.resolve_category_id(key)
        except SourceUnavailableError as e:
            logger.warning("[categories] lookup unavailable for %r: %s", key, e)
            raise
        self._cache[key] = cid
        return cid
