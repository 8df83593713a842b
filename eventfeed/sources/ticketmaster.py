from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import requests

from .. import config
from ..errors import ExternalSourceError
from ..models import ORIGIN_EXTERNAL, CanonicalEvent
from .base import BaseExternalSource
from .http import http_get_json
from .types import ExternalQuery, ExternalSearchResult

logger = logging.getLogger(__name__)

EXTERNAL_ID_PREFIX = "tm_"
SOURCE_NAME = "ticketmaster"
UNTITLED = "Untitled"
FALLBACK_ORGANIZER = "Ticketmaster Official"
PAID_PRICE = "Paid"
MIN_IMAGE_WIDTH = 400

_RETRY_STATUSES = (429, 503)
_THROTTLE_S = 1.2


# ---------------------------------------
# Safe accessors (provider shapes are inconsistent)
# ---------------------------------------

def _dig(obj: Any, *path: Any) -> Any:
    """Walk dict keys / list indexes; any miss or wrong type yields None."""
    cur = obj
    for p in path:
        if isinstance(p, int):
            if not isinstance(cur, list) or len(cur) <= p:
                return None
        elif not isinstance(cur, Mapping):
            return None
        cur = cur[p] if isinstance(p, int) else cur.get(p)
        if cur is None:
            return None
    return cur


def _text(v: Any) -> Optional[str]:
    if v is None or isinstance(v, (dict, list)):
        return None
    s = str(v).strip()
    return s or None


def _width(img: Mapping[str, Any]) -> float:
    try:
        return float(img.get("width") or 0)
    except (TypeError, ValueError):
        return 0.0


def _select_image(images: Any) -> str:
    """First image >= 400px wide, else the first image, else the placeholder."""
    if isinstance(images, list):
        candidates = [i for i in images if isinstance(i, Mapping)]
        for img in candidates:
            url = _text(img.get("url"))
            if url and _width(img) >= MIN_IMAGE_WIDTH:
                return url
        if candidates:
            url = _text(candidates[0].get("url"))
            if url:
                return url
    return config.PLACEHOLDER_IMAGE_URL


def _num(v: Any) -> Any:
    if isinstance(v, float) and v.is_integer():
        return int(v)
    return v


def _format_price(raw: Mapping[str, Any]) -> str:
    pr = _dig(raw, "priceRanges", 0)
    if not isinstance(pr, Mapping):
        return PAID_PRICE
    lo, hi, cur = pr.get("min"), pr.get("max"), pr.get("currency")
    if lo is None and hi is None:
        return PAID_PRICE
    if hi is None:
        hi = lo
    if lo is None:
        lo = hi
    return f"{_num(lo)}–{_num(hi)} {cur or ''}".rstrip()


def _organizer(raw: Mapping[str, Any]) -> str:
    return (
        _text(_dig(raw, "promoter", "name"))
        or _text(_dig(raw, "promoters", 0, "name"))
        or _text(_dig(raw, "_embedded", "attractions", 0, "name"))
        or FALLBACK_ORGANIZER
    )


def map_external_record(raw: Mapping[str, Any]) -> CanonicalEvent:
    """
    Convert a raw Ticketmaster Discovery event into a CanonicalEvent.

    Pure transform, no network. Every field has a fallback, so a malformed
    record degrades instead of raising.
    """
    if not isinstance(raw, Mapping):
        raw = {}

    venue = _dig(raw, "_embedded", "venues", 0)
    venue_name = _text(_dig(venue, "name"))
    venue_city = _text(_dig(venue, "city", "name"))
    location = ", ".join(p for p in (venue_name, venue_city) if p)

    return CanonicalEvent(
        id=f"{EXTERNAL_ID_PREFIX}{_text(raw.get('id')) or ''}",
        title=_text(raw.get("name")) or UNTITLED,
        start_time=_text(_dig(raw, "dates", "start", "dateTime")),
        price=_format_price(raw),
        location=location,
        description=_text(raw.get("info")) or _text(raw.get("pleaseNote")) or "",
        image_url=_select_image(raw.get("images")),
        seats_left=None,
        category=_text(_dig(raw, "classifications", 0, "segment", "name")),
        origin=ORIGIN_EXTERNAL,
        external_source=SOURCE_NAME,
        external_url=_text(raw.get("url")),
        external_organizer=_organizer(raw),
        venue_name=venue_name,
        venue_city=venue_city,
    )


def _page_meta(data: Mapping[str, Any]) -> Tuple[bool, Optional[int]]:
    number = _dig(data, "page", "number")
    total = _dig(data, "page", "totalPages")
    try:
        number_i = int(number)
    except (TypeError, ValueError):
        return False, None
    try:
        total_i = int(total)
    except (TypeError, ValueError):
        total_i = 0
    return number_i < total_i - 1, number_i + 1


class TicketmasterSource(BaseExternalSource):
    """
    Ticketmaster Discovery API client.

    - responses cached for cache_ttl_s per (filters, page)
    - identical page-0 searches within 1.2s are served from cache
    - 429/503: wait 1s, retry once with the same page size so provider
      page numbers stay contiguous
    - expired entries are dropped whenever a new page is cached
    - any failure falls back to a cached page when one exists, else raises
      ExternalSourceError
    """

    name = SOURCE_NAME

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = config.TICKETMASTER_BASE_URL,
        country_code: str = config.TICKETMASTER_COUNTRY_CODE,
        page_size: int = config.TICKETMASTER_PAGE_SIZE,
        window_days: int = config.TICKETMASTER_WINDOW_DAYS,
        cache_ttl_s: float = config.TICKETMASTER_CACHE_TTL_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.country_code = country_code
        self.page_size = page_size
        self.window_days = window_days
        self.cache_ttl_s = cache_ttl_s
        self._clock = clock
        self._sleep = sleep
        self._cache: Dict[Tuple[Any, ...], Tuple[float, ExternalSearchResult]] = {}
        self._last_fetch: Dict[Tuple[Any, ...], float] = {}

    @classmethod
    def from_env(cls) -> "TicketmasterSource":
        config.require_env("TICKETMASTER_KEY")
        return cls(config.TICKETMASTER_KEY or "")

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def map_record(self, raw: Mapping[str, Any]) -> CanonicalEvent:
        return map_external_record(raw)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def build_params(self, query: ExternalQuery, page: int) -> Dict[str, str]:
        now = self.now_utc().replace(microsecond=0)
        params = {
            "apikey": self.api_key,
            "countryCode": self.country_code,
            "size": str(self.page_size),
            "page": str(page),
            "sort": "date,asc" if query.keyword else "relevance,desc",
            "startDateTime": now.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "endDateTime": (now + timedelta(days=self.window_days)).strftime("%Y-%m-%dT%H:%M:%SZ"),
        }
        if query.keyword:
            params["keyword"] = query.keyword
        # "UK" means the whole country, not a city
        if query.location and query.location.strip().lower() != "uk":
            params["city"] = query.location
        if query.classification_id:
            params["segmentId"] = query.classification_id
        return params

    def _prune(self, now: float) -> None:
        keep_s = max(self.cache_ttl_s, _THROTTLE_S)
        self._cache = {k: v for k, v in self._cache.items() if now - v[0] < keep_s}
        self._last_fetch = {k: t for k, t in self._last_fetch.items() if now - t < _THROTTLE_S}

    def search(self, query: ExternalQuery, page: int = 0) -> ExternalSearchResult:
        key = (query.keyword, query.location, query.classification_id, page)
        throttle_key = key[:3]
        now = self._clock()
        cached = self._cache.get(key)

        if page == 0:
            last = self._last_fetch.get(throttle_key, float("-inf"))
            if cached and now - last < _THROTTLE_S:
                return cached[1]
            self._last_fetch[throttle_key] = now

        if cached and now - cached[0] < self.cache_ttl_s:
            logger.debug("[ticketmaster] cache hit page=%s filters=%s", page, key[:3])
            return cached[1]

        url = f"{self.base_url}/events.json"
        try:
            res = http_get_json(url, params=self.build_params(query, page))
            if res.status_code in _RETRY_STATUSES:
                logger.warning("[ticketmaster] rate-limited (%s), retrying page=%s", res.status_code, page)
                self._sleep(1.0)
                res = http_get_json(url, params=self.build_params(query, page))
        except requests.RequestException as e:
            if cached:
                logger.warning("[ticketmaster] network error, serving stale cache: %s", e)
                return cached[1]
            raise ExternalSourceError(f"network error: {type(e).__name__}: {e}") from e

        if not res.ok or not isinstance(res.data, Mapping):
            if cached:
                logger.warning("[ticketmaster] status=%s, serving stale cache", res.status_code)
                return cached[1]
            if res.status_code == 429:
                raise ExternalSourceError("temporarily unavailable (429)", status_code=429)
            raise ExternalSourceError(
                f"search failed: status={res.status_code}", status_code=res.status_code
            )

        events = _dig(res.data, "_embedded", "events")
        raw_records: List[Dict[str, Any]] = events if isinstance(events, list) else []
        if not raw_records and cached:
            logger.warning("[ticketmaster] empty page, serving cached data")
            return cached[1]

        has_more, next_cursor = _page_meta(res.data)
        result = ExternalSearchResult(raw_records=raw_records, has_more=has_more, next_cursor=next_cursor)
        self._prune(now)
        self._cache[key] = (now, result)
        logger.info(
            "[ticketmaster] page=%s events=%d has_more=%s next=%s",
            page, len(raw_records), has_more, next_cursor,
        )
        return result
