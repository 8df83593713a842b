"""
Tests for TicketmasterSource.search (HTTP faked by patching http_get_json).

Verifies:
  1. Query parameters (keyword / city / segment / window / sort)
  2. Page metadata -> has_more / next_cursor
  3. Response cache and page-0 throttle
  4. 429/503 retry at the same page size
  5. Failures fall back to cache, else raise ExternalSourceError
"""
from __future__ import annotations

from unittest.mock import patch

import pytest
import requests

from eventfeed.errors import ExternalSourceError
from eventfeed.sources.http import HttpResult
from eventfeed.sources.ticketmaster import TicketmasterSource
from eventfeed.sources.types import ExternalQuery

_HTTP = "eventfeed.sources.ticketmaster.http_get_json"


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _ok(events, *, number=0, total_pages=1) -> HttpResult:
    data = {"_embedded": {"events": events}, "page": {"number": number, "totalPages": total_pages}}
    return HttpResult(url="https://app.ticketmaster.com/discovery/v2/events.json", status_code=200, text="{}", data=data)


def _status(code: int) -> HttpResult:
    return HttpResult(url="https://app.ticketmaster.com/discovery/v2/events.json", status_code=code, text="err")


def _source(**kw) -> tuple[TicketmasterSource, FakeClock, list]:
    clock = FakeClock()
    sleeps: list = []
    src = TicketmasterSource("secret", page_size=12, clock=clock, sleep=sleeps.append, **kw)
    return src, clock, sleeps


# ---------------------------------------------------------------------------
# 1. Parameters
# ---------------------------------------------------------------------------

def test_params_with_all_filters():
    src, _, _ = _source()
    params = src.build_params(ExternalQuery(keyword="jazz", location="Manchester", classification_id="SEG"), 2)
    assert params["apikey"] == "secret"
    assert params["countryCode"] == "GB"
    assert params["size"] == "12"
    assert params["page"] == "2"
    assert params["keyword"] == "jazz"
    assert params["city"] == "Manchester"
    assert params["segmentId"] == "SEG"
    assert params["sort"] == "date,asc"
    assert params["startDateTime"].endswith("Z")
    assert params["endDateTime"] > params["startDateTime"]


def test_params_without_filters():
    src, _, _ = _source()
    params = src.build_params(ExternalQuery(), 0)
    assert params["sort"] == "relevance,desc"
    assert "keyword" not in params
    assert "city" not in params
    assert "segmentId" not in params


def test_uk_location_is_not_a_city():
    src, _, _ = _source()
    assert "city" not in src.build_params(ExternalQuery(location="UK"), 0)


# ---------------------------------------------------------------------------
# 2. Page metadata
# ---------------------------------------------------------------------------

def test_has_more_and_next_cursor_from_page_meta():
    src, _, _ = _source()
    with patch(_HTTP, return_value=_ok([{"id": "1"}], number=0, total_pages=3)):
        res = src.search(ExternalQuery(), 0)
    assert res.raw_records == [{"id": "1"}]
    assert res.has_more is True
    assert res.next_cursor == 1


def test_last_page_has_no_more():
    src, _, _ = _source()
    with patch(_HTTP, return_value=_ok([{"id": "1"}], number=2, total_pages=3)):
        res = src.search(ExternalQuery(), 2)
    assert res.has_more is False
    assert res.next_cursor == 3


def test_missing_page_meta():
    src, _, _ = _source()
    result = HttpResult(url="u", status_code=200, text="{}", data={"_embedded": {"events": []}})
    with patch(_HTTP, return_value=result):
        res = src.search(ExternalQuery(), 0)
    assert res.raw_records == []
    assert res.has_more is False
    assert res.next_cursor is None


# ---------------------------------------------------------------------------
# 3. Cache / throttle
# ---------------------------------------------------------------------------

def test_cached_within_ttl():
    src, clock, _ = _source()
    with patch(_HTTP, return_value=_ok([{"id": "1"}])) as http:
        src.search(ExternalQuery(keyword="jazz"), 0)
        clock.now += 60
        src.search(ExternalQuery(keyword="jazz"), 0)
    assert http.call_count == 1


def test_refetch_after_ttl():
    src, clock, _ = _source(cache_ttl_s=20 * 60)
    with patch(_HTTP, return_value=_ok([{"id": "1"}])) as http:
        src.search(ExternalQuery(), 1)
        clock.now += 20 * 60 + 1
        src.search(ExternalQuery(), 1)
    assert http.call_count == 2


def test_different_filters_not_shared():
    src, _, _ = _source()
    with patch(_HTTP, return_value=_ok([{"id": "1"}])) as http:
        src.search(ExternalQuery(keyword="jazz"), 0)
        src.search(ExternalQuery(keyword="rock"), 0)
    assert http.call_count == 2


def test_expired_entries_dropped_on_write():
    src, clock, _ = _source(cache_ttl_s=60)
    with patch(_HTTP, return_value=_ok([{"id": "1"}])):
        src.search(ExternalQuery(keyword="jazz"), 0)
        src.search(ExternalQuery(keyword="jazz"), 1)
        clock.now += 3600
        src.search(ExternalQuery(keyword="rock"), 0)

    assert list(src._cache) == [("rock", None, None, 0)]
    assert list(src._last_fetch) == [("rock", None, None)]


def test_page_zero_throttled_even_when_cache_expired():
    src, clock, _ = _source(cache_ttl_s=0.5)
    with patch(_HTTP, return_value=_ok([{"id": "1"}])) as http:
        src.search(ExternalQuery(), 0)
        clock.now += 1.0
        src.search(ExternalQuery(), 0)
    assert http.call_count == 1


# ---------------------------------------------------------------------------
# 4. Rate limit retry
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("code", [429, 503])
def test_retry_once_with_same_page_size(code):
    src, _, sleeps = _source()
    with patch(_HTTP, side_effect=[_status(code), _ok([{"id": "1"}])]) as http:
        res = src.search(ExternalQuery(), 0)
    assert res.raw_records == [{"id": "1"}]
    assert sleeps == [1.0]
    assert http.call_count == 2
    assert http.call_args_list[1].kwargs["params"]["size"] == "12"


def test_retry_then_load_more_keeps_pages_contiguous():
    src, _, _ = _source()
    first = [{"id": str(i)} for i in range(12)]
    second = [{"id": str(i)} for i in range(12, 24)]
    with patch(_HTTP, side_effect=[
        _status(429),
        _ok(first, number=0, total_pages=3),
        _ok(second, number=1, total_pages=3),
    ]) as http:
        p0 = src.search(ExternalQuery(), 0)
        p1 = src.search(ExternalQuery(), p0.next_cursor)

    sizes = [c.kwargs["params"]["size"] for c in http.call_args_list]
    pages = [c.kwargs["params"]["page"] for c in http.call_args_list]
    assert sizes == ["12", "12", "12"]
    assert pages == ["0", "0", "1"]
    ids = [int(r["id"]) for r in p0.raw_records + p1.raw_records]
    assert ids == list(range(24))


def test_rate_limited_twice_raises():
    src, _, _ = _source()
    with patch(_HTTP, side_effect=[_status(429), _status(429)]):
        with pytest.raises(ExternalSourceError) as ei:
            src.search(ExternalQuery(), 0)
    assert ei.value.status_code == 429


# ---------------------------------------------------------------------------
# 5. Failures
# ---------------------------------------------------------------------------

def test_network_error_without_cache_raises():
    src, _, _ = _source()
    with patch(_HTTP, side_effect=requests.ConnectionError("down")):
        with pytest.raises(ExternalSourceError, match="network error"):
            src.search(ExternalQuery(), 0)


def test_http_error_without_cache_raises():
    src, _, _ = _source()
    with patch(_HTTP, return_value=_status(500)):
        with pytest.raises(ExternalSourceError) as ei:
            src.search(ExternalQuery(), 0)
    assert ei.value.status_code == 500


def test_stale_cache_served_on_failure():
    src, clock, _ = _source(cache_ttl_s=60)
    with patch(_HTTP, return_value=_ok([{"id": "1"}], total_pages=2)):
        first = src.search(ExternalQuery(), 1)
    clock.now += 3600
    with patch(_HTTP, side_effect=requests.Timeout("slow")):
        again = src.search(ExternalQuery(), 1)
    assert again is first


def test_empty_page_falls_back_to_cache():
    src, clock, _ = _source(cache_ttl_s=60)
    with patch(_HTTP, return_value=_ok([{"id": "1"}])):
        first = src.search(ExternalQuery(), 1)
    clock.now += 3600
    with patch(_HTTP, return_value=_ok([])):
        assert src.search(ExternalQuery(), 1) is first
