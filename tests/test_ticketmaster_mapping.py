"""Tests for map_external_record (Ticketmaster record -> CanonicalEvent)."""
from __future__ import annotations

import pytest

from eventfeed import config
from eventfeed.models import ORIGIN_EXTERNAL
from eventfeed.sources.ticketmaster import (
    FALLBACK_ORGANIZER,
    TicketmasterSource,
    map_external_record,
)


def _raw(**overrides) -> dict:
    raw = {
        "id": "G5vYZ9abc",
        "name": "Comedy Night",
        "url": "https://www.ticketmaster.co.uk/event/G5vYZ9abc",
        "info": "Stand-up showcase.",
        "dates": {"start": {"dateTime": "2025-11-05T19:30:00Z"}},
        "images": [
            {"url": "https://img.tm/small.jpg", "width": 205},
            {"url": "https://img.tm/large.jpg", "width": 1024},
        ],
        "classifications": [{"segment": {"name": "Arts & Theatre"}}],
        "priceRanges": [{"min": 15.0, "max": 30.5, "currency": "GBP"}],
        "promoter": {"name": "Live Nation"},
        "_embedded": {"venues": [{"name": "The Globe", "city": {"name": "London"}}]},
    }
    raw.update(overrides)
    return raw


# ---------------------------------------------------------------------------
# Full record
# ---------------------------------------------------------------------------
def test_core_fields_mapped():
    ev = map_external_record(_raw())
    assert ev.id == "tm_G5vYZ9abc"
    assert ev.title == "Comedy Night"
    assert ev.start_time == "2025-11-05T19:30:00Z"
    assert ev.location == "The Globe, London"
    assert ev.venue_name == "The Globe"
    assert ev.venue_city == "London"
    assert ev.description == "Stand-up showcase."
    assert ev.category == "Arts & Theatre"
    assert ev.origin == ORIGIN_EXTERNAL
    assert ev.external_source == "ticketmaster"
    assert ev.external_url == "https://www.ticketmaster.co.uk/event/G5vYZ9abc"
    assert ev.external_organizer == "Live Nation"
    assert ev.seats_left is None
    assert ev.extra_dates == []
    assert ev.extra_count == 0


def test_price_range_rendered():
    assert map_external_record(_raw()).price == "15–30.5 GBP"


def test_prefers_first_wide_image():
    assert map_external_record(_raw()).image_url == "https://img.tm/large.jpg"


def test_falls_back_to_first_image_when_none_wide():
    ev = map_external_record(_raw(images=[{"url": "https://img.tm/a.jpg", "width": 100},
                                          {"url": "https://img.tm/b.jpg", "width": "n/a"}]))
    assert ev.image_url == "https://img.tm/a.jpg"


# ---------------------------------------------------------------------------
# Fallbacks
# ---------------------------------------------------------------------------
def test_missing_images_uses_placeholder():
    raw = _raw()
    del raw["images"]
    assert map_external_record(raw).image_url == config.PLACEHOLDER_IMAGE_URL


def test_missing_promoter_uses_fallback_organizer():
    raw = _raw()
    del raw["promoter"]
    assert map_external_record(raw).external_organizer == FALLBACK_ORGANIZER


def test_organizer_from_promoters_list_then_attraction():
    raw = _raw(promoters=[{"name": "AEG Presents"}])
    del raw["promoter"]
    assert map_external_record(raw).external_organizer == "AEG Presents"

    raw = _raw(_embedded={"venues": [], "attractions": [{"name": "The Band"}]})
    del raw["promoter"]
    assert map_external_record(raw).external_organizer == "The Band"


def test_missing_price_is_paid():
    raw = _raw()
    del raw["priceRanges"]
    assert map_external_record(raw).price == "Paid"


def test_missing_name_is_untitled():
    raw = _raw()
    del raw["name"]
    assert map_external_record(raw).title == "Untitled"


def test_location_partial_and_empty():
    assert map_external_record(_raw(_embedded={"venues": [{"name": "The Globe"}]})).location == "The Globe"
    assert map_external_record(_raw(_embedded={"venues": [{"city": {"name": "Leeds"}}]})).location == "Leeds"
    assert map_external_record(_raw(_embedded={})).location == ""


def test_description_falls_back_to_please_note():
    raw = _raw(pleaseNote="No re-entry.")
    del raw["info"]
    assert map_external_record(raw).description == "No re-entry."


@pytest.mark.parametrize("raw", [
    {},
    {"id": 42, "dates": "TBA", "images": "none", "_embedded": {"venues": ["The Globe"]}},
    {"id": "x", "classifications": [None], "priceRanges": [{}], "promoter": "Someone"},
    {"id": "y", "images": [None, {"width": 900}], "dates": {"start": None}},
])
def test_malformed_records_never_raise(raw):
    ev = map_external_record(raw)
    assert ev.id.startswith("tm_")
    assert ev.title == "Untitled"
    assert ev.start_time is None
    assert ev.image_url == config.PLACEHOLDER_IMAGE_URL
    assert ev.price == "Paid"
    assert ev.external_organizer == FALLBACK_ORGANIZER


def test_non_mapping_record_degrades():
    ev = map_external_record(None)  # type: ignore[arg-type]
    assert ev.id == "tm_"
    assert ev.title == "Untitled"


def test_map_records_keeps_whole_batch():
    src = TicketmasterSource("key")
    events = src.map_records([_raw(), {}, _raw(id="second")])
    assert [e.id for e in events] == ["tm_G5vYZ9abc", "tm_", "tm_second"]
