from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ORIGIN_LOCAL = "local"
ORIGIN_EXTERNAL = "external"


class FilterSet(BaseModel):
    """Active search filters for one fetch cycle (immutable)."""

    model_config = ConfigDict(frozen=True)

    keyword: Optional[str] = None
    location: Optional[str] = None
    category_label: Optional[str] = None

    @property
    def keyword_active(self) -> bool:
        return bool((self.keyword or "").strip())

    @property
    def has_filters(self) -> bool:
        return any((v or "").strip() for v in (self.keyword, self.location, self.category_label))


class LocalEventRow(BaseModel):
    id: str
    title: str = ""
    start_time: Optional[str] = None
    price: Optional[Union[int, float, str]] = None
    is_paid: Optional[bool] = None
    location: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    seats_left: Optional[int] = None
    creator_id: Optional[str] = None
    category_name: Optional[str] = None


class CanonicalEvent(BaseModel):
    id: str
    title: str = ""
    start_time: Optional[str] = None       # ISO-8601, None = unknown / TBA
    price: Optional[Union[int, float, str]] = None
    location: str = ""
    description: str = ""
    image_url: str
    seats_left: Optional[int] = None
    category: Optional[str] = None
    origin: str = ORIGIN_LOCAL             # local | external

    creator_id: Optional[str] = None
    is_paid: Optional[bool] = None

    external_source: Optional[str] = None
    external_url: Optional[str] = None
    external_organizer: Optional[str] = None
    venue_name: Optional[str] = None
    venue_city: Optional[str] = None

    extra_dates: List[Optional[str]] = Field(default_factory=list)
    extra_count: int = 0

    @property
    def is_external(self) -> bool:
        return self.origin == ORIGIN_EXTERNAL
