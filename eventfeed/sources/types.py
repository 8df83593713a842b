from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from ..models import FilterSet, LocalEventRow


@dataclass(frozen=True)
class LocalQuery:
    keyword: Optional[str] = None
    location: Optional[str] = None
    category_id: Optional[str] = None


@dataclass(frozen=True)
class ExternalQuery:
    keyword: Optional[str] = None
    location: Optional[str] = None
    classification_id: Optional[str] = None


@dataclass
class LocalSearchResult:
    rows: List[LocalEventRow] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ExternalSearchResult:
    """
    One provider page, still in provider shape.
    next_cursor is None when the provider gave no page metadata.
    """
    raw_records: List[Dict[str, Any]] = field(default_factory=list)
    has_more: bool = False
    next_cursor: Optional[int] = None


class LocalEventStore(Protocol):
    def search(self, query: LocalQuery, offset: int, limit: int) -> LocalSearchResult: ...


class ExternalEventSource(Protocol):
    def search(self, query: ExternalQuery, page: int) -> ExternalSearchResult: ...


class CategoryLookup(Protocol):
    def resolve_category_id(self, name: str) -> Optional[str]: ...


def local_query_for(filters: FilterSet, category_id: Optional[str]) -> LocalQuery:
    return LocalQuery(
        keyword=(filters.keyword or "").strip() or None,
        location=(filters.location or "").strip() or None,
        category_id=category_id,
    )


def external_query_for(filters: FilterSet, classification_id: str) -> ExternalQuery:
    return ExternalQuery(
        keyword=(filters.keyword or "").strip() or None,
        location=(filters.location or "").strip() or None,
        classification_id=classification_id or None,
    )
