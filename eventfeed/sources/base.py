from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping

from ..models import CanonicalEvent
from .types import ExternalQuery, ExternalSearchResult

logger = logging.getLogger(__name__)


class BaseExternalSource(ABC):
    name: str = "external"

    @abstractmethod
    def search(self, query: ExternalQuery, page: int = 0) -> ExternalSearchResult:
        """Return one provider page of raw records."""

    @abstractmethod
    def map_record(self, raw: Mapping[str, Any]) -> CanonicalEvent:
        """Convert one raw provider record into a CanonicalEvent. Must not raise."""

    def map_records(self, raws: Iterable[Any]) -> List[CanonicalEvent]:
        """
        Map a batch. A record that still manages to break the mapper is
        re-mapped from its id alone, so the batch never aborts.
        """
        out: List[CanonicalEvent] = []
        for raw in raws:
            try:
                out.append(self.map_record(raw))
            except Exception as e:
                rid = raw.get("id") if isinstance(raw, Mapping) else None
                logger.warning(
                    "[%s] map_record failed, using fallbacks | id=%r | %s: %s",
                    self.name, rid, type(e).__name__, e,
                )
                out.append(self.map_record({"id": rid}))
        return out

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)
