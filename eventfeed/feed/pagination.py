# eventfeed/feed/pagination.py
"""
Independent cursors for the two feed sources.

  local:    cursor = pages consumed; offset = cursor * page_size
            has_more iff the last page came back full
  external: cursor = provider page number to request next
            has_more / next cursor straight from provider page metadata

Cursors only move forward within a filter cycle. A filter change starts a
new cycle from initial().
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from ..sources.types import ExternalSearchResult


@dataclass(frozen=True)
class PaginationState:
    cursor: int = 0
    has_more: bool = True


@dataclass(frozen=True)
class DualPagination:
    local: PaginationState = PaginationState()
    external: PaginationState = PaginationState()
    page_size: int = 12

    @classmethod
    def initial(cls, page_size: int) -> "DualPagination":
        return cls(local=PaginationState(), external=PaginationState(), page_size=page_size)

    @property
    def can_load_more(self) -> bool:
        return self.local.has_more or self.external.has_more

    @property
    def local_offset(self) -> int:
        return self.local.cursor * self.page_size

    def advance_local(self, returned: int) -> "DualPagination":
        local = PaginationState(cursor=self.local.cursor + 1, has_more=returned == self.page_size)
        return replace(self, local=local)

    def advance_external(self, result: ExternalSearchResult) -> "DualPagination":
        nxt: Optional[int] = result.next_cursor
        cursor = self.external.cursor if nxt is None else max(self.external.cursor, nxt)
        return replace(self, external=PaginationState(cursor=cursor, has_more=bool(result.has_more)))

    def local_failed(self) -> "DualPagination":
        return replace(self, local=PaginationState(cursor=self.local.cursor, has_more=False))

    def external_failed(self) -> "DualPagination":
        """Collapse toward local-only: keep the cursor, stop offering more."""
        return replace(self, external=PaginationState(cursor=self.external.cursor, has_more=False))

    def advance(
        self,
        local_returned: Optional[int],
        external_result: Optional[ExternalSearchResult],
    ) -> "DualPagination":
        """
        Apply one fetch cycle. None means that source was not queried
        (already exhausted) and its state stays as is.
        """
        out = self
        if local_returned is not None:
            out = out.advance_local(local_returned)
        if external_result is not None:
            out = out.advance_external(external_result)
        return out
