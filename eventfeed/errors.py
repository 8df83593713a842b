# eventfeed/errors.py
"""
Failure taxonomy for the feed pipeline.

Nothing here is fatal to the process: the compositor catches
SourceUnavailableError subclasses and degrades the current page instead.
"""
from __future__ import annotations


class FeedError(Exception):
    """Base class for feed pipeline errors."""


class SourceUnavailableError(FeedError):
    """A whole source (local store or external provider) failed for one fetch."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class LocalStoreError(SourceUnavailableError):
    def __init__(self, message: str) -> None:
        super().__init__("local", message)


class ExternalSourceError(SourceUnavailableError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__("ticketmaster", message)
        self.status_code = status_code
