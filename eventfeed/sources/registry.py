from __future__ import annotations

from typing import Callable, Dict

from .base import BaseExternalSource
from .ticketmaster import TicketmasterSource


SOURCES: Dict[str, Callable[[], BaseExternalSource]] = {
    "ticketmaster": TicketmasterSource.from_env,
}


def get_external_source(name: str) -> BaseExternalSource:
    factory = SOURCES[name]
    return factory()
