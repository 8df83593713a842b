from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import requests

logger = logging.getLogger(__name__)

USER_AGENT = "eventfeed/0.1"


@dataclass
class HttpResult:
    url: str
    status_code: int
    text: str
    data: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def http_get_json(
    url: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
    timeout_s: int = 15,
) -> HttpResult:
    """
    GET a JSON endpoint. Network failures raise requests.RequestException;
    HTTP error statuses are returned, not raised, so callers can branch on 429.
    """
    h = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    if headers:
        h.update(headers)

    r = requests.get(url, params=params, headers=h, timeout=timeout_s)
    logger.debug("http_get_json(): status=%s url=%s", r.status_code, r.url)

    data: Any = None
    if r.ok:
        try:
            data = r.json()
        except ValueError:
            logger.warning("http_get_json(): non-JSON body from %s (len=%d)", r.url, len(r.text or ""))
    return HttpResult(url=r.url, status_code=r.status_code, text=r.text, data=data)
