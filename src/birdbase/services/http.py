"""
Shared HTTP session for eBird and Open-Meteo.

Every datasource goes through ``session`` so that all external calls share
one connection pool, one retry policy and one default timeout. Retries cover
rate limiting (429) and gateway errors; anything else surfaces through
``resp.raise_for_status()`` and becomes a per-item failure upstream.

Usage::

    from birdbase.services.http import session

    resp = session.get("https://api.ebird.org/v2/ref/hotspot/info/L123")
    resp.raise_for_status()
"""

from __future__ import annotations

from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

#: Exponential backoff of 0s, 2s, 4s, 8s on rate limits and gateway errors.
DEFAULT_RETRY = Retry(
    total=4,
    backoff_factor=2,
    status_forcelist=[429, 502, 503, 504],
    allowed_methods=["GET", "HEAD", "OPTIONS"],
    raise_on_status=False,
)

DEFAULT_TIMEOUT = 30  # seconds

# Enough connections for the enrichment thread pools
DEFAULT_POOL_SIZE = 16

USER_AGENT = "birdbase/0.1 (personal eBird dataset builder)"


class TimeoutHTTPAdapter(HTTPAdapter):
    """HTTPAdapter that applies a default timeout when the caller gives none."""

    def __init__(self, *args: Any, timeout: float = DEFAULT_TIMEOUT, **kwargs: Any) -> None:
        self.timeout = timeout
        super().__init__(*args, **kwargs)

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout
        return super().send(request, **kwargs)


def create_session(
    retry: Retry | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    pool_size: int = DEFAULT_POOL_SIZE,
) -> requests.Session:
    """
    Build a ``requests.Session`` with the retrying, timeout-aware adapter.

    Args:
        retry: Retry policy (defaults to ``DEFAULT_RETRY``).
        timeout: Timeout for requests that don't pass one.
        pool_size: Connections kept per host.
    """
    s = requests.Session()
    adapter = TimeoutHTTPAdapter(
        max_retries=retry or DEFAULT_RETRY,
        timeout=timeout,
        pool_connections=pool_size,
        pool_maxsize=pool_size,
    )
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers["User-Agent"] = USER_AGENT
    return s


session: requests.Session = create_session()
