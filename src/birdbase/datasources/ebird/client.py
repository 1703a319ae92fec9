"""
eBird API 2.0 client.

Low-level request helper shared by the eBird fetch functions.

API docs: https://documenter.getpostman.com/view/664302/S1ENwy59
Auth: every request carries the ``X-eBirdApiToken`` header.
"""

from __future__ import annotations

from typing import Any

from birdbase.services.http import session

EBIRD_API = "https://api.ebird.org/v2"
TOKEN_HEADER = "X-eBirdApiToken"


def get_json(
    path: str,
    api_key: str | None,
    params: dict[str, Any] | None = None,
    *,
    timeout: float | None = None,
) -> Any:
    """
    GET an eBird endpoint and return the decoded JSON body.

    Args:
        path: Endpoint path below ``EBIRD_API`` (e.g. ``/ref/hotspot/info/L123``).
        api_key: eBird API token. Some reference endpoints work without one.
        params: Query parameters.
        timeout: Per-request timeout; the session default applies when None.

    Raises:
        requests.RequestException: On transport errors or non-2xx responses.
    """
    headers = {TOKEN_HEADER: api_key} if api_key else {}
    kwargs: dict[str, Any] = {"params": params or {}, "headers": headers}
    if timeout is not None:
        kwargs["timeout"] = timeout
    resp = session.get(f"{EBIRD_API}{path}", **kwargs)
    resp.raise_for_status()
    return resp.json()
