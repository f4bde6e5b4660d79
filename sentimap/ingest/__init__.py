"""Remote data loaders for the event map."""
from __future__ import annotations

import logging
import time
from typing import Any, Optional

import requests

log = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 15  # seconds


def fetch_with_retry(
    url: str,
    *,
    timeout: float = _DEFAULT_TIMEOUT,
    retries: int = 1,
    backoff: float = 1.0,
) -> requests.Response:
    """GET *url*, retrying connection errors, timeouts and 5xx responses.

    4xx responses raise ``requests.HTTPError`` straight away.
    """
    last_exc: Optional[Exception] = None
    for attempt in range(1, retries + 2):
        try:
            resp = requests.get(url, timeout=timeout)
            if resp.status_code < 500:
                resp.raise_for_status()
                return resp
            last_exc = requests.HTTPError(f"HTTP {resp.status_code} from {url[:80]}")
            log.warning("HTTP %d from %s (attempt %d/%d)",
                        resp.status_code, url[:80], attempt, retries + 1)
        except (requests.ConnectionError, requests.Timeout) as exc:
            last_exc = exc
            log.warning("Network error on %s (attempt %d/%d): %s",
                        url[:80], attempt, retries + 1, exc)

        if attempt <= retries:
            time.sleep(backoff * attempt)

    raise last_exc or requests.ConnectionError(f"Failed after {retries + 1} attempts")


def fetch_json(url: str, *, timeout: float = _DEFAULT_TIMEOUT, retries: int = 1) -> Any:
    """GET *url* and decode the body.  Raises ``ValueError`` on a non-JSON body."""
    resp = fetch_with_retry(url, timeout=timeout, retries=retries)
    try:
        return resp.json()
    except ValueError as exc:
        raise ValueError(f"Non-JSON body from {url[:80]}: {exc}") from exc
