"""HTTP fetching with retry for the standalone CLI."""

import sys
from typing import Optional

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from pageclone.config import get_config

USER_AGENT = "pageclone/0.1"


def _is_transient(exc: BaseException) -> bool:
    """Return True if the exception is a transient HTTP/network error worth retrying."""
    if isinstance(exc, httpx.TimeoutException):
        return True
    if isinstance(exc, httpx.ConnectError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in (429, 500, 502, 503)
    return False


def fetch_html(url: str, client: Optional[httpx.Client] = None) -> str:
    """GET the url and return its body, with exponential backoff on transient errors.

    Retries on HTTP 429/500/502/503, connection errors and timeouts.
    Anything else (404, 401, invalid URL) is raised immediately.
    """
    config = get_config()
    retries = config.get("fetch_max_retries", 3)
    timeout = config.get("fetch_timeout_seconds", 30)

    @retry(
        stop=stop_after_attempt(retries + 1),  # +1 because first attempt counts
        wait=wait_exponential(
            multiplier=1,
            min=config.get("fetch_backoff_min_seconds", 2),
            max=config.get("fetch_backoff_max_seconds", 16),
        ),
        retry=retry_if_exception(_is_transient),
        reraise=True,
        before_sleep=lambda state: print(
            f"[pageclone] Transient error: {state.outcome.exception()!r}. "
            f"Retrying in {state.next_action.sleep:.0f}s "
            f"(attempt {state.attempt_number}/{retries})...",
            file=sys.stderr,
        ),
    )
    def _fetch(http: httpx.Client) -> str:
        response = http.get(url)
        response.raise_for_status()
        return response.text

    if client is not None:
        return _fetch(client)
    with httpx.Client(
        timeout=timeout, follow_redirects=True, headers={"User-Agent": USER_AGENT}
    ) as http:
        return _fetch(http)
