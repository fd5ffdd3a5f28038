"""Single logical HTTP GET with unjittered exponential backoff.

Only transient conditions are retried: transport faults (connect errors,
timeouts, protocol errors) and HTTP 429 from upstream. Every other status,
including 4xx/5xx, is handed back to the caller, which decides whether the
body is data or a domain error.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterator

import httpx

from marketdesk.config import FetchSettings
from marketdesk.exceptions import ExhaustedRetries
from marketdesk.logging import get_logger

logger = get_logger(__name__)

HTTP_TOO_MANY_REQUESTS = 429

# Upstream blocks requests that do not look like a browser
BROWSER_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json,text/plain,*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": "https://finance.yahoo.com/",
    "Origin": "https://finance.yahoo.com",
}


def backoff_schedule(max_retries: int, base_delay: float = 1.0) -> Iterator[tuple[int, float]]:
    """Yield (attempt, delay) for each attempt: delays 1s, 2s, 4s, ... for base 1.0.

    The delay belongs to the wait that follows a failed attempt. The caller
    skips it after the last attempt.
    """
    for attempt in range(max_retries):
        yield attempt, base_delay * (2**attempt)


class ResilientFetcher:
    """Issues GET requests through a shared httpx.AsyncClient with retry.

    Args:
        client: Open async client; the fetcher never closes it.
        settings: Retry count and base delay.
        sleep: Awaitable sleep, injected in tests to avoid real delays.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: FetchSettings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._settings = settings or FetchSettings()
        self._sleep = sleep

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        max_retries: int | None = None,
        params: dict[str, str | int] | None = None,
    ) -> httpx.Response:
        """GET ``url``; return the first non-429 response.

        Raises:
            ExhaustedRetries: every attempt hit a transport fault or a 429.
                Carries the last transport error message, or a generic one
                when only 429s were seen.
        """
        if max_retries is None:
            max_retries = self._settings.max_retries
        if headers is None:
            headers = BROWSER_HEADERS

        last_error: Exception | None = None

        for attempt, delay in backoff_schedule(max_retries, self._settings.retry_base_delay):
            try:
                response = await self._client.get(url, headers=headers, params=params)
            except httpx.TransportError as e:
                last_error = e
                logger.warning(
                    "fetch_retry",
                    url=url,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay=delay,
                    error=str(e) or type(e).__name__,
                )
            else:
                if response.status_code != HTTP_TOO_MANY_REQUESTS:
                    return response
                logger.warning(
                    "upstream_rate_limited",
                    url=url,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay=delay,
                )

            if attempt < max_retries - 1:
                await self._sleep(delay)

        message = (str(last_error) or type(last_error).__name__) if last_error else "Maximum retries exceeded"
        logger.error("fetch_exhausted", url=url, attempts=max_retries, error=message)
        raise ExhaustedRetries(message, attempts=max_retries)
