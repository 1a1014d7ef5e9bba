"""HTTP retrieval with a fixed rate limit, bounded retries and linear backoff."""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import urlparse

import httpx

from ..errors import FetchError
from ..settings import CrawlSettings
from .rate_limiter import RateLimiter, Sleep

logger = logging.getLogger(__name__)


class Fetcher:
    """Async page fetcher.

    Every attempt, retries included, first waits the rate-limit delay. A failed
    attempt (transport error, timeout, non-2xx) is followed by a backoff of
    ``retry_delay * attempt`` seconds. After ``max_retries`` attempts a
    :class:`FetchError` is raised.

    Certificate validation is only disabled for hosts in ``insecure_hosts``;
    those requests go through a separate client.

    Args:
        settings: Retry/timeout knobs.
        insecure_hosts: Hostnames with known-broken certificates.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
        sleep: Coroutine used for every wait.
    """

    def __init__(
        self,
        settings: CrawlSettings | None = None,
        insecure_hosts: set[str] | frozenset[str] = frozenset(),
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep | None = None,
    ):
        self.settings = settings or CrawlSettings()
        self.insecure_hosts = frozenset(h.lower() for h in insecure_hosts)
        self._sleep = sleep or asyncio.sleep
        self.rate_limiter = RateLimiter(self.settings.rate_limit_delay, sleep=self._sleep)
        self.attempts = 0

        client_kwargs = {
            "timeout": self.settings.request_timeout,
            "follow_redirects": True,
            "headers": {"User-Agent": self.settings.user_agent},
            "transport": transport,
        }
        self._client = httpx.AsyncClient(**client_kwargs)
        self._insecure_client = (
            httpx.AsyncClient(verify=False, **client_kwargs) if self.insecure_hosts else None
        )

    def client_for(self, url: str) -> httpx.AsyncClient:
        host = (urlparse(url).hostname or "").lower()
        if self._insecure_client is not None and host in self.insecure_hosts:
            return self._insecure_client
        return self._client

    async def fetch(self, url: str) -> tuple[str, int]:
        """Fetch ``url`` and return ``(body, status_code)``.

        Raises:
            FetchError: When every attempt failed.
        """
        client = self.client_for(url)
        last_error: BaseException | None = None
        max_retries = self.settings.max_retries

        for attempt in range(1, max_retries + 1):
            await self.rate_limiter.wait()
            self.attempts += 1
            try:
                logger.debug("Fetching %s (attempt %d)", url, attempt)
                response = await client.get(url)
                response.raise_for_status()
                return response.text, response.status_code
            except httpx.HTTPError as e:
                last_error = e
                if attempt < max_retries:
                    delay = self.settings.retry_delay * attempt
                    logger.info("Retry %d/%d for %s in %ss: %s", attempt, max_retries, url, delay, e)
                    await self._sleep(delay)

        raise FetchError(url, last_error)

    async def aclose(self) -> None:
        await self._client.aclose()
        if self._insecure_client is not None:
            await self._insecure_client.aclose()

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
