# arxivkit/http.py
"""Retry, backoff and per-attempt deadlines around a single GET."""

import asyncio
import logging
import math
import random
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx

from arxivkit.errors import TransportError
from arxivkit.models import DEFAULT_RETRIES, DEFAULT_TIMEOUT_MS

logger = logging.getLogger(__name__)

BASE_BACKOFF_MS = 200
MAX_BACKOFF_MS = 5000


def compute_backoff(attempt: int, rand: Callable[[], float] = random.random) -> int:
    """Backoff in milliseconds before retrying after `attempt` (0-based).

    Exponential from 200 ms, capped at 5 s, then scaled to 90% plus up to
    20% jitter of the capped value.
    """
    capped = min(MAX_BACKOFF_MS, BASE_BACKOFF_MS * 2**attempt)
    return math.floor(capped * 0.9 + rand() * 0.2 * capped)


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code <= 599


def retry_after_ms(response: httpx.Response) -> int | None:
    """Retry-After header as milliseconds, when it holds an integer number of seconds."""
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return int(value.strip()) * 1000
    except ValueError:
        return None


class RetryScheduler:
    """Run one logical GET with a deadline per attempt and retries with backoff.

    Up to `retries + 1` attempts are made. 429 and 5xx responses are retried;
    once attempts run out the last such response is returned for the caller
    to judge. Any other status is returned at once. Timeouts and connection
    errors are retried and raise `TransportError` on the final attempt; other
    request errors (redirect loops, undecodable bodies) raise it at once.
    """

    def __init__(
        self,
        retries: int = DEFAULT_RETRIES,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        user_agent: str | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.retries = max(0, retries)
        self.timeout_ms = timeout_ms
        self.user_agent = user_agent
        self._sleep = sleep
        self._rand = rand

    async def execute(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        request_headers = dict(headers or {})
        if self.user_agent:
            request_headers["User-Agent"] = self.user_agent

        total = self.retries + 1
        attempt = 0
        while True:
            last_attempt = attempt == self.retries
            try:
                # The deadline's timer is dropped as soon as the block exits
                async with asyncio.timeout(self.timeout_ms / 1000):
                    response = await client.get(url, headers=request_headers)
            except (TimeoutError, httpx.TransportError) as e:
                timed_out = isinstance(e, (TimeoutError, httpx.TimeoutException))
                if last_attempt:
                    raise TransportError(url, attempt + 1, e, timed_out) from e
                delay = compute_backoff(attempt, self._rand)
                logger.warning(
                    "Request to %s %s (attempt %d/%d): %r; retrying in %d ms",
                    url,
                    "timed out" if timed_out else "failed",
                    attempt + 1,
                    total,
                    e,
                    delay,
                )
                await self._sleep(delay / 1000)
                attempt += 1
                continue
            except httpx.RequestError as e:
                # Redirect loops, undecodable bodies: fail without retrying
                logger.warning("Request to %s failed: %r", url, e)
                raise TransportError(url, attempt + 1, e, False) from e

            logger.debug(
                "Response status: %s (attempt %d/%d)", response.status_code, attempt + 1, total
            )
            if not is_retryable_status(response.status_code):
                return response
            if last_attempt:
                logger.warning(
                    "Giving up on %s after %d attempt(s), last status %s",
                    url,
                    total,
                    response.status_code,
                )
                return response

            delay = compute_backoff(attempt, self._rand)
            server_delay = retry_after_ms(response)
            if server_delay is not None:
                delay = max(delay, server_delay)
            logger.warning(
                "Status %s from %s (attempt %d/%d); retrying in %d ms",
                response.status_code,
                url,
                attempt + 1,
                total,
                delay,
            )
            await self._sleep(delay / 1000)
            attempt += 1


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    retries: int = DEFAULT_RETRIES,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    user_agent: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> httpx.Response:
    """Shorthand for `RetryScheduler(...).execute(client, url, headers)`."""
    scheduler = RetryScheduler(retries=retries, timeout_ms=timeout_ms, user_agent=user_agent)
    return await scheduler.execute(client, url, headers)
