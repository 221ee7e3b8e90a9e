# SPDX-License-Identifier: MPL-2.0
"""
Resilient HTTP caller for the HSM REST API.

This is the only component that touches the network. It retries a call a
bounded number of times with a fixed delay when the service signals rate
limiting (HTTP 429) or the transport raises, and hands every other response
back untouched so callers can interpret business status codes themselves.
"""
from __future__ import annotations

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import requests
from requests.adapters import HTTPAdapter

from ..config import MAX_KEYS
from ..errors import RetryExhausted, TransportFailure
from .types import HttpMethod

logger = logging.getLogger(__name__)

RATE_LIMITED = 429

SleepFunc = Callable[[float], Awaitable[Any]]


class ResilientCaller:
    """Issue HSM requests with bounded retry and fixed backoff."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        timeout: Optional[float] = 30.0,
        sleep: SleepFunc = asyncio.sleep,
        max_concurrency: int = MAX_KEYS,
    ) -> None:
        """Create a caller.

        Args:
            session: ``requests`` session to issue calls on. One is created
                (and owned) when omitted.
            max_attempts: Total attempts per call, including the first.
            retry_delay: Seconds to wait between attempts.
            timeout: Per-attempt transport timeout passed to ``requests``.
            sleep: Coroutine used for the retry delay.
            max_concurrency: Number of attempts that may be in flight at
                once. Sizes the worker threads and the connection pool.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if retry_delay < 0:
            raise ValueError("retry_delay must not be negative")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._owns_session = session is None
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=max_concurrency, pool_maxsize=max_concurrency)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self.session = session
        self.max_concurrency = max_concurrency
        self._executor = ThreadPoolExecutor(
            max_workers=max_concurrency, thread_name_prefix="hsm-call"
        )
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._sleep = sleep

    async def execute(
        self,
        endpoint: str,
        payload: Optional[Dict[str, Any]],
        headers: Dict[str, str],
        method: Union[HttpMethod, str] = HttpMethod.POST,
    ) -> requests.Response:
        """Run one logical call, retrying on 429 and transport errors.

        Returns:
            The first response whose status is not 429. It may still carry a
            client or server error status.

        Raises:
            ValueError: If ``method`` is not supported.
            RetryExhausted: After ``max_attempts`` attempts without a terminal
                response. ``last_error`` holds the last transport failure.
        """
        method = self._normalize_method(method)
        last_error: Optional[TransportFailure] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self._send(endpoint, payload, headers, method)
            except requests.RequestException as e:
                last_error = TransportFailure(f"{method.value} {endpoint} failed: {e}", original=e)
                logger.error(
                    f"API request failed (Attempt {attempt}/{self.max_attempts}): {e}"
                )
            else:
                if response.status_code != RATE_LIMITED:
                    return response
                last_error = None
                logger.warning(
                    f"Rate limit hit. Retrying in {self.retry_delay:g} seconds... "
                    f"(Attempt {attempt}/{self.max_attempts})"
                )

            if attempt < self.max_attempts:
                await self._sleep(self.retry_delay)

        cause = last_error.original if last_error is not None else None
        raise RetryExhausted(endpoint, self.max_attempts, last_error) from cause

    async def _send(
        self,
        endpoint: str,
        payload: Optional[Dict[str, Any]],
        headers: Dict[str, str],
        method: HttpMethod,
    ) -> requests.Response:
        kwargs: Dict[str, Any] = {"headers": headers, "timeout": self.timeout}
        if method is HttpMethod.POST:
            kwargs["json"] = payload
        call = functools.partial(self.session.request, method.value, endpoint, **kwargs)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, call)

    @staticmethod
    def _normalize_method(method: Union[HttpMethod, str]) -> HttpMethod:
        try:
            return HttpMethod(method.upper() if isinstance(method, str) else method)
        except ValueError:
            raise ValueError(f"Unsupported HTTP method: {method}") from None

    def close(self) -> None:
        """Stop the worker threads and close the HTTP session if this caller created it."""
        self._executor.shutdown(wait=True)
        if self._owns_session:
            self.session.close()
