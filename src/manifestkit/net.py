# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""HTTP transport helpers built on :mod:`httpx`.

:func:`http_client` yields a pooled :class:`httpx.AsyncClient`;
:func:`request_with_retry` re-issues a request while the response status
is transient, waiting 1s, 2s, 4s... between attempts, capped at
:data:`MAX_BACKOFF`.

Usage::

    async with http_client(base_url='https://api.github.com', headers=headers) as client:
        resp = await request_with_retry(client, 'POST', '/graphql', json=payload)
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx

from manifestkit.logging import get_logger

logger = get_logger(__name__)

# ── Constants ────────────────────────────────────────────────────────

MAX_RETRIES = 5
INITIAL_BACKOFF = 1.0
MAX_BACKOFF = 20.0
DEFAULT_TIMEOUT = 30.0
DEFAULT_POOL_SIZE = 10
RETRY_STATUSES: frozenset[int] = frozenset({502})

Sleep = Callable[[float], Awaitable[Any]]


@asynccontextmanager
async def http_client(
    *,
    base_url: str = '',
    headers: dict[str, str] | None = None,
    pool_size: int = DEFAULT_POOL_SIZE,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield an :class:`httpx.AsyncClient` with pooling and a timeout.

    Args:
        base_url: Prefix for relative request URLs.
        headers: Default headers sent with every request.
        pool_size: Maximum number of pooled connections.
        timeout: Per-request timeout in seconds.
        transport: Custom transport, e.g. :class:`httpx.MockTransport`.
    """
    limits = httpx.Limits(max_connections=pool_size, max_keepalive_connections=pool_size)
    async with httpx.AsyncClient(
        base_url=base_url,
        headers=headers,
        limits=limits,
        timeout=timeout,
        transport=transport,
        follow_redirects=True,
    ) as client:
        yield client


def backoff_delays(
    max_retries: int = MAX_RETRIES,
    initial: float = INITIAL_BACKOFF,
    cap: float = MAX_BACKOFF,
) -> list[float]:
    """Return the wait before each retry: ``initial`` doubling up to ``cap``."""
    return [min(initial * (2**attempt), cap) for attempt in range(max_retries)]


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_retries: int = MAX_RETRIES,
    retry_statuses: frozenset[int] = RETRY_STATUSES,
    initial_backoff: float = INITIAL_BACKOFF,
    max_backoff: float = MAX_BACKOFF,
    sleep: Sleep = asyncio.sleep,
    **kwargs: Any,  # noqa: ANN401
) -> httpx.Response:
    """Send a request, retrying while the status is in ``retry_statuses``.

    At most ``max_retries + 1`` attempts are made. The last response is
    returned even when its status is still transient; turning it into an
    error is the caller's job.

    Args:
        client: Client to send with.
        method: HTTP method.
        url: Absolute URL or a path relative to the client's base URL.
        max_retries: Retries after the first attempt.
        retry_statuses: Statuses that trigger a retry.
        initial_backoff: First wait in seconds.
        max_backoff: Upper bound for a single wait.
        sleep: Awaitable sleep, replaced in tests.
        **kwargs: Passed through to :meth:`httpx.AsyncClient.request`.

    Returns:
        The final response.
    """
    delays = backoff_delays(max_retries, initial_backoff, max_backoff)
    attempt = 0
    while True:
        response = await client.request(method, url, **kwargs)
        if response.status_code not in retry_statuses or attempt >= len(delays):
            return response
        delay = delays[attempt]
        attempt += 1
        logger.warning(
            'request_retry',
            method=method,
            url=url,
            status=response.status_code,
            attempt=attempt,
            delay=delay,
        )
        await sleep(delay)


__all__ = [
    'DEFAULT_POOL_SIZE',
    'DEFAULT_TIMEOUT',
    'INITIAL_BACKOFF',
    'MAX_BACKOFF',
    'MAX_RETRIES',
    'RETRY_STATUSES',
    'backoff_delays',
    'http_client',
    'request_with_retry',
]
