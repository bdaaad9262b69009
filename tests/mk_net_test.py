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

"""Tests for manifestkit.net and the GitHub client retry policy."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

import httpx
import pytest

from manifestkit.backends.github import GitHub
from manifestkit.errors import AuthError, GitHubAPIError
from manifestkit.net import MAX_BACKOFF, backoff_delays, http_client, request_with_retry


def _run(coro: Coroutine[Any, Any, Any]) -> Any:  # noqa: ANN401
    return asyncio.run(coro)


class _Sleeps:
    """Records requested sleeps instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class TestBackoffDelays:
    """Tests for backoff_delays()."""

    def test_doubles(self) -> None:
        """Delays double from one second."""
        assert backoff_delays(5) == [1.0, 2.0, 4.0, 8.0, 16.0]

    def test_capped(self) -> None:
        """No single wait exceeds the cap."""
        assert max(backoff_delays(10)) == MAX_BACKOFF


class TestRequestWithRetry:
    """Tests for request_with_retry()."""

    def test_retries_502_until_exhausted(self) -> None:
        """Six attempts, five waits, and the last 502 is returned."""
        attempts: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            return httpx.Response(502)

        sleeps = _Sleeps()

        async def scenario() -> httpx.Response:
            async with http_client(base_url='https://example.test', transport=httpx.MockTransport(handler)) as client:
                return await request_with_retry(client, 'POST', '/graphql', sleep=sleeps)

        response = _run(scenario())
        assert response.status_code == 502
        assert len(attempts) == 6
        assert sleeps.delays == [1.0, 2.0, 4.0, 8.0, 16.0]

    def test_success_after_transient(self) -> None:
        """A later success ends the retries."""
        statuses = iter([502, 502, 200])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(next(statuses), json={})

        sleeps = _Sleeps()

        async def scenario() -> httpx.Response:
            async with http_client(base_url='https://example.test', transport=httpx.MockTransport(handler)) as client:
                return await request_with_retry(client, 'GET', '/x', sleep=sleeps)

        assert _run(scenario()).status_code == 200
        assert sleeps.delays == [1.0, 2.0]

    def test_other_errors_not_retried(self) -> None:
        """A 500 is returned immediately."""
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(500)

        async def scenario() -> httpx.Response:
            async with http_client(base_url='https://example.test', transport=httpx.MockTransport(handler)) as client:
                return await request_with_retry(client, 'GET', '/x', sleep=_Sleeps())

        assert _run(scenario()).status_code == 500
        assert len(calls) == 1


class TestGraphQLRetry:
    """Tests for GraphQL error translation through GitHubClient."""

    def test_graphql_502_raises_after_retries(self) -> None:
        """Persistent 502s surface as GitHubAPIError with status 502."""
        attempts: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request.url.path)
            return httpx.Response(502, text='bad gateway')

        sleeps = _Sleeps()

        async def scenario() -> None:
            async with GitHub.connect('o', 'r', transport=httpx.MockTransport(handler), sleep=sleeps) as github:
                await github.client.graphql('query { viewer { login } }', {})

        with pytest.raises(GitHubAPIError) as excinfo:
            _run(scenario())
        assert excinfo.value.status == 502
        assert attempts == ['/graphql'] * 6
        assert sleeps.delays == [1.0, 2.0, 4.0, 8.0, 16.0]

    def test_graphql_error_payload(self) -> None:
        """A 200 carrying errors is an API error."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={'errors': [{'message': 'Something broke'}]})

        async def scenario() -> None:
            async with GitHub.connect('o', 'r', transport=httpx.MockTransport(handler), sleep=_Sleeps()) as github:
                await github.client.graphql('query', {})

        with pytest.raises(GitHubAPIError, match='Something broke'):
            _run(scenario())

    def test_unauthorized(self) -> None:
        """401 is an AuthError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={'message': 'Bad credentials'})

        async def scenario() -> None:
            async with GitHub.connect('o', 'r', transport=httpx.MockTransport(handler)) as github:
                await github.default_branch()

        with pytest.raises(AuthError):
            _run(scenario())

    def test_token_header(self) -> None:
        """The token is sent as a bearer token."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get('Authorization', ''))
            return httpx.Response(200, json={'default_branch': 'trunk'})

        async def scenario() -> str:
            async with GitHub.connect('o', 'r', token='s3cret', transport=httpx.MockTransport(handler)) as github:
                return await github.default_branch()

        assert _run(scenario()) == 'trunk'
        assert seen == ['Bearer s3cret']
