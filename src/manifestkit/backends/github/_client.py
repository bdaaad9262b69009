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

"""REST and GraphQL transport for the GitHub gateway.

Every response that is not a 2xx, and every GraphQL payload carrying
``errors``, is converted into a :class:`~manifestkit.errors.GitHubAPIError`
(or :class:`~manifestkit.errors.AuthError` for 401) at this boundary.
GraphQL requests that fail with 502 are retried through
:func:`manifestkit.net.request_with_retry`; REST requests are not.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import httpx

from manifestkit.backends.github._types import Repository
from manifestkit.errors import AuthError, GitHubAPIError
from manifestkit.logging import get_logger
from manifestkit.net import MAX_RETRIES, RETRY_STATUSES, Sleep, request_with_retry

logger = get_logger(__name__)

DEFAULT_API_URL = 'https://api.github.com'
DEFAULT_GRAPHQL_URL = 'https://api.github.com/graphql'


def _decode(response: httpx.Response) -> Any:  # noqa: ANN401
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _raise_for_status(response: httpx.Response) -> None:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        body = _decode(response)
        if response.status_code == 401:
            raise AuthError(body=body, cause=exc) from exc
        detail = body.get('message', '') if isinstance(body, dict) else (body or '')
        raise GitHubAPIError(
            f'{response.request.method} {response.request.url.path} returned {response.status_code}: {detail}',
            status=response.status_code,
            body=body,
            cause=exc,
        ) from exc


class GitHubClient:
    """Thin authenticated wrapper over one repository's API.

    Args:
        http: Client configured with the API base URL and auth headers.
        repository: Repository all REST paths are relative to.
        graphql_url: GraphQL endpoint.
        sleep: Awaitable sleep used between GraphQL retries.
        max_retries: GraphQL retries after the first attempt.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        repository: Repository,
        *,
        graphql_url: str = DEFAULT_GRAPHQL_URL,
        sleep: Sleep = asyncio.sleep,
        max_retries: int = MAX_RETRIES,
    ) -> None:
        """Store the transport and retry settings."""
        self.http = http
        self.repository = repository
        self.graphql_url = graphql_url
        self.sleep = sleep
        self.max_retries = max_retries

    @property
    def repo_path(self) -> str:
        """REST path prefix for the repository."""
        return f'/repos/{self.repository.owner}/{self.repository.repo}'

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,  # noqa: ANN401
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send one REST request and raise a typed error on failure."""
        logger.debug('github_request', method=method, path=path)
        try:
            response = await self.http.request(method, path, json=json, params=params)
        except httpx.TransportError as exc:
            raise GitHubAPIError(f'{method} {path} failed: {exc}', cause=exc) from exc
        _raise_for_status(response)
        return response

    async def rest(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,  # noqa: ANN401
        params: dict[str, Any] | None = None,
    ) -> Any:  # noqa: ANN401
        """Send one REST request and return the decoded body."""
        response = await self.request(method, path, json=json, params=params)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def paginate(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        missing_ok: bool = False,
    ) -> AsyncIterator[Any]:
        """Yield the decoded body of every page, following ``Link: rel=next``.

        Pages are fetched one at a time; the next request is only sent
        when the caller asks for more. With ``missing_ok`` a 404 on the
        first page ends the iteration instead of raising.
        """
        url: str | None = path
        page_params = params
        while url:
            try:
                response = await self.request('GET', url, params=page_params)
            except GitHubAPIError as exc:
                if missing_ok and exc.status == 404 and url == path:
                    logger.debug('github_listing_missing', path=path)
                    return
                raise
            yield response.json()
            url = response.links.get('next', {}).get('url')
            page_params = None

    async def graphql(self, query: str, variables: dict[str, Any], *, max_retries: int | None = None) -> dict[str, Any]:
        """Run a GraphQL query, retrying 502 responses with backoff.

        Returns:
            The ``data`` member of the response.

        Raises:
            GitHubAPIError: On a non-2xx response after retries, or when
                the payload carries ``errors``.
        """
        payload = {'query': query, 'variables': variables}
        try:
            response = await request_with_retry(
                self.http,
                'POST',
                self.graphql_url,
                json=payload,
                max_retries=self.max_retries if max_retries is None else max_retries,
                retry_statuses=RETRY_STATUSES,
                sleep=self.sleep,
            )
        except httpx.TransportError as exc:
            raise GitHubAPIError(f'GraphQL request failed: {exc}', cause=exc) from exc
        _raise_for_status(response)
        body = _decode(response)
        if not isinstance(body, dict):
            raise GitHubAPIError('GraphQL response is not a JSON object', status=response.status_code, body=body)
        if body.get('errors'):
            messages = '; '.join(str(err.get('message', err)) for err in body['errors'] if isinstance(err, dict))
            raise GitHubAPIError(f'GraphQL error: {messages}', body=body)
        return body.get('data') or {}


__all__ = [
    'DEFAULT_API_URL',
    'DEFAULT_GRAPHQL_URL',
    'GitHubClient',
]
