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

"""Commit, pull request and release history sources.

GitHub exposes history through two APIs with different strengths:

- Commit to pull request: GraphQL matches ``mergeCommit.oid == sha``
  inline; REST needs one extra call per commit.
- Files: GraphQL returns the first 100 inline and backfills the rest;
  REST makes one paginated call per commit.
- Release sha: GraphQL has ``tagCommit.oid`` inline; REST looks up the
  tag ref for every release.

Both implement :class:`HistorySource`; the gateway picks one at
construction. Pagination is strictly sequential: a page is requested
only after the caller has consumed the previous one.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import replace
from typing import Any, Protocol

from manifestkit.backends.github._client import GitHubClient
from manifestkit.backends.github._types import GitHubRelease, PullRequestStatus
from manifestkit.commits import Commit, PullRequest
from manifestkit.logging import get_logger

logger = get_logger(__name__)

# ── Constants ────────────────────────────────────────────────────────

PAGE_SIZE = 25
MAX_FILES_PER_COMMIT = 100
MAX_FILES_PER_PULL_REQUEST = 64
FILE_COUNT_WARN_THRESHOLD = 3000

COMMITS_QUERY = """
query commitHistory($owner: String!, $repo: String!, $num: Int!, $maxFilesChanged: Int, $targetBranch: String!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    ref(qualifiedName: $targetBranch) {
      target {
        ... on Commit {
          history(first: $num, after: $cursor) {
            nodes {
              associatedPullRequests(first: 10) {
                nodes {
                  number
                  title
                  baseRefName
                  headRefName
                  labels(first: 10) { nodes { name } }
                  body
                  mergeCommit { oid }
                  files(first: $maxFilesChanged) {
                    nodes { path }
                    pageInfo { endCursor hasNextPage }
                  }
                }
              }
              sha: oid
              message
            }
            pageInfo { hasNextPage endCursor }
          }
        }
      }
    }
  }
}
"""

PULL_REQUESTS_QUERY = """
query pullRequests($owner: String!, $repo: String!, $num: Int!, $maxFilesChanged: Int, $targetBranch: String!, $states: [PullRequestState!], $cursor: String) {
  repository(owner: $owner, name: $repo) {
    pullRequests(first: $num, after: $cursor, baseRefName: $targetBranch, states: $states, orderBy: {field: CREATED_AT, direction: DESC}) {
      nodes {
        number
        title
        baseRefName
        headRefName
        labels(first: 10) { nodes { name } }
        body
        mergeCommit { oid }
        files(first: $maxFilesChanged) {
          nodes { path }
          pageInfo { endCursor hasNextPage }
        }
      }
      pageInfo { endCursor hasNextPage }
    }
  }
}
"""

RELEASES_QUERY = """
query releases($owner: String!, $repo: String!, $num: Int!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    releases(first: $num, after: $cursor, orderBy: {field: CREATED_AT, direction: DESC}) {
      nodes {
        name
        tag { name }
        tagCommit { oid }
        url
        description
        isDraft
        isPrerelease
      }
      pageInfo { endCursor hasNextPage }
    }
  }
}
"""


class HistorySource(Protocol):
    """Paginated access to commit, pull request and release history."""

    def commit_iterator(
        self,
        branch: str,
        *,
        max_results: int | None = None,
        backfill_files: bool = False,
    ) -> AsyncIterator[Commit]:
        """Yield commits on ``branch``, newest first."""
        ...

    def pull_request_iterator(
        self,
        branch: str,
        status: PullRequestStatus = PullRequestStatus.MERGED,
        *,
        max_results: int | None = None,
    ) -> AsyncIterator[PullRequest]:
        """Yield pull requests targeting ``branch`` in ``status``."""
        ...

    def release_iterator(self, *, max_results: int | None = None) -> AsyncIterator[GitHubRelease]:
        """Yield releases, generally most recent first."""
        ...


async def fetch_commit_files(client: GitHubClient, sha: str) -> tuple[str, ...]:
    """Return every file touched by ``sha`` using the paginated REST call."""
    logger.debug('commit_files_backfill', sha=sha)
    files: list[str] = []
    async for page in client.paginate(f'{client.repo_path}/commits/{sha}'):
        files.extend(f['filename'] for f in page.get('files') or [] if f.get('filename'))
    if len(files) > FILE_COUNT_WARN_THRESHOLD:
        logger.warning('commit_files_truncated', sha=sha, count=len(files))
    return tuple(files)


def _labels(nodes: Any) -> tuple[str, ...]:  # noqa: ANN401
    return tuple(node['name'] for node in (nodes or {}).get('nodes') or [] if node.get('name'))


def _graphql_pull_request(node: dict[str, Any], files: tuple[str, ...]) -> PullRequest:
    return PullRequest(
        number=node['number'],
        head_branch_name=node.get('headRefName') or '',
        base_branch_name=node.get('baseRefName') or '',
        title=node.get('title') or '',
        body=node.get('body') or '',
        labels=_labels(node.get('labels')),
        sha=(node.get('mergeCommit') or {}).get('oid'),
        files=files,
    )


def rest_pull_request(data: dict[str, Any]) -> PullRequest:
    """Convert a REST pull request object."""
    return PullRequest(
        number=data['number'],
        head_branch_name=data['head']['ref'],
        base_branch_name=data['base']['ref'],
        title=data.get('title') or '',
        body=data.get('body') or '',
        labels=tuple(label['name'] for label in data.get('labels') or [] if label.get('name')),
        sha=data.get('merge_commit_sha'),
    )


class GraphQLHistory:
    """History through the GraphQL API."""

    def __init__(self, client: GitHubClient) -> None:
        """Bind to a client."""
        self.client = client

    def _variables(self, **extra: Any) -> dict[str, Any]:  # noqa: ANN401
        return {
            'owner': self.client.repository.owner,
            'repo': self.client.repository.repo,
            'num': PAGE_SIZE,
            **extra,
        }

    async def _commit_page(
        self,
        branch: str,
        cursor: str | None,
        backfill_files: bool,
    ) -> tuple[list[Commit], dict[str, Any]] | None:
        logger.debug('fetch_commit_page', branch=branch, cursor=cursor)
        data = await self.client.graphql(
            COMMITS_QUERY,
            self._variables(targetBranch=branch, cursor=cursor, maxFilesChanged=MAX_FILES_PER_COMMIT),
        )
        ref = (data.get('repository') or {}).get('ref')
        if not ref:
            logger.warning('branch_not_found', branch=branch)
            return None
        history = ref['target']['history']

        shas: list[str] = []
        messages: list[str] = []
        pull_requests: list[PullRequest | None] = []
        backfill: dict[int, str] = {}
        for index, node in enumerate(history.get('nodes') or []):
            sha = node['sha']
            pr_node = next(
                (
                    pr
                    for pr in (node.get('associatedPullRequests') or {}).get('nodes') or []
                    if (pr.get('mergeCommit') or {}).get('oid') == sha
                ),
                None,
            )
            pull_request = None
            if pr_node is not None:
                files = tuple(f['path'] for f in (pr_node.get('files') or {}).get('nodes') or [])
                pull_request = _graphql_pull_request(pr_node, files)
                has_more = ((pr_node.get('files') or {}).get('pageInfo') or {}).get('hasNextPage')
                if has_more and backfill_files:
                    logger.info('pull_request_files_backfill', pr=pull_request.number)
                    backfill[index] = sha
            elif backfill_files:
                backfill[index] = sha
            shas.append(sha)
            messages.append(node.get('message') or '')
            pull_requests.append(pull_request)

        # Backfills for distinct commits of one page may run concurrently.
        fetched = await asyncio.gather(*(fetch_commit_files(self.client, sha) for sha in backfill.values()))
        backfilled = dict(zip(backfill.keys(), fetched))

        commits = []
        for index, sha in enumerate(shas):
            pull_request = pull_requests[index]
            if index in backfilled:
                files = backfilled[index]
            elif pull_request is not None:
                files = pull_request.files
            else:
                files = ()
            commits.append(Commit(sha=sha, message=messages[index], files=files, pull_request=pull_request))
        return commits, history.get('pageInfo') or {}

    async def commit_iterator(
        self,
        branch: str,
        *,
        max_results: int | None = None,
        backfill_files: bool = False,
    ) -> AsyncIterator[Commit]:
        """Yield commits on ``branch``; a missing branch yields nothing."""
        cursor: str | None = None
        results = 0
        while max_results is None or results < max_results:
            page = await self._commit_page(branch, cursor, backfill_files)
            if page is None:
                return
            commits, page_info = page
            for commit in commits:
                if max_results is not None and results >= max_results:
                    return
                results += 1
                yield commit
            if not page_info.get('hasNextPage'):
                return
            cursor = page_info.get('endCursor')

    async def pull_request_iterator(
        self,
        branch: str,
        status: PullRequestStatus = PullRequestStatus.MERGED,
        *,
        max_results: int | None = None,
    ) -> AsyncIterator[PullRequest]:
        """Yield pull requests with their first files inline."""
        cursor: str | None = None
        results = 0
        while max_results is None or results < max_results:
            logger.debug('fetch_pull_request_page', branch=branch, status=status.value, cursor=cursor)
            data = await self.client.graphql(
                PULL_REQUESTS_QUERY,
                self._variables(
                    targetBranch=branch,
                    states=[status.value],
                    cursor=cursor,
                    maxFilesChanged=MAX_FILES_PER_PULL_REQUEST,
                ),
            )
            connection = (data.get('repository') or {}).get('pullRequests')
            if not connection:
                logger.warning('pull_requests_not_found', branch=branch)
                return
            for node in connection.get('nodes') or []:
                if max_results is not None and results >= max_results:
                    return
                results += 1
                files = tuple(f['path'] for f in (node.get('files') or {}).get('nodes') or [])
                yield _graphql_pull_request(node, files)
            page_info = connection.get('pageInfo') or {}
            if not page_info.get('hasNextPage'):
                return
            cursor = page_info.get('endCursor')

    async def release_iterator(self, *, max_results: int | None = None) -> AsyncIterator[GitHubRelease]:
        """Yield releases that have a tag commit."""
        cursor: str | None = None
        results = 0
        while max_results is None or results < max_results:
            logger.debug('fetch_release_page', cursor=cursor)
            data = await self.client.graphql(RELEASES_QUERY, self._variables(cursor=cursor))
            connection = (data.get('repository') or {}).get('releases') or {}
            nodes = connection.get('nodes') or []
            if not nodes:
                return
            for node in nodes:
                if not node.get('tagCommit'):
                    logger.debug('release_without_tag_commit', name=node.get('name'))
                    continue
                if max_results is not None and results >= max_results:
                    return
                results += 1
                yield GitHubRelease(
                    tag_name=(node.get('tag') or {}).get('name') or 'unknown',
                    sha=node['tagCommit']['oid'],
                    notes=node.get('description') or '',
                    url=node.get('url') or '',
                    name=node.get('name') or None,
                    draft=bool(node.get('isDraft')),
                    prerelease=bool(node.get('isPrerelease')),
                )
            page_info = connection.get('pageInfo') or {}
            if not page_info.get('hasNextPage'):
                return
            cursor = page_info.get('endCursor')


class RESTHistory:
    """History through the REST API."""

    def __init__(self, client: GitHubClient) -> None:
        """Bind to a client."""
        self.client = client

    async def _associated_pull_request(self, sha: str, files: tuple[str, ...]) -> PullRequest | None:
        pulls = await self.client.rest('GET', f'{self.client.repo_path}/commits/{sha}/pulls') or []
        for data in pulls:
            if data.get('merge_commit_sha') == sha:
                return replace(rest_pull_request(data), sha=sha, files=files)
        if pulls:
            logger.warning('associated_pull_requests_unmatched', sha=sha, count=len(pulls))
        return None

    async def commit_iterator(
        self,
        branch: str,
        *,
        max_results: int | None = None,
        backfill_files: bool = False,
    ) -> AsyncIterator[Commit]:
        """Yield commits on ``branch``; a missing branch yields nothing."""
        results = 0
        pages = self.client.paginate(
            f'{self.client.repo_path}/commits',
            {'sha': branch, 'per_page': PAGE_SIZE},
            missing_ok=True,
        )
        async for page in pages:
            for data in page:
                if max_results is not None and results >= max_results:
                    return
                results += 1
                sha = data['sha']
                files = await fetch_commit_files(self.client, sha) if backfill_files else ()
                pull_request = await self._associated_pull_request(sha, files)
                yield Commit(sha=sha, message=data['commit']['message'], files=files, pull_request=pull_request)

    async def pull_request_iterator(
        self,
        branch: str,
        status: PullRequestStatus = PullRequestStatus.MERGED,
        *,
        max_results: int | None = None,
    ) -> AsyncIterator[PullRequest]:
        """Yield pull requests without files.

        REST has no merged filter: merged means closed with ``merged_at``.
        """
        state = 'open' if status == PullRequestStatus.OPEN else 'closed'
        results = 0
        params = {'state': state, 'base': branch, 'sort': 'updated', 'direction': 'desc', 'per_page': PAGE_SIZE}
        async for page in self.client.paginate(f'{self.client.repo_path}/pulls', params):
            for data in page:
                if status == PullRequestStatus.MERGED and not data.get('merged_at'):
                    continue
                if max_results is not None and results >= max_results:
                    return
                results += 1
                yield rest_pull_request(data)

    async def _tag_sha(self, tag_name: str) -> str:
        ref = await self.client.rest('GET', f'{self.client.repo_path}/git/ref/tags/{tag_name}')
        target = ref['object']
        if target.get('type') == 'tag':
            # Annotated tag: dereference to the commit.
            tag = await self.client.rest('GET', f'{self.client.repo_path}/git/tags/{target["sha"]}')
            return tag['object']['sha']
        return target['sha']

    async def release_iterator(self, *, max_results: int | None = None) -> AsyncIterator[GitHubRelease]:
        """Yield releases, resolving each tag to its commit."""
        results = 0
        async for page in self.client.paginate(f'{self.client.repo_path}/releases', {'per_page': PAGE_SIZE}):
            for data in page:
                if max_results is not None and results >= max_results:
                    return
                results += 1
                yield GitHubRelease(
                    tag_name=data['tag_name'],
                    sha=await self._tag_sha(data['tag_name']),
                    notes=data.get('body') or '',
                    url=data.get('html_url') or '',
                    name=data.get('name') or None,
                    draft=bool(data.get('draft')),
                    prerelease=bool(data.get('prerelease')),
                    id=data.get('id'),
                    upload_url=data.get('upload_url'),
                )


__all__ = [
    'FILE_COUNT_WARN_THRESHOLD',
    'MAX_FILES_PER_COMMIT',
    'MAX_FILES_PER_PULL_REQUEST',
    'PAGE_SIZE',
    'GraphQLHistory',
    'HistorySource',
    'RESTHistory',
    'fetch_commit_files',
    'rest_pull_request',
]
