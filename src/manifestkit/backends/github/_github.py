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

"""The GitHub gateway used by the orchestrator.

:class:`GitHub` is the only object the resolver, assembler and sequencer
talk to. It combines:

- a :class:`~manifestkit.backends.github._history.HistorySource`
  (GraphQL or REST, fixed at construction) for commits and releases,
- :class:`~manifestkit.backends.github._branches.BranchOperations` for
  refs, locks and comparisons,
- pull request, label, comment, release and file content calls.

Usage::

    async with GitHub.connect('octo', 'repo', token=token) as github:
        async for commit in github.commit_iterator('main', max_results=50):
            ...
"""

from __future__ import annotations

import asyncio
import base64
import contextlib
import json
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any

import httpx

from manifestkit._types import Err, Ok, Outcome
from manifestkit.backends.github._branches import BranchOperations
from manifestkit.backends.github._client import DEFAULT_API_URL, DEFAULT_GRAPHQL_URL, GitHubClient
from manifestkit.backends.github._history import GraphQLHistory, HistorySource, RESTHistory, rest_pull_request
from manifestkit.backends.github._types import (
    DEFAULT_FILE_MODE,
    FileChange,
    FileContents,
    GitHubRelease,
    GitHubTag,
    PullRequestStatus,
    Repository,
)
from manifestkit.commits import Commit, PullRequest
from manifestkit.errors import DuplicateReleaseError, GitHubAPIError, RepoFileNotFoundError
from manifestkit.logging import get_logger
from manifestkit.net import DEFAULT_TIMEOUT, MAX_RETRIES, Sleep, http_client
from manifestkit.updaters import Update

logger = get_logger(__name__)

MAX_ISSUE_BODY_SIZE = 65536
RELEASE_NOTES_COMMIT_MESSAGE = 'Saving release notes'

ENABLE_AUTO_MERGE_MUTATION = """
mutation enableAutoMerge($pullRequestId: ID!, $mergeMethod: PullRequestMergeMethod) {
  enablePullRequestAutoMerge(input: {pullRequestId: $pullRequestId, mergeMethod: $mergeMethod}) {
    pullRequest { number }
  }
}
"""


def _release_from_rest(data: Mapping[str, Any]) -> GitHubRelease:
    return GitHubRelease(
        tag_name=data['tag_name'],
        sha=data.get('target_commitish') or '',
        notes=data.get('body') or '',
        url=data.get('html_url') or '',
        name=data.get('name') or None,
        draft=bool(data.get('draft')),
        prerelease=bool(data.get('prerelease')),
        id=data.get('id'),
        upload_url=data.get('upload_url'),
    )


class GitHub:
    """Gateway to one GitHub repository.

    Args:
        client: Authenticated transport.
        use_graphql: Read commit and release history through GraphQL
            (default) or REST.
    """

    def __init__(self, client: GitHubClient, *, use_graphql: bool = True) -> None:
        """Pick the history source and bind branch operations."""
        self.client = client
        self.use_graphql = use_graphql
        self._graphql_history = GraphQLHistory(client)
        self._rest_history = RESTHistory(client)
        self.history: HistorySource = self._graphql_history if use_graphql else self._rest_history
        self.branches = BranchOperations(client)

    @classmethod
    @asynccontextmanager
    async def connect(
        cls,
        owner: str,
        repo: str,
        *,
        token: str | None = None,
        api_url: str = DEFAULT_API_URL,
        graphql_url: str = DEFAULT_GRAPHQL_URL,
        use_graphql: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
        max_retries: int = MAX_RETRIES,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> AsyncIterator[GitHub]:
        """Open an HTTP client and yield a gateway bound to ``owner/repo``."""
        headers = {
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': '2022-11-28',
            'User-Agent': 'manifestkit',
        }
        if token:
            headers['Authorization'] = f'Bearer {token}'
        async with http_client(base_url=api_url, headers=headers, transport=transport, timeout=timeout) as http:
            client = GitHubClient(
                http,
                Repository(owner, repo),
                graphql_url=graphql_url,
                sleep=sleep,
                max_retries=max_retries,
            )
            yield cls(client, use_graphql=use_graphql)

    @property
    def repository(self) -> Repository:
        """The repository this gateway is bound to."""
        return self.client.repository

    @property
    def _repo(self) -> str:
        return self.client.repo_path

    async def default_branch(self) -> str:
        """Return the repository's default branch."""
        data = await self.client.rest('GET', self._repo)
        return data['default_branch']

    # ── History ──────────────────────────────────────────────────────

    def commit_iterator(
        self,
        branch: str,
        *,
        max_results: int | None = None,
        backfill_files: bool = False,
    ) -> AsyncIterator[Commit]:
        """Yield commits on ``branch``, newest first, 25 per page.

        A branch that does not exist yields nothing.
        """
        return self.history.commit_iterator(branch, max_results=max_results, backfill_files=backfill_files)

    def pull_request_iterator(
        self,
        branch: str,
        status: PullRequestStatus = PullRequestStatus.MERGED,
        *,
        max_results: int | None = None,
        include_files: bool = False,
    ) -> AsyncIterator[PullRequest]:
        """Yield pull requests targeting ``branch``.

        GraphQL is used when ``include_files`` is set, REST otherwise.
        """
        source: HistorySource = self._graphql_history if include_files else self._rest_history
        return source.pull_request_iterator(branch, status, max_results=max_results)

    def release_iterator(self, *, max_results: int | None = None) -> AsyncIterator[GitHubRelease]:
        """Yield releases, generally most recent first."""
        return self.history.release_iterator(max_results=max_results)

    async def tag_iterator(self, *, max_results: int | None = None) -> AsyncIterator[GitHubTag]:
        """Yield tags in API order."""
        results = 0
        async for page in self.client.paginate(f'{self._repo}/tags', {'per_page': 100}):
            for data in page:
                if max_results is not None and results >= max_results:
                    return
                results += 1
                yield GitHubTag(name=data['name'], sha=data['commit']['sha'])

    # ── Branches ─────────────────────────────────────────────────────

    async def get_branch_sha(self, branch: str) -> str | None:
        """Return the tip of ``branch``, or ``None`` if missing."""
        return await self.branches.get_branch_sha(branch)

    async def fork_or_reset_branch(self, branch: str, from_sha: str) -> str:
        """Create ``branch`` at ``from_sha`` or force-reset it there."""
        return await self.branches.fork_or_reset_branch(branch, from_sha)

    async def lock_branch(self, branch: str) -> None:
        """Lock ``branch`` through its protection rule."""
        await self.branches.lock_branch(branch)

    async def unlock_branch(self, branch: str) -> None:
        """Unlock ``branch``."""
        await self.branches.unlock_branch(branch)

    async def compare_branches(self, a: str, b: str) -> bool:
        """Whether ``a`` already contains everything on ``b``."""
        return await self.branches.compare_branches(a, b)

    async def align_branch(self, source: str, target: str) -> str:
        """Force ``source`` to the tip of ``target``."""
        return await self.branches.align_branch(source, target)

    # ── File contents ────────────────────────────────────────────────

    async def get_file_contents(self, path: str, branch: str) -> FileContents:
        """Fetch and decode ``path`` on ``branch``.

        Raises:
            RepoFileNotFoundError: If the file does not exist.
        """
        logger.debug('fetch_file', path=path, branch=branch)
        try:
            data = await self.client.rest('GET', f'{self._repo}/contents/{path}', params={'ref': branch})
        except GitHubAPIError as exc:
            if exc.status == 404:
                raise RepoFileNotFoundError(path) from exc
            raise
        if not isinstance(data, dict) or data.get('type', 'file') != 'file':
            raise RepoFileNotFoundError(path)
        encoded = data.get('content') or ''
        if not encoded and data.get('sha'):
            # Files over 1 MB come back without inline content.
            blob = await self.client.rest('GET', f'{self._repo}/git/blobs/{data["sha"]}')
            encoded = blob.get('content') or ''
        content = base64.b64decode(encoded).decode('utf-8')
        return FileContents(content=content, sha=data.get('sha', ''), mode=DEFAULT_FILE_MODE)

    async def get_file_json(self, path: str, branch: str) -> Any:  # noqa: ANN401
        """Fetch ``path`` on ``branch`` and parse it as JSON."""
        contents = await self.get_file_contents(path, branch)
        return json.loads(contents.content)

    async def build_change_set(self, updates: Sequence[Update], branch: str) -> dict[str, FileChange]:
        """Apply ``updates`` to the files on ``branch``.

        A missing file is skipped unless its update sets
        ``create_if_missing``. Several updates to one path apply in order.
        """
        changes: dict[str, FileChange] = {}
        for update in updates:
            pending = changes.get(update.path)
            if pending is not None:
                changes[update.path] = replace(pending, content=update.updater.update_content(pending.content))
                continue
            existing: FileContents | None = None
            try:
                existing = await self.get_file_contents(update.path, branch)
            except RepoFileNotFoundError:
                if not update.create_if_missing:
                    logger.warning('update_file_missing', path=update.path, branch=branch)
                    continue
            original = existing.content if existing else None
            updated = update.updater.update_content(original)
            if updated:
                changes[update.path] = FileChange(
                    content=updated,
                    original_content=original,
                    mode=existing.mode if existing else DEFAULT_FILE_MODE,
                )
        return changes

    async def commit_and_push(
        self,
        branch: str,
        base_sha: str,
        changes: Mapping[str, FileChange],
        message: str,
    ) -> str:
        """Commit ``changes`` on top of ``base_sha`` and force ``branch`` to it.

        Returns:
            The new commit sha, or ``base_sha`` if there was nothing to commit.
        """
        if not changes:
            logger.info('no_changes_to_commit', branch=branch)
            return base_sha
        base_commit = await self.client.rest('GET', f'{self._repo}/git/commits/{base_sha}')
        tree = await self.client.rest(
            'POST',
            f'{self._repo}/git/trees',
            json={
                'base_tree': base_commit['tree']['sha'],
                'tree': [
                    {'path': path, 'mode': change.mode, 'type': 'blob', 'content': change.content}
                    for path, change in changes.items()
                ],
            },
        )
        commit = await self.client.rest(
            'POST',
            f'{self._repo}/git/commits',
            json={'message': message, 'tree': tree['sha'], 'parents': [base_sha]},
        )
        await self.client.rest(
            'PATCH',
            f'{self._repo}/git/refs/heads/{branch}',
            json={'sha': commit['sha'], 'force': True},
        )
        logger.debug('changes_pushed', branch=branch, sha=commit['sha'], files=len(changes))
        return commit['sha']

    async def create_file_on_new_branch(self, filename: str, contents: str, new_branch: str, base_branch: str) -> str:
        """Reset ``new_branch`` to ``base_branch`` and write one file there.

        Returns:
            HTML URL of the written file.
        """
        await self.branches.fork_branch(new_branch, base_branch)
        payload: dict[str, Any] = {
            'message': RELEASE_NOTES_COMMIT_MESSAGE,
            'content': base64.b64encode(contents.encode('utf-8')).decode('ascii'),
            'branch': new_branch,
        }
        with contextlib.suppress(RepoFileNotFoundError):
            payload['sha'] = (await self.get_file_contents(filename, new_branch)).sha
        data = await self.client.rest('PUT', f'{self._repo}/contents/{filename}', json=payload)
        url = ((data or {}).get('content') or {}).get('html_url')
        if not url:
            raise GitHubAPIError(f'Failed to write to file: {filename} on branch: {new_branch}', body=data)
        return url

    # ── Pull requests ────────────────────────────────────────────────

    async def get_pull_request(self, number: int) -> PullRequest:
        """Fetch a pull request by number."""
        return rest_pull_request(await self.client.rest('GET', f'{self._repo}/pulls/{number}'))

    async def create_pull_request(
        self,
        *,
        head_branch: str,
        base_branch: str,
        changes_branch: str,
        title: str,
        body: str,
        message: str,
        updates: Sequence[Update],
        labels: Sequence[str] = (),
        draft: bool = False,
        existing_number: int | None = None,
    ) -> PullRequest:
        """Push ``updates`` to ``head_branch`` and open a pull request.

        The head branch is force-reset to ``changes_branch`` first so a
        retried run produces the same single commit. With
        ``existing_number`` only the branch and labels are refreshed.
        """
        changes = await self.build_change_set(updates, changes_branch)
        branch_sha = await self.branches.fork_branch(head_branch, changes_branch)
        await self.commit_and_push(head_branch, branch_sha, changes, message)
        number = existing_number
        if number is None:
            data = await self.client.rest(
                'POST',
                f'{self._repo}/pulls',
                json={
                    'title': title,
                    'head': head_branch,
                    'base': base_branch,
                    'body': body[:MAX_ISSUE_BODY_SIZE],
                    'draft': draft,
                },
            )
            number = data['number']
            logger.info('pull_request_created', number=number, head=head_branch)
        await self.add_issue_labels(labels, number)
        return await self.get_pull_request(number)

    async def update_pull_request(
        self,
        number: int,
        *,
        head_branch: str,
        base_branch: str,
        changes_branch: str,
        title: str,
        body: str,
        message: str,
        updates: Sequence[Update],
        labels: Sequence[str] = (),
    ) -> PullRequest:
        """Refresh an existing release pull request and reopen it if closed."""
        await self.create_pull_request(
            head_branch=head_branch,
            base_branch=base_branch,
            changes_branch=changes_branch,
            title=title,
            body=body,
            message=message,
            updates=updates,
            labels=labels,
            existing_number=number,
        )
        data = await self.client.rest(
            'PATCH',
            f'{self._repo}/pulls/{number}',
            json={'title': title, 'body': body[:MAX_ISSUE_BODY_SIZE], 'state': 'open'},
        )
        logger.info('pull_request_updated', number=number, head=head_branch)
        return rest_pull_request(data)

    async def close_pull_request(self, number: int) -> None:
        """Close a pull request without merging."""
        await self.client.rest('PATCH', f'{self._repo}/pulls/{number}', json={'state': 'closed'})

    async def request_reviewers(self, number: int, reviewers: Sequence[str]) -> Outcome[None]:
        """Ask ``reviewers`` to review; failures are logged, not raised."""
        if not reviewers:
            return Ok(None)
        try:
            await self.client.rest(
                'POST',
                f'{self._repo}/pulls/{number}/requested_reviewers',
                json={'reviewers': list(reviewers)},
            )
        except GitHubAPIError as exc:
            logger.warning('request_reviewers_failed', number=number, error=str(exc))
            return Err(exc)
        return Ok(None)

    async def enable_auto_merge(self, number: int, merge_method: str = 'SQUASH') -> Outcome[None]:
        """Turn on auto-merge; failures are logged, not raised."""
        try:
            data = await self.client.rest('GET', f'{self._repo}/pulls/{number}')
            await self.client.graphql(
                ENABLE_AUTO_MERGE_MUTATION,
                {'pullRequestId': data['node_id'], 'mergeMethod': merge_method.upper()},
            )
        except GitHubAPIError as exc:
            logger.warning('enable_auto_merge_failed', number=number, error=str(exc))
            return Err(exc)
        return Ok(None)

    # ── Issues ───────────────────────────────────────────────────────

    async def add_issue_labels(self, labels: Sequence[str], number: int) -> None:
        """Add ``labels`` to an issue or pull request."""
        if not labels:
            return
        logger.debug('labels_add', labels=list(labels), number=number)
        await self.client.rest('POST', f'{self._repo}/issues/{number}/labels', json={'labels': list(labels)})

    async def remove_issue_labels(self, labels: Sequence[str], number: int) -> None:
        """Remove ``labels`` from an issue or pull request, concurrently."""
        if not labels:
            return
        logger.debug('labels_remove', labels=list(labels), number=number)
        await asyncio.gather(
            *(self.client.rest('DELETE', f'{self._repo}/issues/{number}/labels/{label}') for label in labels)
        )

    async def comment_on_issue(self, comment: str, number: int) -> str:
        """Post a comment and return its URL."""
        logger.debug('comment_add', number=number)
        data = await self.client.rest('POST', f'{self._repo}/issues/{number}/comments', json={'body': comment})
        return data.get('html_url', '')

    # ── Releases ─────────────────────────────────────────────────────

    async def create_release(
        self,
        *,
        tag: str,
        sha: str,
        notes: str,
        name: str | None = None,
        draft: bool = False,
        prerelease: bool = False,
    ) -> GitHubRelease:
        """Create a release and its tag at ``sha``.

        Raises:
            DuplicateReleaseError: If the tag already exists.
        """
        try:
            data = await self.client.rest(
                'POST',
                f'{self._repo}/releases',
                json={
                    'tag_name': tag,
                    'name': name or tag,
                    'body': notes,
                    'draft': draft,
                    'prerelease': prerelease,
                    'target_commitish': sha,
                },
            )
        except GitHubAPIError as exc:
            if exc.status == 422 and any(err.get('code') == 'already_exists' for err in exc.errors):
                raise DuplicateReleaseError(tag, body=exc.body, cause=exc) from exc
            raise
        return _release_from_rest(data)

    async def get_release(self, release_id: int) -> GitHubRelease | None:
        """Fetch a release by id, ``None`` if it is not visible yet."""
        try:
            return _release_from_rest(await self.client.rest('GET', f'{self._repo}/releases/{release_id}'))
        except GitHubAPIError as exc:
            if exc.status == 404:
                return None
            raise

    async def get_release_by_tag(self, tag: str) -> GitHubRelease | None:
        """Fetch a published release by tag, ``None`` if not visible."""
        try:
            return _release_from_rest(await self.client.rest('GET', f'{self._repo}/releases/tags/{tag}'))
        except GitHubAPIError as exc:
            if exc.status == 404:
                return None
            raise


__all__ = [
    'MAX_ISSUE_BODY_SIZE',
    'GitHub',
]
