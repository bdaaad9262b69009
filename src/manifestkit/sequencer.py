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

"""Create GitHub releases for merged release pull requests.

For each merged pull request still labeled pending:

1. Parse its body (fetching the companion file when the body
   overflowed) into per-component blocks.
2. Work out each component's tag, draft and prerelease flags.
3. Lock the base branch. A permission error only skips locking.
4. Create releases one at a time, in component order. A duplicate tag
   skips that component; if nothing was created the duplicate error
   is raised.
5. After each release: wait until it is readable, move the labels from
   pending to tagged and comment with the release link.
6. Realign the changes branch, if any, with the target branch. Never
   raises.
7. Unlock the base branch if it was locked.

Steps 3, 6 and 7 return :class:`~manifestkit._types.Ok` /
:class:`~manifestkit._types.Err` and are logged in one place,
:meth:`ReleaseSequencer._best_effort`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from manifestkit._types import Err, Ok, Outcome
from manifestkit.backends.github import GitHub, GitHubRelease, PullRequestStatus
from manifestkit.branch_name import BranchName
from manifestkit.commits import ROOT_PROJECT_PATH, PullRequest
from manifestkit.config import ManifestConfig
from manifestkit.errors import BranchNameError, DuplicateReleaseError, GitHubAPIError
from manifestkit.labels import (
    PENDING_LABEL,
    PRERELEASE_LABEL,
    TAGGED_LABEL,
    PullRequestState,
    state_of,
    transition,
)
from manifestkit.logging import get_logger
from manifestkit.net import Sleep
from manifestkit.overflow import FilePullRequestOverflowHandler
from manifestkit.pull_request_body import ReleaseData
from manifestkit.tag_name import TagName
from manifestkit.version import Version

logger = get_logger(__name__)

MERGED_PULL_REQUEST_SEARCH_DEPTH = 100
POLL_ATTEMPTS = 5
POLL_INITIAL_DELAY = 1.0


@dataclass(frozen=True)
class CandidateRelease:
    """A release about to be created.

    Attributes:
        path: Component path.
        component: Component name.
        tag: Tag to create.
        sha: Merge commit of the release pull request.
        notes: Release notes.
        draft: Create as a draft.
        prerelease: Mark as a prerelease.
        pull_request: The merged release pull request.
    """

    path: str
    component: str | None
    tag: TagName
    sha: str
    notes: str
    draft: bool
    prerelease: bool
    pull_request: PullRequest

    @property
    def version(self) -> Version:
        return self.tag.version


@dataclass(frozen=True)
class ReleaseBatch:
    """The releases one merged pull request produces.

    ``skipped`` lists components configured with ``skip-github-release``;
    they get no release but the pull request is still tagged.
    """

    pull_request: PullRequest
    releases: list[CandidateRelease]
    skipped: list[str]


@dataclass(frozen=True)
class CreatedRelease:
    """A release created by this run."""

    path: str
    component: str | None
    release: GitHubRelease
    pull_request: PullRequest


def comment_for(release: GitHubRelease) -> str:
    """Pull request comment announcing ``release``."""
    return f':robot: Release is at {release.url} :sunflower:'


class ReleaseSequencer:
    """Turns merged release pull requests into GitHub releases.

    Args:
        github: The repository gateway.
        config: Manifest configuration.
        component_names: Component name per path.
        target_branch: Branch release pull requests were merged into.
        sleep: Awaitable used between visibility polls.
    """

    def __init__(
        self,
        github: GitHub,
        config: ManifestConfig,
        component_names: Mapping[str, str | None],
        *,
        target_branch: str,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Bind the run inputs."""
        self.github = github
        self.config = config
        self.component_names = dict(component_names)
        self.target_branch = target_branch
        self.sleep = sleep
        self.overflow = FilePullRequestOverflowHandler(github)

    # ── Labels ───────────────────────────────────────────────────────

    def _canonical(self, labels: Sequence[str]) -> list[str]:
        """Map configured label names onto the well-known ones."""
        canonical = set(labels)
        for configured, known in (
            (self.config.labels, PENDING_LABEL),
            (self.config.release_labels, TAGGED_LABEL),
            (self.config.prerelease_labels, PRERELEASE_LABEL),
        ):
            if canonical.intersection(configured):
                canonical.add(known)
        return sorted(canonical)

    def _configured(self, labels: Sequence[str]) -> list[str]:
        """Map well-known label names onto the configured ones."""
        mapping = {
            PENDING_LABEL: self.config.labels,
            TAGGED_LABEL: self.config.release_labels,
            PRERELEASE_LABEL: self.config.prerelease_labels,
        }
        result: list[str] = []
        for label in labels:
            result.extend(mapping.get(label, (label,)))
        return result

    # ── Build ────────────────────────────────────────────────────────

    def _path_for(self, release: ReleaseData, branch: BranchName) -> str | None:
        component = release.component or branch.component
        for path, name in self.component_names.items():
            if component is not None and name == component:
                return path
        if component is None:
            if len(self.config.components) == 1:
                return next(iter(self.config.components))
            if ROOT_PROJECT_PATH in self.config.components:
                return ROOT_PROJECT_PATH
        return None

    def _tag(self, path: str, version: Version) -> TagName:
        cfg = self.config.components[path]
        component = self.component_names.get(path) if cfg.include_component_in_tag else None
        return TagName(version, component, cfg.tag_separator, cfg.include_v_in_tag)

    async def batch_for(self, pr: PullRequest) -> ReleaseBatch | None:
        """Candidate releases for one merged pull request.

        Returns ``None`` if the pull request has no merge commit or no
        parseable body.
        """
        if pr.sha is None:
            logger.warning('release_pull_request_not_merged', number=pr.number)
            return None
        branch = BranchName.parse(pr.head_branch_name)
        body = await self.overflow.parse_overflow(pr.body)
        if body is None:
            logger.warning('release_pull_request_body_unparseable', number=pr.number)
            return None
        labels = set(self._canonical(pr.labels))
        releases: list[CandidateRelease] = []
        skipped: list[str] = []
        for data in body.releases:
            path = self._path_for(data, branch)
            if path is None or data.version is None:
                logger.warning('release_block_unmatched', number=pr.number, component=data.component)
                continue
            cfg = self.config.components[path]
            if cfg.skip_github_release:
                logger.info('github_release_skipped', path=path, number=pr.number)
                skipped.append(path)
                continue
            draft = self.config.draft if self.config.draft is not None else cfg.draft
            prerelease = PRERELEASE_LABEL in labels or cfg.prerelease or data.version.is_prerelease
            releases.append(
                CandidateRelease(
                    path=path,
                    component=self.component_names.get(path),
                    tag=self._tag(path, data.version),
                    sha=pr.sha,
                    notes=data.notes,
                    draft=draft,
                    prerelease=prerelease,
                    pull_request=pr,
                )
            )
        order = list(self.config.components)
        releases.sort(key=lambda r: order.index(r.path))
        return ReleaseBatch(pull_request=pr, releases=releases, skipped=skipped)

    async def build(self) -> list[ReleaseBatch]:
        """Batches for every merged pull request still labeled pending."""
        batches: list[ReleaseBatch] = []
        async for pr in self.github.pull_request_iterator(
            self.target_branch,
            PullRequestStatus.MERGED,
            max_results=MERGED_PULL_REQUEST_SEARCH_DEPTH,
        ):
            if pr.base_branch_name != self.target_branch:
                continue
            if state_of(self._canonical(pr.labels)) != PullRequestState.PENDING:
                continue
            try:
                batch = await self.batch_for(pr)
            except BranchNameError:
                logger.debug('pull_request_not_release', number=pr.number, head=pr.head_branch_name)
                continue
            if batch is not None:
                batches.append(batch)
        return batches

    # ── Best-effort steps ────────────────────────────────────────────

    def _best_effort(self, step: str, outcome: Outcome[object]) -> bool:
        """Log a failed best-effort step; return whether it succeeded."""
        if isinstance(outcome, Err):
            logger.warning('best_effort_step_failed', step=step, error=str(outcome.error))
            return False
        return True

    async def _lock(self, branch: str) -> Outcome[None]:
        try:
            await self.github.lock_branch(branch)
        except GitHubAPIError as exc:
            if not exc.is_forbidden:
                raise
            return Err(exc)
        return Ok(None)

    async def _unlock(self, branch: str) -> Outcome[None]:
        try:
            await self.github.unlock_branch(branch)
        except GitHubAPIError as exc:
            return Err(exc)
        return Ok(None)

    async def _realign(self, pr: PullRequest) -> Outcome[bool]:
        """Fast-forward the changes branch to the target when it is in sync."""
        try:
            branch = BranchName.parse(pr.head_branch_name)
            changes = branch.changes_branch
            if not changes:
                return Ok(False)
            if await self.github.get_branch_sha(pr.head_branch_name) is not None:
                if await self.github.compare_branches(pr.head_branch_name, changes):
                    await self.github.align_branch(changes, self.target_branch)
                    return Ok(True)
                logger.info('changes_branch_out_of_sync', changes=changes, head=pr.head_branch_name)
                return Ok(False)
            synced = await self.github.compare_branches(self.target_branch, changes)
            logger.info('changes_branch_head_gone', changes=changes, synced=synced)
            return Ok(False)
        except (GitHubAPIError, BranchNameError, ValueError) as exc:
            return Err(exc)

    # ── Create ───────────────────────────────────────────────────────

    async def _wait_visible(self, release: GitHubRelease, candidate: CandidateRelease) -> bool:
        delay = POLL_INITIAL_DELAY
        for _ in range(POLL_ATTEMPTS):
            if candidate.draft and release.id is not None:
                found = await self.github.get_release(release.id)
            else:
                found = await self.github.get_release_by_tag(str(candidate.tag))
            if found is not None:
                return True
            await self.sleep(delay)
            delay *= 2
        logger.warning('release_not_visible', tag=str(candidate.tag))
        return False

    async def _mark_tagged(self, pr: PullRequest, state: PullRequestState, prerelease: bool) -> PullRequestState:
        if self.config.skip_labeling:
            return PullRequestState.TAGGED
        add: list[str] = []
        remove: list[str] = []
        if state == PullRequestState.PENDING:
            add, remove = transition(state, PullRequestState.TAGGED)
        if prerelease:
            add.append(PRERELEASE_LABEL)
        if add:
            await self.github.add_issue_labels(self._configured(add), pr.number)
        if remove:
            await self.github.remove_issue_labels(self._configured(remove), pr.number)
        return PullRequestState.TAGGED

    async def create(self, batch: ReleaseBatch) -> list[CreatedRelease]:
        """Create the releases of one batch, sequentially.

        Raises:
            DuplicateReleaseError: If every release of the batch already
                existed. The pull request is still marked tagged.
        """
        pr = batch.pull_request
        state = state_of(self._canonical(pr.labels))
        locked = self._best_effort('lock_branch', await self._lock(self.target_branch))
        created: list[CreatedRelease] = []
        duplicates: list[DuplicateReleaseError] = []
        try:
            for candidate in batch.releases:
                try:
                    release = await self.github.create_release(
                        tag=str(candidate.tag),
                        sha=candidate.sha,
                        notes=candidate.notes,
                        draft=candidate.draft,
                        prerelease=candidate.prerelease,
                    )
                except DuplicateReleaseError as exc:
                    logger.warning('release_duplicate', tag=str(candidate.tag), path=candidate.path)
                    duplicates.append(exc)
                    continue
                logger.info('release_created', tag=str(candidate.tag), path=candidate.path, url=release.url)
                await self._wait_visible(release, candidate)
                state = await self._mark_tagged(pr, state, candidate.prerelease)
                await self.github.comment_on_issue(comment_for(release), pr.number)
                created.append(CreatedRelease(candidate.path, candidate.component, release, pr))

            if not batch.releases and batch.skipped:
                await self._mark_tagged(pr, state, False)
            if duplicates and not created:
                # Every tag already exists, so the pull request is done.
                await self._mark_tagged(pr, state, False)
                raise duplicates[0]
            self._best_effort('realign_changes_branch', await self._realign(pr))
        finally:
            if locked:
                self._best_effort('unlock_branch', await self._unlock(self.target_branch))
        return created


__all__ = [
    'MERGED_PULL_REQUEST_SEARCH_DEPTH',
    'POLL_ATTEMPTS',
    'CandidateRelease',
    'CreatedRelease',
    'ReleaseBatch',
    'ReleaseSequencer',
    'comment_for',
]
