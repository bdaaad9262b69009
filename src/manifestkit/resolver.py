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

"""Resolve each component's current version and last release commit.

Precedence, per component:

1. The most recent GitHub release whose tag matches the component's tag
   format, among the first ``release_search_depth`` releases.
2. Otherwise the most recent matching raw tag.
3. Release and tag candidates whose commit is not within the scanned
   commit window are discarded.
4. Otherwise the manifest baseline version, with no commit.
5. Independently, a *release marker* commit (the landing commit of a
   merged release pull request) more recent than the release wins:
   it delimits "commits since the last release" even when the release
   itself has not been tagged yet.

"Most recent" means the lowest index in the newest-first commit window;
candidates on the same commit keep API list order.
"""

from __future__ import annotations

import re
from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from manifestkit.backends.github import GitHubRelease, GitHubTag
from manifestkit.branch_name import BranchName
from manifestkit.commits import ROOT_PROJECT_PATH, Commit
from manifestkit.config import ManifestConfig
from manifestkit.errors import BranchNameError
from manifestkit.logging import get_logger
from manifestkit.overflow import FilePullRequestOverflowHandler
from manifestkit.pull_request_body import PullRequestBody
from manifestkit.pull_request_title import PullRequestTitle
from manifestkit.tag_name import TagName
from manifestkit.version import Version

logger = get_logger(__name__)

SOURCE_RELEASE = 'release'
SOURCE_TAG = 'tag'
SOURCE_MANIFEST = 'manifest'
SOURCE_MARKER = 'marker'

_PR_NUMBER_SUFFIX_RE: re.Pattern[str] = re.compile(r'\s*\(#\d+\)\s*$')


@dataclass(frozen=True)
class ResolvedVersion:
    """A component's current version and where it came from.

    Attributes:
        version: The current version.
        sha: Commit of the last release, ``None`` from the baseline.
        source: ``release``, ``tag``, ``manifest`` or ``marker``.
    """

    version: Version
    sha: str | None
    source: str


@dataclass(frozen=True)
class ReleaseMarker:
    """A merged release pull request found in commit history."""

    sha: str
    index: int
    versions: dict[str | None, Version | None]


class ResolverGateway(Protocol):
    """The history calls version resolution needs."""

    def release_iterator(self, *, max_results: int | None = None) -> AsyncIterator[GitHubRelease]: ...

    def tag_iterator(self, *, max_results: int | None = None) -> AsyncIterator[GitHubTag]: ...


class VersionResolver:
    """Resolve current versions for every configured component.

    Args:
        github: History gateway.
        config: Manifest configuration.
        component_names: Path to component name (``None`` when unnamed).
        baseline: Manifest baseline versions.
        target_branch: Branch release pull requests target.
        overflow: Reads release bodies that were externalized.
    """

    def __init__(
        self,
        github: ResolverGateway,
        config: ManifestConfig,
        component_names: Mapping[str, str | None],
        baseline: Mapping[str, Version],
        target_branch: str,
        overflow: FilePullRequestOverflowHandler | None = None,
    ) -> None:
        """Bind the inputs."""
        self.github = github
        self.config = config
        self.component_names = dict(component_names)
        self.baseline = dict(baseline)
        self.target_branch = target_branch
        self.overflow = overflow
        patterns = [c.pull_request_title_pattern for c in config.components.values()]
        self.title_patterns = list(dict.fromkeys([*patterns, config.group_pull_request_title_pattern]))

    def tag_format(self, path: str) -> tuple[str | None, bool, str]:
        """``(component, include_v, separator)`` used in ``path``'s tags."""
        cfg = self.config.components[path]
        component = self.component_names.get(path) if cfg.include_component_in_tag else None
        return component, cfg.include_v_in_tag, cfg.tag_separator

    # ── Markers ──────────────────────────────────────────────────────

    def parse_title(self, title: str) -> PullRequestTitle | None:
        """Parse a release title against every configured pattern."""
        title = _PR_NUMBER_SUFFIX_RE.sub('', title)
        for pattern in self.title_patterns:
            parsed = PullRequestTitle.parse(title, pattern)
            if parsed is None:
                continue
            # A grouped title only counts for this target branch.
            if parsed.version is None and parsed.target_branch != self.target_branch:
                continue
            return parsed
        return None

    def _release_branch(self, commit: Commit) -> BranchName | None:
        pr = commit.pull_request
        if pr is None or not BranchName.matches(pr.head_branch_name):
            return None
        try:
            return BranchName.parse(pr.head_branch_name)
        except BranchNameError:
            return None

    def is_release_marker(self, commit: Commit) -> bool:
        """Whether ``commit`` landed a release pull request."""
        if self._release_branch(commit) is not None:
            return True
        title = commit.pull_request.title if commit.pull_request else commit.message.split('\n', 1)[0]
        return self.parse_title(title) is not None

    async def _marker(self, commit: Commit, index: int) -> ReleaseMarker | None:
        pr = commit.pull_request
        title = self.parse_title(pr.title if pr else commit.message.split('\n', 1)[0])
        branch = self._release_branch(commit)
        if title is None and branch is None:
            return None
        fallback = (title.component if title else None) or (branch.component if branch else None)
        versions: dict[str | None, Version | None] = {}
        body: PullRequestBody | None = None
        if pr is not None and pr.body:
            body = await self.overflow.parse_overflow(pr.body) if self.overflow else PullRequestBody.parse(pr.body)
        if body is not None:
            for release in body.releases:
                versions[release.component or fallback] = release.version
        if title is not None and title.version is not None:
            versions.setdefault(fallback, title.version)
        if not versions:
            versions[fallback] = None
        return ReleaseMarker(sha=commit.sha, index=index, versions=versions)

    async def find_markers(self, commits: Sequence[Commit]) -> list[ReleaseMarker]:
        """Release markers in ``commits``, newest first."""
        markers: list[ReleaseMarker] = []
        for index, commit in enumerate(commits):
            if not self.is_release_marker(commit):
                continue
            marker = await self._marker(commit, index)
            if marker is not None:
                logger.debug('release_marker', sha=commit.sha, components=[str(k) for k in marker.versions])
                markers.append(marker)
        return markers

    def _marker_for(self, path: str, markers: Sequence[ReleaseMarker]) -> tuple[ReleaseMarker, Version | None] | None:
        name = self.component_names.get(path)
        single = len(self.config.components) == 1 or path == ROOT_PROJECT_PATH
        for marker in markers:
            if name is not None and name in marker.versions:
                return marker, marker.versions[name]
            if None in marker.versions and (single or name is None):
                return marker, marker.versions[None]
        return None

    # ── Releases and tags ────────────────────────────────────────────

    def _best(
        self,
        path: str,
        candidates: Iterable[tuple[str, str]],
        index: Mapping[str, int],
        source: str,
    ) -> ResolvedVersion | None:
        component, include_v, separator = self.tag_format(path)
        best: tuple[int, ResolvedVersion] | None = None
        for tag, sha in candidates:
            parsed = TagName.parse(tag)
            if parsed is None or not parsed.matches_format(component, include_v, separator):
                continue
            position = index.get(sha)
            if position is None:
                logger.debug('tag_commit_not_in_window', path=path, tag=tag, sha=sha)
                continue
            if best is None or position < best[0]:
                best = (position, ResolvedVersion(parsed.version, sha, source))
        return best[1] if best else None

    async def resolve(self, commits: Sequence[Commit]) -> dict[str, ResolvedVersion]:
        """Resolve every component against the newest-first ``commits`` window.

        Components with no evidence at all are absent from the result.
        """
        index: dict[str, int] = {}
        for position, commit in enumerate(commits):
            index.setdefault(commit.sha, position)
        depth = self.config.release_search_depth
        resolved: dict[str, ResolvedVersion] = {}

        releases = [(r.tag_name, r.sha) async for r in self.github.release_iterator(max_results=depth)]
        for path in self.config.components:
            found = self._best(path, releases, index, SOURCE_RELEASE)
            if found is not None:
                resolved[path] = found

        if len(resolved) < len(self.config.components):
            tags = [(t.name, t.sha) async for t in self.github.tag_iterator(max_results=depth)]
            for path in self.config.components:
                if path not in resolved:
                    found = self._best(path, tags, index, SOURCE_TAG)
                    if found is not None:
                        resolved[path] = found

        markers = await self.find_markers(commits)
        for path in self.config.components:
            current = resolved.get(path)
            hit = self._marker_for(path, markers)
            if hit is not None:
                marker, version = hit
                newer = current is None or current.sha is None or marker.index < index[current.sha]
                version = version or (current.version if current else self.baseline.get(path))
                if newer and version is not None and (current is None or version >= current.version):
                    resolved[path] = ResolvedVersion(version, marker.sha, SOURCE_MARKER)
                    current = resolved[path]
            if current is None and path in self.baseline:
                resolved[path] = ResolvedVersion(self.baseline[path], None, SOURCE_MANIFEST)

        for path, found in resolved.items():
            logger.info('version_resolved', path=path, version=str(found.version), source=found.source, sha=found.sha)
        return resolved


__all__ = [
    'SOURCE_MANIFEST',
    'SOURCE_MARKER',
    'SOURCE_RELEASE',
    'SOURCE_TAG',
    'ReleaseMarker',
    'ResolvedVersion',
    'ResolverGateway',
    'VersionResolver',
]
