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

"""In-memory release pull requests, before or while reconciling with GitHub.

A :class:`ReleasePullRequest` holds one or more :class:`ComponentRelease`
entries. A separate pull request has one; the ``merge`` plugin folds
several into a grouped one. The title, body and branch are derived data
and are rebuilt whenever the component list changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from manifestkit.branch_name import BranchName
from manifestkit.commit_parsing import BumpType, max_bump
from manifestkit.commits import ConventionalCommit
from manifestkit.pull_request_body import PullRequestBody
from manifestkit.pull_request_title import PullRequestTitle
from manifestkit.updaters import Update
from manifestkit.version import Version

_ZERO = Version(0, 0, 0)


@dataclass(frozen=True)
class ComponentRelease:
    """One component's part of a release pull request.

    Attributes:
        path: Component path.
        component: Component name, ``None`` for an unnamed root.
        version: The version being proposed.
        previous_version: The resolved current version, ``None`` for a
            component released for the first time.
        notes: Changelog entry for ``version``.
        commits: Commits that produced the bump.
        updates: File updates from the release strategy.
    """

    path: str
    component: str | None
    version: Version
    previous_version: Version | None
    notes: str
    commits: tuple[ConventionalCommit, ...] = ()
    updates: tuple[Update, ...] = ()

    @property
    def bump_kind(self) -> BumpType:
        """Kind of change from the previous version (``major`` when new)."""
        return self.version.compare_bump(self.previous_version or _ZERO)


@dataclass
class ReleasePullRequest:
    """A proposed release pull request.

    ``labels`` and ``updates`` are mutable so plugins and reconciliation
    can adjust them in place.
    """

    title: PullRequestTitle
    body: PullRequestBody
    head_branch: BranchName
    components: list[ComponentRelease]
    updates: list[Update] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    draft: bool = False
    separate: bool = True

    @property
    def head_branch_name(self) -> str:
        """Encoded head branch name."""
        return str(self.head_branch)

    @property
    def version(self) -> Version | None:
        """The version in the title, when the title carries one."""
        return self.title.version

    @property
    def paths(self) -> list[str]:
        """Component paths covered, in order."""
        return [c.path for c in self.components]

    @property
    def commits(self) -> list[ConventionalCommit]:
        """Every contributing commit, without duplicates."""
        seen: set[tuple[str, str]] = set()
        commits: list[ConventionalCommit] = []
        for release in self.components:
            for commit in release.commits:
                key = (commit.sha, commit.parsed.raw)
                if key not in seen:
                    seen.add(key)
                    commits.append(commit)
        return commits

    @property
    def bump_kind(self) -> BumpType:
        """The largest bump over all components."""
        kind = BumpType.NONE
        for release in self.components:
            kind = max_bump(kind, release.bump_kind)
        return kind


__all__ = [
    'ComponentRelease',
    'ReleasePullRequest',
]
