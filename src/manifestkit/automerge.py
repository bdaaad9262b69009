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

"""Auto-merge policy for release pull requests.

A pull request qualifies when both constraints hold:

- **Bump kind**: its largest component bump is listed in
  ``version_bump_types`` (no list means any bump).
- **Commits**: with ``match_all`` every contributing commit matches
  some ``{type, scope}`` filter; otherwise at least one does (no
  filters means any commits).

A filter without a scope matches any scope of its type.
"""

from __future__ import annotations

from collections.abc import Sequence

from manifestkit.commits import ConventionalCommit
from manifestkit.config import AutoMergeConfig, CommitFilter
from manifestkit.release_pull_request import ReleasePullRequest


def _matches(commit: ConventionalCommit, filters: Sequence[CommitFilter]) -> bool:
    return any(f.type == commit.type and (f.scope is None or f.scope == commit.scope) for f in filters)


def should_auto_merge(pull_request: ReleasePullRequest, policy: AutoMergeConfig) -> bool:
    """Whether ``pull_request`` satisfies ``policy``."""
    if policy.version_bump_types and pull_request.bump_kind.value not in policy.version_bump_types:
        return False
    if not policy.commit_filters:
        return True
    commits = pull_request.commits
    if not commits:
        return False
    if policy.match_all:
        return all(_matches(c, policy.commit_filters) for c in commits)
    return any(_matches(c, policy.commit_filters) for c in commits)


__all__ = [
    'should_auto_merge',
]
