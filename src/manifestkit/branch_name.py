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

"""Lossless encoding of release pull request head branch names.

A release branch name encodes the target branch, an optional changes
branch and an optional component::

    release-please--branches--main
    release-please--branches--main--changes--next
    release-please--branches--main--components--pkg1
    release-please--branches--main--changes--next--components--pkg1

``--`` is the separator, so no part may contain it, nor start or end
with ``-``. :meth:`BranchName.parse` recovers exactly the triple that
produced a name or raises :class:`~manifestkit.errors.BranchNameError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from manifestkit.errors import BranchNameError

BRANCH_PREFIX = 'release-please'

_PART = r'[^-](?:[^-]|-(?!-))*(?<!-)'
_BRANCH_RE: re.Pattern[str] = re.compile(
    rf'^{re.escape(BRANCH_PREFIX)}--branches--(?P<target>{_PART})'
    rf'(?:--changes--(?P<changes>{_PART}))?'
    rf'(?:--components--(?P<component>{_PART}))?$'
)


def _check_part(kind: str, value: str) -> None:
    if not value or '--' in value or value.startswith('-') or value.endswith('-'):
        raise BranchNameError(f'Cannot encode {kind} {value!r} in a release branch name')


@dataclass(frozen=True)
class BranchName:
    """A decoded release branch name.

    Attributes:
        target_branch: Branch the release pull request targets.
        changes_branch: Branch the updates are authored against, when it
            differs from the target.
        component: Component name for per-component pull requests.
    """

    target_branch: str
    changes_branch: str | None = None
    component: str | None = None

    def __post_init__(self) -> None:
        _check_part('target branch', self.target_branch)
        if self.changes_branch is not None:
            _check_part('changes branch', self.changes_branch)
        if self.component is not None:
            _check_part('component', self.component)

    @classmethod
    def of_target_branch(cls, target_branch: str, changes_branch: str | None = None) -> BranchName:
        """Branch for a combined pull request.

        A changes branch equal to the target is not encoded.
        """
        changes = changes_branch if changes_branch and changes_branch != target_branch else None
        return cls(target_branch, changes)

    @classmethod
    def of_component_target_branch(
        cls,
        component: str,
        target_branch: str,
        changes_branch: str | None = None,
    ) -> BranchName:
        """Branch for a per-component pull request."""
        changes = changes_branch if changes_branch and changes_branch != target_branch else None
        return cls(target_branch, changes, component)

    @classmethod
    def parse(cls, name: str) -> BranchName:
        """Decode ``name``.

        Raises:
            BranchNameError: If ``name`` is not a release branch name.
        """
        match = _BRANCH_RE.match(name)
        if not match:
            raise BranchNameError(f'Not a release branch name: {name!r}')
        return cls(match.group('target'), match.group('changes'), match.group('component'))

    @staticmethod
    def matches(name: str) -> bool:
        """Whether ``name`` decodes as a release branch name."""
        return _BRANCH_RE.match(name) is not None

    @property
    def effective_changes_branch(self) -> str:
        """The changes branch, defaulting to the target branch."""
        return self.changes_branch or self.target_branch

    def __str__(self) -> str:
        name = f'{BRANCH_PREFIX}--branches--{self.target_branch}'
        if self.changes_branch:
            name += f'--changes--{self.changes_branch}'
        if self.component:
            name += f'--components--{self.component}'
        return name


__all__ = [
    'BRANCH_PREFIX',
    'BranchName',
]
