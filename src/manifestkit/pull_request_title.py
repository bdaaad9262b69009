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

r"""Pattern-driven release pull request titles.

Patterns use ``${token}`` placeholders:

- ``${scope}``: ``(main)``, ``(next => main)`` or nothing
- ``${component}``: `` pkg1`` with a leading space, or nothing
- ``${version}``: ``1.2.3``
- ``${branch}``: the target branch
- ``${changesBranch}``: the changes branch, defaulting to the target

The same pattern compiles to a regex (:func:`to_regex`) that parses
titles back, which is how release marker commits are recognised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from manifestkit.version import Version

DEFAULT_PR_TITLE_PATTERN = 'chore${scope}: release${component} ${version}'
DEFAULT_GROUPED_PR_TITLE_PATTERN = 'chore${scope}: release ${branch}'

_TOKEN_RE: re.Pattern[str] = re.compile(r'\$\{(scope|component|version|branch|changesBranch)\}')
_NAME = r'[\w./-]+'

_TOKEN_REGEX: dict[str, str] = {
    'scope': rf'(?:\((?:(?P<changes_branch>{_NAME}) => )?(?P<branch>{_NAME})\))?',
    'component': r' ?(?P<component>@?[\w./-]*)?',
    'version': r'v?(?P<version>[0-9]\S*)',
    'branch': rf'(?P<branch>{_NAME})?',
    'changesBranch': rf'(?P<changes_branch>{_NAME})?',
}
_TOKEN_GROUPS: dict[str, tuple[str, ...]] = {
    'scope': ('changes_branch', 'branch'),
    'component': ('component',),
    'version': ('version',),
    'branch': ('branch',),
    'changesBranch': ('changes_branch',),
}


def to_regex(pattern: str | None = None) -> re.Pattern[str]:
    """Compile a title pattern into an anchored matcher.

    A token repeated after its group is already defined matches the
    same text again.
    """
    pattern = pattern or DEFAULT_PR_TITLE_PATTERN
    parts: list[str] = []
    seen: set[str] = set()
    pos = 0
    for match in _TOKEN_RE.finditer(pattern):
        parts.append(re.escape(pattern[pos : match.start()]))
        token = match.group(1)
        groups = _TOKEN_GROUPS[token]
        if seen.intersection(groups):
            if token == 'scope':
                parts.append(re.sub(r'\(\?P<(\w+)>[^)]*\)', lambda m: f'(?P={m.group(1)})', _TOKEN_REGEX[token]))
            else:
                parts.append(f'(?P={groups[0]})?')
        else:
            parts.append(_TOKEN_REGEX[token])
        seen.update(groups)
        pos = match.end()
    parts.append(re.escape(pattern[pos:]))
    return re.compile('^' + ''.join(parts) + '$')


@dataclass(frozen=True)
class PullRequestTitle:
    """A structured release pull request title."""

    version: Version | None = None
    component: str | None = None
    target_branch: str | None = None
    changes_branch: str | None = None
    pattern: str = DEFAULT_PR_TITLE_PATTERN

    @classmethod
    def of_version(cls, version: Version, pattern: str | None = None) -> PullRequestTitle:
        """Title for a single-component repository."""
        return cls(version=version, pattern=pattern or DEFAULT_PR_TITLE_PATTERN)

    @classmethod
    def of_component_version(cls, component: str, version: Version, pattern: str | None = None) -> PullRequestTitle:
        """Title for a per-component pull request."""
        return cls(version=version, component=component or None, pattern=pattern or DEFAULT_PR_TITLE_PATTERN)

    @classmethod
    def of_target_branch(
        cls,
        target_branch: str,
        changes_branch: str | None = None,
        pattern: str | None = None,
    ) -> PullRequestTitle:
        """Title for a grouped pull request covering several components."""
        return cls(
            target_branch=target_branch,
            changes_branch=changes_branch,
            pattern=pattern or DEFAULT_GROUPED_PR_TITLE_PATTERN,
        )

    @classmethod
    def of_component_target_branch_version(
        cls,
        component: str | None,
        target_branch: str,
        changes_branch: str | None,
        version: Version | None,
        pattern: str | None = None,
    ) -> PullRequestTitle:
        """Title for a grouped pull request that also releases a root package."""
        return cls(
            version=version,
            component=component or None,
            target_branch=target_branch,
            changes_branch=changes_branch,
            pattern=pattern or DEFAULT_PR_TITLE_PATTERN,
        )

    @classmethod
    def parse(cls, title: str, pattern: str | None = None) -> PullRequestTitle | None:
        """Parse ``title`` against ``pattern``; ``None`` if it does not match."""
        match = to_regex(pattern).match(title)
        if not match:
            return None
        groups = match.groupdict()
        version = Version.try_parse(groups.get('version')) if groups.get('version') else None
        return cls(
            version=version,
            component=groups.get('component') or None,
            target_branch=groups.get('branch') or None,
            changes_branch=groups.get('changes_branch') or None,
            pattern=pattern or DEFAULT_PR_TITLE_PATTERN,
        )

    def _scope(self) -> str:
        if not self.target_branch:
            return ''
        if self.changes_branch and self.changes_branch != self.target_branch:
            return f'({self.changes_branch} => {self.target_branch})'
        return f'({self.target_branch})'

    def __str__(self) -> str:
        values = {
            'scope': self._scope(),
            'component': f' {self.component}' if self.component else '',
            'version': str(self.version) if self.version else '',
            'branch': self.target_branch or '',
            'changesBranch': self.changes_branch or self.target_branch or '',
        }
        return _TOKEN_RE.sub(lambda m: values[m.group(1)], self.pattern).strip()


__all__ = [
    'DEFAULT_GROUPED_PR_TITLE_PATTERN',
    'DEFAULT_PR_TITLE_PATTERN',
    'PullRequestTitle',
    'to_regex',
]
