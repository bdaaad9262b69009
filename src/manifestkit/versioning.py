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

"""Versioning strategies: from commits to the next version.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Strategy            │ What happens on release                        │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ default             │ breaking → major, feat → minor, other          │
    │                     │ qualifying commits → patch. Below 1.0.0 the    │
    │                     │ pre-major flags can soften each step.          │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ always-bump-patch   │ Always patch (minor, major likewise).          │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ prerelease          │ 1.2.0-beta.1 → 1.2.0-beta.2 while the change   │
    │                     │ fits; otherwise a new prerelease line such as  │
    │                     │ 2.0.0-beta.0.                                  │
    └─────────────────────┴────────────────────────────────────────────────┘

Qualifying commits are the ones that show up in the release notes:
breaking changes and ``feat``, ``fix``, ``perf`` and ``revert`` commits.
The registry is closed: :func:`build_versioning_strategy` raises
:class:`~manifestkit.errors.ConfigurationError` for unknown names.

Usage::

    strategy = build_versioning_strategy('default', bump_minor_pre_major=True)
    assert strategy.bump(Version.parse('0.3.0'), commits) == Version.parse('0.4.0')
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from manifestkit.commit_parsing import BumpType, max_bump
from manifestkit.commits import ConventionalCommit
from manifestkit.errors import ConfigurationError
from manifestkit.version import Version

QUALIFYING_TYPES: frozenset[str] = frozenset({'feat', 'fix', 'perf', 'revert'})


def is_qualifying(commit: ConventionalCommit) -> bool:
    """Whether ``commit`` appears in release notes and so triggers a release."""
    return commit.breaking or commit.type in QUALIFYING_TYPES


def conventional_bump(commits: Sequence[ConventionalCommit]) -> BumpType:
    """Highest bump implied by ``commits``; ``NONE`` if none qualifies."""
    bump = BumpType.NONE
    for commit in commits:
        if commit.breaking:
            return BumpType.MAJOR
        if commit.type == 'feat':
            bump = max_bump(bump, BumpType.MINOR)
        elif is_qualifying(commit):
            bump = max_bump(bump, BumpType.PATCH)
    return bump


def release_version(version: Version, kind: BumpType) -> Version:
    """Apply ``kind`` to ``version``, graduating prereleases.

    A prerelease already ahead of the requested change is released as is:
    ``2.0.0-rc.1`` with a minor bump becomes ``2.0.0``.
    """
    if not version.is_prerelease or kind in (BumpType.NONE, BumpType.BUILD, BumpType.PRERELEASE):
        return version.bump(kind)
    core = Version(version.major, version.minor, version.patch)
    if kind == BumpType.MAJOR and version.minor == 0 and version.patch == 0:
        return core
    if kind == BumpType.MINOR and version.patch == 0:
        return core
    if kind == BumpType.PATCH:
        return core
    return core.bump(kind)


class VersioningStrategy(Protocol):
    """Computes the next version of a component."""

    def bump(self, version: Version, commits: Sequence[ConventionalCommit]) -> Version:
        """Return the next version; ``version`` itself means no release."""
        ...


@dataclass(frozen=True)
class DefaultVersioningStrategy:
    """Conventional-commit rules with the pre-major options.

    Attributes:
        bump_minor_pre_major: Below 1.0.0 a breaking change bumps minor.
        bump_patch_for_minor_pre_major: Below 1.0.0 a feature bumps patch.
    """

    bump_minor_pre_major: bool = False
    bump_patch_for_minor_pre_major: bool = False

    def bump_type(self, version: Version, commits: Sequence[ConventionalCommit]) -> BumpType:
        kind = conventional_bump(commits)
        if version.major < 1:
            if kind == BumpType.MAJOR and self.bump_minor_pre_major:
                return BumpType.MINOR
            if kind == BumpType.MINOR and self.bump_patch_for_minor_pre_major:
                return BumpType.PATCH
        return kind

    def bump(self, version: Version, commits: Sequence[ConventionalCommit]) -> Version:
        return release_version(version, self.bump_type(version, commits))


@dataclass(frozen=True)
class AlwaysBumpStrategy:
    """Bump by a fixed kind whenever there is a qualifying commit."""

    kind: BumpType

    def bump(self, version: Version, commits: Sequence[ConventionalCommit]) -> Version:
        if conventional_bump(commits) == BumpType.NONE:
            return version
        return release_version(version, self.kind)


@dataclass(frozen=True)
class PrereleaseVersioningStrategy:
    """Stay on a prerelease line while the change fits inside it.

    Attributes:
        prerelease_type: Identifier for new prerelease lines (``beta``).
        base: Conventional rules deciding how big the change is.
    """

    prerelease_type: str = ''
    base: DefaultVersioningStrategy = DefaultVersioningStrategy()

    def _start(self, core: Version) -> Version:
        return Version(core.major, core.minor, core.patch, f'{self.prerelease_type}.0' if self.prerelease_type else '0')

    def bump(self, version: Version, commits: Sequence[ConventionalCommit]) -> Version:
        kind = self.base.bump_type(version, commits)
        if kind == BumpType.NONE:
            return version
        if not version.is_prerelease:
            return self._start(version.bump(kind))
        target = release_version(version, kind)
        core = Version(version.major, version.minor, version.patch)
        if target == core:
            return version.bump(BumpType.PRERELEASE)
        return self._start(target)


StrategyFactory = Callable[..., VersioningStrategy]


def _default(**options: object) -> VersioningStrategy:
    return DefaultVersioningStrategy(
        bump_minor_pre_major=bool(options.get('bump_minor_pre_major')),
        bump_patch_for_minor_pre_major=bool(options.get('bump_patch_for_minor_pre_major')),
    )


def _prerelease(**options: object) -> VersioningStrategy:
    return PrereleaseVersioningStrategy(
        prerelease_type=str(options.get('prerelease_type') or ''),
        base=DefaultVersioningStrategy(
            bump_minor_pre_major=bool(options.get('bump_minor_pre_major')),
            bump_patch_for_minor_pre_major=bool(options.get('bump_patch_for_minor_pre_major')),
        ),
    )


VERSIONING_STRATEGIES: dict[str, StrategyFactory] = {
    'default': _default,
    'always-bump-patch': lambda **_: AlwaysBumpStrategy(BumpType.PATCH),
    'always-bump-minor': lambda **_: AlwaysBumpStrategy(BumpType.MINOR),
    'always-bump-major': lambda **_: AlwaysBumpStrategy(BumpType.MAJOR),
    'prerelease': _prerelease,
}


def build_versioning_strategy(name: str = 'default', **options: object) -> VersioningStrategy:
    """Instantiate a registered strategy.

    Args:
        name: Registry key.
        **options: ``bump_minor_pre_major``,
            ``bump_patch_for_minor_pre_major``, ``prerelease_type``.

    Raises:
        ConfigurationError: If ``name`` is not registered.
    """
    factory = VERSIONING_STRATEGIES.get(name)
    if factory is None:
        raise ConfigurationError(f'Unknown versioning strategy: {name!r}')
    return factory(**options)


__all__ = [
    'QUALIFYING_TYPES',
    'VERSIONING_STRATEGIES',
    'AlwaysBumpStrategy',
    'DefaultVersioningStrategy',
    'PrereleaseVersioningStrategy',
    'VersioningStrategy',
    'build_versioning_strategy',
    'conventional_bump',
    'is_qualifying',
    'release_version',
]
