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

"""Semantic version value type.

:class:`Version` is an immutable ``major.minor.patch[-prerelease][+build]``
value with semver precedence ordering, bump arithmetic and change
classification.

Ordering rules::

    1.0.0-alpha < 1.0.0-alpha.1 < 1.0.0-alpha.beta < 1.0.0-beta
               < 1.0.0-beta.2 < 1.0.0-beta.11 < 1.0.0-rc.1 < 1.0.0

Build metadata does not participate in precedence; it only breaks ties
between otherwise equal versions so that the order stays total.

Usage::

    v = Version.parse('1.2.3')
    assert v.bump(BumpType.MINOR) == Version(1, 3, 0)
    assert Version.parse('2.0.0').compare_bump(v) == BumpType.MAJOR
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, replace

from manifestkit.commit_parsing import BumpType
from manifestkit.errors import VersionError

_VERSION_RE: re.Pattern[str] = re.compile(
    r'^v?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)'
    r'(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?'
    r'(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$'
)

# Finds a version anywhere in a larger string (titles, tags).
VERSION_SEARCH_RE: re.Pattern[str] = re.compile(
    r'v?\d+\.\d+\.\d+(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?'
)


def _compare_identifiers(a: str, b: str) -> int:
    """Compare dot-separated identifier lists per semver rule 11."""
    left = a.split('.')
    right = b.split('.')
    for x, y in zip(left, right):
        if x == y:
            continue
        x_num, y_num = x.isdigit(), y.isdigit()
        if x_num and y_num:
            return -1 if int(x) < int(y) else 1
        if x_num:
            return -1
        if y_num:
            return 1
        return -1 if x < y else 1
    return (len(left) > len(right)) - (len(left) < len(right))


def _increment_identifiers(identifiers: str) -> str:
    """Bump the trailing numeric identifier, or append ``.1``."""
    parts = identifiers.split('.')
    if parts[-1].isdigit():
        parts[-1] = str(int(parts[-1]) + 1)
    else:
        parts.append('1')
    return '.'.join(parts)


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A semantic version.

    Attributes:
        major: Major component.
        minor: Minor component.
        patch: Patch component.
        prerelease: Dot-separated prerelease identifiers, e.g. ``beta.1``.
        build: Dot-separated build metadata, e.g. ``build.5``.
    """

    major: int
    minor: int
    patch: int
    prerelease: str | None = None
    build: str | None = None

    @classmethod
    def parse(cls, value: str) -> Version:
        """Parse ``1.2.3``, ``v1.2.3``, ``1.2.3-rc.1+build.5``.

        Raises:
            VersionError: If ``value`` is not a semantic version.
        """
        match = _VERSION_RE.match(value.strip())
        if not match:
            raise VersionError(value)
        return cls(
            major=int(match.group('major')),
            minor=int(match.group('minor')),
            patch=int(match.group('patch')),
            prerelease=match.group('prerelease'),
            build=match.group('build'),
        )

    @classmethod
    def try_parse(cls, value: str | None) -> Version | None:
        """Like :meth:`parse` but returns ``None`` on failure."""
        if not value:
            return None
        try:
            return cls.parse(value)
        except VersionError:
            return None

    @property
    def is_prerelease(self) -> bool:
        """Whether the version carries prerelease identifiers."""
        return bool(self.prerelease)

    def _compare(self, other: Version) -> int:
        core = (self.major, self.minor, self.patch)
        other_core = (other.major, other.minor, other.patch)
        if core != other_core:
            return -1 if core < other_core else 1
        if self.prerelease != other.prerelease:
            if self.prerelease is None:
                return 1
            if other.prerelease is None:
                return -1
            return _compare_identifiers(self.prerelease, other.prerelease)
        if self.build != other.build:
            if self.build is None:
                return -1
            if other.build is None:
                return 1
            return _compare_identifiers(self.build, other.build)
        return 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._compare(other) == 0

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._compare(other) < 0

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch, self.prerelease, self.build))

    def __str__(self) -> str:
        text = f'{self.major}.{self.minor}.{self.patch}'
        if self.prerelease:
            text += f'-{self.prerelease}'
        if self.build:
            text += f'+{self.build}'
        return text

    def bump(self, kind: BumpType, prerelease_id: str = '') -> Version:
        """Return the next version for a bump of ``kind``.

        ``PRERELEASE`` increments the trailing prerelease number
        (``1.0.0-beta.1`` -> ``1.0.0-beta.2``) or, on a release version,
        starts a prerelease of the next patch (``1.0.0`` -> ``1.0.1-beta.0``
        with ``prerelease_id='beta'``). ``BUILD`` only touches metadata.
        ``NONE`` returns ``self``.
        """
        if kind == BumpType.MAJOR:
            return Version(self.major + 1, 0, 0)
        if kind == BumpType.MINOR:
            return Version(self.major, self.minor + 1, 0)
        if kind == BumpType.PATCH:
            return Version(self.major, self.minor, self.patch + 1)
        if kind == BumpType.PRERELEASE:
            if self.prerelease:
                return Version(self.major, self.minor, self.patch, _increment_identifiers(self.prerelease))
            start = f'{prerelease_id}.0' if prerelease_id else '0'
            return Version(self.major, self.minor, self.patch + 1, start)
        if kind == BumpType.BUILD:
            build = _increment_identifiers(self.build) if self.build else 'build.1'
            return replace(self, build=build)
        return self

    def compare_bump(self, previous: Version) -> BumpType:
        """Classify the change from ``previous`` to this version."""
        if self.major != previous.major:
            return BumpType.MAJOR
        if self.minor != previous.minor:
            return BumpType.MINOR
        if self.patch != previous.patch:
            return BumpType.PATCH
        if self.prerelease != previous.prerelease:
            return BumpType.PRERELEASE
        if self.build != previous.build:
            return BumpType.BUILD
        return BumpType.NONE


__all__ = [
    'VERSION_SEARCH_RE',
    'Version',
]
