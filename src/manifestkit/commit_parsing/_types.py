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

"""Pure types for commit message parsing.

Standard library only: frozen dataclasses, an enum and a protocol. No
I/O, no logging.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable


class BumpType(Enum):
    """Kinds of version change, ordered by precedence (highest first).

    ``BUILD`` only changes build metadata and is never produced by a
    commit; it exists so that :meth:`Version.compare_bump` can classify
    every possible difference between two versions.
    """

    MAJOR = 'major'
    MINOR = 'minor'
    PATCH = 'patch'
    PRERELEASE = 'prerelease'
    BUILD = 'build'
    NONE = 'none'


# Lower index = higher precedence.
BUMP_PRECEDENCE: list[BumpType] = [
    BumpType.MAJOR,
    BumpType.MINOR,
    BumpType.PATCH,
    BumpType.PRERELEASE,
    BumpType.BUILD,
    BumpType.NONE,
]


def max_bump(a: BumpType, b: BumpType) -> BumpType:
    """Return the higher-precedence bump type.

    >>> max_bump(BumpType.MINOR, BumpType.PATCH)
    <BumpType.MINOR: 'minor'>
    """
    return BUMP_PRECEDENCE[min(BUMP_PRECEDENCE.index(a), BUMP_PRECEDENCE.index(b))]


@dataclass(frozen=True)
class CommitNote:
    """A release note attached to a commit, e.g. a breaking change.

    Attributes:
        title: Note heading, ``BREAKING CHANGE`` for breaking changes.
        text: Note body.
    """

    title: str
    text: str


@dataclass(frozen=True)
class CommitReference:
    """An issue reference found in a commit message.

    Attributes:
        issue: Issue or pull request number as written (``"123"``).
        action: Closing keyword (``"Fixes"``), empty for bare mentions.
        prefix: Reference prefix, ``#`` for GitHub issues.
    """

    issue: str
    action: str = ''
    prefix: str = '#'


@dataclass(frozen=True)
class ParsedCommit:
    """A parsed commit message.

    Attributes:
        sha: Commit SHA.
        type: Lower-cased commit type (``feat``, ``fix``...).
        description: Subject text after ``type(scope)!:``, the bare message.
        scope: Optional scope.
        body: Free-form text between subject and footers.
        footers: Git trailers as ``(token, value)`` pairs.
        breaking: Whether this is a breaking change.
        notes: Release notes (breaking change descriptions).
        references: Issue references from subject, body and footers.
        bump: Bump implied by this commit alone.
        raw: The unparsed message.
        is_revert: Whether the commit reverts another one.
        reverted_bump: Bump of the reverted commit.
    """

    sha: str
    type: str
    description: str
    scope: str = ''
    body: str = ''
    footers: tuple[tuple[str, str], ...] = ()
    breaking: bool = False
    notes: tuple[CommitNote, ...] = ()
    references: tuple[CommitReference, ...] = ()
    bump: BumpType = BumpType.NONE
    raw: str = ''
    is_revert: bool = False
    reverted_bump: BumpType = BumpType.NONE

    @property
    def bare_message(self) -> str:
        """The subject without its ``type(scope)!:`` prefix."""
        return self.description

    @property
    def breaking_description(self) -> str:
        """Text of the first breaking-change note, or empty."""
        for note in self.notes:
            if note.title == 'BREAKING CHANGE':
                return note.text
        return ''


@runtime_checkable
class CommitParser(Protocol):
    """Protocol for commit message parsers.

    The orchestrator treats parsing as a pure function from message to
    :class:`ParsedCommit`; implement this protocol to support another
    convention.
    """

    def parse(self, message: str, sha: str = '') -> ParsedCommit | None:
        """Parse ``message``; return ``None`` if it does not match."""
        ...
