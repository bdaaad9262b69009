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

r"""Conventional Commits v1.0.0 parser.

Message shape::

    type(scope)!: description
    <blank line>
    body
    <blank line>
    Token: value           <- footers (git trailers)
    BREAKING CHANGE: text

Rules implemented:

- Types are case-insensitive and normalised to lower case.
- ``!`` before the colon, or a ``BREAKING CHANGE`` / ``BREAKING-CHANGE``
  footer (upper case only), marks a breaking change. Each breaking
  footer becomes a :class:`CommitNote`; ``!`` without a footer uses the
  description as the note.
- Footers are ``token: value`` or ``token #value``; a footer value runs
  until the next token line.
- Reverts are recognised as GitHub's ``Revert "feat: x"`` and as
  ``revert: feat: x``; the reverted commit's bump is recorded.
- ``#123`` mentions anywhere in the message become references, with the
  closing keyword captured when present (``Fixes #123``).
"""

from __future__ import annotations

import re

from manifestkit.commit_parsing._types import BumpType, CommitNote, CommitReference, ParsedCommit

MINOR_TYPES: frozenset[str] = frozenset({'feat'})
PATCH_TYPES: frozenset[str] = frozenset({'fix', 'perf'})

_BREAKING_TOKENS: frozenset[str] = frozenset({'BREAKING CHANGE', 'BREAKING-CHANGE'})

CC_PATTERN: re.Pattern[str] = re.compile(
    r'^(?P<type>[a-zA-Z]+)'
    r'(?:\((?P<scope>[^)]*)\))?'
    r'(?P<breaking>!)?'
    r':\s*'
    r'(?P<description>.+)$',
)

_FOOTER_PATTERN: re.Pattern[str] = re.compile(
    r'^(?P<token>BREAKING[- ]CHANGE|[A-Za-z][\w-]*)(?::\s*|\s+#)(?P<value>.*)$',
)

REVERT_PATTERN: re.Pattern[str] = re.compile(r'^[Rr]evert\s+"(?P<inner>.+)"')

_REFERENCE_PATTERN: re.Pattern[str] = re.compile(
    r'(?:(?P<action>[Cc]lose[sd]?|[Ff]ix(?:e[sd])?|[Rr]esolve[sd]?)\s+)?(?P<prefix>#)(?P<issue>\d+)\b',
)


def _split_footers(lines: list[str]) -> tuple[str, tuple[tuple[str, str], ...]]:
    """Split post-subject lines into ``(body, footers)``.

    The footer block is the trailing paragraph whose first line is a
    trailer. Lines inside the block that are not trailers continue the
    previous value.
    """
    paragraph_start = 0
    for i in range(len(lines) - 1, -1, -1):
        if not lines[i].strip():
            paragraph_start = i + 1
            break
    block = lines[paragraph_start:]
    if not block or not _FOOTER_PATTERN.match(block[0]):
        # Breaking footers are also honoured mid-body.
        for i, line in enumerate(lines):
            if line.startswith(('BREAKING CHANGE:', 'BREAKING-CHANGE:')):
                block = lines[i:]
                paragraph_start = i
                break
        else:
            return '\n'.join(lines).strip(), ()

    footers: list[tuple[str, list[str]]] = []
    for line in block:
        match = _FOOTER_PATTERN.match(line)
        if match:
            footers.append((match.group('token'), [match.group('value')]))
        elif footers:
            footers[-1][1].append(line)
    body = '\n'.join(lines[:paragraph_start]).strip()
    return body, tuple((token, '\n'.join(value).strip()) for token, value in footers)


def _references(message: str) -> tuple[CommitReference, ...]:
    seen: set[str] = set()
    refs: list[CommitReference] = []
    for match in _REFERENCE_PATTERN.finditer(message):
        issue = match.group('issue')
        if issue in seen:
            continue
        seen.add(issue)
        refs.append(CommitReference(issue=issue, action=match.group('action') or '', prefix=match.group('prefix')))
    return tuple(refs)


class ConventionalCommitParser:
    """Parser for Conventional Commits v1.0.0.

    Example::

        parser = ConventionalCommitParser()
        cc = parser.parse('feat(api)!: drop v1\n\nBREAKING CHANGE: v1 is gone')
        assert cc.bump == BumpType.MAJOR
        assert cc.notes[0].text == 'v1 is gone'
    """

    def __init__(
        self,
        *,
        minor_types: frozenset[str] = MINOR_TYPES,
        patch_types: frozenset[str] = PATCH_TYPES,
    ) -> None:
        """Configure which types map to minor and patch bumps."""
        self.minor_types = minor_types
        self.patch_types = patch_types

    def _bump_for(self, cc_type: str, breaking: bool) -> BumpType:
        if breaking:
            return BumpType.MAJOR
        if cc_type in self.minor_types:
            return BumpType.MINOR
        if cc_type in self.patch_types:
            return BumpType.PATCH
        return BumpType.NONE

    def _revert(self, inner: str, sha: str, message: str, scope: str = '') -> ParsedCommit:
        inner_cc = self.parse(inner, sha=sha)
        return ParsedCommit(
            sha=sha,
            type='revert',
            scope=inner_cc.scope if inner_cc else scope,
            description=inner,
            raw=message,
            references=_references(message),
            is_revert=True,
            reverted_bump=inner_cc.bump if inner_cc else BumpType.NONE,
        )

    def parse(self, message: str, sha: str = '') -> ParsedCommit | None:
        """Parse a full commit message.

        Args:
            message: Subject line, optionally followed by body and footers.
            sha: Commit SHA, copied to the result.

        Returns:
            The parsed commit, or ``None`` for a non-conventional message.
        """
        lines = message.strip('\n').split('\n')
        subject = lines[0].strip()

        revert = REVERT_PATTERN.match(subject)
        if revert:
            return self._revert(revert.group('inner'), sha, message)

        match = CC_PATTERN.match(subject)
        if not match:
            return None

        cc_type = match.group('type').lower()
        scope = (match.group('scope') or '').strip()
        description = match.group('description').strip()
        if cc_type == 'revert':
            return self._revert(description, sha, message, scope)

        rest = lines[1:]
        while rest and not rest[0].strip():
            rest = rest[1:]
        body, footers = _split_footers(rest)

        notes = tuple(CommitNote('BREAKING CHANGE', value) for token, value in footers if token in _BREAKING_TOKENS)
        breaking = bool(match.group('breaking')) or bool(notes)
        if breaking and not notes:
            notes = (CommitNote('BREAKING CHANGE', description),)

        return ParsedCommit(
            sha=sha,
            type=cc_type,
            scope=scope,
            description=description,
            body=body,
            footers=footers,
            breaking=breaking,
            notes=notes,
            references=_references(message),
            bump=self._bump_for(cc_type, breaking),
            raw=message,
        )
