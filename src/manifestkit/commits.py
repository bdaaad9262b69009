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

"""Commits, their linked pull requests and conventional-commit enrichment.

A :class:`Commit` is what the history gateway returns: a sha, the raw
message, the touched files and (on the GraphQL path) the pull request
that landed it. :func:`parse_conventional_commits` turns a list of those
into :class:`ConventionalCommit` values, honouring override blocks in the
linked pull request body::

    BEGIN_COMMIT_OVERRIDE
    feat: add streaming support

    fix(api): handle empty pages
    END_COMMIT_OVERRIDE

Each conventional subject inside the block becomes its own commit with
the original sha, files and pull request.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from manifestkit.commit_parsing import BumpType, CommitNote, CommitReference, ParsedCommit, parse_conventional_commit
from manifestkit.commit_parsing._conventional import CC_PATTERN, REVERT_PATTERN
from manifestkit.logging import get_logger

logger = get_logger(__name__)

ROOT_PROJECT_PATH = '.'

_OVERRIDE_RE: re.Pattern[str] = re.compile(
    r'BEGIN_COMMIT_OVERRIDE\s*\n(?P<message>.*?)\n\s*END_COMMIT_OVERRIDE',
    re.DOTALL,
)


@dataclass(frozen=True)
class PullRequest:
    """A pull request as seen by the orchestrator.

    Attributes:
        number: Remote pull request number.
        head_branch_name: Source branch; the reconciliation key.
        base_branch_name: Branch the pull request targets.
        title: Current title.
        body: Current body.
        labels: Label names.
        sha: Merge commit sha, once merged.
        files: Files changed by the pull request, when fetched.
    """

    number: int
    head_branch_name: str
    base_branch_name: str
    title: str
    body: str = ''
    labels: tuple[str, ...] = ()
    sha: str | None = None
    files: tuple[str, ...] = ()


@dataclass(frozen=True)
class Commit:
    """A commit from branch history."""

    sha: str
    message: str
    files: tuple[str, ...] = ()
    pull_request: PullRequest | None = None


@dataclass(frozen=True)
class ConventionalCommit:
    """A :class:`Commit` paired with its parsed conventional message."""

    commit: Commit
    parsed: ParsedCommit

    @property
    def sha(self) -> str:
        return self.commit.sha

    @property
    def files(self) -> tuple[str, ...]:
        return self.commit.files

    @property
    def pull_request(self) -> PullRequest | None:
        return self.commit.pull_request

    @property
    def type(self) -> str:
        return self.parsed.type

    @property
    def scope(self) -> str:
        return self.parsed.scope

    @property
    def breaking(self) -> bool:
        return self.parsed.breaking

    @property
    def bare_message(self) -> str:
        return self.parsed.bare_message

    @property
    def notes(self) -> tuple[CommitNote, ...]:
        return self.parsed.notes

    @property
    def references(self) -> tuple[CommitReference, ...]:
        return self.parsed.references

    @property
    def bump(self) -> BumpType:
        return self.parsed.bump


def override_message(commit: Commit) -> str | None:
    """Return the override block of the commit's pull request, if any."""
    pr = commit.pull_request
    if pr is None or not pr.body:
        return None
    match = _OVERRIDE_RE.search(pr.body.replace('\r\n', '\n'))
    if not match:
        return None
    return match.group('message').strip()


def split_messages(message: str) -> list[str]:
    """Split a message holding several conventional commits.

    A paragraph whose first line is a conventional subject starts a new
    message; other paragraphs belong to the message before them.
    """
    messages: list[list[str]] = []
    for paragraph in re.split(r'\n\s*\n', message.strip()):
        first_line = paragraph.split('\n', 1)[0].strip()
        starts_commit = bool(CC_PATTERN.match(first_line) or REVERT_PATTERN.match(first_line))
        if starts_commit or not messages:
            messages.append([paragraph])
        else:
            messages[-1].append(paragraph)
    return ['\n\n'.join(parts) for parts in messages]


def parse_conventional_commits(commits: Iterable[Commit]) -> list[ConventionalCommit]:
    """Parse commits, expanding override blocks and dropping the rest.

    Non-conventional messages are dropped with a debug log.
    """
    parsed: list[ConventionalCommit] = []
    for commit in commits:
        message = override_message(commit)
        if message is not None:
            logger.debug('commit_message_overridden', sha=commit.sha, pr=commit.pull_request and commit.pull_request.number)
        else:
            message = commit.message
        for part in split_messages(message):
            cc = parse_conventional_commit(part, sha=commit.sha)
            if cc is None:
                logger.debug('commit_not_conventional', sha=commit.sha, subject=part.split('\n', 1)[0])
                continue
            parsed.append(ConventionalCommit(commit=commit, parsed=cc))
    return parsed


def _normalize_path(path: str) -> str:
    return path.strip('/').removeprefix('./')


def _under(file: str, path: str) -> bool:
    return file == path or file.startswith(f'{path}/')


def filter_commits_for_path(
    commits: Sequence[Commit],
    path: str,
    exclude_paths: Sequence[str] = (),
) -> list[Commit]:
    """Select the commits that touch ``path`` outside ``exclude_paths``.

    The root path ``.`` matches every commit that touches at least one
    non-excluded file; commits without file data also match the root.
    """
    excludes = [_normalize_path(p) for p in exclude_paths]
    prefix = _normalize_path(path)
    selected: list[Commit] = []
    for commit in commits:
        if path == ROOT_PROJECT_PATH and not commit.files:
            selected.append(commit)
            continue
        for file in commit.files:
            if any(_under(file, ex) for ex in excludes):
                continue
            if path == ROOT_PROJECT_PATH or _under(file, prefix):
                selected.append(commit)
                break
    return selected


__all__ = [
    'ROOT_PROJECT_PATH',
    'Commit',
    'ConventionalCommit',
    'PullRequest',
    'filter_commits_for_path',
    'override_message',
    'parse_conventional_commits',
    'split_messages',
]
