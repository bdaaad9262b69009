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

"""Default release notes.

Renders the conventional-changelog layout used in release pull request
bodies, ``CHANGELOG.md`` and GitHub releases::

    ## [1.0.1](https://github.com/o/r/compare/v1.0.0...v1.0.1) (2026-01-02)


    ### Bug Fixes

    * **api:** handle empty pages ([#12](https://github.com/o/r/issues/12)) ([abc1234](https://github.com/o/r/commit/abc1234...))

Types without a section (``chore``, ``docs``...) are hidden.
"""

from __future__ import annotations

import datetime
import re
from collections.abc import Sequence
from dataclasses import dataclass

from manifestkit.commits import ConventionalCommit
from manifestkit.version import Version

# (type, heading) in render order.
DEFAULT_SECTIONS: tuple[tuple[str, str], ...] = (
    ('feat', 'Features'),
    ('fix', 'Bug Fixes'),
    ('perf', 'Performance Improvements'),
    ('revert', 'Reverts'),
)
BREAKING_HEADING = '⚠ BREAKING CHANGES'

_ISSUE_RE: re.Pattern[str] = re.compile(r'(?<![\w\[])#(\d+)\b')


@dataclass(frozen=True)
class ChangelogContext:
    """Where links in the notes point.

    Attributes:
        owner: Repository owner.
        repo: Repository name.
        host: Web host, ``https://github.com``.
        previous_tag: Tag of the previous release, if any.
        current_tag: Tag of the release being described.
        date: Release date, defaults to today.
    """

    owner: str
    repo: str
    host: str = 'https://github.com'
    previous_tag: str | None = None
    current_tag: str | None = None
    date: datetime.date | None = None

    @property
    def repo_url(self) -> str:
        return f'{self.host}/{self.owner}/{self.repo}'


def _linkify(text: str, repo_url: str) -> str:
    return _ISSUE_RE.sub(lambda m: f'[#{m.group(1)}]({repo_url}/issues/{m.group(1)})', text)


def _bullet(scope: str, text: str, commit: ConventionalCommit, ctx: ChangelogContext) -> str:
    prefix = f'**{scope}:** ' if scope else ''
    line = f'* {prefix}{_linkify(text, ctx.repo_url)}'
    pr = commit.pull_request
    if pr is not None and f'#{pr.number}' not in text:
        line += f' ([#{pr.number}]({ctx.repo_url}/issues/{pr.number}))'
    line += f' ([{commit.sha[:7]}]({ctx.repo_url}/commit/{commit.sha}))'
    return line


def build_notes(
    commits: Sequence[ConventionalCommit],
    version: Version,
    ctx: ChangelogContext,
    *,
    sections: Sequence[tuple[str, str]] = DEFAULT_SECTIONS,
) -> str:
    """Render release notes for ``version`` from ``commits``."""
    date = (ctx.date or datetime.date.today()).isoformat()
    if ctx.previous_tag and ctx.current_tag:
        heading = f'## [{version}]({ctx.repo_url}/compare/{ctx.previous_tag}...{ctx.current_tag}) ({date})'
    else:
        heading = f'## {version} ({date})'

    blocks = [heading]
    breaking = [
        _bullet(c.scope, note.text, c, ctx) for c in commits for note in c.notes if note.title == 'BREAKING CHANGE'
    ]
    if breaking:
        blocks.append(f'### {BREAKING_HEADING}\n\n' + '\n'.join(breaking))
    for cc_type, title in sections:
        bullets = [_bullet(c.scope, c.bare_message, c, ctx) for c in commits if c.type == cc_type]
        if bullets:
            blocks.append(f'### {title}\n\n' + '\n'.join(bullets))
    return '\n\n\n'.join(blocks[:1] + ['\n\n'.join(blocks[1:])]).rstrip() + '\n'


__all__ = [
    'BREAKING_HEADING',
    'DEFAULT_SECTIONS',
    'ChangelogContext',
    'build_notes',
]
