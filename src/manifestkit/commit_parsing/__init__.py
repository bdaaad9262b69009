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

r"""Commit message parsing.

The orchestrator treats parsing as a pure function from a commit message
to a :class:`ParsedCommit` (type, scope, breaking flag, notes and
references). :class:`CommitParser` is the seam; the built-in
:class:`ConventionalCommitParser` implements Conventional Commits.

Usage::

    from manifestkit.commit_parsing import BumpType, parse_conventional_commit

    cc = parse_conventional_commit('fix(api): handle empty pages\n\nFixes #12')
    assert cc.bump == BumpType.PATCH
    assert cc.references[0].issue == '12'
"""

from manifestkit.commit_parsing._conventional import ConventionalCommitParser
from manifestkit.commit_parsing._types import (
    BUMP_PRECEDENCE,
    BumpType,
    CommitNote,
    CommitParser,
    CommitReference,
    ParsedCommit,
    max_bump,
)

_DEFAULT_PARSER = ConventionalCommitParser()


def parse_conventional_commit(message: str, sha: str = '') -> ParsedCommit | None:
    """Parse ``message`` with the default Conventional Commits parser.

    Returns:
        The parsed commit, or ``None`` if the message is not conventional.
    """
    return _DEFAULT_PARSER.parse(message, sha=sha)


__all__ = [
    'BUMP_PRECEDENCE',
    'BumpType',
    'CommitNote',
    'CommitParser',
    'CommitReference',
    'ConventionalCommitParser',
    'ParsedCommit',
    'max_bump',
    'parse_conventional_commit',
]
