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

"""Tests for manifestkit.changelog and manifestkit.versioning modules."""

from __future__ import annotations

import datetime

import pytest

from manifestkit.changelog import BREAKING_HEADING, ChangelogContext, build_notes
from manifestkit.commit_parsing import BumpType
from manifestkit.commits import Commit, ConventionalCommit, PullRequest, parse_conventional_commits
from manifestkit.errors import ConfigurationError
from manifestkit.version import Version
from manifestkit.versioning import (
    AlwaysBumpStrategy,
    DefaultVersioningStrategy,
    PrereleaseVersioningStrategy,
    build_versioning_strategy,
    is_qualifying,
    release_version,
)

DATE = datetime.date(2026, 1, 2)


def _commits(*messages: str) -> list[ConventionalCommit]:
    return parse_conventional_commits(Commit(f'{i:07d}abc', m) for i, m in enumerate(messages))


class TestBuildNotes:
    """Tests for build_notes()."""

    def test_heading_with_compare_link(self) -> None:
        """Previous and current tags produce a compare link."""
        commit = Commit(
            'abc1234def',
            'fix(api): handle empty pages',
            pull_request=PullRequest(12, 'feature', 'main', 'fix(api): handle empty pages'),
        )
        ctx = ChangelogContext('o', 'r', previous_tag='v1.0.0', current_tag='v1.0.1', date=DATE)
        notes = build_notes(parse_conventional_commits([commit]), Version(1, 0, 1), ctx)
        assert notes == (
            '## [1.0.1](https://github.com/o/r/compare/v1.0.0...v1.0.1) (2026-01-02)\n\n\n'
            '### Bug Fixes\n\n'
            '* **api:** handle empty pages ([#12](https://github.com/o/r/issues/12)) '
            '([abc1234](https://github.com/o/r/commit/abc1234def))\n'
        )

    def test_first_release_heading(self) -> None:
        """Without a previous tag the heading has no link."""
        notes = build_notes(_commits('feat: first'), Version(1, 0, 0), ChangelogContext('o', 'r', date=DATE))
        assert notes.startswith('## 1.0.0 (2026-01-02)\n')
        assert '### Features' in notes

    def test_sections_in_order_and_hidden_types(self) -> None:
        """Features come before fixes; chores are hidden."""
        notes = build_notes(
            _commits('fix: b', 'chore: c', 'feat: a', 'perf: d'), Version(1, 1, 0), ChangelogContext('o', 'r', date=DATE)
        )
        assert notes.index('### Features') < notes.index('### Bug Fixes') < notes.index('### Performance Improvements')
        assert '* c' not in notes

    def test_breaking_section_first(self) -> None:
        """Breaking notes get their own section before features."""
        notes = build_notes(
            _commits('feat!: drop v1\n\nBREAKING CHANGE: v1 is gone'),
            Version(2, 0, 0),
            ChangelogContext('o', 'r', date=DATE),
        )
        assert notes.index(BREAKING_HEADING) < notes.index('### Features')
        assert '* v1 is gone' in notes


class TestQualifying:
    """Tests for is_qualifying()."""

    def test_types(self) -> None:
        """feat, fix, perf, revert and breaking changes qualify."""
        flags = [is_qualifying(c) for c in _commits('feat: a', 'fix: b', 'perf: c', 'docs: d', 'chore!: e')]
        assert flags == [True, True, True, False, True]


class TestDefaultVersioning:
    """Tests for DefaultVersioningStrategy."""

    @pytest.mark.parametrize(
        ('current', 'message', 'expected'),
        [
            ('1.2.3', 'fix: a', '1.2.4'),
            ('1.2.3', 'feat: a', '1.3.0'),
            ('1.2.3', 'feat!: a', '2.0.0'),
            ('0.3.0', 'feat!: a', '1.0.0'),
        ],
    )
    def test_conventional(self, current: str, message: str, expected: str) -> None:
        """The largest change decides the bump."""
        assert DefaultVersioningStrategy().bump(Version.parse(current), _commits(message)) == Version.parse(expected)

    def test_bump_minor_pre_major(self) -> None:
        """Below 1.0.0 a breaking change can bump minor."""
        strategy = DefaultVersioningStrategy(bump_minor_pre_major=True)
        assert strategy.bump(Version(0, 3, 0), _commits('feat!: a')) == Version(0, 4, 0)

    def test_bump_patch_for_minor_pre_major(self) -> None:
        """Below 1.0.0 a feature can bump patch."""
        strategy = DefaultVersioningStrategy(bump_patch_for_minor_pre_major=True)
        assert strategy.bump(Version(0, 3, 0), _commits('feat: a')) == Version(0, 3, 1)

    def test_graduates_prerelease(self) -> None:
        """A prerelease already ahead of the change is released as is."""
        assert release_version(Version.parse('2.0.0-rc.1'), BumpType.MINOR) == Version(2, 0, 0)
        assert release_version(Version.parse('1.2.0-rc.1'), BumpType.MAJOR) == Version(2, 0, 0)


class TestOtherStrategies:
    """Tests for always-bump and prerelease strategies."""

    def test_always_bump_minor(self) -> None:
        """A fix still bumps minor."""
        assert AlwaysBumpStrategy(BumpType.MINOR).bump(Version(1, 2, 3), _commits('fix: a')) == Version(1, 3, 0)

    def test_always_bump_needs_qualifying_commit(self) -> None:
        """Without a qualifying commit nothing changes."""
        assert AlwaysBumpStrategy(BumpType.MAJOR).bump(Version(1, 2, 3), _commits('chore: a')) == Version(1, 2, 3)

    def test_prerelease_stays_on_line(self) -> None:
        """A change that fits the prerelease line increments its counter."""
        strategy = PrereleaseVersioningStrategy('beta')
        assert strategy.bump(Version.parse('1.2.0-beta.1'), _commits('feat: a')) == Version.parse('1.2.0-beta.2')

    def test_prerelease_new_line(self) -> None:
        """A larger change starts a new prerelease line."""
        strategy = PrereleaseVersioningStrategy('beta')
        assert strategy.bump(Version.parse('1.2.0-beta.1'), _commits('feat!: a')) == Version.parse('2.0.0-beta.0')
        assert strategy.bump(Version(1, 1, 0), _commits('feat: a')) == Version.parse('1.2.0-beta.0')

    def test_registry(self) -> None:
        """Registered names build; unknown names are configuration errors."""
        assert isinstance(build_versioning_strategy('always-bump-patch'), AlwaysBumpStrategy)
        with pytest.raises(ConfigurationError):
            build_versioning_strategy('nope')
