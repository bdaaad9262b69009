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

"""Tests for manifestkit.resolver module."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from _fake_github import FakeGitHub

from manifestkit.backends.github import GitHubRelease, GitHubTag
from manifestkit.config import parse_config
from manifestkit.resolver import (
    SOURCE_MANIFEST,
    SOURCE_MARKER,
    SOURCE_RELEASE,
    SOURCE_TAG,
    ResolvedVersion,
    VersionResolver,
)
from manifestkit.version import Version

ONE_PACKAGE = '[packages."pkg"]\ncomponent = "pkg"\n'
TWO_PACKAGES = '[packages."."]\n\n[packages."pkg"]\ncomponent = "pkg"\n'


def _run(coro: Coroutine[Any, Any, Any]) -> Any:  # noqa: ANN401
    return asyncio.run(coro)


def _history(github: FakeGitHub) -> None:
    github.add_commit('c1', 'feat: first', ['pkg/a.py'])
    github.add_commit('c2', 'fix: second', ['pkg/b.py'])
    github.add_commit('c3', 'fix: third', ['pkg/c.py'])


def _resolve(
    github: FakeGitHub,
    text: str = ONE_PACKAGE,
    baseline: dict[str, Version] | None = None,
) -> dict[str, ResolvedVersion]:
    config = parse_config(text)
    names = {path: cfg.component for path, cfg in config.components.items()}
    resolver = VersionResolver(github, config, names, baseline or {}, 'main')
    return _run(resolver.resolve(github.commits['main']))


class TestReleasesAndTags:
    """Releases first, then tags, then the baseline."""

    def test_release_wins_over_tag(self) -> None:
        """A matching release is used even when a newer tag exists."""
        github = FakeGitHub()
        _history(github)
        github.releases.append(GitHubRelease(tag_name='pkg-v1.2.0', sha='c2'))
        github.tags.append(GitHubTag(name='pkg-v1.3.0', sha='c3'))
        assert _resolve(github)['pkg'] == ResolvedVersion(Version(1, 2, 0), 'c2', SOURCE_RELEASE)

    def test_tag_fallback(self) -> None:
        """Without a release the newest matching tag is used."""
        github = FakeGitHub()
        _history(github)
        github.tags.extend([GitHubTag(name='pkg-v1.0.0', sha='c1'), GitHubTag(name='pkg-v1.1.0', sha='c2')])
        assert _resolve(github)['pkg'] == ResolvedVersion(Version(1, 1, 0), 'c2', SOURCE_TAG)

    def test_most_recent_commit_wins(self) -> None:
        """Position in history decides, not list order."""
        github = FakeGitHub()
        _history(github)
        github.releases.append(GitHubRelease(tag_name='pkg-v2.0.0', sha='c3'))
        github.releases.append(GitHubRelease(tag_name='pkg-v1.0.0', sha='c1'))
        assert _resolve(github)['pkg'].version == Version(2, 0, 0)

    def test_other_component_ignored(self) -> None:
        """Tags of another component do not match."""
        github = FakeGitHub()
        _history(github)
        github.releases.append(GitHubRelease(tag_name='other-v9.0.0', sha='c3'))
        assert _resolve(github) == {}

    def test_outside_window_uses_baseline(self) -> None:
        """A release on a commit outside the window is discarded."""
        github = FakeGitHub()
        _history(github)
        github.releases.append(GitHubRelease(tag_name='pkg-v1.5.0', sha='elsewhere'))
        resolved = _resolve(github, baseline={'pkg': Version(1, 4, 0)})
        assert resolved['pkg'] == ResolvedVersion(Version(1, 4, 0), None, SOURCE_MANIFEST)

    def test_root_and_component(self) -> None:
        """An unnamed root uses bare v-tags."""
        github = FakeGitHub()
        _history(github)
        github.releases.append(GitHubRelease(tag_name='v0.3.0', sha='c2'))
        github.releases.append(GitHubRelease(tag_name='pkg-v1.0.0', sha='c1'))
        resolved = _resolve(github, TWO_PACKAGES)
        assert resolved['.'].version == Version(0, 3, 0)
        assert resolved['pkg'].version == Version(1, 0, 0)


class TestMarkers:
    """Merged release pull requests found in history."""

    def test_marker_newer_than_release(self) -> None:
        """An untagged merged release delimits the history."""
        github = FakeGitHub()
        _history(github)
        github.add_commit(
            'c4',
            'chore(main): release pkg 1.4.0',
            ['pkg/CHANGELOG.md'],
            number=7,
            head='release-please--branches--main--components--pkg',
        )
        github.releases.append(GitHubRelease(tag_name='pkg-v1.3.0', sha='c1'))
        assert _resolve(github)['pkg'] == ResolvedVersion(Version(1, 4, 0), 'c4', SOURCE_MARKER)

    def test_marker_older_than_release(self) -> None:
        """A release after the marker wins."""
        github = FakeGitHub()
        github.add_commit('c1', 'chore(main): release pkg 1.0.0', number=3, head='release-please--branches--main')
        github.add_commit('c2', 'fix: later', ['pkg/a.py'])
        github.releases.append(GitHubRelease(tag_name='pkg-v1.0.1', sha='c2'))
        assert _resolve(github)['pkg'].source == SOURCE_RELEASE

    def test_is_release_marker(self) -> None:
        """Only release branches and release titles are markers."""
        github = FakeGitHub()
        config = parse_config(ONE_PACKAGE)
        resolver = VersionResolver(github, config, {'pkg': 'pkg'}, {}, 'main')
        marker = github.add_commit('m', 'chore(main): release pkg 2.0.0')
        plain = github.add_commit('p', 'fix: nothing to see')
        assert resolver.is_release_marker(marker)
        assert not resolver.is_release_marker(plain)

    def test_grouped_title_other_branch(self) -> None:
        """A grouped title for another target branch is not a marker."""
        resolver = VersionResolver(FakeGitHub(), parse_config(TWO_PACKAGES), {'.': None, 'pkg': 'pkg'}, {}, 'main')
        assert resolver.parse_title('chore(main): release main') is not None
        assert resolver.parse_title('chore(next): release next') is None
