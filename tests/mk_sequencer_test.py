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

"""Tests for manifestkit.sequencer module."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Sequence
from typing import Any

import pytest
from _fake_github import FakeGitHub

from manifestkit.backends.github import GitHubRelease, PullRequestStatus
from manifestkit.config import ManifestConfig, parse_config
from manifestkit.errors import DuplicateReleaseError, GitHubAPIError
from manifestkit.labels import PENDING_LABEL, PRERELEASE_LABEL, TAGGED_LABEL
from manifestkit.pull_request_body import PullRequestBody, ReleaseData
from manifestkit.sequencer import ReleaseSequencer, comment_for
from manifestkit.version import Version

FOUR_PACKAGES = ''.join(f'[packages."packages/pkg{i}"]\ncomponent = "pkg{i}"\n\n' for i in range(1, 5))
VERSIONS = {'pkg1': '1.0.1', 'pkg2': '0.2.0', 'pkg3': '3.0.1', 'pkg4': '4.0.0'}


def _run(coro: Coroutine[Any, Any, Any]) -> Any:  # noqa: ANN401
    return asyncio.run(coro)


def _body(versions: dict[str, str]) -> str:
    releases = [ReleaseData(name, Version.parse(v), f'## {v}\n\n* change in {name}') for name, v in versions.items()]
    return str(PullRequestBody(releases))


def _merged(
    github: FakeGitHub,
    versions: dict[str, str] = VERSIONS,
    *,
    labels: Sequence[str] = (PENDING_LABEL,),
    head: str = 'release-please--branches--main',
    number: int = 7,
) -> None:
    github.add_pull_request(
        number,
        head,
        'chore(main): release main',
        _body(versions),
        labels=labels,
        state=PullRequestStatus.MERGED,
        sha='merge-sha',
    )


def _sequencer(github: FakeGitHub, config: ManifestConfig | None = None) -> ReleaseSequencer:
    config = config or parse_config(FOUR_PACKAGES)
    names = {path: cfg.component for path, cfg in config.components.items()}
    return ReleaseSequencer(github, config, names, target_branch='main', sleep=_no_sleep)


async def _no_sleep(delay: float) -> None:
    return None


async def _create_all(sequencer: ReleaseSequencer) -> list[Any]:
    created = []
    for batch in await sequencer.build():
        created.extend(await sequencer.create(batch))
    return created


class TestBuild:
    """Tests for ReleaseSequencer.build()."""

    def test_pending_pull_request(self) -> None:
        """A merged pending pull request yields one candidate per block."""
        github = FakeGitHub()
        _merged(github)
        batches = _run(_sequencer(github).build())
        assert len(batches) == 1
        tags = [str(r.tag) for r in batches[0].releases]
        assert tags == ['pkg1-v1.0.1', 'pkg2-v0.2.0', 'pkg3-v3.0.1', 'pkg4-v4.0.0']
        assert {r.sha for r in batches[0].releases} == {'merge-sha'}

    def test_config_order(self) -> None:
        """Candidates follow config order, not body order."""
        github = FakeGitHub()
        _merged(github, {'pkg2': '0.2.0', 'pkg1': '1.0.1'})
        batch = _run(_sequencer(github).build())[0]
        assert [r.component for r in batch.releases] == ['pkg1', 'pkg2']

    def test_tagged_ignored(self) -> None:
        """Already tagged pull requests are not released again."""
        github = FakeGitHub()
        _merged(github, labels=(TAGGED_LABEL,))
        assert _run(_sequencer(github).build()) == []

    def test_foreign_branch_ignored(self) -> None:
        """A pending pull request from another branch is skipped."""
        github = FakeGitHub()
        _merged(github, head='feature/thing')
        assert _run(_sequencer(github).build()) == []

    def test_prerelease_flags(self) -> None:
        """The pre-release label and prerelease versions mark releases."""
        github = FakeGitHub()
        _merged(github, {'pkg1': '1.0.1', 'pkg2': '2.0.0-beta.1'})
        _merged(github, {'pkg3': '3.0.1'}, labels=(PENDING_LABEL, PRERELEASE_LABEL), number=8)
        batches = _run(_sequencer(github).build())
        flags = {r.component: r.prerelease for b in batches for r in b.releases}
        assert flags == {'pkg1': False, 'pkg2': True, 'pkg3': True}

    def test_skip_github_release(self) -> None:
        """Skipped components are reported, not released."""
        config = parse_config('[packages."a"]\ncomponent = "a"\nskip-github-release = true\n')
        github = FakeGitHub()
        _merged(github, {'a': '1.0.0'})
        batch = _run(_sequencer(github, config).build())[0]
        assert batch.releases == []
        assert batch.skipped == ['a']


class TestCreate:
    """Tests for ReleaseSequencer.create()."""

    def test_creates_in_order(self) -> None:
        """Every release is created, commented on and labeled."""
        github = FakeGitHub()
        _merged(github)
        created = _run(_create_all(_sequencer(github)))
        assert [c.release.tag_name for c in created] == ['pkg1-v1.0.1', 'pkg2-v0.2.0', 'pkg3-v3.0.1', 'pkg4-v4.0.0']
        assert len(github.comments) == 4
        assert github.comments[0] == (7, comment_for(created[0].release))
        labels = github.find(7).pr.labels
        assert TAGGED_LABEL in labels
        assert PENDING_LABEL not in labels
        assert github.locked == ['main']
        assert github.unlocked == ['main']

    def test_one_duplicate_skipped(self) -> None:
        """An existing tag is skipped and the rest are created."""
        github = FakeGitHub()
        github.releases.append(GitHubRelease(tag_name='pkg3-v3.0.1', sha='merge-sha'))
        _merged(github)
        created = _run(_create_all(_sequencer(github)))
        assert [c.component for c in created] == ['pkg1', 'pkg2', 'pkg4']
        assert 'create_release:pkg3-v3.0.1' in github.calls

    def test_all_duplicates_raise(self) -> None:
        """Nothing created because everything existed is an error, but the PR is tagged."""
        github = FakeGitHub()
        for name, version in VERSIONS.items():
            github.releases.append(GitHubRelease(tag_name=f'{name}-v{version}', sha='merge-sha'))
        _merged(github)
        with pytest.raises(DuplicateReleaseError):
            _run(_create_all(_sequencer(github)))
        assert github.unlocked == ['main']
        labels = github.find(7).pr.labels
        assert TAGGED_LABEL in labels
        assert PENDING_LABEL not in labels

    def test_all_duplicates_not_retried(self) -> None:
        """A batch of existing tags is not rebuilt on the next run."""
        github = FakeGitHub()
        for name, version in VERSIONS.items():
            github.releases.append(GitHubRelease(tag_name=f'{name}-v{version}', sha='merge-sha'))
        _merged(github)
        with pytest.raises(DuplicateReleaseError):
            _run(_create_all(_sequencer(github)))
        assert _run(_sequencer(github).build()) == []

    def test_lock_forbidden_tolerated(self) -> None:
        """Missing permission to lock only skips locking."""
        github = FakeGitHub(lock_error=GitHubAPIError('forbidden', status=403))
        _merged(github, {'pkg1': '1.0.1'})
        created = _run(_create_all(_sequencer(github)))
        assert len(created) == 1
        assert github.unlocked == []

    def test_lock_failure_propagates(self) -> None:
        """Other lock failures abort the batch."""
        github = FakeGitHub(lock_error=GitHubAPIError('boom', status=500))
        _merged(github, {'pkg1': '1.0.1'})
        with pytest.raises(GitHubAPIError):
            _run(_create_all(_sequencer(github)))
        assert not any(call.startswith('create_release') for call in github.calls)

    def test_prerelease_label_added(self) -> None:
        """Prerelease releases also get the pre-release label."""
        github = FakeGitHub()
        _merged(github, {'pkg1': '1.1.0-rc.0'})
        _run(_create_all(_sequencer(github)))
        assert github.releases[0].prerelease
        assert PRERELEASE_LABEL in github.find(7).pr.labels

    def test_custom_labels(self) -> None:
        """Configured label names are read and written."""
        config = parse_config(
            'labels = ["release: pending"]\nrelease-labels = ["release: done"]\n' + FOUR_PACKAGES
        )
        github = FakeGitHub()
        _merged(github, {'pkg1': '1.0.1'}, labels=('release: pending',))
        _run(_create_all(_sequencer(github, config)))
        assert github.find(7).pr.labels == ('release: done',)

    def test_skipped_release_still_tagged(self) -> None:
        """A batch of skipped components is labeled tagged."""
        config = parse_config('[packages."a"]\ncomponent = "a"\nskip-github-release = true\n')
        github = FakeGitHub()
        _merged(github, {'a': '1.0.0'})
        assert _run(_create_all(_sequencer(github, config))) == []
        assert github.find(7).pr.labels == (TAGGED_LABEL,)


class TestRealign:
    """Changes branch realignment after releasing."""

    HEAD = 'release-please--branches--main--changes--next'

    def test_aligned_when_in_sync(self) -> None:
        """The changes branch is reset to the target."""
        github = FakeGitHub(branch_shas={self.HEAD: 'h1'})
        _merged(github, {'pkg1': '1.0.1'}, head=self.HEAD)
        _run(_create_all(_sequencer(github)))
        assert github.aligned == [('next', 'main')]

    def test_not_aligned_when_diverged(self) -> None:
        """A diverged changes branch is left alone."""
        github = FakeGitHub(branch_shas={self.HEAD: 'h1'}, in_sync=False)
        _merged(github, {'pkg1': '1.0.1'}, head=self.HEAD)
        created = _run(_create_all(_sequencer(github)))
        assert len(created) == 1
        assert github.aligned == []

    def test_no_changes_branch(self) -> None:
        """Plain release branches need no realignment."""
        github = FakeGitHub()
        _merged(github, {'pkg1': '1.0.1'})
        _run(_create_all(_sequencer(github)))
        assert github.aligned == []
