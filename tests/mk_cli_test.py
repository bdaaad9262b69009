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

"""Tests for manifestkit.cli module."""

from __future__ import annotations

import json

import pytest

from manifestkit import __version__
from manifestkit.cli import _split_repo, build_parser, main
from manifestkit.config import DEFAULT_CONFIG_FILE
from manifestkit.errors import ConfigurationError


class TestBuildParser:
    """Tests for build_parser()."""

    def test_release_pr_defaults(self) -> None:
        """Repository options have their defaults."""
        args = build_parser().parse_args(['release-pr', '--repo-url', 'owner/repo'])
        assert args.command == 'release-pr'
        assert args.config_file == DEFAULT_CONFIG_FILE
        assert args.target_branch is None
        assert not args.dry_run
        assert not args.rest

    def test_global_flags(self) -> None:
        """Global flags precede the subcommand."""
        args = build_parser().parse_args(['-v', '--json-log', 'github-release', '--repo-url', 'o/r', '--dry-run'])
        assert args.verbose
        assert args.json_log
        assert args.dry_run

    def test_repo_url_required(self) -> None:
        """release-pr needs a repository."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(['release-pr'])

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        """--version prints the package version."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(['--version'])
        assert __version__ in capsys.readouterr().out


class TestSplitRepo:
    """Tests for _split_repo()."""

    @pytest.mark.parametrize(
        'value',
        ['owner/repo', 'https://github.com/owner/repo', 'https://github.com/owner/repo.git', 'owner/repo/'],
    )
    def test_accepted(self, value: str) -> None:
        """Short names and URLs resolve to owner and repo."""
        assert _split_repo(value) == ('owner', 'repo')

    def test_rejected(self) -> None:
        """A bare name is not a repository."""
        with pytest.raises(ConfigurationError):
            _split_repo('repo')


class TestMain:
    """Tests for main()."""

    def test_no_command(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Without a subcommand usage is printed and 2 returned."""
        assert main([]) == 2
        assert 'please provide a command' in capsys.readouterr().err

    def test_bootstrap_branch_name(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Encodes a component release branch."""
        assert main(['bootstrap-branch-name', '--target', 'main', '--component', 'pkg1']) == 0
        assert capsys.readouterr().out.strip() == 'release-please--branches--main--components--pkg1'

    def test_bootstrap_branch_name_changes(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Encodes a changes branch."""
        assert main(['bootstrap-branch-name', '--target', 'main', '--changes', 'next']) == 0
        assert capsys.readouterr().out.strip() == 'release-please--branches--main--changes--next'

    def test_bootstrap_branch_name_parse(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Decodes a release branch into JSON."""
        name = 'release-please--branches--main--changes--next--components--pkg1'
        assert main(['bootstrap-branch-name', '--parse', name]) == 0
        assert json.loads(capsys.readouterr().out) == {
            'target_branch': 'main',
            'changes_branch': 'next',
            'component': 'pkg1',
        }

    def test_bootstrap_branch_name_errors(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Missing target and foreign branches are reported with a code."""
        assert main(['bootstrap-branch-name']) == 1
        assert 'MK-CONFIG-INVALID' in capsys.readouterr().err
        assert main(['bootstrap-branch-name', '--parse', 'feature/x']) == 1
        assert 'MK-BRANCH-NAME-INVALID' in capsys.readouterr().err

    def test_explain(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Known codes print their hint."""
        assert main(['explain', 'MK-RELEASE-DUPLICATE']) == 0
        assert 'already exists' in capsys.readouterr().out

    def test_explain_unknown(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Unknown codes fail."""
        assert main(['explain', 'MK-NOPE']) == 1
        assert 'Unknown error code: MK-NOPE' in capsys.readouterr().out
