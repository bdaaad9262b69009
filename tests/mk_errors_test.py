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

"""Tests for manifestkit.errors module."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from manifestkit.errors import (
    AggregateError,
    AuthError,
    ConfigurationError,
    DuplicateReleaseError,
    E,
    GitHubAPIError,
    ManifestKitError,
    MissingRequiredFileError,
    RepoFileNotFoundError,
    explain,
    render_error,
)


class TestCodes:
    """Every error carries a stable code and a hint."""

    @pytest.mark.parametrize(
        ('exc', 'code'),
        [
            (ConfigurationError('bad'), E.CONFIG_INVALID),
            (MissingRequiredFileError('package.json'), E.CONFIG_MISSING_FILE),
            (GitHubAPIError('boom', status=500), E.GITHUB_API),
            (AuthError(), E.GITHUB_AUTH),
            (DuplicateReleaseError('v1.0.0'), E.RELEASE_DUPLICATE),
            (RepoFileNotFoundError('a.txt'), E.FILE_NOT_FOUND),
            (AggregateError([ValueError('x')]), E.AGGREGATE),
        ],
    )
    def test_code_and_hint(self, exc: ManifestKitError, code: E) -> None:
        """Codes map to the documented hints."""
        assert exc.code == code
        assert exc.hint == explain(code.value)

    def test_configuration_prefix(self) -> None:
        """Configuration errors name the releaser and repository."""
        exc = ConfigurationError('no packages', 'node', 'o/r')
        assert str(exc) == 'node (o/r): no packages'

    def test_aggregate_message(self) -> None:
        """Nested messages are listed."""
        exc = AggregateError([ValueError('one'), ValueError('two')], 'Failed')
        assert str(exc) == 'Failed:\n  - one\n  - two'

    def test_duplicate_is_api_error(self) -> None:
        """Duplicates are 422 API errors."""
        exc = DuplicateReleaseError('v1.0.0')
        assert isinstance(exc, GitHubAPIError)
        assert exc.status == 422
        assert exc.tag == 'v1.0.0'


class TestGitHubAPIError:
    """Tests for GitHubAPIError helpers."""

    def test_forbidden_status(self) -> None:
        """403 is forbidden."""
        assert GitHubAPIError('x', status=403).is_forbidden

    def test_forbidden_graphql(self) -> None:
        """A GraphQL FORBIDDEN error is forbidden."""
        exc = GitHubAPIError('x', body={'errors': [{'type': 'FORBIDDEN', 'message': 'no'}]})
        assert exc.is_forbidden
        assert exc.errors == [{'type': 'FORBIDDEN', 'message': 'no'}]

    def test_cause_chained(self) -> None:
        """The transport exception is the cause."""
        cause = OSError('reset')
        assert GitHubAPIError('x', cause=cause).__cause__ is cause


class TestExplainAndRender:
    """Tests for explain() and render_error()."""

    def test_explain_unknown(self) -> None:
        """Unknown codes have no hint."""
        assert explain('MK-NOPE') is None

    def test_render(self) -> None:
        """The code, message and hint are printed without markup injection."""
        buf = io.StringIO()
        console = Console(file=buf, force_terminal=False, width=200)
        render_error(ConfigurationError('bad [packages] table'), console)
        out = buf.getvalue()
        assert 'error MK-CONFIG-INVALID: core (): bad [packages] table' in out
        assert 'hint: Check manifestkit.toml' in out
