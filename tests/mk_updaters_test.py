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

"""Tests for manifestkit.updaters modules."""

from __future__ import annotations

import json

from manifestkit.updaters import (
    ChangelogUpdater,
    GenericUpdater,
    ManifestUpdater,
    PackageJsonUpdater,
    PyProjectUpdater,
    VersionTxtUpdater,
)
from manifestkit.version import Version

V = Version(1, 3, 0)


class TestChangelogUpdater:
    """Tests for ChangelogUpdater."""

    def test_new_file(self) -> None:
        """A missing changelog gets a header and the entry."""
        assert ChangelogUpdater('## 1.3.0\n\n* x').update_content(None) == '# Changelog\n\n## 1.3.0\n\n* x\n'

    def test_inserted_above_previous_release(self) -> None:
        """The entry goes above the newest release, below any preamble."""
        existing = '# Changelog\n\nAll notable changes.\n\n## [1.2.0](url) (2026-01-01)\n\n* old\n'
        updated = ChangelogUpdater('## [1.3.0](url) (2026-02-01)\n\n* new').update_content(existing)
        assert updated.index('All notable changes.') < updated.index('1.3.0') < updated.index('1.2.0')

    def test_appended_without_releases(self) -> None:
        """With no previous release the entry is appended."""
        assert ChangelogUpdater('## 1.3.0').update_content('# Changelog\n') == '# Changelog\n\n## 1.3.0\n'


class TestGenericUpdater:
    """Tests for GenericUpdater."""

    def test_inline_marker(self) -> None:
        """Only marked lines change."""
        content = "__version__ = '1.2.0'  # x-release-please-version\nOTHER = '1.2.0'\n"
        assert GenericUpdater(V).update_content(content) == (
            "__version__ = '1.3.0'  # x-release-please-version\nOTHER = '1.2.0'\n"
        )

    def test_block_markers(self) -> None:
        """Every version inside a block changes, keeping a v prefix."""
        content = '# x-release-please-start-version\nA = "1.2.0"\nB = "v1.2.0"\n# x-release-please-end\nC = "1.2.0"\n'
        updated = GenericUpdater(V).update_content(content)
        assert 'A = "1.3.0"' in updated
        assert 'B = "v1.3.0"' in updated
        assert 'C = "1.2.0"' in updated

    def test_missing_file(self) -> None:
        """A missing file yields empty content."""
        assert GenericUpdater(V).update_content(None) == ''


class TestManifestUpdater:
    """Tests for ManifestUpdater."""

    def test_merges_and_sorts(self) -> None:
        """New versions merge into the map, other paths keep theirs."""
        content = '{\n  "pkg": "0.1.0",\n  ".": "1.0.0"\n}\n'
        updated = ManifestUpdater({'pkg': Version(0, 2, 0)}).update_content(content)
        assert updated == '{\n  ".": "1.0.0",\n  "pkg": "0.2.0"\n}\n'

    def test_create(self) -> None:
        """A missing manifest is created."""
        assert json.loads(ManifestUpdater({'.': V}).update_content(None)) == {'.': '1.3.0'}


class TestPackageJsonUpdater:
    """Tests for PackageJsonUpdater."""

    def test_keeps_order_and_indent(self) -> None:
        """Key order and indentation survive."""
        content = '{\n    "name": "pkg",\n    "version": "1.2.0",\n    "main": "index.js"\n}\n'
        assert PackageJsonUpdater(V).update_content(content) == (
            '{\n    "name": "pkg",\n    "version": "1.3.0",\n    "main": "index.js"\n}\n'
        )


class TestPyProjectUpdater:
    """Tests for PyProjectUpdater."""

    def test_project_version(self) -> None:
        """[project].version is set and comments are kept."""
        content = '[project]\nname = "pkg"  # the name\nversion = "1.2.0"\n'
        assert PyProjectUpdater(V).update_content(content) == '[project]\nname = "pkg"  # the name\nversion = "1.3.0"\n'

    def test_dynamic_version_untouched(self) -> None:
        """A dynamic version is left alone."""
        content = '[project]\nname = "pkg"\ndynamic = ["version"]\n'
        assert PyProjectUpdater(V).update_content(content) == content

    def test_poetry(self) -> None:
        """[tool.poetry].version is used without [project]."""
        content = '[tool.poetry]\nname = "pkg"\nversion = "1.2.0"\n'
        assert 'version = "1.3.0"' in PyProjectUpdater(V).update_content(content)


class TestVersionTxtUpdater:
    """Tests for VersionTxtUpdater."""

    def test_replaces_everything(self) -> None:
        """The file becomes the version and a newline."""
        assert VersionTxtUpdater(V).update_content('1.2.0\n') == '1.3.0\n'
        assert VersionTxtUpdater(V).update_content(None) == '1.3.0\n'
