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

"""Release strategy base class.

A strategy knows which files carry a component's version for one
release type. The orchestrator calls, per component and run:

1. :meth:`Strategy.load` once, to read files the strategy needs
   (it may raise :class:`~manifestkit.errors.MissingRequiredFileError`);
2. :meth:`Strategy.default_package_name` when no component name is
   configured;
3. :meth:`Strategy.build_updates` with the new version and its
   changelog entry.
"""

from __future__ import annotations

import posixpath
from collections.abc import Sequence
from typing import ClassVar, Protocol

from manifestkit.backends.github import FileContents
from manifestkit.commits import ROOT_PROJECT_PATH
from manifestkit.updaters import ChangelogUpdater, GenericUpdater, Update
from manifestkit.version import Version


class FileReader(Protocol):
    """The gateway call strategies use to read files."""

    async def get_file_contents(self, path: str, branch: str) -> FileContents: ...


class Strategy:
    """Shared behaviour: changelog and ``extra-files`` updates.

    Args:
        path: Component path, ``.`` for the repository root.
        package_name: Configured package name, if any.
        changelog_path: Changelog location relative to ``path``.
        extra_files: Extra files, relative to ``path``, holding marked
            version strings.
        skip_changelog: Do not touch the changelog.
    """

    release_type: ClassVar[str] = ''

    def __init__(
        self,
        path: str = ROOT_PROJECT_PATH,
        *,
        package_name: str | None = None,
        changelog_path: str = 'CHANGELOG.md',
        extra_files: Sequence[str] = (),
        skip_changelog: bool = False,
    ) -> None:
        """Store the component layout."""
        self.path = path
        self.package_name = package_name
        self.changelog_path = changelog_path
        self.extra_files = tuple(extra_files)
        self.skip_changelog = skip_changelog

    def add_path(self, file: str) -> str:
        """Resolve ``file`` relative to the component path."""
        file = file.lstrip('/')
        if self.path == ROOT_PROJECT_PATH:
            return file
        return posixpath.join(self.path.strip('/'), file)

    async def load(self, github: FileReader, branch: str) -> None:
        """Read whatever the strategy needs from ``branch``."""

    def default_package_name(self) -> str | None:
        """Package name discovered by :meth:`load`, if any."""
        return self.package_name

    def version_updates(self, version: Version) -> list[Update]:
        """Release-type specific version file updates."""
        return []

    def build_updates(self, version: Version, changelog_entry: str) -> list[Update]:
        """All file updates for releasing ``version``."""
        updates: list[Update] = []
        if not self.skip_changelog:
            updates.append(
                Update(self.add_path(self.changelog_path), ChangelogUpdater(changelog_entry), create_if_missing=True)
            )
        updates.extend(self.version_updates(version))
        updates.extend(Update(self.add_path(file), GenericUpdater(version)) for file in self.extra_files)
        return updates


__all__ = [
    'FileReader',
    'Strategy',
]
