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

"""``python`` release type: ``pyproject.toml`` and a changelog."""

from __future__ import annotations

import tomlkit
from tomlkit.exceptions import TOMLKitError

from manifestkit.errors import RepoFileNotFoundError
from manifestkit.logging import get_logger
from manifestkit.strategies._base import FileReader, Strategy
from manifestkit.updaters import PyProjectUpdater, Update
from manifestkit.version import Version

logger = get_logger(__name__)


class PythonStrategy(Strategy):
    """Sets ``[project].version`` (or ``[tool.poetry].version``)."""

    release_type = 'python'

    _discovered_name: str | None = None

    async def load(self, github: FileReader, branch: str) -> None:
        """Read the distribution name from ``pyproject.toml`` when present."""
        path = self.add_path('pyproject.toml')
        try:
            contents = await github.get_file_contents(path, branch)
        except RepoFileNotFoundError:
            logger.debug('pyproject_missing', path=path)
            return
        try:
            doc = tomlkit.parse(contents.content)
        except TOMLKitError as exc:
            logger.warning('pyproject_unparseable', path=path, error=str(exc))
            return
        name = doc.get('project', {}).get('name') or doc.get('tool', {}).get('poetry', {}).get('name')
        self._discovered_name = str(name) if name else None

    def default_package_name(self) -> str | None:
        return self.package_name or self._discovered_name

    def version_updates(self, version: Version) -> list[Update]:
        return [Update(self.add_path('pyproject.toml'), PyProjectUpdater(version))]


__all__ = [
    'PythonStrategy',
]
