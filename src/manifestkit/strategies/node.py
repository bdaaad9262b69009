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

"""``node`` release type: ``package.json`` and a changelog."""

from __future__ import annotations

import json

from manifestkit.errors import MissingRequiredFileError, RepoFileNotFoundError
from manifestkit.strategies._base import FileReader, Strategy
from manifestkit.updaters import PackageJsonUpdater, Update
from manifestkit.version import Version


class NodeStrategy(Strategy):
    """Sets ``version`` in ``package.json``, which must exist."""

    release_type = 'node'

    _discovered_name: str | None = None

    async def load(self, github: FileReader, branch: str) -> None:
        """Read the package name.

        Raises:
            MissingRequiredFileError: If ``package.json`` is absent.
        """
        path = self.add_path('package.json')
        try:
            contents = await github.get_file_contents(path, branch)
        except RepoFileNotFoundError as exc:
            raise MissingRequiredFileError(path, self.release_type) from exc
        self._discovered_name = json.loads(contents.content).get('name')

    def default_package_name(self) -> str | None:
        return self.package_name or self._discovered_name

    def version_updates(self, version: Version) -> list[Update]:
        return [Update(self.add_path('package.json'), PackageJsonUpdater(version))]


__all__ = [
    'NodeStrategy',
]
