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

"""``pyproject.toml`` version updates with ``tomlkit``.

Comments, ordering and formatting survive the edit. The version is set
in ``[project]`` when present, otherwise in ``[tool.poetry]``. A file
that declares ``dynamic = ["version"]`` is left alone.
"""

from __future__ import annotations

from dataclasses import dataclass

import tomlkit

from manifestkit.logging import get_logger
from manifestkit.version import Version

logger = get_logger(__name__)


@dataclass(frozen=True)
class PyProjectUpdater:
    """Set the package version in ``pyproject.toml``."""

    version: Version

    def update_content(self, content: str | None) -> str:
        doc = tomlkit.parse(content or '')
        project = doc.get('project')
        if project is not None:
            if 'version' in project.get('dynamic', []):
                logger.info('pyproject_dynamic_version')
                return tomlkit.dumps(doc)
            project['version'] = str(self.version)
            return tomlkit.dumps(doc)
        poetry = doc.get('tool', {}).get('poetry')
        if poetry is not None:
            poetry['version'] = str(self.version)
            return tomlkit.dumps(doc)
        logger.warning('pyproject_version_not_found')
        return tomlkit.dumps(doc)


__all__ = [
    'PyProjectUpdater',
]
