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

"""Version strings in arbitrary files, marked with comments.

Two markers are recognised::

    __version__ = '1.2.3'  # x-release-please-version

    # x-release-please-start-version
    VERSION = '1.2.3'
    # x-release-please-end

The first rewrites the version on its own line, the second every version
between the start and end markers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from manifestkit.logging import get_logger
from manifestkit.version import VERSION_SEARCH_RE, Version

logger = get_logger(__name__)

INLINE_MARKER = 'x-release-please-version'
BLOCK_START = 'x-release-please-start-version'
BLOCK_END = 'x-release-please-end'


def _replace_versions(line: str, version: Version) -> str:
    def _sub(match: re.Match[str]) -> str:
        text = match.group(0)
        return f'v{version}' if text.startswith('v') else str(version)

    return VERSION_SEARCH_RE.sub(_sub, line)


@dataclass(frozen=True)
class GenericUpdater:
    """Rewrite marked version strings to ``version``."""

    version: Version

    def update_content(self, content: str | None) -> str:
        if content is None:
            logger.warning('generic_update_missing_content')
            return ''
        lines = content.split('\n')
        in_block = False
        for i, line in enumerate(lines):
            if BLOCK_START in line:
                in_block = True
                continue
            if BLOCK_END in line:
                in_block = False
                continue
            if in_block or INLINE_MARKER in line:
                lines[i] = _replace_versions(line, self.version)
        return '\n'.join(lines)


__all__ = [
    'GenericUpdater',
]
