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

"""Prepends a release entry to ``CHANGELOG.md``."""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_CHANGELOG_HEADER = '# Changelog'

# First release heading in an existing changelog.
_ENTRY_RE: re.Pattern[str] = re.compile(r'^#{2,3} \[?v?\d', re.MULTILINE)


@dataclass(frozen=True)
class ChangelogUpdater:
    """Insert ``entry`` above the newest existing release."""

    entry: str
    header: str = DEFAULT_CHANGELOG_HEADER

    def update_content(self, content: str | None) -> str:
        entry = self.entry.strip()
        if not content or not content.strip():
            return f'{self.header}\n\n{entry}\n'
        match = _ENTRY_RE.search(content)
        if match:
            return f'{content[: match.start()]}{entry}\n\n{content[match.start():]}'
        return f'{content.rstrip()}\n\n{entry}\n'


__all__ = [
    'DEFAULT_CHANGELOG_HEADER',
    'ChangelogUpdater',
]
