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

"""``package.json`` version updates."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from manifestkit.version import Version

_INDENT_RE: re.Pattern[str] = re.compile(r'^(?P<indent>[ \t]+)"', re.MULTILINE)


def detect_indent(content: str, default: str = '  ') -> str:
    """Return the indentation of the first indented key."""
    match = _INDENT_RE.search(content)
    return match.group('indent') if match else default


def dump_json(data: object, indent: str = '  ') -> str:
    """Serialize like npm does: given indent, trailing newline."""
    return json.dumps(data, indent=indent, ensure_ascii=False) + '\n'


@dataclass(frozen=True)
class PackageJsonUpdater:
    """Set ``version`` in ``package.json``, keeping key order and indent."""

    version: Version

    def update_content(self, content: str | None) -> str:
        data = json.loads(content) if content else {}
        data['version'] = str(self.version)
        return dump_json(data, detect_indent(content or ''))


__all__ = [
    'PackageJsonUpdater',
    'detect_indent',
    'dump_json',
]
