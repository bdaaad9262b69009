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

"""Release tag names: ``pkg1-v1.0.0``, ``v1.0.0`` or ``1.0.0``."""

from __future__ import annotations

import re
from dataclasses import dataclass

from manifestkit.version import Version

_TAG_RE: re.Pattern[str] = re.compile(
    r'^(?:(?P<component>.+?)(?P<separator>[-/@]))?(?P<v>v)?(?P<version>\d+\.\d+\.\d+\S*)$',
)


@dataclass(frozen=True)
class TagName:
    """A component-qualified or bare release tag."""

    version: Version
    component: str | None = None
    separator: str = '-'
    include_v: bool = True

    def __str__(self) -> str:
        version = f'v{self.version}' if self.include_v else str(self.version)
        if self.component:
            return f'{self.component}{self.separator}{version}'
        return version

    @classmethod
    def parse(cls, tag: str) -> TagName | None:
        """Parse a tag, returning ``None`` if it carries no version."""
        match = _TAG_RE.match(tag)
        if not match:
            return None
        version = Version.try_parse(match.group('version'))
        if version is None:
            return None
        return cls(
            version=version,
            component=match.group('component'),
            separator=match.group('separator') or '-',
            include_v=bool(match.group('v')),
        )

    def matches_format(self, component: str | None, include_v: bool, separator: str = '-') -> bool:
        """Whether this tag was rendered with the given tag options.

        A missing ``v`` is tolerated when ``include_v`` is set, so tags
        created before the option was enabled still resolve.
        """
        if (self.component or None) != (component or None):
            return False
        if self.component and self.separator != separator:
            return False
        return include_v or not self.include_v


__all__ = [
    'TagName',
]
