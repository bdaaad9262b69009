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

"""Plain ``version.txt`` files."""

from __future__ import annotations

from dataclasses import dataclass

from manifestkit.version import Version


@dataclass(frozen=True)
class VersionTxtUpdater:
    """Replace the whole file with the version."""

    version: Version

    def update_content(self, content: str | None) -> str:
        return f'{self.version}\n'


__all__ = [
    'VersionTxtUpdater',
]
