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

"""``simple`` release type: a ``version.txt`` and a changelog."""

from __future__ import annotations

from manifestkit.strategies._base import Strategy
from manifestkit.updaters import Update, VersionTxtUpdater
from manifestkit.version import Version


class SimpleStrategy(Strategy):
    """Writes the version to ``version.txt``."""

    release_type = 'simple'

    def version_updates(self, version: Version) -> list[Update]:
        return [Update(self.add_path('version.txt'), VersionTxtUpdater(version), create_if_missing=True)]


__all__ = [
    'SimpleStrategy',
]
