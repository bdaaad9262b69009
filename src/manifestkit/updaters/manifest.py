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

"""Rewrites the manifest baseline (``.release-please-manifest.json``)."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass

from manifestkit.updaters.package_json import detect_indent, dump_json
from manifestkit.version import Version


@dataclass(frozen=True)
class ManifestUpdater:
    """Merge new versions into the path -> version map.

    Paths not in ``versions`` keep their recorded version. Keys are
    written sorted.
    """

    versions: Mapping[str, Version]

    def update_content(self, content: str | None) -> str:
        data: dict[str, str] = json.loads(content) if content else {}
        for path, version in self.versions.items():
            data[path] = str(version)
        return dump_json(dict(sorted(data.items())), detect_indent(content or ''))


__all__ = [
    'ManifestUpdater',
]
