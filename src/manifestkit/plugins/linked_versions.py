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

"""``linked-versions`` plugin: a group of components shares one version.

When any member of the group is released, every member is released at
the highest version computed for the group. Members without changes of
their own get an empty changelog entry.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from manifestkit.config import ComponentConfig
from manifestkit.logging import get_logger
from manifestkit.plugins._base import ManifestPlugin, ReleaseBuilder, ReleasesByPath
from manifestkit.release_pull_request import ReleasePullRequest
from manifestkit.version import Version

logger = get_logger(__name__)


class LinkedVersionsPlugin(ManifestPlugin):
    """Release a group of components at one shared version.

    Args:
        group_name: Label for log events.
        components: Component names (or paths) in the group.
    """

    name = 'linked-versions'

    def __init__(self, group_name: str | None, components: Sequence[str]) -> None:
        """Store the group membership."""
        self.group_name = group_name or 'linked'
        self.members = frozenset(components)

    def _is_member(self, path: str, builder: ReleaseBuilder) -> bool:
        return path in self.members or builder.component_name(path) in self.members

    def preconfigure(
        self,
        configs: dict[str, ComponentConfig],
        versions: Mapping[str, Version | None],
        releases: ReleasesByPath,
    ) -> dict[str, ComponentConfig]:
        known = set(configs) | {c.component for c in configs.values() if c.component}
        unknown = sorted(self.members - known)
        if unknown:
            logger.warning('linked_versions_unknown_components', group=self.group_name, components=unknown)
        released = {
            path: str(release.version)
            for path, release in releases.items()
            if path in self.members or (path in configs and configs[path].component in self.members)
        }
        logger.debug('linked_versions_released', group=self.group_name, versions=released)
        return configs

    def run(self, candidates: list[ReleasePullRequest], builder: ReleaseBuilder) -> list[ReleasePullRequest]:
        grouped = {
            release.path: release
            for candidate in candidates
            for release in candidate.components
            if self._is_member(release.path, builder)
        }
        if not grouped:
            return candidates
        version = max(release.version for release in grouped.values())
        logger.info('linked_versions', group=self.group_name, version=str(version))

        rebuilt: dict[str, ReleasePullRequest] = {}
        for path in builder.configs:
            if not self._is_member(path, builder):
                continue
            current = builder.current_version(path)
            if current is not None and version <= current:
                logger.warning('linked_version_not_greater', path=path, current=str(current), version=str(version))
                continue
            commits = grouped[path].commits if path in grouped else ()
            rebuilt[path] = builder.separate_pull_request(builder.component_release(path, version, commits))

        result: list[ReleasePullRequest] = []
        for candidate in candidates:
            paths = candidate.paths
            if len(paths) == 1 and paths[0] in grouped:
                if paths[0] in rebuilt:
                    result.append(rebuilt.pop(paths[0]))
                continue
            result.append(candidate)
        result.extend(rebuilt.values())
        return result


__all__ = [
    'LinkedVersionsPlugin',
]
