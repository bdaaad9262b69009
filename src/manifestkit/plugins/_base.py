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

"""Manifest plugin hooks and the pipeline that chains them.

Plugins run as an explicit, ordered pipeline. Each hook takes the
current state and returns the next one; a plugin never sees another
plugin's internals, only the values passed between stages::

    configs  = pipeline.preconfigure(configs, versions, releases)
    commits  = pipeline.process_commits(commits)
    requests = pipeline.run(requests, builder)

+-----------------+------------------------------------------------+
| Hook            | May                                            |
+-----------------+------------------------------------------------+
| preconfigure    | Adjust component configuration.                |
| process_commits | Inject, filter or relabel commits per path.    |
| run             | Merge, split or rewrite release pull requests. |
+-----------------+------------------------------------------------+

Hooks must be deterministic for the same inputs: the orchestrator never
re-invokes them after a partial failure.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol

from manifestkit.commits import ConventionalCommit
from manifestkit.config import ComponentConfig
from manifestkit.logging import get_logger
from manifestkit.release_pull_request import ComponentRelease, ReleasePullRequest
from manifestkit.resolver import ResolvedVersion
from manifestkit.version import Version

logger = get_logger(__name__)

CommitsByPath = dict[str, list[ConventionalCommit]]
ReleasesByPath = Mapping[str, ResolvedVersion]


class ReleaseBuilder(Protocol):
    """What ``run`` hooks may use to (re)build release pull requests."""

    @property
    def configs(self) -> Mapping[str, ComponentConfig]: ...

    def current_version(self, path: str) -> Version | None: ...

    def component_name(self, path: str) -> str | None: ...

    def component_release(
        self,
        path: str,
        version: Version,
        commits: Sequence[ConventionalCommit] = (),
    ) -> ComponentRelease: ...

    def separate_pull_request(self, release: ComponentRelease) -> ReleasePullRequest: ...

    def grouped_pull_request(self, releases: Sequence[ComponentRelease]) -> ReleasePullRequest: ...


class ManifestPlugin:
    """Base plugin; every hook defaults to passing its input through."""

    name = 'plugin'

    def preconfigure(
        self,
        configs: dict[str, ComponentConfig],
        versions: Mapping[str, Version | None],
        releases: ReleasesByPath,
    ) -> dict[str, ComponentConfig]:
        """Adjust component configuration before commits are processed.

        Args:
            configs: Component configuration by path.
            versions: Current version by configured path, ``None`` when
                the component was never released.
            releases: The last release found for each path that has one,
                with its commit and where it was found.
        """
        return configs

    def process_commits(self, commits: CommitsByPath) -> CommitsByPath:
        """Adjust the commits attributed to each path."""
        return commits

    def run(self, candidates: list[ReleasePullRequest], builder: ReleaseBuilder) -> list[ReleasePullRequest]:
        """Rewrite the candidate release pull requests."""
        return candidates


class PluginPipeline:
    """Applies plugins in configured order."""

    def __init__(self, plugins: Sequence[ManifestPlugin] = ()) -> None:
        """Store the ordered plugins."""
        self.plugins = list(plugins)

    def preconfigure(
        self,
        configs: dict[str, ComponentConfig],
        versions: Mapping[str, Version | None],
        releases: ReleasesByPath,
    ) -> dict[str, ComponentConfig]:
        for plugin in self.plugins:
            configs = plugin.preconfigure(dict(configs), versions, releases)
        return configs

    def process_commits(self, commits: CommitsByPath) -> CommitsByPath:
        for plugin in self.plugins:
            commits = plugin.process_commits({path: list(cs) for path, cs in commits.items()})
        return commits

    def run(self, candidates: list[ReleasePullRequest], builder: ReleaseBuilder) -> list[ReleasePullRequest]:
        for plugin in self.plugins:
            before = len(candidates)
            candidates = plugin.run(list(candidates), builder)
            logger.debug('plugin_run', plugin=plugin.name, before=before, after=len(candidates))
        return candidates


__all__ = [
    'CommitsByPath',
    'ManifestPlugin',
    'PluginPipeline',
    'ReleaseBuilder',
    'ReleasesByPath',
]
