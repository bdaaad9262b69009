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

"""The manifest orchestrator: one run of release pull requests or releases.

A :class:`Manifest` is built per invocation and holds no state between
runs; everything it needs is read back from GitHub::

    async with GitHub.connect('owner', 'repo', token=token) as github:
        manifest = await Manifest.from_repository(github, 'main')
        await manifest.create_pull_requests()   # release-pr
        await manifest.create_releases()        # github-release
"""

from __future__ import annotations

import asyncio
import datetime
from collections.abc import Mapping

from manifestkit.assembler import PullRequestAssembler
from manifestkit.backends.github import GitHub
from manifestkit.commits import PullRequest
from manifestkit.config import DEFAULT_CONFIG_FILE, ManifestConfig, parse_config, parse_manifest
from manifestkit.errors import AggregateError, ConfigurationError, DuplicateReleaseError, RepoFileNotFoundError
from manifestkit.logging import get_logger
from manifestkit.net import Sleep
from manifestkit.plugins import PluginPipeline, build_pipeline
from manifestkit.release_pull_request import ReleasePullRequest
from manifestkit.sequencer import CreatedRelease, ReleaseBatch, ReleaseSequencer
from manifestkit.strategies import Strategy, build_strategy
from manifestkit.version import Version

logger = get_logger(__name__)


class Manifest:
    """Release orchestration for every component of one repository.

    Args:
        github: The repository gateway.
        config: Manifest configuration.
        strategies: Loaded release strategy per path.
        component_names: Component name per path.
        baseline: Manifest baseline versions.
        target_branch: Branch releases are cut from.
        changes_branch: Branch updates are authored against, if not the
            target.
        today: Release date in changelog headings.
        sleep: Awaitable used while polling for new releases.
    """

    def __init__(
        self,
        github: GitHub,
        config: ManifestConfig,
        strategies: Mapping[str, Strategy],
        component_names: Mapping[str, str | None],
        baseline: Mapping[str, Version],
        *,
        target_branch: str,
        changes_branch: str | None = None,
        today: datetime.date | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Bind the run inputs."""
        self.github = github
        self.config = config
        self.strategies = dict(strategies)
        self.component_names = dict(component_names)
        self.baseline = dict(baseline)
        self.target_branch = target_branch
        self.changes_branch = changes_branch or config.changes_branch
        self.today = today
        self.sleep = sleep

    @classmethod
    async def from_config(
        cls,
        github: GitHub,
        config: ManifestConfig,
        target_branch: str | None = None,
        *,
        changes_branch: str | None = None,
        today: datetime.date | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> Manifest:
        """Load strategies, component names and the baseline for ``config``.

        Raises:
            ConfigurationError: If a strategy's required file is missing
                or the baseline is malformed.
        """
        target_branch = target_branch or await github.default_branch()
        read_branch = changes_branch or config.changes_branch or target_branch
        strategies: dict[str, Strategy] = {}
        names: dict[str, str | None] = {}
        for path, cfg in config.components.items():
            strategy = build_strategy(
                cfg.release_type,
                path,
                package_name=cfg.package_name,
                changelog_path=cfg.changelog_path,
                extra_files=cfg.extra_files,
                skip_changelog=cfg.skip_changelog,
            )
            await strategy.load(github, read_branch)
            strategies[path] = strategy
            names[path] = cfg.component or strategy.default_package_name()

        try:
            baseline = parse_manifest(await github.get_file_json(config.manifest_file, target_branch))
        except RepoFileNotFoundError:
            logger.warning('manifest_baseline_missing', path=config.manifest_file, branch=target_branch)
            baseline = {}
        logger.debug('manifest_loaded', components=list(config.components), baseline=len(baseline))
        return cls(
            github,
            config,
            strategies,
            names,
            baseline,
            target_branch=target_branch,
            changes_branch=changes_branch,
            today=today,
            sleep=sleep,
        )

    @classmethod
    async def from_repository(
        cls,
        github: GitHub,
        target_branch: str | None = None,
        config_file: str = DEFAULT_CONFIG_FILE,
        *,
        changes_branch: str | None = None,
        today: datetime.date | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> Manifest:
        """Read ``config_file`` from ``target_branch`` and build a manifest.

        Raises:
            ConfigurationError: If the config file is missing or invalid.
        """
        target_branch = target_branch or await github.default_branch()
        try:
            contents = await github.get_file_contents(config_file, target_branch)
        except RepoFileNotFoundError as exc:
            raise ConfigurationError(f'Config file not found: {config_file}', repository=str(github.repository)) from exc
        return await cls.from_config(
            github,
            parse_config(contents.content),
            target_branch,
            changes_branch=changes_branch,
            today=today,
            sleep=sleep,
        )

    @property
    def separate_pull_requests(self) -> bool:
        """Whether components get one pull request each by default."""
        if self.config.separate_pull_requests is None:
            return len(self.config.components) == 1
        return self.config.separate_pull_requests

    def pipeline(self) -> PluginPipeline:
        """The plugin pipeline for this run."""
        return build_pipeline(self.config, separate_pull_requests=self.separate_pull_requests)

    def assembler(self) -> PullRequestAssembler:
        """The pull request assembler for this run."""
        return PullRequestAssembler(
            self.github,
            self.config,
            self.strategies,
            self.component_names,
            self.baseline,
            self.pipeline(),
            target_branch=self.target_branch,
            changes_branch=self.changes_branch,
            today=self.today,
        )

    def sequencer(self) -> ReleaseSequencer:
        """The release sequencer for this run."""
        return ReleaseSequencer(
            self.github,
            self.config,
            self.component_names,
            target_branch=self.target_branch,
            sleep=self.sleep,
        )

    async def build_pull_requests(self) -> list[ReleasePullRequest]:
        """Release pull requests this run would open, without side effects."""
        return await self.assembler().build()

    async def create_pull_requests(self) -> list[PullRequest]:
        """Open or update release pull requests."""
        assembler = self.assembler()
        candidates = await assembler.build()
        return await assembler.open(candidates)

    async def build_releases(self) -> list[ReleaseBatch]:
        """Releases pending from merged release pull requests."""
        return await self.sequencer().build()

    async def create_releases(self) -> list[CreatedRelease]:
        """Create every pending release.

        Raises:
            DuplicateReleaseError: If one batch was entirely duplicates
                and nothing else was created.
            AggregateError: If several batches were, and nothing else was
                created.
        """
        sequencer = self.sequencer()
        created: list[CreatedRelease] = []
        errors: list[DuplicateReleaseError] = []
        for batch in await sequencer.build():
            try:
                created.extend(await sequencer.create(batch))
            except DuplicateReleaseError as exc:
                errors.append(exc)
        if errors and not created:
            if len(errors) == 1:
                raise errors[0]
            raise AggregateError(list(errors), 'Every pending release already exists')
        return created


__all__ = [
    'Manifest',
]
