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

"""Assemble release pull requests and reconcile them with GitHub.

Per run the assembler walks these steps:

1. **Collect**: read commits from the changes branch, resolve current
   versions and cut each component's commits at its last release.
   Release marker commits are dropped.
2. **Override**: ``BEGIN_COMMIT_OVERRIDE`` blocks replace messages
   while parsing.
3. **Plugins**: ``preconfigure``, ``process_commits``, then ``run``.
4. **Bump**: the component's versioning strategy computes the next
   version; components without qualifying commits are dropped, as are
   those whose version would not increase.
5. **Title and body**: built by :class:`ReleaseBuilder`; oversized
   bodies are externalized when pushed.
6. **Branch**: the lossless :class:`~manifestkit.branch_name.BranchName`.
7. **Reconcile**: update the open pull request on the same head
   branch, honouring the custom-version label; reopen snoozed ones
   with new changes.
8. **Auto-merge**: enable it for qualifying pull requests, request
   reviewers on the rest.

Steps 1 to 6 are :meth:`PullRequestAssembler.build`; 7 and 8 are
:meth:`PullRequestAssembler.open`.
"""

from __future__ import annotations

import datetime
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from manifestkit.automerge import should_auto_merge
from manifestkit.backends.github import GitHub, PullRequestStatus
from manifestkit.branch_name import BranchName
from manifestkit.changelog import ChangelogContext, build_notes
from manifestkit.commits import (
    ROOT_PROJECT_PATH,
    Commit,
    ConventionalCommit,
    PullRequest,
    filter_commits_for_path,
    parse_conventional_commits,
)
from manifestkit.config import ComponentConfig, ManifestConfig
from manifestkit.errors import VersionError
from manifestkit.labels import (
    CUSTOM_VERSION_LABEL,
    PullRequestState,
    state_of,
    transition,
)
from manifestkit.logging import get_logger
from manifestkit.overflow import FilePullRequestOverflowHandler
from manifestkit.plugins import PluginPipeline
from manifestkit.pull_request_body import DEFAULT_FOOTER, DEFAULT_HEADER, PullRequestBody, ReleaseData
from manifestkit.pull_request_title import PullRequestTitle
from manifestkit.release_pull_request import ComponentRelease, ReleasePullRequest
from manifestkit.resolver import ResolvedVersion, VersionResolver
from manifestkit.strategies import Strategy
from manifestkit.tag_name import TagName
from manifestkit.updaters import ManifestUpdater, Update
from manifestkit.version import Version
from manifestkit.versioning import build_versioning_strategy, is_qualifying

logger = get_logger(__name__)

RELEASE_AS_FOOTER = 'release-as'


def custom_version_comment(custom: Version, generated: Version) -> str:
    """Comment for a labeled pull request whose title version is used."""
    return (
        '\n## Release version edited manually\n\n'
        f'The Pull Request version has been manually set to `{custom}` and will be used for the release.\n\n'
        f'If you instead want to use the version number `{generated}` generated from conventional commits, '
        f'just remove the label `{CUSTOM_VERSION_LABEL}` from this Pull Request.\n'
    )


def invalid_custom_version_comment(generated: Version) -> str:
    """Comment for a labeled pull request whose title has no version."""
    return (
        '\n## Invalid version number in PR title\n\n'
        f':rotating_light: This Pull Request has the `{CUSTOM_VERSION_LABEL}` label but the version number '
        f'cannot be found in the title. Instead the generated version `{generated}` will be used.\n\n'
        'If you want to set a custom version be sure to use the '
        '[semantic versioning format](https://devhints.io/semver), e.g `1.2.3`.\n\n'
        'If you do not want to set a custom version and want  to get rid of this warning, '
        f'remove the label `{CUSTOM_VERSION_LABEL}` from this Pull Request.\n'
    )


def missing_version_comment(generated: Version) -> str:
    """Comment for an unlabeled pull request whose title has no version."""
    return (
        '\n## Invalid version number in PR title\n\n'
        f':warning: No version number can be found in the title, the generated version `{generated}` will be used. '
        'Did you want to change the version for this release?\n\n'
        'To set a custom version be sure to use the '
        '[semantic versioning format](https://devhints.io/semver), e.g `1.2.3`.\n'
    )


def version_mismatch_comment(title_version: Version, generated: Version) -> str:
    """Comment for an unlabeled pull request whose title version was edited."""
    return (
        '\n## Release version differs from PR title\n\n'
        f':warning: The title version `{title_version}` does not match the generated version `{generated}`, '
        'the generated version will be used.\n\n'
        f'To use the title version instead, add the label `{CUSTOM_VERSION_LABEL}` to this Pull Request.\n'
    )


def release_as(config: ComponentConfig, commits: Sequence[ConventionalCommit]) -> Version | None:
    """A forced next version from config or the newest ``Release-As`` footer."""
    for commit in commits:
        for key, value in commit.parsed.footers:
            if key.lower() == RELEASE_AS_FOOTER:
                try:
                    return Version.parse(value.strip())
                except VersionError:
                    logger.warning('release_as_invalid', sha=commit.sha, value=value)
    if config.release_as:
        return Version.parse(config.release_as)
    return None


def initial_version(config: ComponentConfig) -> Version:
    """First version of a component that has never been released."""
    return Version(0, 1, 0) if config.bump_minor_pre_major else Version(1, 0, 0)


class ReleaseBuilder:
    """Builds component releases and pull requests for one run.

    Args:
        config: Manifest configuration.
        configs: Component configuration after plugin ``preconfigure``.
        strategies: Release strategy per path.
        component_names: Component name per path.
        resolved: Resolved current versions.
        target_branch: Branch the pull requests target.
        changes_branch: Branch the updates are authored against.
        owner: Repository owner, for changelog links.
        repo: Repository name, for changelog links.
        today: Release date in changelog headings.
    """

    def __init__(
        self,
        config: ManifestConfig,
        configs: Mapping[str, ComponentConfig],
        strategies: Mapping[str, Strategy],
        component_names: Mapping[str, str | None],
        resolved: Mapping[str, ResolvedVersion],
        *,
        target_branch: str,
        changes_branch: str | None,
        owner: str,
        repo: str,
        today: datetime.date | None = None,
    ) -> None:
        """Bind the run inputs."""
        self.config = config
        self._configs = dict(configs)
        self.strategies = dict(strategies)
        self.component_names = dict(component_names)
        self.resolved = dict(resolved)
        self.target_branch = target_branch
        self.changes_branch = changes_branch if changes_branch != target_branch else None
        self.owner = owner
        self.repo = repo
        self.today = today

    @property
    def configs(self) -> Mapping[str, ComponentConfig]:
        return self._configs

    def current_version(self, path: str) -> Version | None:
        found = self.resolved.get(path)
        return found.version if found else None

    def component_name(self, path: str) -> str | None:
        return self.component_names.get(path)

    def is_separate(self, path: str) -> bool:
        """Whether ``path`` gets its own pull request."""
        if self._configs[path].separate_pull_requests:
            return True
        separate = self.config.separate_pull_requests
        return len(self._configs) == 1 if separate is None else separate

    def tag(self, path: str, version: Version) -> TagName:
        """Tag name ``path`` is released under at ``version``."""
        cfg = self._configs[path]
        component = self.component_names.get(path) if cfg.include_component_in_tag else None
        return TagName(version, component, cfg.tag_separator, cfg.include_v_in_tag)

    def component_release(
        self,
        path: str,
        version: Version,
        commits: Sequence[ConventionalCommit] = (),
    ) -> ComponentRelease:
        """Render notes and file updates for releasing ``path`` at ``version``."""
        current = self.current_version(path)
        ctx = ChangelogContext(
            owner=self.owner,
            repo=self.repo,
            previous_tag=str(self.tag(path, current)) if current else None,
            current_tag=str(self.tag(path, version)),
            date=self.today,
        )
        notes = build_notes(commits, version, ctx)
        updates = self.strategies[path].build_updates(version, notes)
        return ComponentRelease(
            path=path,
            component=self.component_names.get(path),
            version=version,
            previous_version=current,
            notes=notes,
            commits=tuple(commits),
            updates=tuple(updates),
        )

    def manifest_update(self, releases: Sequence[ComponentRelease]) -> Update:
        """Baseline file update recording the new versions."""
        return Update(
            self.config.manifest_file,
            ManifestUpdater({r.path: r.version for r in releases}),
            create_if_missing=True,
        )

    def _labels(self) -> list[str]:
        return [] if self.config.skip_labeling else list(self.config.labels)

    def _body(self, releases: Sequence[ComponentRelease], use_components: bool | None) -> PullRequestBody:
        cfg = self._configs[releases[0].path]
        return PullRequestBody(
            [ReleaseData(r.component, r.version, r.notes) for r in releases],
            header=cfg.pull_request_header or DEFAULT_HEADER,
            footer=cfg.pull_request_footer or DEFAULT_FOOTER,
            use_components=use_components,
        )

    def separate_pull_request(self, release: ComponentRelease) -> ReleasePullRequest:
        """A pull request releasing one component."""
        cfg = self._configs[release.path]
        title = PullRequestTitle.of_component_target_branch_version(
            release.component,
            self.target_branch,
            self.changes_branch,
            release.version,
            cfg.pull_request_title_pattern,
        )
        if release.component:
            branch = BranchName.of_component_target_branch(release.component, self.target_branch, self.changes_branch)
        else:
            branch = BranchName.of_target_branch(self.target_branch, self.changes_branch)
        return ReleasePullRequest(
            title=title,
            body=self._body([release], None),
            head_branch=branch,
            components=[release],
            updates=[*release.updates, self.manifest_update([release])],
            labels=self._labels(),
            draft=self.config.draft_pull_request,
            separate=self.is_separate(release.path),
        )

    def grouped_pull_request(self, releases: Sequence[ComponentRelease]) -> ReleasePullRequest:
        """A pull request releasing several components together.

        The title carries the root package's version when the root is
        part of the group.
        """
        root = next((r for r in releases if r.path == ROOT_PROJECT_PATH), None)
        if root is not None:
            title = PullRequestTitle.of_component_target_branch_version(
                root.component,
                self.target_branch,
                self.changes_branch,
                root.version,
                self._configs[root.path].pull_request_title_pattern,
            )
        else:
            title = PullRequestTitle.of_target_branch(
                self.target_branch,
                self.changes_branch,
                self.config.group_pull_request_title_pattern,
            )
        return ReleasePullRequest(
            title=title,
            body=self._body(releases, True),
            head_branch=BranchName.of_target_branch(self.target_branch, self.changes_branch),
            components=list(releases),
            updates=[*(u for r in releases for u in r.updates), self.manifest_update(releases)],
            labels=self._labels(),
            draft=self.config.draft_pull_request,
            separate=False,
        )

    def with_version(self, pull_request: ReleasePullRequest, path: str, version: Version) -> ReleasePullRequest:
        """Rebuild ``pull_request`` with ``path`` released at ``version``."""
        releases = [
            self.component_release(r.path, version, r.commits) if r.path == path else r
            for r in pull_request.components
        ]
        if len(releases) == 1 and pull_request.separate:
            rebuilt = self.separate_pull_request(releases[0])
        else:
            rebuilt = self.grouped_pull_request(releases)
        rebuilt.labels = list(pull_request.labels)
        return rebuilt


class PullRequestAssembler:
    """Builds release pull requests and opens or updates them.

    Args:
        github: The repository gateway.
        config: Manifest configuration.
        strategies: Release strategy per path, already loaded.
        component_names: Component name per path.
        baseline: Manifest baseline versions.
        pipeline: Plugin pipeline.
        target_branch: Branch the pull requests target.
        changes_branch: Branch the updates are authored against.
        today: Release date in changelog headings.
    """

    def __init__(
        self,
        github: GitHub,
        config: ManifestConfig,
        strategies: Mapping[str, Strategy],
        component_names: Mapping[str, str | None],
        baseline: Mapping[str, Version],
        pipeline: PluginPipeline,
        *,
        target_branch: str,
        changes_branch: str | None = None,
        today: datetime.date | None = None,
    ) -> None:
        """Bind the run inputs."""
        self.github = github
        self.config = config
        self.strategies = dict(strategies)
        self.component_names = dict(component_names)
        self.baseline = dict(baseline)
        self.pipeline = pipeline
        self.target_branch = target_branch
        self.changes_branch = changes_branch or target_branch
        self.today = today
        self.overflow = FilePullRequestOverflowHandler(github)
        self.resolver = VersionResolver(
            github,
            config,
            self.component_names,
            self.baseline,
            target_branch,
            overflow=self.overflow,
        )
        self.builder: ReleaseBuilder | None = None

    # ── Collect ──────────────────────────────────────────────────────

    async def collect_commits(self) -> list[Commit]:
        """Commits on the changes branch, newest first, within the search depth."""
        commits: list[Commit] = []
        async for commit in self.github.commit_iterator(
            self.changes_branch,
            max_results=self.config.commit_search_depth,
            backfill_files=True,
        ):
            if self.config.bootstrap_sha and commit.sha == self.config.bootstrap_sha:
                break
            commits.append(commit)
        logger.info('commits_collected', branch=self.changes_branch, count=len(commits))
        return commits

    def _nested_paths(self, path: str) -> list[str]:
        return [
            other
            for other in self.config.components
            if other != path
            and other != ROOT_PROJECT_PATH
            and (path == ROOT_PROJECT_PATH or other.startswith(f'{path.rstrip("/")}/'))
        ]

    def commits_for_path(
        self,
        path: str,
        commits: Sequence[Commit],
        resolved: Mapping[str, ResolvedVersion],
    ) -> list[Commit]:
        """Commits since ``path``'s last release that touch ``path``."""
        found = resolved.get(path)
        window = list(commits)
        if found is not None and found.sha is not None:
            for index, commit in enumerate(commits):
                if commit.sha == found.sha:
                    window = window[:index]
                    break
        cfg = self.config.components[path]
        excludes = [*cfg.exclude_paths, *self._nested_paths(path)]
        selected = filter_commits_for_path(window, path, excludes)
        return [c for c in selected if not self.resolver.is_release_marker(c)]

    # ── Build ────────────────────────────────────────────────────────

    def _next_version(
        self,
        path: str,
        cfg: ComponentConfig,
        commits: Sequence[ConventionalCommit],
        current: Version | None,
    ) -> Version | None:
        forced = release_as(cfg, commits)
        qualifying = [c for c in commits if is_qualifying(c)]
        if not qualifying and forced is None:
            logger.info('component_no_changes', path=path)
            return None
        if forced is not None:
            version = forced
        elif current is None:
            version = initial_version(cfg)
        else:
            strategy = build_versioning_strategy(
                cfg.versioning,
                bump_minor_pre_major=cfg.bump_minor_pre_major,
                bump_patch_for_minor_pre_major=cfg.bump_patch_for_minor_pre_major,
                prerelease_type=cfg.prerelease_type,
            )
            version = strategy.bump(current, qualifying)
        if current is not None and version <= current:
            logger.warning('version_not_greater', path=path, current=str(current), version=str(version))
            return None
        return version

    async def build(self) -> list[ReleasePullRequest]:
        """Compute the release pull requests this run proposes."""
        commits = await self.collect_commits()
        resolved = await self.resolver.resolve(commits)
        versions = {path: (resolved[path].version if path in resolved else None) for path in self.config.components}
        configs = self.pipeline.preconfigure(dict(self.config.components), versions, resolved)

        parsed = {
            path: parse_conventional_commits(self.commits_for_path(path, commits, resolved)) for path in configs
        }
        parsed = self.pipeline.process_commits(parsed)

        repo = self.github.repository
        builder = ReleaseBuilder(
            self.config,
            configs,
            self.strategies,
            self.component_names,
            resolved,
            target_branch=self.target_branch,
            changes_branch=self.changes_branch,
            owner=repo.owner,
            repo=repo.repo,
            today=self.today,
        )
        self.builder = builder

        candidates: list[ReleasePullRequest] = []
        for path, cfg in configs.items():
            path_commits = parsed.get(path, [])
            version = self._next_version(path, cfg, path_commits, versions.get(path))
            if version is None:
                continue
            qualifying = [c for c in path_commits if is_qualifying(c)]
            release = builder.component_release(path, version, qualifying)
            logger.info('component_release', path=path, version=str(version), kind=release.bump_kind.value)
            candidates.append(builder.separate_pull_request(release))

        candidates = self.pipeline.run(candidates, builder)
        logger.info('pull_requests_built', count=len(candidates), branches=[c.head_branch_name for c in candidates])
        return candidates

    # ── Reconcile ────────────────────────────────────────────────────

    async def _release_pull_requests(self, status: PullRequestStatus) -> dict[str, PullRequest]:
        found: dict[str, PullRequest] = {}
        async for pr in self.github.pull_request_iterator(self.target_branch, status):
            if pr.base_branch_name == self.target_branch and BranchName.matches(pr.head_branch_name):
                found.setdefault(pr.head_branch_name, pr)
        return found

    def _title_path(self, candidate: ReleasePullRequest) -> str | None:
        if candidate.title.version is None:
            return None
        if len(candidate.components) == 1:
            return candidate.components[0].path
        return ROOT_PROJECT_PATH if ROOT_PROJECT_PATH in candidate.paths else None

    async def reconcile(self, candidate: ReleasePullRequest, existing: PullRequest) -> ReleasePullRequest:
        """Apply the existing pull request's title version policy.

        With the custom-version label the title version wins; without
        it the generated version wins and any mismatch is commented on.
        """
        path = self._title_path(candidate)
        generated = candidate.title.version
        if path is None or generated is None or self.builder is None:
            return candidate
        parsed = PullRequestTitle.parse(existing.title, candidate.title.pattern)
        title_version = parsed.version if parsed else None
        if CUSTOM_VERSION_LABEL in existing.labels:
            if title_version is None:
                await self.github.comment_on_issue(invalid_custom_version_comment(generated), existing.number)
                return candidate
            if title_version != generated:
                logger.info('custom_version', number=existing.number, version=str(title_version))
                await self.github.comment_on_issue(custom_version_comment(title_version, generated), existing.number)
                return self.builder.with_version(candidate, path, title_version)
            return candidate
        if title_version is None:
            await self.github.comment_on_issue(missing_version_comment(generated), existing.number)
        elif title_version != generated:
            await self.github.comment_on_issue(version_mismatch_comment(title_version, generated), existing.number)
        return candidate

    async def _unchanged(self, candidate: ReleasePullRequest, existing: PullRequest) -> bool:
        if existing.title != str(candidate.title):
            return False
        body = await self.overflow.parse_overflow(existing.body)
        return body is not None and str(body) == str(candidate.body)

    async def _push(self, candidate: ReleasePullRequest, existing: PullRequest | None) -> PullRequest:
        head = candidate.head_branch_name
        body = await self.overflow.handle_overflow(candidate.body, head, self.target_branch)
        kwargs: dict[str, Any] = {
            'head_branch': head,
            'base_branch': self.target_branch,
            'changes_branch': self.changes_branch,
            'title': str(candidate.title),
            'body': body,
            'message': str(candidate.title),
            'updates': candidate.updates,
            'labels': candidate.labels,
        }
        if existing is None:
            return await self.github.create_pull_request(draft=candidate.draft, **kwargs)
        return await self.github.update_pull_request(existing.number, **kwargs)

    async def _finish(self, candidate: ReleasePullRequest, pr: PullRequest) -> None:
        policy = self.config.auto_merge
        if policy is not None and should_auto_merge(candidate, policy):
            logger.info('auto_merge_enabled', number=pr.number)
            await self.github.enable_auto_merge(pr.number, policy.merge_method)
        else:
            await self.github.request_reviewers(pr.number, self.config.reviewers)

    async def open(self, candidates: Sequence[ReleasePullRequest]) -> list[PullRequest]:
        """Create, update or reopen a pull request per candidate.

        Returns:
            Pull requests that were created or changed.
        """
        open_prs = await self._release_pull_requests(PullRequestStatus.OPEN)
        snoozed = {
            head: pr
            for head, pr in (await self._release_pull_requests(PullRequestStatus.CLOSED)).items()
            if state_of(pr.labels, closed=True) == PullRequestState.SNOOZED
        }
        produced = {c.head_branch_name for c in candidates}
        for head, pr in open_prs.items():
            if head not in produced:
                logger.debug('stale_release_pull_request', number=pr.number, head=head)

        results: list[PullRequest] = []
        for candidate in candidates:
            head = candidate.head_branch_name
            existing = open_prs.get(head)
            if existing is not None:
                candidate = await self.reconcile(candidate, existing)
                if await self._unchanged(candidate, existing):
                    logger.info('pull_request_unchanged', number=existing.number, head=head)
                    continue
                pr = await self._push(candidate, existing)
            elif head in snoozed:
                pr = snoozed[head]
                if await self._unchanged(candidate, pr):
                    logger.info('pull_request_snoozed', number=pr.number, head=head)
                    continue
                add, remove = transition(PullRequestState.SNOOZED, PullRequestState.PENDING)
                if self.config.skip_labeling:
                    add = []
                candidate = replace(candidate, labels=[*candidate.labels, *(a for a in add if a not in candidate.labels)])
                pr = await self._push(candidate, pr)
                await self.github.remove_issue_labels(remove, pr.number)
                logger.info('pull_request_unsnoozed', number=pr.number, head=head)
            else:
                pr = await self._push(candidate, None)
            await self._finish(candidate, pr)
            results.append(pr)
        return results


__all__ = [
    'RELEASE_AS_FOOTER',
    'PullRequestAssembler',
    'ReleaseBuilder',
    'custom_version_comment',
    'initial_version',
    'invalid_custom_version_comment',
    'missing_version_comment',
    'release_as',
    'version_mismatch_comment',
]
