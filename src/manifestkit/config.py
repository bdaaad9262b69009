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

"""Repository configuration (``manifestkit.toml``) and the manifest baseline.

The configuration is a TOML document. Top-level keys are defaults for
every component; each ``[packages."<path>"]`` table configures one
component and overrides those defaults::

    release-type = "python"
    separate-pull-requests = false

    [packages."."]
    component = "root"

    [packages."plugins/foo"]
    release-type = "node"
    extra-files = ["src/version.ts"]

    [[plugins]]
    type = "linked-versions"
    group-name = "core"
    components = ["foo", "bar"]

The manifest baseline (``.release-please-manifest.json``) is a JSON map
of path to version string; :func:`parse_manifest` validates it.

Environment overrides are layered by :func:`resolve_token` and
:func:`resolve_endpoints`:

- ``--token`` CLI flag, then ``MANIFESTKIT_TOKEN``, then ``GITHUB_TOKEN``.
- ``MANIFESTKIT_API_URL`` and ``MANIFESTKIT_GRAPHQL_URL`` when the CLI
  flags are absent.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

import tomlkit
from tomlkit.exceptions import TOMLKitError

from manifestkit.backends.github import DEFAULT_API_URL, DEFAULT_GRAPHQL_URL
from manifestkit.commits import ROOT_PROJECT_PATH
from manifestkit.errors import ConfigurationError, VersionError
from manifestkit.labels import PENDING_LABEL, PRERELEASE_LABEL, TAGGED_LABEL
from manifestkit.pull_request_title import DEFAULT_GROUPED_PR_TITLE_PATTERN, DEFAULT_PR_TITLE_PATTERN
from manifestkit.strategies import RELEASE_TYPES
from manifestkit.version import Version
from manifestkit.versioning import VERSIONING_STRATEGIES

DEFAULT_CONFIG_FILE = 'manifestkit.toml'
DEFAULT_MANIFEST_FILE = '.release-please-manifest.json'
DEFAULT_RELEASE_SEARCH_DEPTH = 400
DEFAULT_COMMIT_SEARCH_DEPTH = 500

PLUGIN_TYPES = frozenset({'merge', 'linked-versions'})

T = TypeVar('T')


@dataclass(frozen=True)
class ComponentConfig:
    """Options for one component, after merging the top-level defaults.

    Attributes:
        path: Repository-relative path; ``.`` is the repository root.
        release_type: Strategy registry key (``simple``, ``python``,
            ``node``).
        component: Name used in tags, branches and titles.
        package_name: Package name passed to the strategy.
        versioning: Versioning strategy registry key.
        release_as: Force this exact next version.
        skip_github_release: Tag the pull request but create no release.
    """

    path: str = ROOT_PROJECT_PATH
    release_type: str = 'simple'
    component: str | None = None
    package_name: str | None = None
    changelog_path: str = 'CHANGELOG.md'
    skip_changelog: bool = False
    include_component_in_tag: bool = True
    include_v_in_tag: bool = True
    tag_separator: str = '-'
    versioning: str = 'default'
    bump_minor_pre_major: bool = False
    bump_patch_for_minor_pre_major: bool = False
    prerelease_type: str = ''
    prerelease: bool = False
    draft: bool = False
    release_as: str | None = None
    extra_files: tuple[str, ...] = ()
    exclude_paths: tuple[str, ...] = ()
    pull_request_title_pattern: str = DEFAULT_PR_TITLE_PATTERN
    pull_request_header: str | None = None
    pull_request_footer: str | None = None
    separate_pull_requests: bool = False
    skip_github_release: bool = False


@dataclass(frozen=True)
class CommitFilter:
    """A ``{type, scope}`` predicate for the auto-merge policy."""

    type: str
    scope: str | None = None


@dataclass(frozen=True)
class AutoMergeConfig:
    """Which release pull requests get auto-merge enabled.

    Attributes:
        commit_filters: ``{type, scope}`` predicates over the pull
            request's commits; empty means no commit constraint.
        match_all: Every commit must match some filter (otherwise at
            least one commit must).
        version_bump_types: Allowed bump kinds (``patch``, ``minor``...);
            empty means no bump constraint.
        merge_method: ``squash``, ``merge`` or ``rebase``.
    """

    commit_filters: tuple[CommitFilter, ...] = ()
    match_all: bool = False
    version_bump_types: tuple[str, ...] = ()
    merge_method: str = 'squash'


@dataclass(frozen=True)
class PluginConfig:
    """One ``[[plugins]]`` entry."""

    type: str
    group_name: str | None = None
    components: tuple[str, ...] = ()


@dataclass(frozen=True)
class ManifestConfig:
    """Manifest-wide options plus every component.

    ``components`` keeps the order of the ``[packages]`` tables, which
    is the stable order releases are created in. ``separate_pull_requests``
    left unset means separate only when there is a single component.
    """

    components: dict[str, ComponentConfig] = field(default_factory=dict)
    manifest_file: str = DEFAULT_MANIFEST_FILE
    separate_pull_requests: bool | None = None
    group_pull_request_title_pattern: str = DEFAULT_GROUPED_PR_TITLE_PATTERN
    plugins: tuple[PluginConfig, ...] = ()
    auto_merge: AutoMergeConfig | None = None
    labels: tuple[str, ...] = (PENDING_LABEL,)
    release_labels: tuple[str, ...] = (TAGGED_LABEL,)
    prerelease_labels: tuple[str, ...] = (PRERELEASE_LABEL,)
    skip_labeling: bool = False
    draft_pull_request: bool = False
    reviewers: tuple[str, ...] = ()
    draft: bool | None = None
    release_search_depth: int = DEFAULT_RELEASE_SEARCH_DEPTH
    commit_search_depth: int = DEFAULT_COMMIT_SEARCH_DEPTH
    changes_branch: str | None = None
    bootstrap_sha: str | None = None


def _get(table: Mapping[str, Any], key: str, kind: type[T], default: T, where: str) -> T:
    """Fetch ``key`` and check its type, raising a readable error."""
    if key not in table:
        return default
    value = table[key]
    # bool is an int subclass; do not let `true` pass as a depth.
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ConfigurationError(f'{where}: {key!r} must be {kind.__name__}, got {type(value).__name__}')
    return value


def _str_list(table: Mapping[str, Any], key: str, where: str) -> tuple[str, ...]:
    values = _get(table, key, list, [], where)
    if not all(isinstance(v, str) for v in values):
        raise ConfigurationError(f'{where}: {key!r} must be a list of strings')
    return tuple(values)


def _optional_str(table: Mapping[str, Any], key: str, where: str) -> str | None:
    value = _get(table, key, str, '', where)
    return value or None


def _component(path: str, defaults: Mapping[str, Any], table: Mapping[str, Any]) -> ComponentConfig:
    merged = {**defaults, **table}
    where = f'packages.{path!r}'
    release_type = _get(merged, 'release-type', str, 'simple', where)
    if release_type not in RELEASE_TYPES:
        raise ConfigurationError(f'{where}: unknown release-type {release_type!r}', release_type)
    versioning = _get(merged, 'versioning', str, 'default', where)
    if versioning not in VERSIONING_STRATEGIES:
        raise ConfigurationError(f'{where}: unknown versioning strategy {versioning!r}', release_type)
    release_as = _optional_str(merged, 'release-as', where)
    if release_as is not None:
        try:
            Version.parse(release_as)
        except VersionError as exc:
            raise ConfigurationError(f'{where}: invalid release-as {release_as!r}', release_type) from exc
    return ComponentConfig(
        path=path,
        release_type=release_type,
        component=_optional_str(table, 'component', where),
        package_name=_optional_str(table, 'package-name', where),
        changelog_path=_get(merged, 'changelog-path', str, 'CHANGELOG.md', where),
        skip_changelog=_get(merged, 'skip-changelog', bool, False, where),
        include_component_in_tag=_get(merged, 'include-component-in-tag', bool, True, where),
        include_v_in_tag=_get(merged, 'include-v-in-tag', bool, True, where),
        tag_separator=_get(merged, 'tag-separator', str, '-', where),
        versioning=versioning,
        bump_minor_pre_major=_get(merged, 'bump-minor-pre-major', bool, False, where),
        bump_patch_for_minor_pre_major=_get(merged, 'bump-patch-for-minor-pre-major', bool, False, where),
        prerelease_type=_get(merged, 'prerelease-type', str, '', where),
        prerelease=_get(merged, 'prerelease', bool, False, where),
        draft=_get(merged, 'draft', bool, False, where),
        release_as=release_as,
        extra_files=_str_list(merged, 'extra-files', where),
        exclude_paths=_str_list(merged, 'exclude-paths', where),
        pull_request_title_pattern=_get(merged, 'pull-request-title-pattern', str, DEFAULT_PR_TITLE_PATTERN, where),
        pull_request_header=_optional_str(merged, 'pull-request-header', where),
        pull_request_footer=_optional_str(merged, 'pull-request-footer', where),
        separate_pull_requests=_get(merged, 'separate-pull-requests', bool, False, where),
        skip_github_release=_get(merged, 'skip-github-release', bool, False, where),
    )


def _auto_merge(table: Mapping[str, Any]) -> AutoMergeConfig:
    where = 'auto-merge'
    filters: list[CommitFilter] = []
    for entry in _get(table, 'commit-types', list, [], where):
        if isinstance(entry, str):
            filters.append(CommitFilter(entry))
        elif isinstance(entry, dict) and isinstance(entry.get('type'), str):
            filters.append(CommitFilter(entry['type'], entry.get('scope')))
        else:
            raise ConfigurationError(f'{where}: commit-types entries need a "type"')
    return AutoMergeConfig(
        commit_filters=tuple(filters),
        match_all=_get(table, 'match-all', bool, False, where),
        version_bump_types=_str_list(table, 'version-bump-types', where),
        merge_method=_get(table, 'merge-method', str, 'squash', where),
    )


def _plugin(entry: object) -> PluginConfig:
    if isinstance(entry, str):
        entry = {'type': entry}
    if not isinstance(entry, dict) or not isinstance(entry.get('type'), str):
        raise ConfigurationError('plugins: each entry needs a "type"')
    if entry['type'] not in PLUGIN_TYPES:
        raise ConfigurationError(f'plugins: unknown plugin type {entry["type"]!r}')
    return PluginConfig(
        type=entry['type'],
        group_name=_optional_str(entry, 'group-name', 'plugins'),
        components=_str_list(entry, 'components', 'plugins'),
    )


def parse_config(text: str) -> ManifestConfig:
    """Parse a ``manifestkit.toml`` document.

    Raises:
        ConfigurationError: On malformed TOML, a wrong value type, an
            unknown release type, versioning strategy or plugin.
    """
    try:
        data: dict[str, Any] = tomlkit.parse(text).unwrap()
    except TOMLKitError as exc:
        raise ConfigurationError(f'Invalid TOML: {exc}') from exc

    packages = _get(data, 'packages', dict, {}, 'config')
    if not packages:
        raise ConfigurationError('No [packages] configured')
    defaults = {k: v for k, v in data.items() if k not in ('packages', 'plugins', 'auto-merge')}
    components: dict[str, ComponentConfig] = {}
    for path, table in packages.items():
        if not isinstance(table, dict):
            raise ConfigurationError(f'packages.{path!r} must be a table')
        components[path] = _component(path, defaults, table)

    auto_merge = _get(data, 'auto-merge', dict, {}, 'config')
    where = 'config'
    return ManifestConfig(
        components=components,
        manifest_file=_get(data, 'manifest-file', str, DEFAULT_MANIFEST_FILE, where),
        separate_pull_requests=_get(data, 'separate-pull-requests', bool, None, where),
        group_pull_request_title_pattern=_get(
            data, 'group-pull-request-title-pattern', str, DEFAULT_GROUPED_PR_TITLE_PATTERN, where
        ),
        plugins=tuple(_plugin(p) for p in _get(data, 'plugins', list, [], where)),
        auto_merge=_auto_merge(auto_merge) if auto_merge else None,
        labels=_str_list(data, 'labels', where) or (PENDING_LABEL,),
        release_labels=_str_list(data, 'release-labels', where) or (TAGGED_LABEL,),
        prerelease_labels=_str_list(data, 'prerelease-labels', where) or (PRERELEASE_LABEL,),
        skip_labeling=_get(data, 'skip-labeling', bool, False, where),
        draft_pull_request=_get(data, 'draft-pull-request', bool, False, where),
        reviewers=_str_list(data, 'reviewers', where),
        draft=data.get('draft') if isinstance(data.get('draft'), bool) else None,
        release_search_depth=_get(data, 'release-search-depth', int, DEFAULT_RELEASE_SEARCH_DEPTH, where),
        commit_search_depth=_get(data, 'commit-search-depth', int, DEFAULT_COMMIT_SEARCH_DEPTH, where),
        changes_branch=_optional_str(data, 'changes-branch', where),
        bootstrap_sha=_optional_str(data, 'bootstrap-sha', where),
    )


def load_config(path: Path) -> ManifestConfig:
    """Read and parse a local configuration file.

    Raises:
        ConfigurationError: If the file is missing or invalid.
    """
    if not path.is_file():
        raise ConfigurationError(f'Config file not found: {path}')
    return parse_config(path.read_text(encoding='utf-8'))


def parse_manifest(data: object) -> dict[str, Version]:
    """Validate a decoded manifest baseline.

    Raises:
        ConfigurationError: If it is not a map of path to version.
    """
    if not isinstance(data, dict):
        raise ConfigurationError('Manifest baseline must be a JSON object')
    versions: dict[str, Version] = {}
    for path, value in data.items():
        if not isinstance(value, str):
            raise ConfigurationError(f'Manifest baseline: version for {path!r} must be a string')
        try:
            versions[path] = Version.parse(value)
        except VersionError as exc:
            raise ConfigurationError(f'Manifest baseline: invalid version for {path!r}: {value!r}') from exc
    return versions


def resolve_token(token: str | None = None) -> str | None:
    """Pick the API token: explicit value, then ``MANIFESTKIT_TOKEN``, then ``GITHUB_TOKEN``."""
    return token or os.environ.get('MANIFESTKIT_TOKEN') or os.environ.get('GITHUB_TOKEN') or None


def resolve_endpoints(api_url: str | None = None, graphql_url: str | None = None) -> tuple[str, str]:
    """Pick the REST and GraphQL endpoints, CLI flags over env vars."""
    return (
        api_url or os.environ.get('MANIFESTKIT_API_URL') or DEFAULT_API_URL,
        graphql_url or os.environ.get('MANIFESTKIT_GRAPHQL_URL') or DEFAULT_GRAPHQL_URL,
    )


__all__ = [
    'DEFAULT_COMMIT_SEARCH_DEPTH',
    'DEFAULT_CONFIG_FILE',
    'DEFAULT_MANIFEST_FILE',
    'DEFAULT_RELEASE_SEARCH_DEPTH',
    'PLUGIN_TYPES',
    'AutoMergeConfig',
    'CommitFilter',
    'ComponentConfig',
    'ManifestConfig',
    'PluginConfig',
    'load_config',
    'parse_config',
    'parse_manifest',
    'resolve_endpoints',
    'resolve_token',
]
