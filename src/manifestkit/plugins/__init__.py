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

"""Manifest plugins: ``merge`` and ``linked-versions``."""

from __future__ import annotations

from manifestkit.config import ManifestConfig
from manifestkit.plugins._base import CommitsByPath, ManifestPlugin, PluginPipeline, ReleaseBuilder, ReleasesByPath
from manifestkit.plugins.linked_versions import LinkedVersionsPlugin
from manifestkit.plugins.merge import MergePlugin


def build_pipeline(config: ManifestConfig, *, separate_pull_requests: bool) -> PluginPipeline:
    """Instantiate configured plugins in order.

    A ``merge`` plugin is appended when pull requests are combined and
    none was configured.
    """
    plugins: list[ManifestPlugin] = []
    for entry in config.plugins:
        if entry.type == 'linked-versions':
            plugins.append(LinkedVersionsPlugin(entry.group_name, entry.components))
        elif entry.type == 'merge':
            plugins.append(MergePlugin())
    if not separate_pull_requests and not any(isinstance(p, MergePlugin) for p in plugins):
        plugins.append(MergePlugin())
    return PluginPipeline(plugins)


__all__ = [
    'CommitsByPath',
    'LinkedVersionsPlugin',
    'ManifestPlugin',
    'MergePlugin',
    'PluginPipeline',
    'ReleaseBuilder',
    'ReleasesByPath',
    'build_pipeline',
]
