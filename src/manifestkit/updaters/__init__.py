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

"""File updaters: pure ``str | None -> str`` content transforms.

Updaters never touch the network; the gateway reads the current
contents, calls :meth:`Updater.update_content` and pushes the result.
"""

from manifestkit.updaters._base import Update, Updater
from manifestkit.updaters.changelog import DEFAULT_CHANGELOG_HEADER, ChangelogUpdater
from manifestkit.updaters.generic import GenericUpdater
from manifestkit.updaters.manifest import ManifestUpdater
from manifestkit.updaters.package_json import PackageJsonUpdater
from manifestkit.updaters.pyproject import PyProjectUpdater
from manifestkit.updaters.version_txt import VersionTxtUpdater

__all__ = [
    'DEFAULT_CHANGELOG_HEADER',
    'ChangelogUpdater',
    'GenericUpdater',
    'ManifestUpdater',
    'PackageJsonUpdater',
    'PyProjectUpdater',
    'Update',
    'Updater',
    'VersionTxtUpdater',
]
