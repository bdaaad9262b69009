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

"""``merge`` plugin: fold candidates into one grouped pull request."""

from __future__ import annotations

from manifestkit.logging import get_logger
from manifestkit.plugins._base import ManifestPlugin, ReleaseBuilder
from manifestkit.release_pull_request import ReleasePullRequest

logger = get_logger(__name__)


class MergePlugin(ManifestPlugin):
    """Combine every non-separate candidate into a single pull request.

    Candidates of components configured with ``separate-pull-requests``
    pass through untouched, after the grouped one.
    """

    name = 'merge'

    def run(self, candidates: list[ReleasePullRequest], builder: ReleaseBuilder) -> list[ReleasePullRequest]:
        in_scope = [c for c in candidates if not c.separate]
        out_of_scope = [c for c in candidates if c.separate]
        if not in_scope:
            return candidates
        releases = [release for candidate in in_scope for release in candidate.components]
        logger.info('pull_requests_merged', count=len(in_scope), components=[r.path for r in releases])
        return [builder.grouped_pull_request(releases), *out_of_scope]


__all__ = [
    'MergePlugin',
]
