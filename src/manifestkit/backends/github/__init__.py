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

"""GitHub history gateway.

See :class:`GitHub` for the full surface. History is read through a
:class:`HistorySource`, either :class:`GraphQLHistory` or
:class:`RESTHistory`.
"""

from manifestkit.backends.github._branches import BranchOperations
from manifestkit.backends.github._client import DEFAULT_API_URL, DEFAULT_GRAPHQL_URL, GitHubClient
from manifestkit.backends.github._github import MAX_ISSUE_BODY_SIZE, GitHub
from manifestkit.backends.github._history import (
    FILE_COUNT_WARN_THRESHOLD,
    PAGE_SIZE,
    GraphQLHistory,
    HistorySource,
    RESTHistory,
)
from manifestkit.backends.github._types import (
    FileChange,
    FileContents,
    GitHubRelease,
    GitHubTag,
    PullRequestStatus,
    Repository,
)

__all__ = [
    'DEFAULT_API_URL',
    'DEFAULT_GRAPHQL_URL',
    'FILE_COUNT_WARN_THRESHOLD',
    'MAX_ISSUE_BODY_SIZE',
    'PAGE_SIZE',
    'BranchOperations',
    'FileChange',
    'FileContents',
    'GitHub',
    'GitHubClient',
    'GitHubRelease',
    'GitHubTag',
    'GraphQLHistory',
    'HistorySource',
    'PullRequestStatus',
    'RESTHistory',
    'Repository',
]
