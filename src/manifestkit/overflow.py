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

"""Pull request bodies larger than GitHub accepts.

When a rendered body exceeds :data:`MAX_ISSUE_BODY_SIZE` characters, the
full text is written to ``release-notes.md`` on ``<head>--release-notes``
and the pull request body becomes a short placeholder linking to it.
:meth:`FilePullRequestOverflowHandler.parse_overflow` follows the link
back, so readers always get the full :class:`PullRequestBody`.
"""

from __future__ import annotations

import re
from typing import Protocol

from manifestkit.backends.github import MAX_ISSUE_BODY_SIZE, FileContents, Repository
from manifestkit.logging import get_logger
from manifestkit.pull_request_body import PullRequestBody

logger = get_logger(__name__)

RELEASE_NOTES_FILENAME = 'release-notes.md'
NOTES_BRANCH_SUFFIX = '--release-notes'
OVERFLOW_MESSAGE = (
    'This release is too large to preview in the pull request body. View the full release notes here:'
)
_OVERFLOW_RE: re.Pattern[str] = re.compile(
    re.escape(OVERFLOW_MESSAGE) + r'\s*https://github\.com/[^/]+/[^/]+/blob/(?P<branch>\S+)/(?P<path>[^/\s]+)'
)


class OverflowGateway(Protocol):
    """The gateway calls overflow handling needs."""

    @property
    def repository(self) -> Repository: ...

    async def create_file_on_new_branch(
        self,
        filename: str,
        contents: str,
        new_branch: str,
        base_branch: str,
    ) -> str: ...

    async def get_file_contents(self, path: str, branch: str) -> FileContents: ...


class FilePullRequestOverflowHandler:
    """Externalize oversized bodies to a file on a side branch."""

    def __init__(self, github: OverflowGateway, max_size: int = MAX_ISSUE_BODY_SIZE) -> None:
        """Bind to a gateway."""
        self.github = github
        self.max_size = max_size

    async def handle_overflow(self, body: PullRequestBody, head_branch: str, base_branch: str) -> str:
        """Return the text to use as the pull request body.

        Bodies within the limit are returned unchanged.
        """
        rendered = str(body)
        if len(rendered) <= self.max_size:
            return rendered
        notes_branch = f'{head_branch}{NOTES_BRANCH_SUFFIX}'
        logger.info('pull_request_body_overflow', size=len(rendered), branch=notes_branch)
        await self.github.create_file_on_new_branch(RELEASE_NOTES_FILENAME, rendered, notes_branch, base_branch)
        repo = self.github.repository
        url = f'https://github.com/{repo.owner}/{repo.repo}/blob/{notes_branch}/{RELEASE_NOTES_FILENAME}'
        return f'{OVERFLOW_MESSAGE} {url}'

    async def parse_overflow(self, body: str) -> PullRequestBody | None:
        """Parse a pull request body, fetching the companion file if needed."""
        match = _OVERFLOW_RE.search(body)
        if match is None:
            return PullRequestBody.parse(body)
        logger.debug('pull_request_body_from_file', branch=match.group('branch'), path=match.group('path'))
        contents = await self.github.get_file_contents(match.group('path'), match.group('branch'))
        return PullRequestBody.parse(contents.content)


__all__ = [
    'NOTES_BRANCH_SUFFIX',
    'OVERFLOW_MESSAGE',
    'RELEASE_NOTES_FILENAME',
    'FilePullRequestOverflowHandler',
    'OverflowGateway',
]
