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

"""Records returned by the GitHub gateway."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_FILE_MODE = '100644'


@dataclass(frozen=True)
class Repository:
    """An ``owner/repo`` pair."""

    owner: str
    repo: str

    def __str__(self) -> str:
        return f'{self.owner}/{self.repo}'


class PullRequestStatus(str, Enum):
    """Pull request filter for :meth:`GitHub.pull_request_iterator`."""

    OPEN = 'OPEN'
    MERGED = 'MERGED'
    CLOSED = 'CLOSED'


@dataclass(frozen=True)
class GitHubRelease:
    """A release as listed by GitHub.

    Attributes:
        tag_name: Tag the release points at.
        sha: Commit the tag resolves to.
        notes: Release body.
        url: HTML URL.
        name: Release title.
        draft: Whether the release is a draft.
        prerelease: Whether the release is marked as a prerelease.
        id: REST id, when known.
        upload_url: Asset upload URL, when known.
    """

    tag_name: str
    sha: str
    notes: str = ''
    url: str = ''
    name: str | None = None
    draft: bool = False
    prerelease: bool = False
    id: int | None = None
    upload_url: str | None = None


@dataclass(frozen=True)
class GitHubTag:
    """A git tag and the commit it points to."""

    name: str
    sha: str


@dataclass(frozen=True)
class FileContents:
    """Decoded file contents on a branch."""

    content: str
    sha: str
    mode: str = DEFAULT_FILE_MODE


@dataclass(frozen=True)
class FileChange:
    """New contents for one path in a changeset."""

    content: str
    original_content: str | None = None
    mode: str = DEFAULT_FILE_MODE


__all__ = [
    'DEFAULT_FILE_MODE',
    'FileChange',
    'FileContents',
    'GitHubRelease',
    'GitHubTag',
    'PullRequestStatus',
    'Repository',
]
