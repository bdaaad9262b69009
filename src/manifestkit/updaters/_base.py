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

"""File update records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@runtime_checkable
class Updater(Protocol):
    """Rewrites the contents of one file."""

    def update_content(self, content: str | None) -> str:
        """Return the new contents; ``content`` is ``None`` for a new file."""
        ...


@dataclass(frozen=True)
class Update:
    """One file edit in a release pull request.

    Attributes:
        path: Repository-relative path.
        updater: Produces the new contents.
        create_if_missing: Create the file when it does not exist.
            Otherwise a missing file is skipped.
    """

    path: str
    updater: Updater
    create_if_missing: bool = False


__all__ = [
    'Update',
    'Updater',
]
