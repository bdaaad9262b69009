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

"""Shared leaf-level types used across manifestkit.

This module must have **zero** imports from other ``manifestkit``
modules so that anything can import it without creating a cycle.

The :class:`Ok` / :class:`Err` pair models the outcome of best-effort
steps (branch locking, changes-branch realignment) whose failures are
logged and discarded at a single call site instead of being swallowed
by scattered ``try`` blocks::

    outcome = await lock_base_branch()
    if isinstance(outcome, Err):
        logger.warning('branch_lock_skipped', error=str(outcome.error))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar('T')

__all__ = [
    'Err',
    'Ok',
    'Outcome',
]


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A successful best-effort step.

    Attributes:
        value: Whatever the step produced (often ``None``).
    """

    value: T

    @property
    def ok(self) -> bool:
        """Always ``True``."""
        return True


@dataclass(frozen=True)
class Err:
    """A failed best-effort step.

    Attributes:
        error: The exception that ended the step.
    """

    error: BaseException

    @property
    def ok(self) -> bool:
        """Always ``False``."""
        return False


Outcome = Union[Ok[T], Err]
