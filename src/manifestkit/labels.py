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

"""Release pull request labels as an explicit lifecycle.

The labels on a release pull request encode where it is in its life::

    ┌──────────┐  merge + tag   ┌──────────┐
    │ PENDING  │ ─────────────▶ │  TAGGED  │
    └──────────┘                └──────────┘
      │     ▲
      │     │ new changes (snooze removed, pending kept)
      ▼     │
    ┌──────────┐
    │ SNOOZED  │  closed with the snooze label
    └──────────┘

A closed pull request without the pending or snooze label is ``CLOSED``
and is never touched again.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

PENDING_LABEL = 'autorelease: pending'
TAGGED_LABEL = 'autorelease: tagged'
PRERELEASE_LABEL = 'autorelease: pre-release'
SNOOZE_LABEL = 'autorelease: snooze'
CUSTOM_VERSION_LABEL = 'autorelease: custom version'


class PullRequestState(Enum):
    """Lifecycle state of a release pull request."""

    PENDING = 'pending'
    TAGGED = 'tagged'
    SNOOZED = 'snoozed'
    CLOSED = 'closed'


_TRANSITIONS: dict[PullRequestState, frozenset[PullRequestState]] = {
    PullRequestState.PENDING: frozenset({PullRequestState.TAGGED, PullRequestState.SNOOZED, PullRequestState.CLOSED}),
    PullRequestState.SNOOZED: frozenset({PullRequestState.PENDING}),
    PullRequestState.TAGGED: frozenset(),
    PullRequestState.CLOSED: frozenset(),
}

# Labels added and removed when entering a state.
_LABEL_CHANGES: dict[PullRequestState, tuple[tuple[str, ...], tuple[str, ...]]] = {
    PullRequestState.PENDING: ((PENDING_LABEL,), (SNOOZE_LABEL,)),
    PullRequestState.TAGGED: ((TAGGED_LABEL,), (PENDING_LABEL,)),
    PullRequestState.SNOOZED: ((SNOOZE_LABEL,), ()),
    PullRequestState.CLOSED: ((), (PENDING_LABEL,)),
}


def state_of(labels: Iterable[str], *, closed: bool = False) -> PullRequestState:
    """Derive the lifecycle state from a pull request's labels."""
    names = set(labels)
    if TAGGED_LABEL in names:
        return PullRequestState.TAGGED
    if closed and SNOOZE_LABEL in names:
        return PullRequestState.SNOOZED
    if PENDING_LABEL in names:
        return PullRequestState.PENDING
    return PullRequestState.CLOSED


def can_transition(current: PullRequestState, target: PullRequestState) -> bool:
    """Whether moving from ``current`` to ``target`` is legal."""
    return target in _TRANSITIONS[current]


def transition(
    current: PullRequestState,
    target: PullRequestState,
) -> tuple[list[str], list[str]]:
    """Return ``(labels_to_add, labels_to_remove)`` for a transition.

    Raises:
        ValueError: If the transition is not legal.
    """
    if not can_transition(current, target):
        raise ValueError(f'Illegal release pull request transition {current.value} -> {target.value}')
    add, remove = _LABEL_CHANGES[target]
    return list(add), list(remove)


__all__ = [
    'CUSTOM_VERSION_LABEL',
    'PENDING_LABEL',
    'PRERELEASE_LABEL',
    'SNOOZE_LABEL',
    'TAGGED_LABEL',
    'PullRequestState',
    'can_transition',
    'state_of',
    'transition',
]
