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

"""Release strategies, a closed registry keyed by ``release-type``.

Adding a release type means adding a :class:`Strategy` subclass and an
entry in :data:`RELEASE_TYPES`.
"""

from __future__ import annotations

from typing import Any

from manifestkit.errors import ConfigurationError
from manifestkit.strategies._base import FileReader, Strategy
from manifestkit.strategies.node import NodeStrategy
from manifestkit.strategies.python import PythonStrategy
from manifestkit.strategies.simple import SimpleStrategy

RELEASE_TYPES: dict[str, type[Strategy]] = {
    SimpleStrategy.release_type: SimpleStrategy,
    PythonStrategy.release_type: PythonStrategy,
    NodeStrategy.release_type: NodeStrategy,
}


def build_strategy(release_type: str, path: str, **options: Any) -> Strategy:  # noqa: ANN401
    """Instantiate the strategy registered for ``release_type``.

    Raises:
        ConfigurationError: If the release type is unknown.
    """
    cls = RELEASE_TYPES.get(release_type)
    if cls is None:
        raise ConfigurationError(f'Unknown release type: {release_type!r}', release_type)
    return cls(path, **options)


__all__ = [
    'RELEASE_TYPES',
    'FileReader',
    'NodeStrategy',
    'PythonStrategy',
    'SimpleStrategy',
    'Strategy',
    'build_strategy',
]
