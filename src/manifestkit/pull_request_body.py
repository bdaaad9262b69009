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

"""Release pull request body rendering and parsing.

Wire format::

    <header>
    ---


    <details><summary>pkg1: 1.0.1</summary>

    ## [1.0.1](compare-url) (2026-01-02)
    ...
    </details>

    <details><summary>pkg2: 0.2.4</summary>
    ...
    </details>

    ---
    <footer>

A body with a single block renders its notes without the ``<details>``
wrapper. :meth:`PullRequestBody.parse` reverses :meth:`__str__`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from manifestkit.version import VERSION_SEARCH_RE, Version

DEFAULT_HEADER = ':robot: I have created a release *beep* *boop*'
DEFAULT_FOOTER = 'This PR was generated with manifestkit. Merge it to tag the releases listed above.'

_DETAILS_RE: re.Pattern[str] = re.compile(
    r'<details><summary>(?P<summary>.*?)</summary>\n\n?(?P<notes>.*?)\n?</details>',
    re.DOTALL,
)
_NOTES_VERSION_RE: re.Pattern[str] = re.compile(r'^#{2,3} \[?(?P<version>v?\d+\.\d+\.\d+\S*?)\]?(?:\(|\s|$)', re.MULTILINE)


@dataclass(frozen=True)
class ReleaseData:
    """Release notes for one component in a release pull request."""

    component: str | None
    version: Version | None
    notes: str


def _parse_summary(summary: str) -> tuple[str | None, Version | None]:
    summary = summary.strip()
    if ': ' in summary:
        component, _, version = summary.rpartition(': ')
        return component or None, Version.try_parse(version)
    version = Version.try_parse(summary)
    if version is not None:
        return None, version
    match = VERSION_SEARCH_RE.search(summary)
    return None, Version.try_parse(match.group(0)) if match else None


def _notes_version(notes: str) -> Version | None:
    match = _NOTES_VERSION_RE.search(notes)
    return Version.try_parse(match.group('version')) if match else None


@dataclass
class PullRequestBody:
    """Ordered per-component release blocks with a header and footer."""

    releases: list[ReleaseData] = field(default_factory=list)
    header: str = DEFAULT_HEADER
    footer: str = DEFAULT_FOOTER
    use_components: bool | None = None

    def _render_notes(self) -> str:
        wrap = self.use_components if self.use_components is not None else len(self.releases) > 1
        if not wrap:
            return '\n\n'.join(release.notes.strip() for release in self.releases)
        blocks = []
        for release in self.releases:
            summary = f'{release.component}: {release.version}' if release.component else str(release.version)
            blocks.append(f'<details><summary>{summary}</summary>\n\n{release.notes.strip()}\n</details>')
        return '\n\n'.join(blocks)

    def __str__(self) -> str:
        return f'{self.header}\n---\n\n\n{self._render_notes()}\n\n---\n{self.footer}\n'

    @classmethod
    def parse(cls, body: str) -> PullRequestBody | None:
        """Recover the blocks of a rendered body.

        Returns:
            The parsed body, or ``None`` if ``body`` has no release data.
        """
        text = body.replace('\r\n', '\n')
        header, sep, rest = text.partition('\n---\n')
        if not sep:
            header, rest = '', text
        content, sep, footer = rest.rpartition('\n---\n')
        if not sep:
            content, footer = rest, ''
        content = content.strip()
        if not content:
            return None

        blocks = list(_DETAILS_RE.finditer(content))
        if blocks:
            releases = []
            for match in blocks:
                component, version = _parse_summary(match.group('summary'))
                releases.append(ReleaseData(component, version, match.group('notes').strip()))
            return cls(
                releases=releases,
                header=header.strip(),
                footer=footer.strip(),
                use_components=True if len(releases) == 1 else None,
            )

        return cls(
            releases=[ReleaseData(None, _notes_version(content), content)],
            header=header.strip(),
            footer=footer.strip(),
        )

    def release_for(self, component: str | None) -> ReleaseData | None:
        """Return the block for ``component``, or the only block."""
        for release in self.releases:
            if release.component == component:
                return release
        if len(self.releases) == 1 and self.releases[0].component is None:
            return self.releases[0]
        return None


__all__ = [
    'DEFAULT_FOOTER',
    'DEFAULT_HEADER',
    'PullRequestBody',
    'ReleaseData',
]
