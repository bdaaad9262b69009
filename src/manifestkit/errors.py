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

"""Error taxonomy for manifestkit.

Every error raised on purpose by manifestkit derives from
:class:`ManifestKitError` and carries a stable :class:`E` code plus an
optional remediation hint. The CLI prints the code so that users can run
``manifestkit explain <code>``.

Hierarchy::

    ManifestKitError
    ├── ConfigurationError          fatal, carries releaser + repository
    │   └── MissingRequiredFileError
    ├── GitHubAPIError              non-2xx transport failure (status, body, cause)
    │   ├── AuthError               401
    │   └── DuplicateReleaseError   422 already_exists on a tag
    ├── RepoFileNotFoundError       content lookup miss (recoverable)
    ├── AggregateError              several failures, no success
    ├── BranchNameError             malformed release branch name
    └── VersionError                unparseable version string
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from rich.console import Console
from rich.markup import escape


class E(str, Enum):
    """Stable error codes."""

    CONFIG_INVALID = 'MK-CONFIG-INVALID'
    CONFIG_MISSING_FILE = 'MK-CONFIG-MISSING-FILE'
    GITHUB_API = 'MK-GITHUB-API'
    GITHUB_AUTH = 'MK-GITHUB-AUTH'
    RELEASE_DUPLICATE = 'MK-RELEASE-DUPLICATE'
    FILE_NOT_FOUND = 'MK-FILE-NOT-FOUND'
    AGGREGATE = 'MK-AGGREGATE'
    BRANCH_NAME_INVALID = 'MK-BRANCH-NAME-INVALID'
    VERSION_INVALID = 'MK-VERSION-INVALID'


_HINTS: dict[E, str] = {
    E.CONFIG_INVALID: 'Check manifestkit.toml against the documented options.',
    E.CONFIG_MISSING_FILE: 'The release type needs this file on the target branch; create it or change release-type.',
    E.GITHUB_API: 'The GitHub API rejected a request. The status and response body are attached to the error.',
    E.GITHUB_AUTH: 'Pass a token with repo write access via --token or GITHUB_TOKEN.',
    E.RELEASE_DUPLICATE: 'A release with this tag already exists. Re-running skips it.',
    E.FILE_NOT_FOUND: 'The file does not exist on the requested branch.',
    E.AGGREGATE: 'Several operations failed; see the nested errors.',
    E.BRANCH_NAME_INVALID: 'Release branches look like release-please--branches--<target>[--components--<name>].',
    E.VERSION_INVALID: 'Use a semantic version such as 1.2.3 or 1.2.3-beta.1.',
}


class ManifestKitError(Exception):
    """Base class for manifestkit errors.

    Args:
        code: Stable error code.
        message: Human readable description.
        hint: Optional remediation hint. Defaults to the code's hint.
    """

    def __init__(self, code: E, message: str, hint: str = '') -> None:
        """Store the code, message and hint."""
        super().__init__(message)
        self.code = code
        self.message = message
        self.hint = hint or _HINTS.get(code, '')


class ConfigurationError(ManifestKitError):
    """Malformed or missing configuration. Always fatal to the run."""

    def __init__(self, message: str, releaser_name: str = 'core', repository: str = '') -> None:
        """Prefix the message with the releaser and repository."""
        super().__init__(E.CONFIG_INVALID, f'{releaser_name} ({repository}): {message}')
        self.releaser_name = releaser_name
        self.repository = repository


class MissingRequiredFileError(ConfigurationError):
    """A release strategy needs a file that is not on the branch."""

    def __init__(self, file: str, releaser_name: str = 'core', repository: str = '') -> None:
        """Record the missing file path."""
        super().__init__(f'Missing required file: {file}', releaser_name, repository)
        self.code = E.CONFIG_MISSING_FILE
        self.hint = _HINTS[E.CONFIG_MISSING_FILE]
        self.file = file


class GitHubAPIError(ManifestKitError):
    """A non-2xx response, or a GraphQL error payload, from GitHub.

    Attributes:
        status: HTTP status, or ``None`` for GraphQL payload errors.
        body: Decoded response body, when there was one.
        cause: The transport exception this error wraps, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        body: Any = None,  # noqa: ANN401
        cause: BaseException | None = None,
        code: E = E.GITHUB_API,
    ) -> None:
        """Capture status, body and cause."""
        super().__init__(code, message)
        self.status = status
        self.body = body
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def errors(self) -> list[dict[str, Any]]:
        """The ``errors`` array of the response body (REST or GraphQL)."""
        if isinstance(self.body, dict):
            errors = self.body.get('errors') or []
            return [e for e in errors if isinstance(e, dict)]
        return []

    @property
    def is_forbidden(self) -> bool:
        """Whether GitHub refused for lack of permission or token scope."""
        if self.status == 403:
            return True
        return any(e.get('type') == 'FORBIDDEN' for e in self.errors)


class AuthError(GitHubAPIError):
    """The token was rejected (HTTP 401)."""

    def __init__(self, *, body: Any = None, cause: BaseException | None = None) -> None:  # noqa: ANN401
        """Build an unauthorized error."""
        super().__init__('unauthorized', status=401, body=body, cause=cause, code=E.GITHUB_AUTH)


class DuplicateReleaseError(GitHubAPIError):
    """Creating a release failed because its tag already exists."""

    def __init__(self, tag: str, *, body: Any = None, cause: BaseException | None = None) -> None:  # noqa: ANN401
        """Record the duplicated tag."""
        super().__init__(
            f'Release for tag {tag} already exists',
            status=422,
            body=body,
            cause=cause,
            code=E.RELEASE_DUPLICATE,
        )
        self.tag = tag


class RepoFileNotFoundError(ManifestKitError):
    """A file is absent from the requested branch."""

    def __init__(self, path: str) -> None:
        """Record the missing path."""
        super().__init__(E.FILE_NOT_FOUND, f'Failed to find file: {path}')
        self.path = path


class AggregateError(ManifestKitError):
    """Several underlying failures and not a single success."""

    def __init__(self, errors: list[BaseException], message: str = 'AggregateError') -> None:
        """Join the nested messages into one."""
        details = ''.join(f'\n  - {err}' for err in errors)
        super().__init__(E.AGGREGATE, f'{message}:{details}')
        self.errors = errors


class BranchNameError(ManifestKitError):
    """A release branch name could not be encoded or decoded."""

    def __init__(self, message: str) -> None:
        """Wrap the message with the branch-name code."""
        super().__init__(E.BRANCH_NAME_INVALID, message)


class VersionError(ManifestKitError):
    """A version string is not a semantic version."""

    def __init__(self, value: str) -> None:
        """Record the offending value."""
        super().__init__(E.VERSION_INVALID, f'Invalid version: {value!r}')
        self.value = value


def explain(code: str) -> str | None:
    """Return the hint for an error code, or ``None`` if the code is unknown."""
    try:
        return _HINTS[E(code)]
    except ValueError:
        return None


def render_error(exc: ManifestKitError, console: Console | None = None) -> None:
    """Print ``exc`` with its code and hint to stderr."""
    console = console or Console(stderr=True)
    console.print(f'[bold red]error[/bold red] {exc.code.value}: {escape(str(exc))}', highlight=False)
    if exc.hint:
        console.print(f'  [dim]hint:[/dim] {escape(exc.hint)}', highlight=False)


__all__ = [
    'AggregateError',
    'AuthError',
    'BranchNameError',
    'ConfigurationError',
    'DuplicateReleaseError',
    'E',
    'GitHubAPIError',
    'ManifestKitError',
    'MissingRequiredFileError',
    'RepoFileNotFoundError',
    'VersionError',
    'explain',
    'render_error',
]
