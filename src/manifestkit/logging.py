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

"""Structured logging for manifestkit.

Configures `structlog <https://www.structlog.org/>`_ with two renderers:

- **Console** (default): human-readable, colored when stderr is a TTY.
- **JSON** (``--json-log``): one JSON object per line, for CI log
  collectors.

Everything goes to stderr so that stdout stays reserved for command
results (``manifestkit release-pr --json | jq``).

Usage::

    from manifestkit.logging import configure_logging, get_logger

    configure_logging(verbose=True)
    logger = get_logger(__name__)
    logger.info('release_pr_created', number=42, branch='release-please--branches--main')
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

# Env vars whose runtime values are scrubbed from every log event.
_SENSITIVE_ENV_VARS: tuple[str, ...] = (
    'GITHUB_TOKEN',
    'GH_TOKEN',
    'MANIFESTKIT_TOKEN',
    'RELEASE_PLEASE_TOKEN',
)

_REDACTED = '[REDACTED]'

# Populated by configure_logging(); read by the redaction processor.
_secret_values: frozenset[str] = frozenset()


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    json_log: bool = False,
    redact_secrets: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger.

    Safe to call more than once; the last call wins.

    Args:
        verbose: Emit debug events.
        quiet: Only emit warnings and errors. Takes precedence over
            ``verbose``.
        json_log: Render events as JSON lines instead of console text.
        redact_secrets: Replace token values with ``[REDACTED]``. The
            ``MANIFESTKIT_REDACT_SECRETS=0`` env var also disables it.
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(format='%(message)s', stream=sys.stderr, level=level, force=True)

    global _secret_values  # noqa: PLW0603
    enabled = redact_secrets and os.environ.get('MANIFESTKIT_REDACT_SECRETS', '1') != '0'
    _secret_values = _collect_secret_values() if enabled else frozenset()

    renderer: structlog.types.Processor
    if json_log:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt='iso'),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            redact_sensitive_values,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


def get_logger(name: str = 'manifestkit') -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


def _collect_secret_values() -> frozenset[str]:
    """Snapshot the non-empty values of the sensitive env vars."""
    return frozenset(v for v in (os.environ.get(name, '') for name in _SENSITIVE_ENV_VARS) if v)


def _scrub(value: object) -> object:
    if not isinstance(value, str):
        return value
    for secret in _secret_values:
        # Short values would redact ordinary words.
        if len(secret) >= 8 and secret in value:
            value = value.replace(secret, _REDACTED)
    return value


def redact_sensitive_values(
    logger: Any,  # noqa: ANN401
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor that scrubs token values from event fields."""
    if not _secret_values:
        return event_dict
    return {key: _scrub(value) for key, value in event_dict.items()}


__all__ = [
    'configure_logging',
    'get_logger',
    'redact_sensitive_values',
]
