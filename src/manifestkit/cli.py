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

"""Command line interface.

Usage::

    # Open or update release pull requests:
    manifestkit release-pr --repo-url owner/repo --target-branch main

    # Preview them without touching GitHub:
    manifestkit release-pr --repo-url owner/repo --dry-run

    # Tag merged release pull requests:
    manifestkit github-release --repo-url owner/repo

    # Encode or decode a release branch name:
    manifestkit bootstrap-branch-name --target main --component pkg1
    manifestkit bootstrap-branch-name --parse release-please--branches--main--components--pkg1

    # Explain an error code:
    manifestkit explain MK-CONFIG-INVALID

The token comes from ``--token``, ``MANIFESTKIT_TOKEN`` or
``GITHUB_TOKEN``, in that order.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from rich.console import Console
from rich.table import Table
from rich_argparse import RichHelpFormatter

from manifestkit import __version__
from manifestkit.backends.github import GitHub
from manifestkit.branch_name import BranchName
from manifestkit.config import DEFAULT_CONFIG_FILE, resolve_endpoints, resolve_token
from manifestkit.errors import ConfigurationError, ManifestKitError, explain, render_error
from manifestkit.logging import configure_logging, get_logger
from manifestkit.manifest import Manifest

logger = get_logger(__name__)

console = Console()


def _split_repo(repo_url: str) -> tuple[str, str]:
    """Accept ``owner/repo`` or a ``https://github.com/owner/repo`` URL."""
    parts = repo_url.removesuffix('.git').rstrip('/').split('/')
    if len(parts) < 2 or not parts[-1] or not parts[-2]:
        raise ConfigurationError(f'Invalid --repo-url: {repo_url!r}')
    return parts[-2], parts[-1]


async def _manifest(args: argparse.Namespace, github: GitHub) -> Manifest:
    return await Manifest.from_repository(
        github,
        args.target_branch,
        args.config_file,
        changes_branch=args.changes_branch,
    )


def _connect(args: argparse.Namespace) -> GitHub:
    owner, repo = _split_repo(args.repo_url)
    api_url, graphql_url = resolve_endpoints(args.api_url, args.graphql_url)
    return GitHub.connect(
        owner,
        repo,
        token=resolve_token(args.token),
        api_url=api_url,
        graphql_url=graphql_url,
        use_graphql=not args.rest,
    )


async def _cmd_release_pr(args: argparse.Namespace) -> int:
    """Handle the ``release-pr`` subcommand."""
    async with _connect(args) as github:
        manifest = await _manifest(args, github)
        if args.dry_run:
            candidates = await manifest.build_pull_requests()
            rows = [
                {
                    'head': c.head_branch_name,
                    'title': str(c.title),
                    'components': {r.path: str(r.version) for r in c.components},
                }
                for c in candidates
            ]
            if args.json:
                print(json.dumps(rows, indent=2))  # noqa: T201 - CLI output
                return 0
            table = Table(title='Release pull requests (dry run)')
            table.add_column('Branch')
            table.add_column('Title')
            table.add_column('Components')
            for row in rows:
                table.add_row(
                    row['head'],
                    row['title'],
                    ', '.join(f'{p}@{v}' for p, v in row['components'].items()),
                )
            console.print(table)
            return 0
        prs = await manifest.create_pull_requests()
    if args.json:
        print(json.dumps([{'number': pr.number, 'head': pr.head_branch_name} for pr in prs], indent=2))  # noqa: T201 - CLI output
    else:
        for pr in prs:
            console.print(f'  #{pr.number} {pr.title} [dim]({pr.head_branch_name})[/dim]', highlight=False)
        if not prs:
            console.print('  No release pull requests changed.')
    return 0


async def _cmd_github_release(args: argparse.Namespace) -> int:
    """Handle the ``github-release`` subcommand."""
    async with _connect(args) as github:
        manifest = await _manifest(args, github)
        if args.dry_run:
            batches = await manifest.build_releases()
            rows = [
                {'pr': b.pull_request.number, 'tag': str(r.tag), 'sha': r.sha, 'prerelease': r.prerelease}
                for b in batches
                for r in b.releases
            ]
            if args.json:
                print(json.dumps(rows, indent=2))  # noqa: T201 - CLI output
            else:
                for row in rows:
                    console.print(f'  #{row["pr"]} {row["tag"]} @ {row["sha"][:7]}', highlight=False)
            return 0
        created = await manifest.create_releases()
    if args.json:
        rows = [{'path': c.path, 'tag': c.release.tag_name, 'url': c.release.url} for c in created]
        print(json.dumps(rows, indent=2))  # noqa: T201 - CLI output
    else:
        for c in created:
            console.print(f'  {c.release.tag_name} {c.release.url}', highlight=False)
        if not created:
            console.print('  No releases created.')
    return 0


def _cmd_bootstrap_branch_name(args: argparse.Namespace) -> int:
    """Handle the ``bootstrap-branch-name`` subcommand."""
    if args.parse:
        branch = BranchName.parse(args.parse)
        data = {
            'target_branch': branch.target_branch,
            'changes_branch': branch.changes_branch,
            'component': branch.component,
        }
        print(json.dumps(data, indent=2))  # noqa: T201 - CLI output
        return 0
    if not args.target:
        raise ConfigurationError('--target is required unless --parse is given')
    if args.component:
        branch = BranchName.of_component_target_branch(args.component, args.target, args.changes)
    else:
        branch = BranchName.of_target_branch(args.target, args.changes)
    print(branch)  # noqa: T201 - CLI output
    return 0


def _cmd_explain(args: argparse.Namespace) -> int:
    """Handle the ``explain`` subcommand."""
    result = explain(args.code)
    if result is None:
        print(f'Unknown error code: {args.code}')  # noqa: T201 - CLI output
        return 1
    print(result)  # noqa: T201 - CLI output
    return 0


def _add_repo_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--repo-url', required=True, help='Repository as owner/repo or its GitHub URL.')
    parser.add_argument('--token', default=None, help='GitHub token (default: MANIFESTKIT_TOKEN or GITHUB_TOKEN).')
    parser.add_argument('--target-branch', default=None, help='Release branch (default: the repository default).')
    parser.add_argument('--changes-branch', default=None, help='Branch the updates are authored against.')
    parser.add_argument(
        '--config-file',
        default=DEFAULT_CONFIG_FILE,
        help=f'Config file on the target branch (default: {DEFAULT_CONFIG_FILE}).',
    )
    parser.add_argument('--api-url', default=None, help='REST API URL (default: MANIFESTKIT_API_URL or GitHub).')
    parser.add_argument('--graphql-url', default=None, help='GraphQL URL (default: MANIFESTKIT_GRAPHQL_URL or GitHub).')
    parser.add_argument('--rest', action='store_true', help='Read history through REST instead of GraphQL.')
    parser.add_argument('--dry-run', action='store_true', help='Show what would happen without writing.')
    parser.add_argument('--json', action='store_true', help='Print results as JSON.')


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser.

    Returns:
        Configured :class:`argparse.ArgumentParser`.
    """
    RichHelpFormatter.styles['argparse.groups'] = 'bold yellow'
    parser = argparse.ArgumentParser(
        prog='manifestkit',
        description='Release pull requests and GitHub releases for manifest monorepos.',
        formatter_class=RichHelpFormatter,
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--verbose', '-v', action='store_true', help='Emit debug logs.')
    parser.add_argument('--quiet', '-q', action='store_true', help='Only emit warnings and errors.')
    parser.add_argument('--json-log', action='store_true', help='Log JSON lines to stderr.')
    parser.add_argument('--no-redact', action='store_true', help='Do not redact tokens in log output.')

    subparsers = parser.add_subparsers(dest='command')

    release_pr = subparsers.add_parser(
        'release-pr',
        help='Open or update release pull requests.',
        formatter_class=RichHelpFormatter,
    )
    _add_repo_options(release_pr)

    github_release = subparsers.add_parser(
        'github-release',
        help='Create GitHub releases for merged release pull requests.',
        formatter_class=RichHelpFormatter,
    )
    _add_repo_options(github_release)

    branch_name = subparsers.add_parser(
        'bootstrap-branch-name',
        help='Encode or decode a release branch name.',
        formatter_class=RichHelpFormatter,
    )
    branch_name.add_argument('--target', default=None, help='Target branch.')
    branch_name.add_argument('--changes', default=None, help='Changes branch, if different from the target.')
    branch_name.add_argument('--component', default=None, help='Component name.')
    branch_name.add_argument('--parse', metavar='NAME', default=None, help='Decode NAME instead of encoding.')

    explain_parser = subparsers.add_parser(
        'explain',
        help='Explain an error code.',
        formatter_class=RichHelpFormatter,
    )
    explain_parser.add_argument('code', help='Error code, e.g. MK-CONFIG-INVALID.')

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(
        verbose=args.verbose,
        quiet=args.quiet,
        json_log=args.json_log,
        redact_secrets=not args.no_redact,
    )

    try:
        command = args.command
        if command == 'release-pr':
            return asyncio.run(_cmd_release_pr(args))
        if command == 'github-release':
            return asyncio.run(_cmd_github_release(args))
        if command == 'bootstrap-branch-name':
            return _cmd_bootstrap_branch_name(args)
        if command == 'explain':
            return _cmd_explain(args)

        parser.print_help()  # noqa: T201 - CLI output
        print(  # noqa: T201 - CLI output
            f'\n{parser.prog}: error: please provide a command',
            file=sys.stderr,
        )
        return 2

    except ManifestKitError as exc:
        render_error(exc)
        return 1
    except KeyboardInterrupt:
        logger.info('interrupted')
        return 130


def _main() -> None:
    """Wrapper for pyproject.toml [project.scripts] entry point."""
    sys.exit(main())


__all__ = [
    'build_parser',
    'main',
]
