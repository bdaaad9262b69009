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

"""Tests for the GitHub gateway against a mocked HTTP transport."""

from __future__ import annotations

import asyncio
import base64
import json
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest

from manifestkit.backends.github import GitHub, _history
from manifestkit.backends.github._history import fetch_commit_files
from manifestkit.errors import DuplicateReleaseError, GitHubAPIError, RepoFileNotFoundError
from manifestkit.updaters import ChangelogUpdater, Update, VersionTxtUpdater
from manifestkit.version import Version

Route = Callable[[httpx.Request], httpx.Response]


def _run(coro: Coroutine[Any, Any, Any]) -> Any:  # noqa: ANN401
    return asyncio.run(coro)


def _content(text: str) -> dict[str, Any]:
    return {'type': 'file', 'sha': 'blob', 'content': base64.b64encode(text.encode()).decode()}


class _Router:
    """Dispatch mocked requests on ``(method, path)`` and record them."""

    def __init__(self, routes: dict[tuple[str, str], Route | httpx.Response]) -> None:
        self.routes = routes
        self.requests: list[tuple[str, str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={'message': 'Not Found'})
        return route(request) if callable(route) else route

    def calls(self, method: str) -> list[str]:
        return [path for m, path, _ in self.requests if m == method]


def _with_github(router: _Router, body: Callable[[GitHub], Awaitable[Any]], **kwargs: Any) -> Any:  # noqa: ANN401
    async def scenario() -> Any:  # noqa: ANN401
        async with GitHub.connect('o', 'r', transport=httpx.MockTransport(router), **kwargs) as github:
            return await body(github)

    return _run(scenario())


def _paged(*pages: Any, path: str) -> Route:  # noqa: ANN401
    """Serve ``pages`` by their ``page`` query parameter, linking each to the next."""

    def route(request: httpx.Request) -> httpx.Response:
        index = int(request.url.params.get('page', '1')) - 1
        headers: dict[str, str] = {}
        if index + 1 < len(pages):
            headers['Link'] = f'<https://api.github.com{path}?page={index + 2}>; rel="next"'
        return httpx.Response(200, json=pages[index], headers=headers)

    return route


def _graphql_pages(*pages: dict[str, Any]) -> Route:
    """Serve GraphQL ``data`` pages; the cursor is the page index."""

    def route(request: httpx.Request) -> httpx.Response:
        cursor = json.loads(request.content)['variables'].get('cursor')
        return httpx.Response(200, json={'data': pages[int(cursor) if cursor else 0]})

    return route


def _history_page(nodes: list[dict[str, Any]], next_cursor: str | None = None) -> dict[str, Any]:
    info = {'hasNextPage': next_cursor is not None, 'endCursor': next_cursor}
    return {'repository': {'ref': {'target': {'history': {'nodes': nodes, 'pageInfo': info}}}}}


def _pr_node(number: int, sha: str, paths: list[str], has_more: bool = False) -> dict[str, Any]:
    return {
        'number': number,
        'title': f'fix: change {number}',
        'body': '',
        'baseRefName': 'main',
        'headRefName': f'feature-{number}',
        'labels': {'nodes': []},
        'mergeCommit': {'oid': sha},
        'files': {'nodes': [{'path': p} for p in paths], 'pageInfo': {'hasNextPage': has_more}},
    }


class TestBranches:
    """Tests for branch operations."""

    def test_fork_creates_missing_branch(self) -> None:
        """A missing branch is created with POST."""
        router = _Router({('POST', '/repos/o/r/git/refs'): httpx.Response(201, json={'object': {'sha': 'abc'}})})
        sha = _with_github(router, lambda gh: gh.fork_or_reset_branch('feature', 'abc'))
        assert sha == 'abc'
        assert router.calls('POST') == ['/repos/o/r/git/refs']
        assert router.calls('PATCH') == []

    def test_reset_existing_branch(self) -> None:
        """An existing branch is force-updated with PATCH."""
        router = _Router(
            {
                ('GET', '/repos/o/r/git/ref/heads/feature'): httpx.Response(200, json={'object': {'sha': 'old'}}),
                ('PATCH', '/repos/o/r/git/refs/heads/feature'): httpx.Response(200, json={'object': {'sha': 'new'}}),
            }
        )
        assert _with_github(router, lambda gh: gh.fork_or_reset_branch('feature', 'new')) == 'new'
        assert router.requests[-1][2] == {'sha': 'new', 'force': True}

    @pytest.mark.parametrize(('status', 'expected'), [('ahead', True), ('identical', True), ('behind', False)])
    def test_compare_simple(self, status: str, expected: bool) -> None:
        """Ahead and identical are synced, behind is not."""
        router = _Router({('GET', '/repos/o/r/compare/next...main'): httpx.Response(200, json={'status': status})})
        assert _with_github(router, lambda gh: gh.compare_branches('main', 'next')) is expected

    def _diverged(self, a_message: str) -> _Router:
        def commit(message: str) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    'commit': {'message': message},
                    'files': [{'filename': 'a.txt', 'status': 'modified', 'additions': 1, 'deletions': 0}],
                },
            )

        return _Router(
            {
                ('GET', '/repos/o/r/compare/next...main'): httpx.Response(
                    200,
                    json={'status': 'diverged', 'merge_base_commit': {'sha': 'base'}, 'commits': [{'sha': 'a1'}]},
                ),
                ('GET', '/repos/o/r/compare/base...next'): httpx.Response(200, json={'commits': [{'sha': 'b1'}]}),
                ('GET', '/repos/o/r/commits/a1'): commit(a_message),
                ('GET', '/repos/o/r/commits/b1'): commit('fix: same change'),
            }
        )

    def test_compare_diverged_with_equivalent_commits(self) -> None:
        """Diverged branches whose commits match by content are synced."""
        router = self._diverged('fix: same change')
        assert _with_github(router, lambda gh: gh.compare_branches('main', 'next')) is True

    def test_compare_diverged_with_unique_commit(self) -> None:
        """A commit with no counterpart means not synced."""
        router = self._diverged('fix: something else')
        assert _with_github(router, lambda gh: gh.compare_branches('main', 'next')) is False

    def test_compare_empty_name(self) -> None:
        """Empty branch names are rejected before any request."""
        router = _Router({})
        with pytest.raises(ValueError, match='empty'):
            _with_github(router, lambda gh: gh.compare_branches('', 'next'))
        assert router.requests == []

    def test_lock_forbidden(self) -> None:
        """A 403 from the lock query is a forbidden API error."""
        router = _Router({('POST', '/graphql'): httpx.Response(403, json={'message': 'Resource not accessible'})})
        with pytest.raises(GitHubAPIError) as excinfo:
            _with_github(router, lambda gh: gh.lock_branch('main'))
        assert excinfo.value.is_forbidden

    def test_lock_flips_existing_rule(self) -> None:
        """An unlocked rule is updated to locked."""
        payloads: list[dict[str, Any]] = []

        def graphql(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content)
            payloads.append(payload)
            if 'lockBranchProtectionRule' in payload['query']:
                rule = {'id': 'R1', 'lockBranch': False}
                return httpx.Response(200, json={'data': {'repository': {'ref': {'branchProtectionRule': rule}}}})
            return httpx.Response(200, json={'data': {}})

        _with_github(_Router({('POST', '/graphql'): graphql}), lambda gh: gh.lock_branch('main'))
        assert payloads[-1]['variables'] == {'ruleId': 'R1', 'locked': True}


class TestFiles:
    """Tests for file reads and change sets."""

    def test_get_file_contents(self) -> None:
        """Contents are base64-decoded."""
        router = _Router({('GET', '/repos/o/r/contents/version.txt'): httpx.Response(200, json=_content('1.0.0\n'))})
        contents = _with_github(router, lambda gh: gh.get_file_contents('version.txt', 'main'))
        assert contents.content == '1.0.0\n'

    def test_missing_file(self) -> None:
        """A 404 is RepoFileNotFoundError."""
        with pytest.raises(RepoFileNotFoundError):
            _with_github(_Router({}), lambda gh: gh.get_file_contents('nope.txt', 'main'))

    def test_build_change_set(self) -> None:
        """Missing files are created only when allowed; repeated paths stack."""
        router = _Router({('GET', '/repos/o/r/contents/version.txt'): httpx.Response(200, json=_content('1.0.0\n'))})
        version = Version(1, 0, 1)
        updates = [
            Update('CHANGELOG.md', ChangelogUpdater('## 1.0.1'), create_if_missing=True),
            Update('CHANGELOG.md', ChangelogUpdater('## 1.0.2')),
            Update('version.txt', VersionTxtUpdater(version)),
            Update('other.txt', VersionTxtUpdater(version)),
        ]
        changes = _with_github(router, lambda gh: gh.build_change_set(updates, 'main'))
        assert set(changes) == {'CHANGELOG.md', 'version.txt'}
        assert changes['CHANGELOG.md'].content == '# Changelog\n\n## 1.0.2\n\n## 1.0.1\n'
        assert changes['CHANGELOG.md'].original_content is None
        assert changes['version.txt'].content == '1.0.1\n'
        assert changes['version.txt'].original_content == '1.0.0\n'


class TestPullRequests:
    """Tests for single pull request operations."""

    def test_get_pull_request(self) -> None:
        """REST pull requests keep their labels and merge commit."""
        router = _Router(
            {
                ('GET', '/repos/o/r/pulls/7'): httpx.Response(
                    200,
                    json={
                        'number': 7,
                        'head': {'ref': 'release-please--branches--main'},
                        'base': {'ref': 'main'},
                        'title': 'chore(main): release 1.0.1',
                        'body': None,
                        'labels': [{'name': 'autorelease: pending'}],
                        'merge_commit_sha': 'abc',
                    },
                )
            }
        )
        pull_request = _with_github(router, lambda gh: gh.get_pull_request(7))
        assert pull_request.head_branch_name == 'release-please--branches--main'
        assert pull_request.body == ''
        assert pull_request.labels == ('autorelease: pending',)
        assert pull_request.sha == 'abc'

    def test_close_pull_request(self) -> None:
        """Closing patches the state without merging."""
        router = _Router({('PATCH', '/repos/o/r/pulls/7'): httpx.Response(200, json={})})
        _with_github(router, lambda gh: gh.close_pull_request(7))
        assert router.requests == [('PATCH', '/repos/o/r/pulls/7', {'state': 'closed'})]


class TestReleases:
    """Tests for release creation."""

    def test_duplicate_release(self) -> None:
        """A 422 already_exists is DuplicateReleaseError."""
        router = _Router(
            {
                ('POST', '/repos/o/r/releases'): httpx.Response(
                    422,
                    json={'message': 'Validation Failed', 'errors': [{'resource': 'Release', 'code': 'already_exists'}]},
                )
            }
        )
        with pytest.raises(DuplicateReleaseError) as excinfo:
            _with_github(router, lambda gh: gh.create_release(tag='v1.0.0', sha='abc', notes='n'))
        assert excinfo.value.tag == 'v1.0.0'

    def test_create_release(self) -> None:
        """The created release is returned with its URL."""
        router = _Router(
            {
                ('POST', '/repos/o/r/releases'): httpx.Response(
                    201,
                    json={
                        'id': 5,
                        'tag_name': 'v1.0.0',
                        'target_commitish': 'abc',
                        'html_url': 'https://github.com/o/r/releases/tag/v1.0.0',
                        'body': 'n',
                    },
                )
            }
        )
        release = _with_github(router, lambda gh: gh.create_release(tag='v1.0.0', sha='abc', notes='n', prerelease=True))
        assert release.url == 'https://github.com/o/r/releases/tag/v1.0.0'
        assert release.id == 5
        assert router.requests[0][2]['prerelease'] is True

    def test_release_not_visible(self) -> None:
        """A 404 while polling means not visible yet."""
        assert _with_github(_Router({}), lambda gh: gh.get_release_by_tag('v9.9.9')) is None


class TestHistory:
    """Tests for history iteration."""

    def test_rest_missing_branch_yields_nothing(self) -> None:
        """Iterating a missing branch yields no commits."""

        async def collect(github: GitHub) -> list[Any]:
            return [c async for c in github.commit_iterator('gone')]

        assert _with_github(_Router({}), collect, use_graphql=False) == []

    def test_graphql_commits_with_pull_request(self) -> None:
        """Commits carry the pull request whose merge commit they are."""
        node = {
            'sha': 'c1',
            'message': 'feat: x (#3)',
            'associatedPullRequests': {
                'nodes': [
                    {
                        'number': 3,
                        'title': 'feat: x',
                        'body': '',
                        'baseRefName': 'main',
                        'headRefName': 'feature',
                        'labels': {'nodes': [{'name': 'l1'}]},
                        'mergeCommit': {'oid': 'c1'},
                        'files': {'nodes': [{'path': 'pkg/a.py'}], 'pageInfo': {'hasNextPage': False}},
                    }
                ]
            },
        }
        page = {'repository': {'ref': {'target': {'history': {'nodes': [node], 'pageInfo': {'hasNextPage': False}}}}}}
        router = _Router({('POST', '/graphql'): httpx.Response(200, json={'data': page})})

        async def collect(github: GitHub) -> list[Any]:
            return [c async for c in github.commit_iterator('main')]

        commits = _with_github(router, collect)
        assert len(commits) == 1
        assert commits[0].files == ('pkg/a.py',)
        assert commits[0].pull_request.number == 3
        assert commits[0].pull_request.labels == ('l1',)

    def test_graphql_commits_without_pull_request(self) -> None:
        """A commit no pull request merged has no files without backfill."""
        router = _Router({('POST', '/graphql'): _graphql_pages(_history_page([{'sha': 'c1', 'message': 'chore: x'}]))})

        async def collect(github: GitHub) -> list[Any]:
            return [c async for c in github.commit_iterator('main')]

        commits = _with_github(router, collect)
        assert [(c.sha, c.files, c.pull_request) for c in commits] == [('c1', (), None)]
        assert router.calls('GET') == []

    def test_graphql_commits_paginate_and_backfill(self) -> None:
        """Cursors are followed and truncated or missing file lists are backfilled."""
        first = _history_page(
            [
                {
                    'sha': 'a',
                    'message': 'feat: a',
                    'associatedPullRequests': {'nodes': [_pr_node(1, 'a', ['a/0.py'], has_more=True)]},
                },
                {'sha': 'b', 'message': 'fix: b'},
            ],
            next_cursor='1',
        )
        second = _history_page(
            [{'sha': 'c', 'message': 'fix: c', 'associatedPullRequests': {'nodes': [_pr_node(2, 'c', ['c.py'])]}}]
        )
        router = _Router(
            {
                ('POST', '/graphql'): _graphql_pages(first, second),
                ('GET', '/repos/o/r/commits/a'): _paged(
                    {'files': [{'filename': f'a/{i}.py'} for i in range(100)]},
                    {'files': [{'filename': f'a/{i}.py'} for i in range(100, 150)]},
                    path='/repos/o/r/commits/a',
                ),
                ('GET', '/repos/o/r/commits/b'): httpx.Response(200, json={'files': [{'filename': 'b.txt'}]}),
            }
        )

        async def collect(github: GitHub) -> list[Any]:
            return [c async for c in github.commit_iterator('main', backfill_files=True)]

        commits = _with_github(router, collect)
        assert [(c.sha, len(c.files)) for c in commits] == [('a', 150), ('b', 1), ('c', 1)]
        assert commits[0].pull_request.number == 1
        assert commits[2].files == ('c.py',)
        assert [body['variables']['cursor'] for m, _, body in router.requests if m == 'POST'] == [None, '1']

    def test_graphql_commits_stop_at_max_results(self) -> None:
        """The next page is not requested once enough commits were yielded."""
        first = _history_page([{'sha': 'a', 'message': 'fix: a'}, {'sha': 'b', 'message': 'fix: b'}], next_cursor='1')
        router = _Router({('POST', '/graphql'): _graphql_pages(first, _history_page([]))})

        async def collect(github: GitHub) -> list[Any]:
            return [c.sha async for c in github.commit_iterator('main', max_results=2)]

        assert _with_github(router, collect) == ['a', 'b']
        assert router.calls('POST') == ['/graphql']

    def test_graphql_pull_requests_paginate(self) -> None:
        """Pull request pages are followed by cursor with the status filter."""

        def page(nodes: list[dict[str, Any]], next_cursor: str | None = None) -> dict[str, Any]:
            info = {'hasNextPage': next_cursor is not None, 'endCursor': next_cursor}
            return {'repository': {'pullRequests': {'nodes': nodes, 'pageInfo': info}}}

        router = _Router(
            {
                ('POST', '/graphql'): _graphql_pages(
                    page([_pr_node(9, 's9', ['x.py']), _pr_node(8, 's8', [])], next_cursor='1'),
                    page([_pr_node(7, 's7', ['y.py'])]),
                )
            }
        )

        async def collect(github: GitHub) -> list[Any]:
            return [pr async for pr in github.pull_request_iterator('main', include_files=True)]

        pull_requests = _with_github(router, collect)
        assert [(pr.number, pr.files) for pr in pull_requests] == [(9, ('x.py',)), (8, ()), (7, ('y.py',))]
        assert router.requests[0][2]['variables']['states'] == ['MERGED']

    def test_graphql_releases_paginate(self) -> None:
        """Releases without a tag commit are skipped across pages."""

        def release(tag: str, sha: str | None) -> dict[str, Any]:
            return {
                'name': tag,
                'tag': {'name': tag},
                'tagCommit': {'oid': sha} if sha else None,
                'url': f'https://github.com/o/r/releases/tag/{tag}',
                'description': '',
                'isDraft': False,
                'isPrerelease': False,
            }

        def page(nodes: list[dict[str, Any]], next_cursor: str | None = None) -> dict[str, Any]:
            info = {'hasNextPage': next_cursor is not None, 'endCursor': next_cursor}
            return {'repository': {'releases': {'nodes': nodes, 'pageInfo': info}}}

        router = _Router(
            {
                ('POST', '/graphql'): _graphql_pages(
                    page([release('v3.0.0', 'c3'), release('draft', None)], next_cursor='1'),
                    page([release('v2.0.0', 'c2')]),
                )
            }
        )

        async def collect(github: GitHub) -> list[Any]:
            return [(r.tag_name, r.sha) async for r in github.release_iterator()]

        assert _with_github(router, collect) == [('v3.0.0', 'c3'), ('v2.0.0', 'c2')]

    def test_rest_merged_pull_requests(self) -> None:
        """REST merged pull requests are the closed ones with merged_at."""

        def pull(number: int, merged_at: str | None) -> dict[str, Any]:
            return {
                'number': number,
                'head': {'ref': f'feature-{number}'},
                'base': {'ref': 'main'},
                'title': f'fix: {number}',
                'labels': [],
                'merged_at': merged_at,
                'merge_commit_sha': f's{number}',
            }

        def route(request: httpx.Request) -> httpx.Response:
            assert request.url.params['state'] == 'closed'
            pulls = [pull(1, '2026-03-01T00:00:00Z'), pull(2, None), pull(3, '2026-02-01T00:00:00Z')]
            return httpx.Response(200, json=pulls)

        router = _Router({('GET', '/repos/o/r/pulls'): route})

        async def collect(github: GitHub) -> list[Any]:
            return [pr.number async for pr in github.pull_request_iterator('main')]

        assert _with_github(router, collect) == [1, 3]

    def test_rest_releases_resolve_tags(self) -> None:
        """REST releases look up their tag, dereferencing annotated tags."""
        router = _Router(
            {
                ('GET', '/repos/o/r/releases'): _paged(
                    [{'id': 1, 'tag_name': 'v2.0.0', 'html_url': 'u2'}],
                    [{'id': 2, 'tag_name': 'v1.0.0', 'html_url': 'u1'}],
                    path='/repos/o/r/releases',
                ),
                ('GET', '/repos/o/r/git/ref/tags/v2.0.0'): httpx.Response(
                    200, json={'object': {'type': 'tag', 'sha': 'tag-object'}}
                ),
                ('GET', '/repos/o/r/git/tags/tag-object'): httpx.Response(200, json={'object': {'sha': 'c2'}}),
                ('GET', '/repos/o/r/git/ref/tags/v1.0.0'): httpx.Response(
                    200, json={'object': {'type': 'commit', 'sha': 'c1'}}
                ),
            }
        )

        async def collect(github: GitHub) -> list[Any]:
            return [(r.tag_name, r.sha, r.id) async for r in github.release_iterator()]

        assert _with_github(router, collect, use_graphql=False) == [('v2.0.0', 'c2', 1), ('v1.0.0', 'c1', 2)]

    def test_tag_iterator_pages(self) -> None:
        """Tags are read across Link-paginated pages."""
        router = _Router(
            {
                ('GET', '/repos/o/r/tags'): _paged(
                    [{'name': 'v2.0.0', 'commit': {'sha': 'c2'}}],
                    [{'name': 'v1.0.0', 'commit': {'sha': 'c1'}}],
                    path='/repos/o/r/tags',
                )
            }
        )

        async def collect(github: GitHub) -> list[Any]:
            return [(t.name, t.sha) async for t in github.tag_iterator()]

        assert _with_github(router, collect) == [('v2.0.0', 'c2'), ('v1.0.0', 'c1')]
        assert len(router.calls('GET')) == 2

    @pytest.mark.parametrize(('count', 'warned'), [(3000, False), (3001, True)])
    def test_file_count_warning(self, count: int, warned: bool, monkeypatch: pytest.MonkeyPatch) -> None:
        """Only commits touching more than 3000 files are reported."""
        mock_log = MagicMock()
        monkeypatch.setattr(_history, 'logger', mock_log)
        files = {'files': [{'filename': f'f{i}'} for i in range(count)]}
        router = _Router({('GET', '/repos/o/r/commits/big'): httpx.Response(200, json=files)})
        result = _with_github(router, lambda gh: fetch_commit_files(gh.client, 'big'))
        assert len(result) == count
        if warned:
            mock_log.warning.assert_called_once_with('commit_files_truncated', sha='big', count=count)
        else:
            mock_log.warning.assert_not_called()
