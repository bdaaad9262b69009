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

"""Branch refs, locks and comparisons.

All mutations here are idempotent so that a retried run converges:

- :meth:`BranchOperations.fork_or_reset_branch` creates the branch or
  force-resets it to the requested sha.
- :meth:`BranchOperations.lock_branch` / :meth:`unlock_branch` only flip
  the ``lockBranch`` flag of the branch protection rule, creating an
  already locked rule when none exists.
- :meth:`BranchOperations.align_branch` force-updates one ref to another
  branch's tip.
"""

from __future__ import annotations

from typing import Any

from manifestkit.backends.github._client import GitHubClient
from manifestkit.errors import ConfigurationError, GitHubAPIError
from manifestkit.logging import get_logger

logger = get_logger(__name__)

LOCK_RULE_QUERY = """
query lockBranchProtectionRule($owner: String!, $repo: String!, $branchName: String!) {
  repository(name: $repo, owner: $owner) {
    ref(qualifiedName: $branchName) {
      branchProtectionRule { id lockBranch }
    }
  }
}
"""

UPDATE_LOCK_MUTATION = """
mutation updateLockBranch($ruleId: ID!, $locked: Boolean) {
  updateBranchProtectionRule(input: {branchProtectionRuleId: $ruleId, lockBranch: $locked}) {
    branchProtectionRule { lockBranch }
  }
}
"""

CREATE_LOCK_MUTATION = """
mutation createLockBranch($repositoryId: ID!, $branchName: String!, $locked: Boolean) {
  createBranchProtectionRule(
    input: {repositoryId: $repositoryId, pattern: $branchName, lockBranch: $locked, allowsForcePushes: true}
  ) {
    branchProtectionRule { id lockBranch }
  }
}
"""

FileSignature = tuple[str, tuple[tuple[str, str, int, int], ...]]


class BranchOperations:
    """Ref level operations on one repository."""

    def __init__(self, client: GitHubClient) -> None:
        """Bind to a client."""
        self.client = client

    async def get_branch_sha(self, branch: str) -> str | None:
        """Return the tip of ``branch``, or ``None`` if it does not exist."""
        try:
            ref = await self.client.rest('GET', f'{self.client.repo_path}/git/ref/heads/{branch}')
        except GitHubAPIError as exc:
            if exc.status == 404:
                logger.debug('branch_missing', branch=branch)
                return None
            raise
        return ref['object']['sha']

    async def _create_ref(self, branch: str, sha: str) -> str:
        ref = await self.client.rest(
            'POST',
            f'{self.client.repo_path}/git/refs',
            json={'ref': f'refs/heads/{branch}', 'sha': sha},
        )
        return ref['object']['sha']

    async def _update_ref(self, branch: str, sha: str) -> str:
        ref = await self.client.rest(
            'PATCH',
            f'{self.client.repo_path}/git/refs/heads/{branch}',
            json={'sha': sha, 'force': True},
        )
        return ref['object']['sha']

    async def fork_or_reset_branch(self, branch: str, from_sha: str) -> str:
        """Create ``branch`` at ``from_sha``, or force-reset it there.

        Returns:
            The branch tip after the operation.
        """
        if await self.get_branch_sha(branch):
            sha = await self._update_ref(branch, from_sha)
            logger.debug('branch_reset', branch=branch, sha=sha)
        else:
            sha = await self._create_ref(branch, from_sha)
            logger.debug('branch_created', branch=branch, sha=sha)
        return sha

    async def fork_branch(self, branch: str, base_branch: str) -> str:
        """Point ``branch`` at the current tip of ``base_branch``.

        Raises:
            ConfigurationError: If ``base_branch`` does not exist.
        """
        base_sha = await self.get_branch_sha(base_branch)
        if not base_sha:
            raise ConfigurationError(
                f'Unable to find base branch: {base_branch}',
                'core',
                str(self.client.repository),
            )
        return await self.fork_or_reset_branch(branch, base_sha)

    async def _lock_rule(self, branch: str) -> dict[str, Any] | None:
        data = await self.client.graphql(
            LOCK_RULE_QUERY,
            {'owner': self.client.repository.owner, 'repo': self.client.repository.repo, 'branchName': branch},
        )
        rule = (((data.get('repository') or {}).get('ref') or {}).get('branchProtectionRule')) or {}
        return rule if rule.get('id') else None

    async def _create_lock_rule(self, branch: str) -> dict[str, Any] | None:
        repo = await self.client.rest('GET', self.client.repo_path)
        data = await self.client.graphql(
            CREATE_LOCK_MUTATION,
            {'repositoryId': repo['node_id'], 'branchName': branch, 'locked': True},
        )
        rule = ((data.get('createBranchProtectionRule') or {}).get('branchProtectionRule')) or {}
        return rule if rule.get('id') else None

    async def _set_lock(self, rule_id: str, locked: bool) -> None:
        await self.client.graphql(UPDATE_LOCK_MUTATION, {'ruleId': rule_id, 'locked': locked})

    async def lock_branch(self, branch: str) -> None:
        """Make ``branch`` read-only through its protection rule."""
        rule = await self._lock_rule(branch)
        if rule is None:
            logger.info('lock_rule_create', branch=branch)
            if await self._create_lock_rule(branch) is None:
                logger.warning('lock_rule_missing_after_create', branch=branch)
            return
        if rule.get('lockBranch'):
            logger.warning('branch_already_locked', branch=branch)
            return
        logger.info('branch_lock', branch=branch)
        await self._set_lock(rule['id'], True)

    async def unlock_branch(self, branch: str) -> None:
        """Allow writes to ``branch`` again."""
        rule = await self._lock_rule(branch)
        if rule is None:
            logger.warning('lock_rule_missing', branch=branch)
            return
        if not rule.get('lockBranch'):
            logger.warning('branch_already_unlocked', branch=branch)
            return
        logger.info('branch_unlock', branch=branch)
        await self._set_lock(rule['id'], False)

    async def _commit_signature(self, sha: str) -> FileSignature:
        data = await self.client.rest('GET', f'{self.client.repo_path}/commits/{sha}')
        files = tuple(
            (f.get('filename', ''), f.get('status', ''), int(f.get('additions', 0)), int(f.get('deletions', 0)))
            for f in data.get('files') or []
        )
        return data['commit']['message'], files

    async def compare_branches(self, a: str, b: str) -> bool:
        """Whether branch ``a`` already contains everything on branch ``b``.

        ``ahead`` and ``identical`` are synced and ``behind`` is not. For
        ``diverged`` branches, every commit unique to ``a`` needs a
        counterpart among the commits unique to ``b`` with the same
        message and the same ordered file changes (path, status,
        additions, deletions).

        Raises:
            ValueError: If a branch name is empty.
        """
        if not a or not b:
            raise ValueError(f'A given branch name is empty. Branch A: {a!r}. Branch B: {b!r}')
        logger.debug('compare_branches', a=a, b=b)
        comparison = await self.client.rest('GET', f'{self.client.repo_path}/compare/{b}...{a}')
        status = comparison.get('status')
        if status in ('ahead', 'identical'):
            return True
        if status != 'diverged':
            return False

        merge_base = comparison['merge_base_commit']['sha']
        others = await self.client.rest('GET', f'{self.client.repo_path}/compare/{merge_base}...{b}')
        b_signatures = [await self._commit_signature(c['sha']) for c in others.get('commits') or []]
        for commit in comparison.get('commits') or []:
            if await self._commit_signature(commit['sha']) not in b_signatures:
                logger.debug('branch_commit_unmatched', branch=a, sha=commit['sha'])
                return False
        return True

    async def align_branch(self, source: str, target: str) -> str:
        """Force-update ``source`` to the tip of ``target``.

        Raises:
            ValueError: If a branch name is empty.
        """
        if not source or not target:
            raise ValueError(f'A given branch name is empty. Source: {source!r}. Target: {target!r}')
        ref = await self.client.rest('GET', f'{self.client.repo_path}/git/ref/heads/{target}')
        sha = ref['object']['sha']
        logger.info('branch_align', source=source, target=target, sha=sha)
        return await self._update_ref(source, sha)


__all__ = [
    'BranchOperations',
]
