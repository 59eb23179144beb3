"""Multi-file commits on GitHub.

GitHub has no single endpoint that applies several file changes at once.
A lone create or update goes through the Contents API in one call (the
fast path, preceded by creating the branch from ``base_branch`` when it
does not exist yet); everything else is assembled from the Git Data API
(the slow path):

1. resolve the base branch to a commit sha
2. read that commit to find its root tree
3. create one blob per written file, sequentially
4. create a tree on top of the base tree
5. create a commit whose only parent is the base commit
6. move ``heads/{branch}`` to it, creating the ref if it does not exist

Steps are not transactional. If a later step fails, blobs and trees from
earlier steps stay behind as unreferenced objects and the branch is left
untouched.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

from ...exceptions import CommitStepError, GitApiError, GitNotFoundError
from ...models.repositories import Commit, CommitParams, FileAction
from . import mapper
from .client import GitHubClient

logger = logging.getLogger(__name__)

BLOB_MODE = "100644"


def is_fast_path(actions: list[FileAction]) -> bool:
    """Exactly one ``create`` or ``update`` action."""
    return len(actions) == 1 and actions[0].action in ("create", "update")


def dedupe_actions(actions: list[FileAction]) -> list[FileAction]:
    """Keep the last action per path, in the order of that last occurrence."""
    latest: dict[str, FileAction] = {}
    for action in actions:
        latest.pop(action.path, None)
        latest[action.path] = action
    return list(latest.values())


def _author(params: CommitParams) -> dict[str, str] | None:
    if params.author_name and params.author_email:
        return {"name": params.author_name, "email": params.author_email}
    return None


class CommitOrchestrator:
    """Applies a :class:`CommitParams` to a GitHub repository."""

    def __init__(self, client: GitHubClient, log: logging.Logger | None = None) -> None:
        self.client = client
        self.log = log or logger

    async def commit(self, repo: str, params: CommitParams) -> Commit:
        if not params.actions:
            raise GitApiError(self.client.platform, 400, "A commit needs at least one action")
        if is_fast_path(params.actions):
            return await self._commit_contents(repo, params)
        return await self._commit_git_data(repo, params)

    # ── Fast path ─────────────────────────────────────────────────

    async def _commit_contents(self, repo: str, params: CommitParams) -> Commit:
        if params.base_branch and params.base_branch != params.branch:
            await self._ensure_branch(repo, params.branch, params.base_branch)
        action = params.actions[0]
        body: dict[str, Any] = {
            "message": params.message,
            "content": base64.b64encode((action.content or "").encode()).decode(),
            "branch": params.branch,
        }
        if action.action == "update":
            try:
                current = await self.client.get_contents(repo, action.path, ref=params.branch)
            except GitNotFoundError:
                self.log.debug("%s does not exist on %s, creating it", action.path, params.branch)
            else:
                if isinstance(current, dict) and current.get("sha"):
                    body["sha"] = current["sha"]
        author = _author(params)
        if author:
            body["author"] = author

        self.log.debug("contents commit %s on %s", action.path, params.branch)
        data = await self.client.put_contents(repo, action.path, body)
        return mapper.map_git_commit(data["commit"])

    async def _ensure_branch(self, repo: str, branch: str, base_branch: str) -> None:
        """Create ``branch`` from ``base_branch`` unless it already exists."""
        try:
            await self.client.get_ref(repo, f"heads/{branch}")
        except GitNotFoundError:
            sha = await self._branch_sha(repo, base_branch)
            self.log.info("Creating branch %s from %s", branch, base_branch)
            await self.client.create_ref(repo, f"refs/heads/{branch}", sha)

    async def _branch_sha(self, repo: str, branch: str) -> str:
        try:
            ref = await self.client.get_ref(repo, f"heads/{branch}")
        except GitNotFoundError as e:
            raise GitNotFoundError(
                self.client.platform, f"Branch '{branch}' not found", e.details
            ) from e
        return ref["object"]["sha"]

    # ── Slow path ─────────────────────────────────────────────────

    async def _commit_git_data(self, repo: str, params: CommitParams) -> Commit:
        base_branch = params.base_branch or params.branch

        async with self._step("resolve_base"):
            base_sha = await self._branch_sha(repo, base_branch)

        async with self._step("read_base_commit"):
            base_commit = await self.client.get_git_commit(repo, base_sha)
            base_tree = base_commit["tree"]["sha"]

        async with self._step("create_blobs"):
            entries = await self._tree_entries(repo, base_sha, dedupe_actions(params.actions))

        async with self._step("create_tree"):
            tree = await self.client.create_tree(repo, base_tree, entries)

        async with self._step("create_commit"):
            body: dict[str, Any] = {
                "message": params.message,
                "tree": tree["sha"],
                "parents": [base_sha],
            }
            author = _author(params)
            if author:
                body["author"] = author
            new_commit = await self.client.create_git_commit(repo, body)

        async with self._step("update_ref"):
            await self._move_branch(repo, params.branch, new_commit["sha"])

        return mapper.map_git_commit(new_commit)

    async def _tree_entries(
        self, repo: str, base_sha: str, actions: list[FileAction]
    ) -> list[dict[str, Any]]:
        entries: dict[str, dict[str, Any]] = {}

        def put(path: str, sha: str | None) -> None:
            entries.pop(path, None)
            entries[path] = {"path": path, "mode": BLOB_MODE, "type": "blob", "sha": sha}

        for action in actions:
            if action.action == "delete":
                put(action.path, None)
                continue
            if action.action == "move" and action.content is None and action.previous_path:
                sha = await self._existing_blob(repo, action.previous_path, base_sha)
            else:
                blob = await self.client.create_blob(repo, action.content or "")
                sha = blob["sha"]
            if action.action == "move" and action.previous_path:
                put(action.previous_path, None)
            put(action.path, sha)
        return list(entries.values())

    async def _existing_blob(self, repo: str, path: str, ref: str) -> str:
        current = await self.client.get_contents(repo, path, ref=ref)
        if not isinstance(current, dict) or current.get("type") != "file":
            raise GitApiError(self.client.platform, 400, f"Cannot move '{path}': not a file")
        return current["sha"]

    async def _move_branch(self, repo: str, branch: str, sha: str) -> None:
        try:
            await self.client.update_ref(repo, f"heads/{branch}", sha)
        except GitApiError as e:
            if e.status_code not in (404, 422):
                raise
            self.log.info("Branch %s does not exist on %s, creating it", branch, repo)
            await self.client.create_ref(repo, f"refs/heads/{branch}", sha)

    def _step(self, name: str) -> _Step:
        return _Step(name, self.log)


class _Step:
    """Async context that tags a failure with the commit step it happened in."""

    def __init__(self, name: str, log: logging.Logger) -> None:
        self.name = name
        self.log = log

    async def __aenter__(self) -> _Step:
        self.log.debug("commit step %s", self.name)
        return self

    async def __aexit__(self, exc_type: Any, exc: BaseException | None, tb: Any) -> bool:
        if isinstance(exc, GitApiError) and not isinstance(exc, CommitStepError):
            self.log.warning("Commit step %s failed: %s", self.name, exc)
            raise CommitStepError(self.name, exc) from exc
        return False
