"""GitHub REST API client."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from ...client import BaseClient
from ...exceptions import GitApiError

TEXT_MATCH_ACCEPT = "application/vnd.github.text-match+json"


class GitHubClient(BaseClient):
    """Async HTTP client for the GitHub REST API."""

    platform = "github"
    default_headers = {
        "Content-Type": "application/json",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }

    def parse_repo(self, repo: str) -> tuple[str, str]:
        """Split ``owner/repo``; anything else is a 400."""
        parts = repo.strip().split("/")
        if len(parts) != 2 or not all(parts):
            raise GitApiError(
                self.platform, 400, f"Invalid repository '{repo}', expected 'owner/repo'"
            )
        return parts[0], parts[1]

    def repo_path(self, repo: str) -> str:
        owner, name = self.parse_repo(repo)
        return f"/repos/{owner}/{name}"

    # ── Issues ────────────────────────────────────────────────────

    async def list_issues(self, repo: str, params: dict[str, Any] | None = None) -> list:
        return await self.get(f"{self.repo_path(repo)}/issues", params=params)

    async def search_issues(self, params: dict[str, Any]) -> dict:
        return await self.get("/search/issues", params=params)

    async def get_issue(self, repo: str, number: int) -> dict:
        return await self.get(f"{self.repo_path(repo)}/issues/{number}")

    async def create_issue(self, repo: str, body: dict[str, Any]) -> dict:
        return await self.post(f"{self.repo_path(repo)}/issues", body)

    async def update_issue(self, repo: str, number: int, body: dict[str, Any]) -> dict:
        return await self.patch(f"{self.repo_path(repo)}/issues/{number}", body)

    async def list_issue_comments(
        self, repo: str, number: int, params: dict[str, Any] | None = None
    ) -> list:
        """Comments on an issue or a pull request's conversation."""
        return await self.get(f"{self.repo_path(repo)}/issues/{number}/comments", params=params)

    async def create_issue_comment(self, repo: str, number: int, body: str) -> dict:
        return await self.post(f"{self.repo_path(repo)}/issues/{number}/comments", {"body": body})

    # ── Pull Requests ─────────────────────────────────────────────

    async def list_pulls(self, repo: str, params: dict[str, Any] | None = None) -> list:
        return await self.get(f"{self.repo_path(repo)}/pulls", params=params)

    async def get_pull(self, repo: str, number: int) -> dict:
        return await self.get(f"{self.repo_path(repo)}/pulls/{number}")

    async def create_pull(self, repo: str, body: dict[str, Any]) -> dict:
        return await self.post(f"{self.repo_path(repo)}/pulls", body)

    async def list_pull_files(self, repo: str, number: int) -> list:
        return await self.get(
            f"{self.repo_path(repo)}/pulls/{number}/files", params={"per_page": 100}
        )

    async def merge_pull(self, repo: str, number: int, body: dict[str, Any]) -> dict:
        return await self.put(f"{self.repo_path(repo)}/pulls/{number}/merge", body)

    # ── Contents ──────────────────────────────────────────────────

    async def get_contents(self, repo: str, path: str, ref: str | None = None) -> Any:
        """A dict for a file, a list for a directory."""
        return await self.get(
            f"{self.repo_path(repo)}/contents/{quote(path.strip('/'), safe='/')}",
            params={"ref": ref},
        )

    async def put_contents(self, repo: str, path: str, body: dict[str, Any]) -> dict:
        return await self.put(
            f"{self.repo_path(repo)}/contents/{quote(path.strip('/'), safe='/')}", body
        )

    # ── Git Data ──────────────────────────────────────────────────

    async def get_ref(self, repo: str, ref: str) -> dict:
        """``ref`` is relative to ``refs/``, e.g. ``heads/main``."""
        return await self.get(f"{self.repo_path(repo)}/git/ref/{quote(ref, safe='/')}")

    async def create_ref(self, repo: str, ref: str, sha: str) -> dict:
        return await self.post(f"{self.repo_path(repo)}/git/refs", {"ref": ref, "sha": sha})

    async def update_ref(self, repo: str, ref: str, sha: str, *, force: bool = False) -> dict:
        return await self.patch(
            f"{self.repo_path(repo)}/git/refs/{quote(ref, safe='/')}",
            {"sha": sha, "force": force},
        )

    async def delete_ref(self, repo: str, ref: str) -> None:
        await self.delete(f"{self.repo_path(repo)}/git/refs/{quote(ref, safe='/')}")

    async def get_git_commit(self, repo: str, sha: str) -> dict:
        return await self.get(f"{self.repo_path(repo)}/git/commits/{sha}")

    async def create_git_commit(self, repo: str, body: dict[str, Any]) -> dict:
        return await self.post(f"{self.repo_path(repo)}/git/commits", body)

    async def create_blob(self, repo: str, content: str) -> dict:
        return await self.post(
            f"{self.repo_path(repo)}/git/blobs", {"content": content, "encoding": "utf-8"}
        )

    async def get_blob(self, repo: str, sha: str) -> dict:
        """Raw blob, base64 encoded; works for files the contents API will not inline."""
        return await self.get(f"{self.repo_path(repo)}/git/blobs/{sha}")

    async def get_tree(self, repo: str, sha: str, *, recursive: bool = False) -> dict:
        params = {"recursive": "1"} if recursive else None
        return await self.get(f"{self.repo_path(repo)}/git/trees/{sha}", params=params)

    async def create_tree(self, repo: str, base_tree: str, tree: list[dict[str, Any]]) -> dict:
        return await self.post(
            f"{self.repo_path(repo)}/git/trees", {"base_tree": base_tree, "tree": tree}
        )

    # ── Commits & Branches ────────────────────────────────────────

    async def list_commits(self, repo: str, params: dict[str, Any] | None = None) -> list:
        return await self.get(f"{self.repo_path(repo)}/commits", params=params)

    async def get_commit(self, repo: str, sha: str) -> dict:
        return await self.get(f"{self.repo_path(repo)}/commits/{sha}")

    async def list_branches(self, repo: str, params: dict[str, Any] | None = None) -> list:
        return await self.get(f"{self.repo_path(repo)}/branches", params=params)

    async def get_branch(self, repo: str, branch: str) -> dict:
        return await self.get(f"{self.repo_path(repo)}/branches/{quote(branch, safe='')}")

    async def get_repository(self, repo: str) -> dict:
        return await self.get(self.repo_path(repo))

    async def search_code(self, params: dict[str, Any]) -> dict:
        return await self.get(
            "/search/code",
            params=params,
            extra_headers={"Accept": TEXT_MATCH_ACCEPT},
        )

    # ── Actions ───────────────────────────────────────────────────

    async def list_workflow_runs(self, repo: str, params: dict[str, Any] | None = None) -> dict:
        return await self.get(f"{self.repo_path(repo)}/actions/runs", params=params)

    async def get_workflow_run(self, repo: str, run_id: int) -> dict:
        return await self.get(f"{self.repo_path(repo)}/actions/runs/{run_id}")

    async def list_run_jobs(
        self, repo: str, run_id: int, params: dict[str, Any] | None = None
    ) -> dict:
        return await self.get(f"{self.repo_path(repo)}/actions/runs/{run_id}/jobs", params=params)

    async def get_job_log(self, repo: str, job_id: int) -> str:
        """The API answers with a redirect to a short-lived download URL."""
        text = await self.get(
            f"{self.repo_path(repo)}/actions/jobs/{job_id}/logs",
            raw=True,
            follow_redirects=True,
        )
        return text or ""

    # ── Users ─────────────────────────────────────────────────────

    async def get_authenticated_user(self) -> dict:
        return await self.get("/user")
