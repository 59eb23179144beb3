"""GitLab REST API v4 client."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from ...client import BaseClient
from ...exceptions import GitApiError


class GitLabClient(BaseClient):
    """Async HTTP client for the GitLab REST API v4."""

    platform = "gitlab"
    default_headers = {"Content-Type": "application/json", "Accept": "application/json"}

    def encode_id(self, project_id: str | int) -> str:
        """Encode a project ID. Numeric IDs pass through; paths are URL-encoded."""
        if isinstance(project_id, int):
            return str(project_id)
        project_id = project_id.strip()
        if not project_id:
            raise GitApiError(self.platform, 400, "Repository identifier must not be empty")
        if project_id.isdigit():
            return project_id
        return quote(project_id, safe="")

    # ── Issues ────────────────────────────────────────────────────

    async def list_issues(self, project_id: str, params: dict[str, Any] | None = None) -> list:
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/issues", params=params)

    async def get_issue(self, project_id: str, issue_iid: int) -> dict:
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/issues/{issue_iid}")

    async def create_issue(self, project_id: str, params: dict[str, Any]) -> dict:
        enc = self.encode_id(project_id)
        return await self.post(f"/projects/{enc}/issues", params)

    async def update_issue(self, project_id: str, issue_iid: int, params: dict[str, Any]) -> dict:
        enc = self.encode_id(project_id)
        return await self.put(f"/projects/{enc}/issues/{issue_iid}", params)

    # ── Notes ─────────────────────────────────────────────────────

    async def list_notes(
        self,
        project_id: str,
        noteable: str,
        iid: int,
        params: dict[str, Any] | None = None,
    ) -> list:
        """List notes on an ``issues`` or ``merge_requests`` noteable."""
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/{noteable}/{iid}/notes", params=params)

    async def add_note(self, project_id: str, noteable: str, iid: int, body: str) -> dict:
        enc = self.encode_id(project_id)
        return await self.post(f"/projects/{enc}/{noteable}/{iid}/notes", {"body": body})

    # ── Merge Requests ────────────────────────────────────────────

    async def list_merge_requests(
        self, project_id: str, params: dict[str, Any] | None = None
    ) -> list:
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/merge_requests", params=params)

    async def get_merge_request(self, project_id: str, mr_iid: int) -> dict:
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/merge_requests/{mr_iid}")

    async def create_merge_request(self, project_id: str, params: dict[str, Any]) -> dict:
        enc = self.encode_id(project_id)
        return await self.post(f"/projects/{enc}/merge_requests", params)

    async def merge_merge_request(
        self, project_id: str, mr_iid: int, params: dict[str, Any] | None = None
    ) -> dict:
        enc = self.encode_id(project_id)
        return await self.put(f"/projects/{enc}/merge_requests/{mr_iid}/merge", params or {})

    async def get_merge_request_changes(self, project_id: str, mr_iid: int) -> dict:
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/merge_requests/{mr_iid}/changes")

    # ── Repository ────────────────────────────────────────────────

    async def get_file(self, project_id: str, file_path: str, ref: str) -> dict:
        enc = self.encode_id(project_id)
        return await self.get(
            f"/projects/{enc}/repository/files/{quote(file_path, safe='')}",
            params={"ref": ref},
        )

    async def list_repository_tree(
        self, project_id: str, params: dict[str, Any] | None = None
    ) -> list:
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/repository/tree", params=params)

    async def create_commit(self, project_id: str, params: dict[str, Any]) -> dict:
        enc = self.encode_id(project_id)
        return await self.post(f"/projects/{enc}/repository/commits", params)

    async def list_commits(self, project_id: str, params: dict[str, Any] | None = None) -> list:
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/repository/commits", params=params)

    async def list_branches(self, project_id: str, params: dict[str, Any] | None = None) -> list:
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/repository/branches", params=params)

    async def create_branch(self, project_id: str, branch: str, ref: str) -> dict:
        enc = self.encode_id(project_id)
        return await self.post(
            f"/projects/{enc}/repository/branches",
            {"branch": branch, "ref": ref},
        )

    async def search_blobs(self, project_id: str, params: dict[str, Any]) -> list:
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/search", params={"scope": "blobs", **params})

    # ── Pipelines ─────────────────────────────────────────────────

    async def list_pipelines(self, project_id: str, params: dict[str, Any] | None = None) -> list:
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/pipelines", params=params)

    async def get_pipeline(self, project_id: str, pipeline_id: int) -> dict:
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/pipelines/{pipeline_id}")

    async def list_pipeline_jobs(
        self, project_id: str, pipeline_id: int, params: dict[str, Any] | None = None
    ) -> list:
        enc = self.encode_id(project_id)
        return await self.get(f"/projects/{enc}/pipelines/{pipeline_id}/jobs", params=params)

    async def get_job_log(self, project_id: str, job_id: int) -> str:
        enc = self.encode_id(project_id)
        text = await self.get(
            f"/projects/{enc}/jobs/{job_id}/trace",
            raw=True,
            extra_headers={"Accept": "text/plain"},
        )
        return text or ""

    # ── Users ─────────────────────────────────────────────────────

    async def get_current_user(self) -> dict:
        return await self.get("/user")
