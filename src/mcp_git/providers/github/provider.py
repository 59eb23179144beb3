"""GitHub implementation of the capability interface."""

from __future__ import annotations

import re
from typing import Any

from ...exceptions import GitApiError, GitNotFoundError
from ...models.common import Comment, CommentCreateParams, CommentListParams, ProviderInfo, User
from ...models.issues import Issue, IssueCreateParams, IssueListParams, IssueUpdateParams
from ...models.pipelines import CIStatus, Job, JobListParams, Pipeline, PipelineListParams
from ...models.pull_requests import (
    PullRequest,
    PullRequestCreateParams,
    PullRequestDiff,
    PullRequestListParams,
    PullRequestMergeParams,
)
from ...models.repositories import (
    Branch,
    BranchCreateParams,
    BranchListParams,
    Commit,
    CommitListParams,
    CommitParams,
    DirectoryContent,
    FileContent,
    SearchCodeParams,
    SearchCodeResult,
    TreeEntry,
    TreeParams,
)
from ..interface import (
    CIProvider,
    GitProvider,
    IssueProvider,
    PullRequestProvider,
    RepositoryProvider,
    UserProvider,
)
from . import mapper
from .client import GitHubClient
from .commits import CommitOrchestrator

_SHA_RE = re.compile(r"^[0-9a-f]{40}$")

# Canonical CI status -> workflow run ``status`` query value. Terminal statuses
# span several conclusions, so they query ``completed`` and are narrowed in
# memory. ``pending`` covers queued, waiting, requested and unknown
# conclusions and is not sent at all.
_RUN_STATUS: dict[str, str] = {
    "running": "in_progress",
    "success": "completed",
    "failed": "completed",
    "canceled": "completed",
    "skipped": "completed",
}

DEFAULT_TREE_PAGE_SIZE = 100


def _comment_query(params: CommentListParams | None) -> dict[str, Any]:
    if params is None:
        return {}
    return {"direction": params.sort, "page": params.page, "per_page": params.per_page}


def _assignees(ids: list[int] | None) -> list[str] | None:
    # GitHub expects logins here; numeric ids are sent as strings.
    return [str(i) for i in ids] if ids is not None else None


# ── Issues ────────────────────────────────────────────────────────


class GitHubIssues(IssueProvider):
    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    async def get(self, repo: str, issue_number: int) -> Issue:
        return mapper.map_issue(await self._client.get_issue(repo, issue_number))

    async def list(self, repo: str, params: IssueListParams | None = None) -> list[Issue]:
        params = params or IssueListParams()
        if params.search:
            owner, name = self._client.parse_repo(repo)
            q = f"{params.search} repo:{owner}/{name} is:issue"
            if params.state in ("open", "closed"):
                q += f" state:{params.state}"
            for label in params.labels or []:
                q += f' label:"{label}"'
            data = await self._client.search_issues(
                {
                    "q": q,
                    "sort": params.sort,
                    "order": params.direction,
                    "page": params.page,
                    "per_page": params.per_page,
                }
            )
            items = data.get("items") or []
        else:
            items = await self._client.list_issues(
                repo,
                {
                    "state": params.state,
                    "labels": ",".join(params.labels) if params.labels is not None else None,
                    "assignee": str(params.assignee_id) if params.assignee_id else None,
                    "creator": str(params.author_id) if params.author_id else None,
                    "sort": params.sort,
                    "direction": params.direction,
                    "page": params.page,
                    "per_page": params.per_page,
                },
            )
        # the issues endpoint also returns pull requests
        return [mapper.map_issue(i) for i in items if "pull_request" not in i]

    async def create(self, repo: str, params: IssueCreateParams) -> Issue:
        body: dict[str, Any] = {"title": params.title}
        if params.description is not None:
            body["body"] = params.description
        if params.labels is not None:
            body["labels"] = params.labels
        if params.assignee_ids is not None:
            body["assignees"] = _assignees(params.assignee_ids)
        return mapper.map_issue(await self._client.create_issue(repo, body))

    async def update(self, repo: str, issue_number: int, params: IssueUpdateParams) -> Issue:
        body: dict[str, Any] = {}
        if params.title is not None:
            body["title"] = params.title
        if params.description is not None:
            body["body"] = params.description
        if params.labels is not None:
            body["labels"] = params.labels
        if params.assignee_ids is not None:
            body["assignees"] = _assignees(params.assignee_ids)
        if params.state is not None:
            body["state"] = params.state
        return mapper.map_issue(await self._client.update_issue(repo, issue_number, body))

    async def create_comment(
        self, repo: str, issue_number: int, params: CommentCreateParams
    ) -> Comment:
        data = await self._client.create_issue_comment(repo, issue_number, params.body)
        return mapper.map_comment(data)

    async def list_comments(
        self, repo: str, issue_number: int, params: CommentListParams | None = None
    ) -> list[Comment]:
        data = await self._client.list_issue_comments(repo, issue_number, _comment_query(params))
        return [mapper.map_comment(c) for c in data]


# ── Pull Requests ─────────────────────────────────────────────────


class GitHubPullRequests(PullRequestProvider):
    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    async def get(self, repo: str, pr_number: int) -> PullRequest:
        return mapper.map_pull_request(await self._client.get_pull(repo, pr_number))

    async def list(
        self, repo: str, params: PullRequestListParams | None = None
    ) -> list[PullRequest]:
        params = params or PullRequestListParams()
        owner, _ = self._client.parse_repo(repo)
        # there is no merged filter upstream: ask for closed and keep the merged ones
        state = "closed" if params.state == "merged" else params.state
        data = await self._client.list_pulls(
            repo,
            {
                "state": state,
                "head": f"{owner}:{params.source_branch}" if params.source_branch else None,
                "base": params.target_branch,
                "sort": params.sort,
                "direction": params.direction,
                "page": params.page,
                "per_page": params.per_page,
            },
        )
        prs = [mapper.map_pull_request(pr) for pr in data]
        if params.state == "merged":
            prs = [pr for pr in prs if pr.state == "merged"]
        if params.labels:
            wanted = set(params.labels)
            prs = [pr for pr in prs if wanted.issubset(pr.labels)]
        if params.search:
            needle = params.search.lower()
            prs = [pr for pr in prs if needle in pr.title.lower()]
        return prs

    async def create(self, repo: str, params: PullRequestCreateParams) -> PullRequest:
        body: dict[str, Any] = {
            "title": params.title,
            "head": params.source_branch,
            "base": params.target_branch,
        }
        if params.description is not None:
            body["body"] = params.description
        if params.draft is not None:
            body["draft"] = params.draft
        pr = await self._client.create_pull(repo, body)

        # labels and assignees live on the pull request's issue
        extra: dict[str, Any] = {}
        if params.labels is not None:
            extra["labels"] = params.labels
        if params.assignee_ids is not None:
            extra["assignees"] = _assignees(params.assignee_ids)
        if extra:
            await self._client.update_issue(repo, pr["number"], extra)
            pr = await self._client.get_pull(repo, pr["number"])
        return mapper.map_pull_request(pr)

    async def get_diffs(self, repo: str, pr_number: int) -> list[PullRequestDiff]:
        data = await self._client.list_pull_files(repo, pr_number)
        return [mapper.map_pull_request_diff(f) for f in data]

    async def merge(
        self, repo: str, pr_number: int, params: PullRequestMergeParams | None = None
    ) -> PullRequest:
        params = params or PullRequestMergeParams()
        body: dict[str, Any] = {"merge_method": "squash" if params.squash else "merge"}
        if params.commit_message is not None:
            body["commit_message"] = params.commit_message
        await self._client.merge_pull(repo, pr_number, body)

        pr = await self._client.get_pull(repo, pr_number)
        if params.delete_branch:
            await self._delete_head(repo, pr)
        return mapper.map_pull_request(pr)

    async def _delete_head(self, repo: str, pr: dict[str, Any]) -> None:
        """Best effort: the merge has already happened."""
        head = pr.get("head") or {}
        base_repo = ((pr.get("base") or {}).get("repo") or {}).get("full_name") or "/".join(
            self._client.parse_repo(repo)
        )
        head_repo = (head.get("repo") or {}).get("full_name")
        if not head_repo or head_repo.lower() != base_repo.lower():
            self._client.log.info(
                "Not deleting %s: head lives in %s", head.get("ref"), head_repo or "a deleted fork"
            )
            return
        try:
            await self._client.delete_ref(repo, f"heads/{head['ref']}")
        except GitApiError as e:
            self._client.log.warning(
                "Merged #%s but could not delete %s: %s", pr.get("number"), head["ref"], e
            )

    async def create_comment(
        self, repo: str, pr_number: int, params: CommentCreateParams
    ) -> Comment:
        data = await self._client.create_issue_comment(repo, pr_number, params.body)
        return mapper.map_comment(data)

    async def list_comments(
        self, repo: str, pr_number: int, params: CommentListParams | None = None
    ) -> list[Comment]:
        data = await self._client.list_issue_comments(repo, pr_number, _comment_query(params))
        return [mapper.map_comment(c) for c in data]


# ── Repository ────────────────────────────────────────────────────


class GitHubRepository(RepositoryProvider):
    def __init__(self, client: GitHubClient) -> None:
        self._client = client
        self._commits = CommitOrchestrator(client, client.log)

    async def get_content(
        self, repo: str, path: str, ref: str | None = None
    ) -> FileContent | DirectoryContent:
        data = await self._client.get_contents(repo, path, ref)
        if isinstance(data, list):
            return mapper.map_directory_content(path, data)
        kind = data.get("type")
        if kind != "file":
            # symlinks to paths outside the repository, submodules
            raise GitApiError(
                self._client.platform,
                400,
                f"'{path}' is a {kind}, not a file or directory",
                {k: data[k] for k in ("type", "target", "submodule_git_url") if k in data},
            )
        if data.get("encoding") == "none" or (not data.get("content") and data.get("size")):
            # over 1 MB the contents API leaves the body out
            data = await self._large_file(repo, data)
        return mapper.map_file_content(data)

    async def _large_file(self, repo: str, data: dict[str, Any]) -> dict[str, Any]:
        blob = await self._client.get_blob(repo, data["sha"])
        if blob.get("encoding") != "base64" or blob.get("content") is None:
            raise GitApiError(
                self._client.platform,
                413,
                f"Content of '{data['path']}' is not available ({data.get('size')} bytes)",
                {"sha": data["sha"], "encoding": blob.get("encoding")},
            )
        return {**data, "content": blob["content"], "encoding": "base64"}

    async def _resolve_tree_sha(self, repo: str, ref: str | None) -> str:
        if ref and _SHA_RE.match(ref):
            return ref
        if ref and ref != "HEAD":
            data = await self._client.get_ref(repo, f"heads/{ref}")
            return data["object"]["sha"]
        try:
            data = await self._client.get_ref(repo, "heads/main")
        except GitNotFoundError:
            data = await self._client.get_ref(repo, "heads/master")
        return data["object"]["sha"]

    async def get_tree(self, repo: str, params: TreeParams | None = None) -> list[TreeEntry]:
        """Whole tree fetched once, then filtered and paginated in memory.

        Cost is proportional to the size of the repository tree on every call.
        """
        params = params or TreeParams()
        sha = await self._resolve_tree_sha(repo, params.ref)
        prefix = params.path.strip("/") + "/" if params.path and params.path.strip("/") else ""
        data = await self._client.get_tree(repo, sha, recursive=bool(params.recursive or prefix))

        items = data.get("tree") or []
        if prefix:
            items = [i for i in items if i["path"].startswith(prefix)]
        if not params.recursive:
            items = [i for i in items if "/" not in i["path"][len(prefix) :]]

        page = params.page or 1
        per_page = params.per_page or DEFAULT_TREE_PAGE_SIZE
        start = (page - 1) * per_page
        return [mapper.map_tree_entry(i) for i in items[start : start + per_page]]

    async def commit(self, repo: str, params: CommitParams) -> Commit:
        return await self._commits.commit(repo, params)

    async def list_commits(
        self, repo: str, params: CommitListParams | None = None
    ) -> list[Commit]:
        params = params or CommitListParams()
        data = await self._client.list_commits(
            repo,
            {
                "sha": params.ref,
                "path": params.path,
                "since": params.since,
                "until": params.until,
                "author": params.author,
                "page": params.page,
                "per_page": params.per_page,
            },
        )
        if params.with_stats:
            # the list endpoint omits stats; each commit needs its own request
            data = [await self._client.get_commit(repo, c["sha"]) for c in data]
        return [mapper.map_commit(c) for c in data]

    async def create_branch(self, repo: str, params: BranchCreateParams) -> Branch:
        try:
            ref = await self._client.get_ref(repo, f"heads/{params.ref}")
            sha = ref["object"]["sha"]
        except GitNotFoundError:
            sha = params.ref
        await self._client.create_ref(repo, f"refs/heads/{params.name}", sha)
        return mapper.map_branch(await self._client.get_branch(repo, params.name))

    async def list_branches(
        self, repo: str, params: BranchListParams | None = None
    ) -> list[Branch]:
        params = params or BranchListParams()
        data = await self._client.list_branches(
            repo, {"page": params.page, "per_page": params.per_page}
        )
        if params.search:
            data = [b for b in data if params.search in b["name"]]
        info = await self._client.get_repository(repo)
        default = info.get("default_branch")
        return [mapper.map_branch(b, default) for b in data]

    async def search_code(self, repo: str, params: SearchCodeParams) -> list[SearchCodeResult]:
        owner, name = self._client.parse_repo(repo)
        data = await self._client.search_code(
            {
                "q": f"{params.query} repo:{owner}/{name}",
                "page": params.page,
                "per_page": params.per_page,
            }
        )
        ref = params.ref or "HEAD"
        return [mapper.map_search_result(i, ref) for i in data.get("items") or []]


# ── CI ────────────────────────────────────────────────────────────


class GitHubActions(CIProvider):
    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    async def get_pipeline(self, repo: str, pipeline_id: int) -> Pipeline:
        return mapper.map_pipeline(await self._client.get_workflow_run(repo, pipeline_id))

    async def list_pipelines(
        self, repo: str, params: PipelineListParams | None = None
    ) -> list[Pipeline]:
        params = params or PipelineListParams()
        data = await self._client.list_workflow_runs(
            repo,
            {
                "status": _RUN_STATUS.get(params.status) if params.status else None,
                "branch": params.ref,
                "head_sha": params.sha,
                "page": params.page,
                "per_page": params.per_page,
            },
        )
        runs = [mapper.map_pipeline(r) for r in data.get("workflow_runs") or []]
        return _with_status(runs, params.status)

    async def list_jobs(
        self, repo: str, pipeline_id: int, params: JobListParams | None = None
    ) -> list[Job]:
        params = params or JobListParams()
        data = await self._client.list_run_jobs(
            repo, pipeline_id, {"page": params.page, "per_page": params.per_page}
        )
        jobs = [mapper.map_job(j) for j in data.get("jobs") or []]
        return _with_status(jobs, params.status)

    async def get_job_log(self, repo: str, job_id: int) -> str:
        return await self._client.get_job_log(repo, job_id)


def _with_status(items: list, status: CIStatus | None) -> list:
    if not status:
        return items
    return [item for item in items if item.status == status]


class GitHubUsers(UserProvider):
    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    async def get_me(self) -> User:
        return mapper.map_user(await self._client.get_authenticated_user())


class GitHubProvider(GitProvider):
    def __init__(self, client: GitHubClient) -> None:
        self.client = client
        self.info = ProviderInfo(
            type="github", name="GitHub", version="2022-11-28", base_url=client.base_url
        )
        self.issues = GitHubIssues(client)
        self.pull_requests = GitHubPullRequests(client)
        self.repository = GitHubRepository(client)
        self.ci = GitHubActions(client)
        self.users = GitHubUsers(client)

    async def aclose(self) -> None:
        await self.client.close()
