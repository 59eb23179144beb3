"""GitLab implementation of the capability interface."""

from __future__ import annotations

from typing import Any

from ...exceptions import GitApiError, GitNotFoundError
from ...models.common import Comment, CommentCreateParams, CommentListParams, ProviderInfo, User
from ...models.issues import Issue, IssueCreateParams, IssueListParams, IssueUpdateParams
from ...models.pipelines import Job, JobListParams, Pipeline, PipelineListParams
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
from .client import GitLabClient

_ORDER_BY = {"created": "created_at", "updated": "updated_at"}


def _state_param(state: str | None) -> str | None:
    return "opened" if state == "open" else state


def _join(values: list[str] | None) -> str | None:
    return ",".join(values) if values is not None else None


def _comment_query(params: CommentListParams | None) -> dict[str, Any]:
    if params is None:
        return {}
    return {"sort": params.sort, "page": params.page, "per_page": params.per_page}


# ── Issues ────────────────────────────────────────────────────────


class GitLabIssues(IssueProvider):
    def __init__(self, client: GitLabClient) -> None:
        self._client = client

    async def get(self, repo: str, issue_number: int) -> Issue:
        return mapper.map_issue(await self._client.get_issue(repo, issue_number))

    async def list(self, repo: str, params: IssueListParams | None = None) -> list[Issue]:
        query: dict[str, Any] = {}
        if params is not None:
            query = {
                "state": _state_param(params.state),
                "labels": _join(params.labels),
                "search": params.search,
                "assignee_id": params.assignee_id,
                "author_id": params.author_id,
                "order_by": _ORDER_BY.get(params.sort or ""),
                "sort": params.direction,
                "page": params.page,
                "per_page": params.per_page,
            }
        data = await self._client.list_issues(repo, query)
        return [mapper.map_issue(i) for i in data]

    async def create(self, repo: str, params: IssueCreateParams) -> Issue:
        body: dict[str, Any] = {"title": params.title}
        if params.description is not None:
            body["description"] = params.description
        if params.labels is not None:
            body["labels"] = _join(params.labels)
        if params.assignee_ids is not None:
            body["assignee_ids"] = params.assignee_ids
        return mapper.map_issue(await self._client.create_issue(repo, body))

    async def update(self, repo: str, issue_number: int, params: IssueUpdateParams) -> Issue:
        body: dict[str, Any] = {}
        if params.title is not None:
            body["title"] = params.title
        if params.description is not None:
            body["description"] = params.description
        if params.labels is not None:
            body["labels"] = _join(params.labels)
        if params.assignee_ids is not None:
            body["assignee_ids"] = params.assignee_ids
        if params.state is not None:
            body["state_event"] = "reopen" if params.state == "open" else "close"
        return mapper.map_issue(await self._client.update_issue(repo, issue_number, body))

    async def create_comment(
        self, repo: str, issue_number: int, params: CommentCreateParams
    ) -> Comment:
        data = await self._client.add_note(repo, "issues", issue_number, params.body)
        return mapper.map_comment(data)

    async def list_comments(
        self, repo: str, issue_number: int, params: CommentListParams | None = None
    ) -> list[Comment]:
        data = await self._client.list_notes(repo, "issues", issue_number, _comment_query(params))
        return [mapper.map_comment(n) for n in data]


# ── Merge Requests ────────────────────────────────────────────────


class GitLabMergeRequests(PullRequestProvider):
    def __init__(self, client: GitLabClient) -> None:
        self._client = client

    async def get(self, repo: str, pr_number: int) -> PullRequest:
        return mapper.map_pull_request(await self._client.get_merge_request(repo, pr_number))

    async def list(
        self, repo: str, params: PullRequestListParams | None = None
    ) -> list[PullRequest]:
        query: dict[str, Any] = {}
        if params is not None:
            query = {
                "state": _state_param(params.state),
                "source_branch": params.source_branch,
                "target_branch": params.target_branch,
                "labels": _join(params.labels),
                "search": params.search,
                "order_by": _ORDER_BY.get(params.sort or ""),
                "sort": params.direction,
                "page": params.page,
                "per_page": params.per_page,
            }
        data = await self._client.list_merge_requests(repo, query)
        return [mapper.map_pull_request(mr) for mr in data]

    async def create(self, repo: str, params: PullRequestCreateParams) -> PullRequest:
        body: dict[str, Any] = {
            "source_branch": params.source_branch,
            "target_branch": params.target_branch,
            "title": params.title,
        }
        if params.description is not None:
            body["description"] = params.description
        if params.assignee_ids is not None:
            body["assignee_ids"] = params.assignee_ids
        if params.reviewer_ids is not None:
            body["reviewer_ids"] = params.reviewer_ids
        if params.labels is not None:
            body["labels"] = _join(params.labels)
        if params.draft is not None:
            body["draft"] = params.draft
        return mapper.map_pull_request(await self._client.create_merge_request(repo, body))

    async def get_diffs(self, repo: str, pr_number: int) -> list[PullRequestDiff]:
        data = await self._client.get_merge_request_changes(repo, pr_number)
        return [mapper.map_pull_request_diff(d) for d in data.get("changes") or []]

    async def merge(
        self, repo: str, pr_number: int, params: PullRequestMergeParams | None = None
    ) -> PullRequest:
        body: dict[str, Any] = {}
        if params is not None:
            if params.commit_message is not None:
                body["merge_commit_message"] = params.commit_message
                if params.squash:
                    body["squash_commit_message"] = params.commit_message
            if params.squash is not None:
                body["squash"] = params.squash
            if params.delete_branch is not None:
                body["should_remove_source_branch"] = params.delete_branch
        data = await self._client.merge_merge_request(repo, pr_number, body)
        return mapper.map_pull_request(data)

    async def create_comment(
        self, repo: str, pr_number: int, params: CommentCreateParams
    ) -> Comment:
        data = await self._client.add_note(repo, "merge_requests", pr_number, params.body)
        return mapper.map_comment(data)

    async def list_comments(
        self, repo: str, pr_number: int, params: CommentListParams | None = None
    ) -> list[Comment]:
        data = await self._client.list_notes(
            repo, "merge_requests", pr_number, _comment_query(params)
        )
        return [mapper.map_comment(n) for n in data]


# ── Repository ────────────────────────────────────────────────────


class GitLabRepository(RepositoryProvider):
    def __init__(self, client: GitLabClient) -> None:
        self._client = client

    async def get_content(
        self, repo: str, path: str, ref: str | None = None
    ) -> FileContent | DirectoryContent:
        try:
            data = await self._client.get_file(repo, path, ref or "HEAD")
        except GitNotFoundError:
            # not a file: list it as a directory, which 404s in turn if absent
            items = await self._client.list_repository_tree(repo, {"path": path, "ref": ref})
            return mapper.map_directory_content(path, items)
        return mapper.map_file_content(data)

    async def get_tree(self, repo: str, params: TreeParams | None = None) -> list[TreeEntry]:
        query = params.to_dict() if params is not None else {}
        data = await self._client.list_repository_tree(repo, query)
        return [mapper.map_tree_entry(i) for i in data]

    async def commit(self, repo: str, params: CommitParams) -> Commit:
        if not params.actions:
            raise GitApiError(self._client.platform, 400, "A commit needs at least one action")
        body: dict[str, Any] = {
            "branch": params.branch,
            "commit_message": params.message,
            "actions": [
                {
                    "action": action.action,
                    "file_path": action.path,
                    **({"content": action.content} if action.content is not None else {}),
                    **(
                        {"previous_path": action.previous_path}
                        if action.previous_path is not None
                        else {}
                    ),
                }
                for action in params.actions
            ],
        }
        if params.base_branch:
            body["start_branch"] = params.base_branch
        if params.author_name:
            body["author_name"] = params.author_name
        if params.author_email:
            body["author_email"] = params.author_email
        return mapper.map_commit(await self._client.create_commit(repo, body))

    async def list_commits(
        self, repo: str, params: CommitListParams | None = None
    ) -> list[Commit]:
        query: dict[str, Any] = {}
        if params is not None:
            query = {
                "ref_name": params.ref,
                "path": params.path,
                "since": params.since,
                "until": params.until,
                "author": params.author,
                "with_stats": params.with_stats,
                "page": params.page,
                "per_page": params.per_page,
            }
        data = await self._client.list_commits(repo, query)
        return [mapper.map_commit(c) for c in data]

    async def create_branch(self, repo: str, params: BranchCreateParams) -> Branch:
        data = await self._client.create_branch(repo, params.name, params.ref)
        return mapper.map_branch(data)

    async def list_branches(
        self, repo: str, params: BranchListParams | None = None
    ) -> list[Branch]:
        query = params.to_dict() if params is not None else {}
        data = await self._client.list_branches(repo, query)
        return [mapper.map_branch(b) for b in data]

    async def search_code(self, repo: str, params: SearchCodeParams) -> list[SearchCodeResult]:
        data = await self._client.search_blobs(
            repo,
            {
                "search": params.query,
                "ref": params.ref,
                "page": params.page,
                "per_page": params.per_page,
            },
        )
        return [mapper.map_search_result(r) for r in data]


# ── CI ────────────────────────────────────────────────────────────


class GitLabCI(CIProvider):
    def __init__(self, client: GitLabClient) -> None:
        self._client = client

    async def get_pipeline(self, repo: str, pipeline_id: int) -> Pipeline:
        return mapper.map_pipeline(await self._client.get_pipeline(repo, pipeline_id))

    async def list_pipelines(
        self, repo: str, params: PipelineListParams | None = None
    ) -> list[Pipeline]:
        query = params.to_dict() if params is not None else {}
        data = await self._client.list_pipelines(repo, query)
        return [mapper.map_pipeline(p) for p in data]

    async def list_jobs(
        self, repo: str, pipeline_id: int, params: JobListParams | None = None
    ) -> list[Job]:
        query: dict[str, Any] = {}
        if params is not None:
            query = {"scope": params.status, "page": params.page, "per_page": params.per_page}
        data = await self._client.list_pipeline_jobs(repo, pipeline_id, query)
        jobs = [mapper.map_job(j) for j in data]
        if params is not None and params.status:
            # scope filters on GitLab's raw status; canonical status can differ (e.g. manual)
            jobs = [j for j in jobs if j.status == params.status]
        return jobs

    async def get_job_log(self, repo: str, job_id: int) -> str:
        return await self._client.get_job_log(repo, job_id)


class GitLabUsers(UserProvider):
    def __init__(self, client: GitLabClient) -> None:
        self._client = client

    async def get_me(self) -> User:
        return mapper.map_user(await self._client.get_current_user())


class GitLabProvider(GitProvider):
    def __init__(self, client: GitLabClient) -> None:
        self.client = client
        self.info = ProviderInfo(
            type="gitlab", name="GitLab", version="1.0.0", base_url=client.base_url
        )
        self.issues = GitLabIssues(client)
        self.pull_requests = GitLabMergeRequests(client)
        self.repository = GitLabRepository(client)
        self.ci = GitLabCI(client)
        self.users = GitLabUsers(client)

    async def aclose(self) -> None:
        await self.client.close()
