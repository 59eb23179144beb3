"""Git MCP server — all tool registrations.

Every tool talks to the configured :class:`GitProvider`, so the same tool
set works against GitLab and GitHub.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Annotated, Any, Literal

from fastmcp import Context, FastMCP
from pydantic import BaseModel, Field, ValidationError

from ..config import GitConfig
from ..exceptions import (
    CommitStepError,
    GitApiError,
    GitAuthError,
    GitNotFoundError,
    GitWriteDisabledError,
)
from ..models.common import CommentCreateParams, CommentListParams
from ..models.issues import IssueCreateParams, IssueListParams, IssueUpdateParams
from ..models.pipelines import CIStatus, JobListParams, PipelineListParams
from ..models.pull_requests import (
    PullRequestCreateParams,
    PullRequestListParams,
    PullRequestMergeParams,
)
from ..models.repositories import (
    BranchCreateParams,
    BranchListParams,
    CommitListParams,
    CommitParams,
    FileAction,
    SearchCodeParams,
    TreeParams,
)
from ..providers.factory import create_provider
from ..providers.interface import GitProvider
from ._helpers import _parse_repo

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    config = GitConfig.from_env()
    config.validate()
    provider = create_provider(config)
    try:
        yield {"provider": provider, "config": config}
    finally:
        await provider.aclose()


mcp = FastMCP(
    name="Git MCP Server",
    instructions=(
        "Provides tools for GitLab and GitHub: issues, pull/merge requests,"
        " repository files and commits, branches, code search, and CI pipelines."
    ),
    lifespan=lifespan,
)


async def apply_tool_filter(server: FastMCP, pattern: str) -> list[str]:
    """Remove every tool whose name does not match *pattern*. Returns the removed names."""
    if not pattern:
        return []
    regex = re.compile(pattern)
    removed = [name for name in await server.get_tools() if not regex.search(name)]
    for name in removed:
        server.remove_tool(name)
    logger.info("Tool filter %r removed %d tools", pattern, len(removed))
    return removed


def _get_provider(ctx: Context) -> GitProvider:
    return ctx.request_context.lifespan_context["provider"]


def _get_config(ctx: Context) -> GitConfig:
    return ctx.request_context.lifespan_context["config"]


def _check_write(ctx: Context) -> None:
    if _get_config(ctx).read_only:
        raise GitWriteDisabledError


def _ok(data: Any) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return json.dumps(data, indent=2, ensure_ascii=False)


def _items(items: Sequence[BaseModel]) -> str:
    """Wrap a list response with its count."""
    return _ok({"items": [i.model_dump(mode="json") for i in items], "count": len(items)})


def _err(error: Exception) -> str:
    detail: dict[str, Any] = {"error": str(error)}

    if isinstance(error, GitApiError):
        detail.update(
            code=error.code,
            status_code=error.status_code,
            retryable=error.retryable,
            details=error.details,
        )
    if isinstance(error, CommitStepError):
        detail["step"] = error.step
        detail["hint"] = (
            f"Commit failed at step '{error.step}'. The branch was not moved;"
            " objects created by earlier steps are left unreferenced."
        )
    elif isinstance(error, GitNotFoundError):
        detail["hint"] = "Verify the repository and resource identifiers. Use get_me to check access."
    elif isinstance(error, GitAuthError):
        detail["hint"] = "Check GIT_TOKEN permissions and GIT_AUTH_TYPE for this provider."
    elif isinstance(error, GitWriteDisabledError):
        detail["code"] = "WRITE_DISABLED"
        detail["hint"] = "Server is in read-only mode. Set GIT_READ_ONLY=false to enable writes."
    elif isinstance(error, ValidationError):
        detail["code"] = "VALIDATION_ERROR"
        detail["hint"] = "Check required fields and formats."
    elif isinstance(error, GitApiError):
        if error.status_code == 409:
            detail["hint"] = "Conflict — resource may already exist or be locked."
        elif error.status_code == 422:
            detail["hint"] = "Validation failed — check required fields and formats."
        elif error.status_code == 429:
            detail["hint"] = "Rate limited. Wait before retrying."
    logger.debug("Tool error: %s", detail["error"])
    return json.dumps(detail, indent=2, ensure_ascii=False, default=str)


Repo = Annotated[
    str,
    Field(
        description=(
            "GitLab project ID or path (e.g. 'my-group/my-project'), GitHub 'owner/repo',"
            " or a web URL of either"
        ),
        min_length=1,
    ),
]
Page = Annotated[int | None, Field(description="Page number (1-based)", ge=1)]
PerPage = Annotated[int | None, Field(description="Items per page (max 100)", ge=1, le=100)]
Labels = Annotated[list[str] | None, Field(description="Label names")]
AssigneeIds = Annotated[list[int] | None, Field(description="Assignee user IDs")]


# ════════════════════════════════════════════════════════════════════
# Issues
# ════════════════════════════════════════════════════════════════════


@mcp.tool(
    tags={"issues", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_issue(
    ctx: Context,
    repo: Repo,
    issue_number: Annotated[int, Field(description="Issue number (GitLab iid)", ge=1)],
) -> str:
    """Get a single issue."""
    try:
        return _ok(await _get_provider(ctx).issues.get(_parse_repo(repo), issue_number))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"issues", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def list_issues(
    ctx: Context,
    repo: Repo,
    state: Annotated[
        Literal["open", "closed", "all"] | None, Field(description="Filter by state")
    ] = None,
    labels: Labels = None,
    search: Annotated[str | None, Field(description="Search in title and description")] = None,
    assignee_id: Annotated[int | None, Field(description="Filter by assignee ID")] = None,
    author_id: Annotated[int | None, Field(description="Filter by author ID")] = None,
    sort: Annotated[
        Literal["created", "updated"] | None, Field(description="Sort field")
    ] = None,
    direction: Annotated[Literal["asc", "desc"] | None, Field(description="Sort order")] = None,
    page: Page = None,
    per_page: PerPage = None,
) -> str:
    """List issues in a repository. Pull requests are never included."""
    try:
        params = IssueListParams(
            state=state,
            labels=labels,
            search=search,
            assignee_id=assignee_id,
            author_id=author_id,
            sort=sort,
            direction=direction,
            page=page,
            per_page=per_page,
        )
        return _items(await _get_provider(ctx).issues.list(_parse_repo(repo), params))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"issues", "write"},
    annotations={"readOnlyHint": False, "openWorldHint": True},
)
async def create_issue(
    ctx: Context,
    repo: Repo,
    title: Annotated[str, Field(description="Issue title", min_length=1)],
    description: Annotated[str | None, Field(description="Issue body (Markdown)")] = None,
    labels: Labels = None,
    assignee_ids: AssigneeIds = None,
) -> str:
    """Create an issue."""
    try:
        _check_write(ctx)
        params = IssueCreateParams(
            title=title, description=description, labels=labels, assignee_ids=assignee_ids
        )
        return _ok(await _get_provider(ctx).issues.create(_parse_repo(repo), params))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"issues", "write"},
    annotations={"readOnlyHint": False, "idempotentHint": True, "openWorldHint": True},
)
async def update_issue(
    ctx: Context,
    repo: Repo,
    issue_number: Annotated[int, Field(description="Issue number (GitLab iid)", ge=1)],
    title: Annotated[str | None, Field(description="New title")] = None,
    description: Annotated[str | None, Field(description="New body")] = None,
    labels: Labels = None,
    assignee_ids: AssigneeIds = None,
    state: Annotated[
        Literal["open", "closed"] | None, Field(description="Close or reopen the issue")
    ] = None,
) -> str:
    """Update an issue. Only the given fields change."""
    try:
        _check_write(ctx)
        params = IssueUpdateParams(
            title=title,
            description=description,
            labels=labels,
            assignee_ids=assignee_ids,
            state=state,
        )
        provider = _get_provider(ctx)
        return _ok(await provider.issues.update(_parse_repo(repo), issue_number, params))
    except Exception as e:
        return _err(e)


# ════════════════════════════════════════════════════════════════════
# Pull Requests
# ════════════════════════════════════════════════════════════════════


@mcp.tool(
    tags={"pull_requests", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_pull_request(
    ctx: Context,
    repo: Repo,
    pr_number: Annotated[int, Field(description="Pull request number (GitLab MR iid)", ge=1)],
) -> str:
    """Get a single pull request (merge request on GitLab)."""
    try:
        return _ok(await _get_provider(ctx).pull_requests.get(_parse_repo(repo), pr_number))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"pull_requests", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def list_pull_requests(
    ctx: Context,
    repo: Repo,
    state: Annotated[
        Literal["open", "closed", "merged", "all"] | None, Field(description="Filter by state")
    ] = None,
    source_branch: Annotated[str | None, Field(description="Filter by source branch")] = None,
    target_branch: Annotated[str | None, Field(description="Filter by target branch")] = None,
    labels: Labels = None,
    search: Annotated[str | None, Field(description="Search in title")] = None,
    sort: Annotated[
        Literal["created", "updated"] | None, Field(description="Sort field")
    ] = None,
    direction: Annotated[Literal["asc", "desc"] | None, Field(description="Sort order")] = None,
    page: Page = None,
    per_page: PerPage = None,
) -> str:
    """List pull requests (merge requests on GitLab)."""
    try:
        params = PullRequestListParams(
            state=state,
            source_branch=source_branch,
            target_branch=target_branch,
            labels=labels,
            search=search,
            sort=sort,
            direction=direction,
            page=page,
            per_page=per_page,
        )
        return _items(await _get_provider(ctx).pull_requests.list(_parse_repo(repo), params))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"pull_requests", "write"},
    annotations={"readOnlyHint": False, "openWorldHint": True},
)
async def create_pull_request(
    ctx: Context,
    repo: Repo,
    source_branch: Annotated[str, Field(description="Branch with the changes", min_length=1)],
    target_branch: Annotated[str, Field(description="Branch to merge into", min_length=1)],
    title: Annotated[str, Field(description="Title", min_length=1)],
    description: Annotated[str | None, Field(description="Description (Markdown)")] = None,
    assignee_ids: AssigneeIds = None,
    reviewer_ids: Annotated[list[int] | None, Field(description="Reviewer user IDs")] = None,
    labels: Labels = None,
    draft: Annotated[bool | None, Field(description="Open as draft")] = None,
) -> str:
    """Create a pull request (merge request on GitLab)."""
    try:
        _check_write(ctx)
        params = PullRequestCreateParams(
            source_branch=source_branch,
            target_branch=target_branch,
            title=title,
            description=description,
            assignee_ids=assignee_ids,
            reviewer_ids=reviewer_ids,
            labels=labels,
            draft=draft,
        )
        return _ok(await _get_provider(ctx).pull_requests.create(_parse_repo(repo), params))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"pull_requests", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_pull_request_diffs(
    ctx: Context,
    repo: Repo,
    pr_number: Annotated[int, Field(description="Pull request number (GitLab MR iid)", ge=1)],
) -> str:
    """Get the per-file diffs of a pull request."""
    try:
        provider = _get_provider(ctx)
        return _items(await provider.pull_requests.get_diffs(_parse_repo(repo), pr_number))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"pull_requests", "write"},
    annotations={"readOnlyHint": False, "destructiveHint": True, "openWorldHint": True},
)
async def merge_pull_request(
    ctx: Context,
    repo: Repo,
    pr_number: Annotated[int, Field(description="Pull request number (GitLab MR iid)", ge=1)],
    commit_message: Annotated[str | None, Field(description="Merge commit message")] = None,
    squash: Annotated[bool | None, Field(description="Squash commits on merge")] = None,
    delete_branch: Annotated[
        bool | None, Field(description="Delete the source branch after merge")
    ] = None,
) -> str:
    """Merge a pull request."""
    try:
        _check_write(ctx)
        params = PullRequestMergeParams(
            commit_message=commit_message, squash=squash, delete_branch=delete_branch
        )
        provider = _get_provider(ctx)
        return _ok(await provider.pull_requests.merge(_parse_repo(repo), pr_number, params))
    except Exception as e:
        return _err(e)


# ════════════════════════════════════════════════════════════════════
# Comments
# ════════════════════════════════════════════════════════════════════

CommentTarget = Annotated[
    Literal["issue", "pull_request"],
    Field(description="Whether number refers to an issue or a pull request"),
]


@mcp.tool(
    tags={"comments", "write"},
    annotations={"readOnlyHint": False, "openWorldHint": True},
)
async def create_comment(
    ctx: Context,
    repo: Repo,
    type: CommentTarget,
    number: Annotated[int, Field(description="Issue or pull request number", ge=1)],
    body: Annotated[str, Field(description="Comment text (Markdown)", min_length=1)],
) -> str:
    """Add a comment to an issue or pull request."""
    try:
        _check_write(ctx)
        provider = _get_provider(ctx)
        target = provider.issues if type == "issue" else provider.pull_requests
        params = CommentCreateParams(body=body)
        return _ok(await target.create_comment(_parse_repo(repo), number, params))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"comments", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def list_comments(
    ctx: Context,
    repo: Repo,
    type: CommentTarget,
    number: Annotated[int, Field(description="Issue or pull request number", ge=1)],
    sort: Annotated[Literal["asc", "desc"] | None, Field(description="Order by creation")] = None,
    page: Page = None,
    per_page: PerPage = None,
) -> str:
    """List comments on an issue or pull request."""
    try:
        provider = _get_provider(ctx)
        target = provider.issues if type == "issue" else provider.pull_requests
        params = CommentListParams(sort=sort, page=page, per_page=per_page)
        return _items(await target.list_comments(_parse_repo(repo), number, params))
    except Exception as e:
        return _err(e)


# ════════════════════════════════════════════════════════════════════
# Repository
# ════════════════════════════════════════════════════════════════════


@mcp.tool(
    tags={"repository", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_file_contents(
    ctx: Context,
    repo: Repo,
    path: Annotated[str, Field(description="File or directory path", min_length=1)],
    ref: Annotated[str | None, Field(description="Branch, tag, or commit SHA")] = None,
) -> str:
    """Get a file's decoded contents, or a directory listing."""
    try:
        provider = _get_provider(ctx)
        return _ok(await provider.repository.get_content(_parse_repo(repo), path, ref))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"repository", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_repository_tree(
    ctx: Context,
    repo: Repo,
    path: Annotated[str | None, Field(description="Directory to list (default: root)")] = None,
    ref: Annotated[str | None, Field(description="Branch, tag, or commit SHA")] = None,
    recursive: Annotated[bool | None, Field(description="Include nested entries")] = None,
    page: Page = None,
    per_page: PerPage = None,
) -> str:
    """List the files and directories of a repository tree."""
    try:
        params = TreeParams(path=path, ref=ref, recursive=recursive, page=page, per_page=per_page)
        return _items(await _get_provider(ctx).repository.get_tree(_parse_repo(repo), params))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"repository", "write"},
    annotations={"readOnlyHint": False, "openWorldHint": True},
)
async def push_files(
    ctx: Context,
    repo: Repo,
    branch: Annotated[str, Field(description="Branch to commit to", min_length=1)],
    message: Annotated[str, Field(description="Commit message", min_length=1)],
    actions: Annotated[
        list[FileAction],
        Field(description="Ordered file actions: create, update, delete, or move"),
    ],
    base_branch: Annotated[
        str | None, Field(description="Branch to start from when 'branch' does not exist yet")
    ] = None,
    author_name: Annotated[str | None, Field(description="Commit author name")] = None,
    author_email: Annotated[str | None, Field(description="Commit author email")] = None,
) -> str:
    """Commit one or more file changes to a branch as a single commit."""
    try:
        _check_write(ctx)
        params = CommitParams(
            branch=branch,
            message=message,
            actions=actions,
            base_branch=base_branch,
            author_name=author_name,
            author_email=author_email,
        )
        return _ok(await _get_provider(ctx).repository.commit(_parse_repo(repo), params))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"repository", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def list_commits(
    ctx: Context,
    repo: Repo,
    ref: Annotated[str | None, Field(description="Branch, tag, or commit SHA")] = None,
    path: Annotated[str | None, Field(description="Only commits touching this path")] = None,
    since: Annotated[str | None, Field(description="ISO 8601 lower bound")] = None,
    until: Annotated[str | None, Field(description="ISO 8601 upper bound")] = None,
    author: Annotated[str | None, Field(description="Author name, email, or login")] = None,
    with_stats: Annotated[bool | None, Field(description="Include line stats")] = None,
    page: Page = None,
    per_page: PerPage = None,
) -> str:
    """List commits."""
    try:
        params = CommitListParams(
            ref=ref,
            path=path,
            since=since,
            until=until,
            author=author,
            with_stats=with_stats,
            page=page,
            per_page=per_page,
        )
        provider = _get_provider(ctx)
        return _items(await provider.repository.list_commits(_parse_repo(repo), params))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"repository", "write"},
    annotations={"readOnlyHint": False, "openWorldHint": True},
)
async def create_branch(
    ctx: Context,
    repo: Repo,
    name: Annotated[str, Field(description="New branch name", min_length=1)],
    ref: Annotated[str, Field(description="Source branch or commit SHA", min_length=1)],
) -> str:
    """Create a branch."""
    try:
        _check_write(ctx)
        params = BranchCreateParams(name=name, ref=ref)
        return _ok(await _get_provider(ctx).repository.create_branch(_parse_repo(repo), params))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"repository", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def list_branches(
    ctx: Context,
    repo: Repo,
    search: Annotated[str | None, Field(description="Substring of the branch name")] = None,
    page: Page = None,
    per_page: PerPage = None,
) -> str:
    """List branches."""
    try:
        params = BranchListParams(search=search, page=page, per_page=per_page)
        provider = _get_provider(ctx)
        return _items(await provider.repository.list_branches(_parse_repo(repo), params))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"repository", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def search_code(
    ctx: Context,
    repo: Repo,
    query: Annotated[str, Field(description="Search terms", min_length=1)],
    ref: Annotated[str | None, Field(description="Branch or tag to search")] = None,
    page: Page = None,
    per_page: PerPage = None,
) -> str:
    """Search file contents in a repository."""
    try:
        params = SearchCodeParams(query=query, ref=ref, page=page, per_page=per_page)
        provider = _get_provider(ctx)
        return _items(await provider.repository.search_code(_parse_repo(repo), params))
    except Exception as e:
        return _err(e)


# ════════════════════════════════════════════════════════════════════
# CI
# ════════════════════════════════════════════════════════════════════

StatusFilter = Annotated[CIStatus | None, Field(description="Filter by normalized status")]


@mcp.tool(
    tags={"ci", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_pipeline(
    ctx: Context,
    repo: Repo,
    pipeline_id: Annotated[int, Field(description="Pipeline ID (GitHub workflow run ID)", ge=1)],
) -> str:
    """Get a pipeline (workflow run on GitHub)."""
    try:
        return _ok(await _get_provider(ctx).ci.get_pipeline(_parse_repo(repo), pipeline_id))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"ci", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def list_pipelines(
    ctx: Context,
    repo: Repo,
    status: StatusFilter = None,
    ref: Annotated[str | None, Field(description="Filter by branch or tag")] = None,
    sha: Annotated[str | None, Field(description="Filter by commit SHA")] = None,
    sort: Annotated[Literal["asc", "desc"] | None, Field(description="Sort order")] = None,
    page: Page = None,
    per_page: PerPage = None,
) -> str:
    """List pipelines (workflow runs on GitHub)."""
    try:
        params = PipelineListParams(
            status=status, ref=ref, sha=sha, sort=sort, page=page, per_page=per_page
        )
        return _items(await _get_provider(ctx).ci.list_pipelines(_parse_repo(repo), params))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"ci", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def list_pipeline_jobs(
    ctx: Context,
    repo: Repo,
    pipeline_id: Annotated[int, Field(description="Pipeline ID (GitHub workflow run ID)", ge=1)],
    status: StatusFilter = None,
    page: Page = None,
    per_page: PerPage = None,
) -> str:
    """List the jobs of a pipeline."""
    try:
        params = JobListParams(status=status, page=page, per_page=per_page)
        provider = _get_provider(ctx)
        return _items(await provider.ci.list_jobs(_parse_repo(repo), pipeline_id, params))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"ci", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_job_log(
    ctx: Context,
    repo: Repo,
    job_id: Annotated[int, Field(description="Job ID", ge=1)],
    tail: Annotated[
        int | None, Field(description="Only return the last N lines", ge=1)
    ] = None,
) -> str:
    """Get the raw log output of a job."""
    try:
        log = await _get_provider(ctx).ci.get_job_log(_parse_repo(repo), job_id)
        if tail is not None:
            log = "\n".join(log.splitlines()[-tail:])
        return _ok({"job_id": job_id, "log": log})
    except Exception as e:
        return _err(e)


# ════════════════════════════════════════════════════════════════════
# Users
# ════════════════════════════════════════════════════════════════════


@mcp.tool(
    tags={"users", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_me(ctx: Context) -> str:
    """Get the authenticated user and the provider in use."""
    try:
        provider = _get_provider(ctx)
        me = await provider.users.get_me()
        return _ok({"user": me.to_dict(), "provider": provider.info.to_dict()})
    except Exception as e:
        return _err(e)
