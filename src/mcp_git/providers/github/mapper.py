"""GitHub mapper: raw GitHub API payloads to canonical models."""

from __future__ import annotations

import base64
import posixpath
from typing import Any

from ...models.common import Comment, User
from ...models.issues import Issue
from ...models.pipelines import Job, Pipeline
from ...models.pull_requests import PullRequest, PullRequestDiff
from ...models.repositories import (
    Branch,
    Commit,
    CommitStats,
    DirectoryContent,
    FileContent,
    SearchCodeResult,
    TreeEntry,
)
from ..normalize import (
    job_duration,
    label_names,
    map_issue_state,
    map_pull_request_state,
    map_workflow_status,
)


def map_user(user: dict[str, Any] | None) -> User:
    user = user or {}
    return User(
        id=user.get("id", 0),
        username=user.get("login", ""),
        name=user.get("name") or user.get("login", ""),
        avatar_url=user.get("avatar_url"),
        web_url=user.get("html_url"),
    )


def map_issue(issue: dict[str, Any]) -> Issue:
    return Issue(
        id=issue["id"],
        iid=issue["number"],
        title=issue.get("title", ""),
        description=issue.get("body"),
        state=map_issue_state(issue.get("state")),
        author=map_user(issue.get("user")),
        assignees=[map_user(u) for u in issue.get("assignees") or []],
        labels=label_names(issue.get("labels")),
        created_at=issue.get("created_at", ""),
        updated_at=issue.get("updated_at", ""),
        closed_at=issue.get("closed_at"),
        web_url=issue.get("html_url", ""),
    )


def map_pull_request(pr: dict[str, Any]) -> PullRequest:
    return PullRequest(
        id=pr["id"],
        iid=pr["number"],
        title=pr.get("title", ""),
        description=pr.get("body"),
        state=map_pull_request_state(
            pr.get("state"), merged=pr.get("merged"), merged_at=pr.get("merged_at")
        ),
        source_branch=(pr.get("head") or {}).get("ref", ""),
        target_branch=(pr.get("base") or {}).get("ref", ""),
        author=map_user(pr.get("user")),
        assignees=[map_user(u) for u in pr.get("assignees") or []],
        reviewers=[map_user(u) for u in pr.get("requested_reviewers") or []],
        labels=label_names(pr.get("labels")),
        draft=bool(pr.get("draft")),
        mergeable=bool(pr.get("mergeable")),
        created_at=pr.get("created_at", ""),
        updated_at=pr.get("updated_at", ""),
        merged_at=pr.get("merged_at"),
        web_url=pr.get("html_url", ""),
    )


def map_pull_request_diff(file: dict[str, Any]) -> PullRequestDiff:
    status = file.get("status")
    return PullRequestDiff(
        old_path=file.get("previous_filename") or file.get("filename", ""),
        new_path=file.get("filename", ""),
        new_file=status == "added",
        renamed_file=status == "renamed",
        deleted_file=status == "removed",
        diff=file.get("patch") or "",
    )


def map_file_content(file: dict[str, Any]) -> FileContent:
    raw = file.get("content") or ""
    if file.get("encoding") == "base64":
        text = base64.b64decode(raw).decode("utf-8", errors="replace")
    else:
        text = raw
    return FileContent(
        path=file["path"],
        name=file.get("name", ""),
        size=file.get("size", 0),
        content=text,
        sha=file.get("sha", ""),
    )


def map_content_entry(item: dict[str, Any]) -> TreeEntry:
    """Entry of a contents API directory listing."""
    return TreeEntry(
        name=item["name"],
        path=item["path"],
        type="directory" if item.get("type") == "dir" else "file",
        mode="040000" if item.get("type") == "dir" else "100644",
        sha=item.get("sha"),
    )


def map_directory_content(path: str, items: list[dict[str, Any]]) -> DirectoryContent:
    return DirectoryContent(path=path, entries=[map_content_entry(i) for i in items])


def map_tree_entry(item: dict[str, Any]) -> TreeEntry:
    """Entry of a git tree; ``path`` is relative to the repository root."""
    return TreeEntry(
        name=posixpath.basename(item["path"]),
        path=item["path"],
        type="directory" if item.get("type") == "tree" else "file",
        mode=item.get("mode", ""),
        sha=item.get("sha"),
    )


def map_commit(commit: dict[str, Any]) -> Commit:
    """A commit from the REST commits API (``commit`` nested inside)."""
    inner = commit.get("commit") or {}
    author = inner.get("author") or {}
    stats = commit.get("stats")
    return Commit(
        sha=commit["sha"],
        short_sha=commit["sha"][:7],
        message=inner.get("message", ""),
        author_name=author.get("name", ""),
        author_email=author.get("email", ""),
        created_at=author.get("date", ""),
        web_url=commit.get("html_url"),
        stats=CommitStats(**stats) if stats else None,
    )


def map_git_commit(commit: dict[str, Any]) -> Commit:
    """A commit from the git data or contents API (flat author)."""
    author = commit.get("author") or {}
    return Commit(
        sha=commit["sha"],
        short_sha=commit["sha"][:7],
        message=commit.get("message", ""),
        author_name=author.get("name", ""),
        author_email=author.get("email", ""),
        created_at=author.get("date", ""),
        web_url=commit.get("html_url"),
    )


def map_branch(branch: dict[str, Any], default_branch: str | None = None) -> Branch:
    return Branch(
        name=branch["name"],
        sha=(branch.get("commit") or {}).get("sha", ""),
        protected=branch.get("protected", False),
        default=default_branch is not None and branch["name"] == default_branch,
        web_url=(branch.get("_links") or {}).get("html"),
    )


def map_search_result(item: dict[str, Any], ref: str) -> SearchCodeResult:
    lines = []
    for match in item.get("text_matches") or []:
        lines.extend(line for line in (match.get("fragment") or "").split("\n") if line.strip())
    return SearchCodeResult(path=item.get("path", ""), matched_lines=lines, ref=ref)


def map_pipeline(run: dict[str, Any]) -> Pipeline:
    return Pipeline(
        id=run["id"],
        status=map_workflow_status(run.get("status"), run.get("conclusion")),
        ref=run.get("head_branch") or "",
        sha=run.get("head_sha", ""),
        created_at=run.get("created_at", ""),
        updated_at=run.get("updated_at", ""),
        web_url=run.get("html_url", ""),
    )


def map_job(job: dict[str, Any]) -> Job:
    return Job(
        id=job["id"],
        name=job.get("name", ""),
        status=map_workflow_status(job.get("status"), job.get("conclusion")),
        stage=job.get("workflow_name") or "default",
        created_at=job.get("created_at") or job.get("started_at") or "",
        started_at=job.get("started_at"),
        finished_at=job.get("completed_at"),
        duration=job_duration(job.get("started_at"), job.get("completed_at")),
        web_url=job.get("html_url", ""),
    )


def map_comment(comment: dict[str, Any]) -> Comment:
    return Comment(
        id=comment["id"],
        body=comment.get("body") or "",
        author=map_user(comment.get("user")),
        created_at=comment.get("created_at", ""),
        updated_at=comment.get("updated_at", ""),
    )
