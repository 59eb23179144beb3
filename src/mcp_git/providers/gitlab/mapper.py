"""GitLab mapper: raw GitLab API payloads to canonical models."""

from __future__ import annotations

import base64
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
    map_pipeline_status,
    map_pull_request_state,
    resolve_draft,
)


def map_user(user: dict[str, Any]) -> User:
    return User(
        id=user["id"],
        username=user.get("username", ""),
        name=user.get("name", ""),
        avatar_url=user.get("avatar_url"),
        web_url=user.get("web_url"),
    )


def map_issue(issue: dict[str, Any]) -> Issue:
    return Issue(
        id=issue["id"],
        iid=issue["iid"],
        title=issue.get("title", ""),
        description=issue.get("description"),
        state=map_issue_state(issue.get("state")),
        author=map_user(issue["author"]),
        assignees=[map_user(u) for u in issue.get("assignees") or []],
        labels=label_names(issue.get("labels")),
        created_at=issue.get("created_at", ""),
        updated_at=issue.get("updated_at", ""),
        closed_at=issue.get("closed_at"),
        web_url=issue.get("web_url", ""),
    )


def map_pull_request(mr: dict[str, Any]) -> PullRequest:
    return PullRequest(
        id=mr["id"],
        iid=mr["iid"],
        title=mr.get("title", ""),
        description=mr.get("description"),
        state=map_pull_request_state(mr.get("state"), merged_at=mr.get("merged_at")),
        source_branch=mr.get("source_branch", ""),
        target_branch=mr.get("target_branch", ""),
        author=map_user(mr["author"]),
        assignees=[map_user(u) for u in mr.get("assignees") or []],
        reviewers=[map_user(u) for u in mr.get("reviewers") or []],
        labels=label_names(mr.get("labels")),
        draft=resolve_draft(mr.get("draft"), mr.get("work_in_progress")),
        mergeable=mr.get("merge_status") == "can_be_merged",
        created_at=mr.get("created_at", ""),
        updated_at=mr.get("updated_at", ""),
        merged_at=mr.get("merged_at"),
        web_url=mr.get("web_url", ""),
    )


def map_pull_request_diff(diff: dict[str, Any]) -> PullRequestDiff:
    return PullRequestDiff(
        old_path=diff.get("old_path", ""),
        new_path=diff.get("new_path", ""),
        new_file=diff.get("new_file", False),
        renamed_file=diff.get("renamed_file", False),
        deleted_file=diff.get("deleted_file", False),
        diff=diff.get("diff", ""),
    )


def map_file_content(file: dict[str, Any]) -> FileContent:
    raw = file.get("content", "")
    if file.get("encoding", "base64") == "base64":
        text = base64.b64decode(raw).decode("utf-8", errors="replace")
    else:
        text = raw
    return FileContent(
        path=file["file_path"],
        name=file.get("file_name", ""),
        size=file.get("size", 0),
        content=text,
        sha=file.get("content_sha256", ""),
    )


def map_tree_entry(item: dict[str, Any]) -> TreeEntry:
    return TreeEntry(
        name=item["name"],
        path=item["path"],
        type="directory" if item.get("type") == "tree" else "file",
        mode=item.get("mode", ""),
        sha=item.get("id"),
    )


def map_directory_content(path: str, items: list[dict[str, Any]]) -> DirectoryContent:
    return DirectoryContent(path=path, entries=[map_tree_entry(i) for i in items])


def map_commit(commit: dict[str, Any]) -> Commit:
    stats = commit.get("stats")
    return Commit(
        sha=commit["id"],
        short_sha=commit.get("short_id") or commit["id"][:7],
        message=commit.get("message", ""),
        author_name=commit.get("author_name", ""),
        author_email=commit.get("author_email", ""),
        created_at=commit.get("authored_date", ""),
        web_url=commit.get("web_url"),
        stats=CommitStats(**stats) if stats else None,
    )


def map_branch(branch: dict[str, Any]) -> Branch:
    return Branch(
        name=branch["name"],
        sha=(branch.get("commit") or {}).get("id", ""),
        protected=branch.get("protected", False),
        default=branch.get("default", False),
        web_url=branch.get("web_url"),
    )


def map_search_result(result: dict[str, Any]) -> SearchCodeResult:
    lines = [line for line in (result.get("data") or "").split("\n") if line.strip()]
    return SearchCodeResult(
        path=result.get("path") or result.get("filename", ""),
        matched_lines=lines,
        ref=result.get("ref", ""),
    )


def map_pipeline(pipeline: dict[str, Any]) -> Pipeline:
    return Pipeline(
        id=pipeline["id"],
        status=map_pipeline_status(pipeline.get("status")),
        ref=pipeline.get("ref", ""),
        sha=pipeline.get("sha", ""),
        created_at=pipeline.get("created_at", ""),
        updated_at=pipeline.get("updated_at", ""),
        web_url=pipeline.get("web_url", ""),
    )


def map_job(job: dict[str, Any]) -> Job:
    return Job(
        id=job["id"],
        name=job.get("name", ""),
        status=map_pipeline_status(job.get("status")),
        stage=job.get("stage", ""),
        created_at=job.get("created_at", ""),
        started_at=job.get("started_at"),
        finished_at=job.get("finished_at"),
        duration=job_duration(job.get("started_at"), job.get("finished_at")),
        web_url=job.get("web_url", ""),
    )


def map_comment(note: dict[str, Any]) -> Comment:
    return Comment(
        id=note["id"],
        body=note.get("body") or "",
        author=map_user(note["author"]),
        created_at=note.get("created_at", ""),
        updated_at=note.get("updated_at", ""),
    )
