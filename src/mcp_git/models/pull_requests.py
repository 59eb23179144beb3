"""Pull request (merge request) models."""

from __future__ import annotations

from typing import Literal

from .base import CanonicalModel, ParamsModel
from .common import PaginationParams, User

PullRequestState = Literal["open", "closed", "merged"]


class PullRequest(CanonicalModel):
    id: int
    iid: int
    title: str = ""
    description: str | None = None
    state: PullRequestState
    source_branch: str = ""
    target_branch: str = ""
    author: User
    assignees: list[User] = []
    reviewers: list[User] = []
    labels: list[str] = []
    draft: bool = False
    mergeable: bool = False
    created_at: str = ""
    updated_at: str = ""
    merged_at: str | None = None
    web_url: str = ""


class PullRequestDiff(CanonicalModel):
    old_path: str = ""
    new_path: str = ""
    new_file: bool = False
    renamed_file: bool = False
    deleted_file: bool = False
    diff: str = ""


class PullRequestCreateParams(ParamsModel):
    source_branch: str
    target_branch: str
    title: str
    description: str | None = None
    assignee_ids: list[int] | None = None
    reviewer_ids: list[int] | None = None
    labels: list[str] | None = None
    draft: bool | None = None


class PullRequestListParams(PaginationParams):
    state: Literal["open", "closed", "merged", "all"] | None = None
    source_branch: str | None = None
    target_branch: str | None = None
    labels: list[str] | None = None
    search: str | None = None
    sort: Literal["created", "updated"] | None = None
    direction: Literal["asc", "desc"] | None = None


class PullRequestMergeParams(ParamsModel):
    commit_message: str | None = None
    squash: bool | None = None
    delete_branch: bool | None = None
