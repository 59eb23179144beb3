"""Issue models."""

from __future__ import annotations

from typing import Literal

from .base import CanonicalModel, ParamsModel
from .common import PaginationParams, User

IssueState = Literal["open", "closed"]


class Issue(CanonicalModel):
    id: int
    iid: int
    title: str = ""
    description: str | None = None
    state: IssueState
    author: User
    assignees: list[User] = []
    labels: list[str] = []
    created_at: str = ""
    updated_at: str = ""
    closed_at: str | None = None
    web_url: str = ""


class IssueCreateParams(ParamsModel):
    title: str
    description: str | None = None
    labels: list[str] | None = None
    assignee_ids: list[int] | None = None


class IssueUpdateParams(ParamsModel):
    """Only the fields that are set are sent; the rest keep their server value."""

    title: str | None = None
    description: str | None = None
    labels: list[str] | None = None
    assignee_ids: list[int] | None = None
    state: IssueState | None = None


class IssueListParams(PaginationParams):
    state: Literal["open", "closed", "all"] | None = None
    labels: list[str] | None = None
    search: str | None = None
    assignee_id: int | None = None
    author_id: int | None = None
    sort: Literal["created", "updated"] | None = None
    direction: Literal["asc", "desc"] | None = None
