"""Repository models: content, trees, commits, branches, code search."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

from .base import CanonicalModel, ParamsModel
from .common import PaginationParams

EntryType = Literal["file", "directory"]


class TreeEntry(CanonicalModel):
    name: str
    path: str
    type: EntryType
    mode: str = ""
    sha: str | None = None


class FileContent(CanonicalModel):
    type: Literal["file"] = "file"
    path: str
    name: str = ""
    size: int = 0
    content: str = ""
    encoding: str = "utf-8"
    sha: str = ""


class DirectoryContent(CanonicalModel):
    type: Literal["directory"] = "directory"
    path: str
    entries: list[TreeEntry] = []


Content = Annotated[FileContent | DirectoryContent, Field(discriminator="type")]


class TreeParams(PaginationParams):
    path: str | None = None
    ref: str | None = None
    recursive: bool | None = None


class FileAction(ParamsModel):
    action: Literal["create", "update", "delete", "move"]
    path: str = Field(min_length=1)
    content: str | None = None
    previous_path: str | None = None


class CommitParams(ParamsModel):
    branch: str = Field(min_length=1)
    message: str = Field(min_length=1)
    actions: list[FileAction]
    base_branch: str | None = None
    author_name: str | None = None
    author_email: str | None = None


class CommitStats(CanonicalModel):
    additions: int = 0
    deletions: int = 0
    total: int = 0


class Commit(CanonicalModel):
    sha: str
    short_sha: str = ""
    message: str = ""
    author_name: str = ""
    author_email: str = ""
    created_at: str = ""
    web_url: str | None = None
    stats: CommitStats | None = None


class CommitListParams(PaginationParams):
    ref: str | None = None
    path: str | None = None
    since: str | None = None
    until: str | None = None
    author: str | None = None
    with_stats: bool | None = None


class Branch(CanonicalModel):
    name: str
    sha: str = ""
    protected: bool = False
    default: bool = False
    web_url: str | None = None


class BranchCreateParams(ParamsModel):
    name: str = Field(min_length=1)
    ref: str = Field(min_length=1)


class BranchListParams(PaginationParams):
    search: str | None = None


class SearchCodeParams(PaginationParams):
    query: str = Field(min_length=1)
    ref: str | None = None


class SearchCodeResult(CanonicalModel):
    path: str
    matched_lines: list[str] = []
    ref: str = ""
