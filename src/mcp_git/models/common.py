"""Common canonical models shared across domains."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from .base import CanonicalModel, ParamsModel

ProviderType = Literal["gitlab", "github"]


class User(CanonicalModel):
    id: int
    username: str = ""
    name: str = ""
    avatar_url: str | None = None
    web_url: str | None = None


class Comment(CanonicalModel):
    id: int
    body: str = ""
    author: User
    created_at: str = ""
    updated_at: str = ""


class ProviderInfo(CanonicalModel):
    type: ProviderType
    name: str
    version: str
    base_url: str


class PaginationParams(ParamsModel):
    page: int | None = Field(default=None, ge=1)
    per_page: int | None = Field(default=None, ge=1, le=100)


class CommentCreateParams(ParamsModel):
    body: str = Field(min_length=1)


class CommentListParams(PaginationParams):
    sort: Literal["asc", "desc"] | None = None
