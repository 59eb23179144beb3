"""Pipeline and job models."""

from __future__ import annotations

from typing import Literal

from .base import CanonicalModel
from .common import PaginationParams

CIStatus = Literal["pending", "running", "success", "failed", "canceled", "skipped"]


class Pipeline(CanonicalModel):
    id: int
    status: CIStatus
    ref: str = ""
    sha: str = ""
    created_at: str = ""
    updated_at: str = ""
    web_url: str = ""


class Job(CanonicalModel):
    id: int
    name: str = ""
    status: CIStatus
    stage: str = ""
    created_at: str = ""
    started_at: str | None = None
    finished_at: str | None = None
    duration: int | None = None
    web_url: str = ""


class PipelineListParams(PaginationParams):
    status: CIStatus | None = None
    ref: str | None = None
    sha: str | None = None
    sort: Literal["asc", "desc"] | None = None


class JobListParams(PaginationParams):
    status: CIStatus | None = None
