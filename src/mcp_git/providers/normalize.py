"""Status and state normalization shared by the platform mappers.

Pure functions only. The two backends model overlapping concepts with
different cardinality (two-valued issue state vs. three-valued pull request
state, flat CI status vs. status + conclusion), so each rule is a separate
total function rather than a shared enum table.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from ..models.issues import IssueState
from ..models.pipelines import CIStatus
from ..models.pull_requests import PullRequestState

CI_STATUSES: tuple[str, ...] = ("pending", "running", "success", "failed", "canceled", "skipped")

_CONCLUSIONS: dict[str, CIStatus] = {
    "success": "success",
    "failure": "failed",
    "timed_out": "failed",
    "cancelled": "canceled",
    "skipped": "skipped",
}


def map_issue_state(raw: str | None) -> IssueState:
    """``opened`` (GitLab) and ``open`` (GitHub) are open; everything else is closed."""
    return "open" if raw in ("opened", "open") else "closed"


def map_pull_request_state(
    raw: str | None,
    *,
    merged: bool | None = False,
    merged_at: str | None = None,
) -> PullRequestState:
    """Reconcile a raw pull request state into the three-valued canonical state.

    ``merged`` wins whenever the backend's merge flag is set or a merge
    timestamp is present, whatever the raw state says. GitLab's ``locked``
    folds into ``closed``.
    """
    if merged or merged_at or raw == "merged":
        return "merged"
    if raw in ("opened", "open"):
        return "open"
    return "closed"


def resolve_draft(draft: bool | None, work_in_progress: bool | None = None) -> bool:
    """Explicit ``draft`` first, then the legacy work-in-progress flag.

    The legacy flag is only consulted when ``draft`` is missing, so
    ``draft=False, work_in_progress=True`` yields ``False``.
    """
    if draft is not None:
        return bool(draft)
    if work_in_progress is not None:
        return bool(work_in_progress)
    return False


def map_pipeline_status(raw: str | None) -> CIStatus:
    """GitLab flat status: known values pass through, the rest are pending."""
    if raw in CI_STATUSES:
        return raw  # type: ignore[return-value]
    return "pending"


def map_workflow_status(status: str | None, conclusion: str | None) -> CIStatus:
    """GitHub Actions two-level status for workflow runs and jobs.

    The conclusion only counts once the run is ``completed``.
    """
    if status == "completed":
        return _CONCLUSIONS.get(conclusion or "", "pending")
    if status == "in_progress":
        return "running"
    return "pending"


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def job_duration(started_at: str | None, finished_at: str | None) -> int | None:
    """Whole seconds between start and finish, ``None`` if either is missing.

    Halves round up (``2.5`` -> ``3``, ``-1.5`` -> ``-1``). Clock skew can make
    this negative; the value is returned unchanged.
    """
    if not started_at or not finished_at:
        return None
    delta = parse_timestamp(finished_at) - parse_timestamp(started_at)
    return math.floor(delta.total_seconds() + 0.5)


def label_names(labels: Iterable[Any] | None) -> list[str]:
    """Flatten label strings or label objects into a list of names."""
    names = []
    for label in labels or []:
        if isinstance(label, str):
            names.append(label)
        elif isinstance(label, dict) and label.get("name"):
            names.append(label["name"])
    return names
