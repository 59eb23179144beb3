"""Unified capability interface for GitLab/GitHub operations.

Tools talk to these classes, never to platform-specific APIs.

Terminology:

- ``repo``: GitLab project ID or ``group/project`` path, GitHub ``owner/repo``
- ``issue_number``: GitLab issue iid, GitHub issue number
- ``pr_number``: GitLab merge request iid, GitHub pull number
- ``pipeline_id``: GitLab pipeline id, GitHub workflow run id
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models.common import Comment, CommentCreateParams, CommentListParams, ProviderInfo, User
from ..models.issues import Issue, IssueCreateParams, IssueListParams, IssueUpdateParams
from ..models.pipelines import Job, JobListParams, Pipeline, PipelineListParams
from ..models.pull_requests import (
    PullRequest,
    PullRequestCreateParams,
    PullRequestDiff,
    PullRequestListParams,
    PullRequestMergeParams,
)
from ..models.repositories import (
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


class IssueProvider(ABC):
    @abstractmethod
    async def get(self, repo: str, issue_number: int) -> Issue: ...

    @abstractmethod
    async def list(self, repo: str, params: IssueListParams | None = None) -> list[Issue]: ...

    @abstractmethod
    async def create(self, repo: str, params: IssueCreateParams) -> Issue: ...

    @abstractmethod
    async def update(self, repo: str, issue_number: int, params: IssueUpdateParams) -> Issue: ...

    @abstractmethod
    async def create_comment(
        self, repo: str, issue_number: int, params: CommentCreateParams
    ) -> Comment: ...

    @abstractmethod
    async def list_comments(
        self, repo: str, issue_number: int, params: CommentListParams | None = None
    ) -> list[Comment]: ...


class PullRequestProvider(ABC):
    @abstractmethod
    async def get(self, repo: str, pr_number: int) -> PullRequest: ...

    @abstractmethod
    async def list(
        self, repo: str, params: PullRequestListParams | None = None
    ) -> list[PullRequest]: ...

    @abstractmethod
    async def create(self, repo: str, params: PullRequestCreateParams) -> PullRequest: ...

    @abstractmethod
    async def get_diffs(self, repo: str, pr_number: int) -> list[PullRequestDiff]: ...

    @abstractmethod
    async def merge(
        self, repo: str, pr_number: int, params: PullRequestMergeParams | None = None
    ) -> PullRequest: ...

    @abstractmethod
    async def create_comment(
        self, repo: str, pr_number: int, params: CommentCreateParams
    ) -> Comment: ...

    @abstractmethod
    async def list_comments(
        self, repo: str, pr_number: int, params: CommentListParams | None = None
    ) -> list[Comment]: ...


class RepositoryProvider(ABC):
    @abstractmethod
    async def get_content(
        self, repo: str, path: str, ref: str | None = None
    ) -> FileContent | DirectoryContent: ...

    @abstractmethod
    async def get_tree(self, repo: str, params: TreeParams | None = None) -> list[TreeEntry]: ...

    @abstractmethod
    async def commit(self, repo: str, params: CommitParams) -> Commit:
        """Apply the ordered file actions to ``params.branch`` as one commit."""

    @abstractmethod
    async def list_commits(
        self, repo: str, params: CommitListParams | None = None
    ) -> list[Commit]: ...

    @abstractmethod
    async def create_branch(self, repo: str, params: BranchCreateParams) -> Branch: ...

    @abstractmethod
    async def list_branches(
        self, repo: str, params: BranchListParams | None = None
    ) -> list[Branch]: ...

    @abstractmethod
    async def search_code(self, repo: str, params: SearchCodeParams) -> list[SearchCodeResult]: ...


class CIProvider(ABC):
    @abstractmethod
    async def get_pipeline(self, repo: str, pipeline_id: int) -> Pipeline: ...

    @abstractmethod
    async def list_pipelines(
        self, repo: str, params: PipelineListParams | None = None
    ) -> list[Pipeline]: ...

    @abstractmethod
    async def list_jobs(
        self, repo: str, pipeline_id: int, params: JobListParams | None = None
    ) -> list[Job]: ...

    @abstractmethod
    async def get_job_log(self, repo: str, job_id: int) -> str: ...


class UserProvider(ABC):
    @abstractmethod
    async def get_me(self) -> User: ...


class GitProvider(ABC):
    """Entry point tools depend on, regardless of the hosting platform."""

    info: ProviderInfo
    issues: IssueProvider
    pull_requests: PullRequestProvider
    repository: RepositoryProvider
    ci: CIProvider
    users: UserProvider

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying HTTP client."""
