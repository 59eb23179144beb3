"""Git provider exceptions."""

from __future__ import annotations

from typing import Any

_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
}


class GitError(Exception):
    """Base exception for git provider operations."""


class GitApiError(GitError):
    """Raised when a hosting platform API call fails."""

    def __init__(
        self,
        platform: str,
        status_code: int,
        message: str,
        details: Any = None,
    ) -> None:
        self.platform = platform
        self.status_code = status_code
        self.message = message
        self.details = details
        super().__init__(f"{platform} API Error {status_code} [{self.code}]: {message}")

    @property
    def code(self) -> str:
        if self.status_code in _STATUS_CODES:
            return _STATUS_CODES[self.status_code]
        if self.status_code >= 500:
            return "SERVER_ERROR"
        return f"{self.platform.upper()}_ERROR"

    @property
    def retryable(self) -> bool:
        """Hint for callers only; nothing in this package retries."""
        return self.status_code == 429 or self.status_code >= 500

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "platform": self.platform,
            "status_code": self.status_code,
            "retryable": self.retryable,
            "details": self.details,
        }


class GitAuthError(GitApiError):
    """Raised on 401/403 authentication failures."""


class GitNotFoundError(GitApiError):
    """Raised on 404 responses."""

    def __init__(self, platform: str, message: str = "Not Found", details: Any = None) -> None:
        super().__init__(platform, 404, message, details)


class CommitStepError(GitApiError):
    """Raised when one step of a multi-call commit fails.

    Earlier steps are not rolled back: blobs and trees created before the
    failing step stay on the backend.
    """

    def __init__(self, step: str, cause: GitApiError) -> None:
        self.step = step
        super().__init__(
            cause.platform,
            cause.status_code,
            f"Commit step '{step}' failed: {cause.message}",
            cause.details,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["step"] = self.step
        return data


class GitWriteDisabledError(GitError):
    """Raised when a write operation is attempted in read-only mode."""

    def __init__(self) -> None:
        super().__init__("Write operations are disabled (GIT_READ_ONLY=true)")
