"""Tests for exceptions."""

import pytest

from mcp_git.exceptions import (
    CommitStepError,
    GitApiError,
    GitAuthError,
    GitNotFoundError,
    GitWriteDisabledError,
)


def test_api_error():
    e = GitApiError("gitlab", 500, "Internal Server Error", "something broke")
    assert e.status_code == 500
    assert e.code == "SERVER_ERROR"
    assert "500" in str(e)
    assert "Internal Server Error" in str(e)
    assert e.details == "something broke"


@pytest.mark.parametrize(
    ("status", "code"),
    [
        (400, "BAD_REQUEST"),
        (401, "UNAUTHORIZED"),
        (403, "FORBIDDEN"),
        (404, "NOT_FOUND"),
        (409, "CONFLICT"),
        (422, "VALIDATION_ERROR"),
        (429, "RATE_LIMITED"),
        (502, "SERVER_ERROR"),
        (418, "GITHUB_ERROR"),
        (0, "GITHUB_ERROR"),
    ],
)
def test_code_from_status(status, code):
    assert GitApiError("github", status, "x").code == code


def test_retryable():
    assert GitApiError("gitlab", 429, "slow down").retryable
    assert GitApiError("gitlab", 503, "unavailable").retryable
    assert not GitApiError("gitlab", 404, "missing").retryable
    assert not GitApiError("gitlab", 422, "invalid").retryable


def test_auth_error_is_api_error():
    e = GitAuthError("github", 401, "Bad credentials")
    assert isinstance(e, GitApiError)
    assert e.code == "UNAUTHORIZED"


def test_not_found_error():
    e = GitNotFoundError("gitlab", "404 Project Not Found")
    assert e.status_code == 404
    assert e.code == "NOT_FOUND"


def test_to_dict():
    e = GitApiError("github", 422, "Validation Failed", {"errors": []})
    assert e.to_dict() == {
        "code": "VALIDATION_ERROR",
        "message": "Validation Failed",
        "platform": "github",
        "status_code": 422,
        "retryable": False,
        "details": {"errors": []},
    }


def test_commit_step_error_wraps_cause():
    cause = GitApiError("github", 422, "Reference update failed")
    e = CommitStepError("update_ref", cause)
    assert e.step == "update_ref"
    assert e.status_code == 422
    assert "update_ref" in str(e)
    assert "Reference update failed" in str(e)
    assert e.to_dict()["step"] == "update_ref"


def test_write_disabled():
    e = GitWriteDisabledError()
    assert "read_only" in str(e).lower()
