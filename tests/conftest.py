"""Shared test fixtures for mcp-git."""

from __future__ import annotations

import pytest
import respx

from mcp_git.auth import TokenAuth
from mcp_git.providers.github.client import GitHubClient
from mcp_git.providers.github.provider import GitHubProvider
from mcp_git.providers.gitlab.client import GitLabClient
from mcp_git.providers.gitlab.provider import GitLabProvider

GITLAB_API = "https://gitlab.example.com/api/v4"
GITHUB_API = "https://api.github.example.com"
TEST_TOKEN = "test-token"


@pytest.fixture
def gitlab_client() -> GitLabClient:
    return GitLabClient(GITLAB_API, TokenAuth(TEST_TOKEN, "private-token"))


@pytest.fixture
def github_client() -> GitHubClient:
    return GitHubClient(GITHUB_API, TokenAuth(TEST_TOKEN))


@pytest.fixture
def gitlab(gitlab_client: GitLabClient) -> GitLabProvider:
    return GitLabProvider(gitlab_client)


@pytest.fixture
def github(github_client: GitHubClient) -> GitHubProvider:
    return GitHubProvider(github_client)


@pytest.fixture
def gitlab_api() -> respx.MockRouter:
    with respx.mock(base_url=GITLAB_API, assert_all_called=False) as router:
        yield router


@pytest.fixture
def github_api() -> respx.MockRouter:
    with respx.mock(base_url=GITHUB_API, assert_all_called=False) as router:
        yield router

