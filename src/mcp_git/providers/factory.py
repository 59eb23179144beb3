"""Build a provider from configuration."""

from __future__ import annotations

import logging

from ..auth import AuthProvider, CookieAuth, TokenAuth
from ..config import GitConfig
from .github.client import GitHubClient
from .github.provider import GitHubProvider
from .gitlab.client import GitLabClient
from .gitlab.provider import GitLabProvider
from .interface import GitProvider

logger = logging.getLogger(__name__)


def create_auth(config: GitConfig) -> AuthProvider:
    """Cookie auth when a cookie file is configured, token auth otherwise."""
    if config.cookie_path:
        return CookieAuth(config.cookie_path)
    return TokenAuth(config.token, config.auth_type)


def create_provider(
    config: GitConfig,
    auth: AuthProvider | None = None,
    log: logging.Logger | None = None,
) -> GitProvider:
    auth = auth or create_auth(config)
    log = log or logger
    kwargs = {"timeout": config.timeout, "ssl_verify": config.ssl_verify, "log": log}

    if config.provider == "gitlab":
        provider: GitProvider = GitLabProvider(GitLabClient(config.api_url, auth, **kwargs))
    elif config.provider == "github":
        provider = GitHubProvider(GitHubClient(config.api_url, auth, **kwargs))
    else:
        raise ValueError(f"Unknown provider type: {config.provider}")

    log.info("Using %s at %s", provider.info.name, provider.info.base_url)
    return provider
