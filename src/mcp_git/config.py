"""Git MCP server configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

PROVIDERS = ("gitlab", "github")
AUTH_TYPES = ("bearer", "private-token", "token")

DEFAULT_API_URLS = {
    "gitlab": "https://gitlab.com/api/v4",
    "github": "https://api.github.com",
}


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class GitConfig:
    """Configuration for the Git MCP server, loaded from environment variables."""

    provider: str = "gitlab"
    api_url: str = ""
    token: str = ""
    auth_type: str = "bearer"
    cookie_path: str = ""
    read_only: bool = False
    tool_filter: str = ""
    timeout: int = 30
    ssl_verify: bool = True
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.api_url = (self.api_url or DEFAULT_API_URLS.get(self.provider, "")).rstrip("/")

    @classmethod
    def from_env(cls) -> GitConfig:
        provider = os.getenv("GIT_PROVIDER", "gitlab").lower()
        token = (
            os.getenv("GIT_TOKEN")
            or os.getenv("GITLAB_TOKEN")
            or os.getenv("GITHUB_TOKEN", "")
        )
        ssl_verify = os.getenv("GIT_SSL_VERIFY", "true").lower() not in (
            "false",
            "0",
            "no",
        )

        return cls(
            provider=provider,
            api_url=os.getenv("GIT_API_URL", ""),
            token=token,
            auth_type=os.getenv("GIT_AUTH_TYPE", "bearer").lower(),
            cookie_path=os.getenv("GIT_AUTH_COOKIE_PATH", ""),
            read_only=_flag("GIT_READ_ONLY", "false"),
            tool_filter=os.getenv("GIT_TOOL_FILTER", ""),
            timeout=int(os.getenv("GIT_TIMEOUT", "30")),
            ssl_verify=ssl_verify,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> None:
        if self.provider not in PROVIDERS:
            msg = f"Invalid GIT_PROVIDER: {self.provider}. Must be 'gitlab' or 'github'."
            raise ValueError(msg)
        if not self.api_url.startswith(("http://", "https://")):
            msg = f"Invalid GIT_API_URL: {self.api_url}"
            raise ValueError(msg)
        if self.auth_type not in AUTH_TYPES:
            msg = f"Invalid GIT_AUTH_TYPE: {self.auth_type}. Must be one of {', '.join(AUTH_TYPES)}"
            raise ValueError(msg)
        if not self.token and not self.cookie_path:
            msg = (
                "No auth configured. Set one of: GIT_TOKEN (or GITLAB_TOKEN / GITHUB_TOKEN), "
                "or GIT_AUTH_COOKIE_PATH"
            )
            raise ValueError(msg)
