"""Auth header providers."""

from __future__ import annotations

import os
import time
from abc import ABC, abstractmethod
from http.cookiejar import LoadError, MozillaCookieJar


class AuthProvider(ABC):
    """Yields the HTTP headers that authenticate a request."""

    @abstractmethod
    async def get_headers(self) -> dict[str, str]: ...

    @abstractmethod
    async def is_valid(self) -> bool: ...


class TokenAuth(AuthProvider):
    """Static personal access token.

    ``auth_type`` picks the header: ``bearer`` (``Authorization: Bearer``),
    ``private-token`` (GitLab ``PRIVATE-TOKEN``) or ``token``
    (``Authorization: token``, GitHub classic).
    """

    def __init__(self, token: str, auth_type: str = "bearer") -> None:
        self._token = token
        self._auth_type = auth_type

    async def get_headers(self) -> dict[str, str]:
        if self._auth_type == "private-token":
            return {"PRIVATE-TOKEN": self._token}
        if self._auth_type == "token":
            return {"Authorization": f"token {self._token}"}
        return {"Authorization": f"Bearer {self._token}"}

    async def is_valid(self) -> bool:
        return bool(self._token)


class CookieAuth(AuthProvider):
    """Browser session cookies exported in Netscape format."""

    def __init__(self, cookie_path: str) -> None:
        self.cookie_path = os.path.expanduser(cookie_path)

    def _load(self) -> MozillaCookieJar:
        if not os.path.exists(self.cookie_path):
            msg = f"Cookie file not found: {self.cookie_path}"
            raise FileNotFoundError(msg)
        jar = MozillaCookieJar(self.cookie_path)
        # session cookies carry no expiry and must survive the load
        jar.load(ignore_discard=True, ignore_expires=True)
        return jar

    async def get_headers(self) -> dict[str, str]:
        now = time.time()
        cookies = [c for c in self._load() if not c.expires or c.expires > now]
        if not cookies:
            msg = "No valid cookies found"
            raise ValueError(msg)
        return {"Cookie": "; ".join(f"{c.name}={c.value}" for c in cookies)}

    async def is_valid(self) -> bool:
        try:
            return len(self._load()) > 0
        except (OSError, LoadError):
            return False
