"""Shared async HTTP transport for hosting platform REST APIs using httpx."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from .auth import AuthProvider
from .exceptions import GitApiError, GitAuthError, GitNotFoundError

logger = logging.getLogger(__name__)


def extract_error_message(data: Any) -> str | None:
    """Pull a human message out of an API error body.

    Checked in order: ``message`` string, ``error`` string, ``errors`` array.
    """
    if not isinstance(data, dict):
        return None
    if isinstance(data.get("message"), str):
        return data["message"]
    if isinstance(data.get("error"), str):
        return data["error"]
    errors = data.get("errors")
    if isinstance(errors, list):
        parts = []
        for err in errors:
            if isinstance(err, dict):
                parts.append(str(err.get("message") or err.get("code") or err))
            else:
                parts.append(str(err))
        return ", ".join(parts)
    return None


class BaseClient:
    """Async HTTP client bound to one platform API root and an auth provider."""

    platform = "git"
    default_headers: dict[str, str] = {"Content-Type": "application/json"}

    def __init__(
        self,
        base_url: str,
        auth: AuthProvider,
        *,
        timeout: float = 30,
        ssl_verify: bool = True,
        log: logging.Logger | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.log = log or logger
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.default_headers,
            timeout=timeout,
            verify=ssl_verify,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ── HTTP helpers ──────────────────────────────────────────────

    @staticmethod
    def _clean(params: dict[str, Any] | None) -> dict[str, Any] | None:
        """Drop unset query values."""
        if params is None:
            return None
        return {key: value for key, value in params.items() if value is not None}

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        try:
            details: Any = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            details = resp.text
        message = extract_error_message(details) or resp.reason_phrase or "Request failed"

        if resp.status_code in (401, 403):
            raise GitAuthError(self.platform, resp.status_code, message, details)
        if resp.status_code == 404:
            raise GitNotFoundError(self.platform, message, details)
        raise GitApiError(self.platform, resp.status_code, message, details)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_data: Any = None,
        params: dict[str, Any] | None = None,
        raw: bool = False,
        extra_headers: dict[str, str] | None = None,
        follow_redirects: bool = False,
    ) -> Any:
        """Make an API request and return parsed JSON (or raw text if raw=True)."""
        headers = await self.auth.get_headers()
        if extra_headers:
            headers.update(extra_headers)

        kwargs: dict[str, Any] = {
            "params": self._clean(params),
            "headers": headers,
            "follow_redirects": follow_redirects,
        }
        if json_data is not None:
            kwargs["json"] = json_data

        self.log.debug("%s %s %s", method, path, kwargs["params"] or "")
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise GitApiError(self.platform, 408, "Request timeout") from e
        except httpx.HTTPError as e:
            raise GitApiError(self.platform, 0, str(e) or type(e).__name__) from e

        self._raise_for_status(resp)

        if resp.status_code == 204 or not resp.content:
            return None

        if raw:
            return resp.text

        content_type = resp.headers.get("content-type", "")
        if "text/html" in content_type:
            msg = "Unexpected HTML response — check URL and authentication"
            raise GitApiError(self.platform, resp.status_code, msg, resp.text[:500])

        try:
            return resp.json()
        except json.JSONDecodeError as e:
            raise GitApiError(
                self.platform,
                resp.status_code,
                f"JSON parse error: {e}",
                resp.text[:500],
            ) from e

    async def get(
        self, path: str, params: dict[str, Any] | None = None, *, raw: bool = False, **kwargs: Any
    ) -> Any:
        return await self._request("GET", path, params=params, raw=raw, **kwargs)

    async def post(self, path: str, json_data: Any = None, **kwargs: Any) -> Any:
        return await self._request("POST", path, json_data=json_data, **kwargs)

    async def put(self, path: str, json_data: Any = None, **kwargs: Any) -> Any:
        return await self._request("PUT", path, json_data=json_data, **kwargs)

    async def patch(self, path: str, json_data: Any = None, **kwargs: Any) -> Any:
        return await self._request("PATCH", path, json_data=json_data, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self._request("DELETE", path, **kwargs)
