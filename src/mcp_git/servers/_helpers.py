"""Shared helper functions for server modules."""

from __future__ import annotations

import re
from urllib.parse import unquote

# ════════════════════════════════════════════════════════════════════
# Repository URL parsing
# ════════════════════════════════════════════════════════════════════

# Matches:  <host>/<namespace/project>/-/<anything>   (GitLab)
_GITLAB_RE = re.compile(r"https?://[^/]+/(.+?)/-/.*$")
# Matches:  <host>/<owner>/<repo>[/<anything>]        (GitHub)
_GITHUB_RE = re.compile(r"https?://github\.com/([^/]+/[^/]+?)(?:\.git)?(?:/.*)?$")
# Matches:  <host>/<namespace/project>[.git]
_REPO_RE = re.compile(r"https?://[^/]+/(.+?)(?:\.git)?/?$")


def _parse_repo(value: str) -> str:
    """Extract the repository identifier from a web URL.

    ``https://gitlab.com/group/sub/project/-/issues/4`` → ``group/sub/project``,
    ``https://github.com/owner/repo/pull/7`` → ``owner/repo``.
    If *value* is not a URL, returns it stripped.
    """
    value = value.strip()
    if not value.startswith(("http://", "https://")):
        return value
    for pattern in (_GITLAB_RE, _GITHUB_RE, _REPO_RE):
        m = pattern.match(value)
        if m:
            return unquote(m.group(1))
    return value
