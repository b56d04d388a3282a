"""Hosting helpers: remote URL parsing and the pull-request REST call."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional, Tuple

import requests

from .config import PULL_REQUEST_TIMEOUT_SECONDS
from .data_types import PullRequestData, RepoInfo
from .utils import truncate

logger = logging.getLogger(__name__)

# https://host/owner/name(.git), ssh://git@host/owner/name(.git)
_URL_REMOTE_PATTERN = re.compile(
    r"^[a-z][a-z0-9+.-]*://(?:[^@/]+@)?[^/]+/(?P<owner>[^/]+)/(?P<name>.+?)(?:\.git)?/?$",
    re.IGNORECASE,
)
# git@host:owner/name(.git)
_SCP_REMOTE_PATTERN = re.compile(r"^(?:[^@/]+@)?[^:/]+:(?P<owner>[^/]+)/(?P<name>.+?)(?:\.git)?/?$")

API_ACCEPT_HEADER = "application/vnd.github+json"


class RepoInfoError(RuntimeError):
    """Raised when a remote URL matches no known hosting pattern."""


def parse_repo_info(remote_url: str) -> RepoInfo:
    """Extract owner and repository name from a remote URL.

    Examples:
        >>> parse_repo_info("https://github.com/acme/widgets.git").full_name
        'acme/widgets'
        >>> parse_repo_info("git@gitlab.example.com:acme/widgets").full_name
        'acme/widgets'
    """
    url = remote_url.strip()
    for pattern in (_URL_REMOTE_PATTERN, _SCP_REMOTE_PATTERN):
        match = pattern.match(url)
        if match:
            return RepoInfo(owner=match.group("owner"), name=match.group("name"))
    raise RepoInfoError(f"Could not parse repository info from: {remote_url}")


def pulls_endpoint(api_url: str, data: PullRequestData) -> str:
    return f"{api_url.rstrip('/')}/repos/{data.owner}/{data.repo}/pulls"


def create_pull_request(
    data: PullRequestData,
    token: str,
    api_url: str,
    timeout: float = PULL_REQUEST_TIMEOUT_SECONDS,
) -> Tuple[bool, Optional[Dict[str, Any]], Optional[str]]:
    """Open a pull request through the hosting REST API.

    Args:
        data: Owner, repo, head, base, title and body
        token: Bearer credential
        api_url: API root, e.g. ``https://api.github.com``
        timeout: Request timeout in seconds

    Returns:
        Tuple of (success, created, error_message)
        - success: True only for HTTP 201
        - created: ``{"url": ..., "number": ...}`` on success
        - error_message: Failure reason (status and API message, timeout or transport error)
    """
    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": API_ACCEPT_HEADER,
    }
    payload = {
        "title": data.title,
        "body": data.body,
        "head": data.head,
        "base": data.base,
    }

    logger.debug(f"Opening pull request {data.head} -> {data.base} on {data.owner}/{data.repo}")
    try:
        response = requests.post(pulls_endpoint(api_url, data), json=payload, headers=headers, timeout=timeout)
    except requests.Timeout:
        return False, None, f"timed out after {timeout:.0f}s"
    except requests.RequestException as exc:
        return False, None, f"transport error: {exc}"

    try:
        body = response.json()
    except ValueError:
        body = {}

    if response.status_code != 201:
        message = body.get("message") if isinstance(body, dict) else None
        return False, None, f"HTTP {response.status_code}: {message or truncate(response.text, 200)}"

    if not isinstance(body, dict) or not isinstance(body.get("html_url"), str) or not body["html_url"]:
        return False, None, "HTTP 201 without html_url in response"

    number = body.get("number")
    if isinstance(number, bool) or not isinstance(number, int):
        number = None

    return True, {"url": body["html_url"], "number": number}, None


__all__ = [
    "API_ACCEPT_HEADER",
    "RepoInfoError",
    "create_pull_request",
    "parse_repo_info",
    "pulls_endpoint",
]
