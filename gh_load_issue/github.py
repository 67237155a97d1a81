"""Retrieval of GitHub issues through the gh CLI or the REST API."""

from __future__ import annotations

import json
import logging
import re
import shutil
import subprocess
from typing import Any, Dict, List, Optional, Tuple

import requests

from .config import GITHUB_API_URL, USER_AGENT
from .models import IssueData

logger = logging.getLogger("gh_load_issue")

API_TIMEOUT = 30.0
GH_ISSUE_FIELDS = (
    "number,title,body,state,author,createdAt,updatedAt,"
    "labels,assignees,milestone,comments,url"
)

FULL_URL_PATTERN = re.compile(r"github\.com/([^/]+)/([^/]+)/issues/(\d+)")
SHORT_PATTERN = re.compile(r"^([^/]+)/([^#]+)#(\d+)$")


class IssueFetchError(RuntimeError):
    """Raised when an issue cannot be retrieved from GitHub."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def parse_issue_url(value: str) -> Optional[Tuple[str, str, int]]:
    """Split an issue URL or ``owner/repo#123`` into its parts."""
    match = FULL_URL_PATTERN.search(value) or SHORT_PATTERN.match(value)
    if not match:
        return None
    return match.group(1), match.group(2), int(match.group(3))


def _run_gh(args: List[str]) -> subprocess.CompletedProcess:
    return subprocess.run(["gh", *args], capture_output=True, text=True, check=True)


def is_gh_available() -> bool:
    """Return True if the gh CLI is installed and authenticated."""
    if shutil.which("gh") is None:
        return False
    try:
        _run_gh(["--version"])
        _run_gh(["auth", "status"])
    except (OSError, subprocess.CalledProcessError):
        return False
    return True


def get_gh_token() -> Optional[str]:
    """Return the token stored by the gh CLI, or None."""
    if not is_gh_available():
        return None
    try:
        token = _run_gh(["auth", "token"]).stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return None
    return token or None


def _profile(login: str) -> Dict[str, str]:
    return {"login": login, "html_url": f"https://github.com/{login}"}


def fetch_issue_with_gh(owner: str, repo: str, issue_number: int) -> IssueData:
    """Fetch an issue via ``gh issue view`` and convert it to the REST shape."""
    try:
        result = _run_gh(
            [
                "issue",
                "view",
                str(issue_number),
                "--repo",
                f"{owner}/{repo}",
                "--json",
                GH_ISSUE_FIELDS,
            ]
        )
    except subprocess.CalledProcessError as exc:
        message = (exc.stderr or "").strip() or str(exc)
        status = 404 if "not found" in message.lower() else None
        raise IssueFetchError(message, status_code=status) from exc

    gh_issue = json.loads(result.stdout)
    milestone = gh_issue.get("milestone")
    issue = {
        "number": gh_issue["number"],
        "title": gh_issue["title"],
        "body": gh_issue.get("body"),
        "state": (gh_issue.get("state") or "").lower(),
        "html_url": gh_issue.get("url"),
        "user": _profile(gh_issue["author"]["login"]),
        "created_at": gh_issue.get("createdAt"),
        "updated_at": gh_issue.get("updatedAt"),
        "labels": [
            {
                "name": label["name"],
                "color": label.get("color") or "",
                "description": label.get("description") or "",
            }
            for label in gh_issue.get("labels") or []
        ],
        "assignees": [_profile(a["login"]) for a in gh_issue.get("assignees") or []],
        "milestone": (
            {
                "title": milestone["title"],
                "html_url": f"https://github.com/{owner}/{repo}/milestone/{milestone.get('number')}",
            }
            if milestone
            else None
        ),
    }
    comments = [
        {
            "id": comment.get("id"),
            "body": comment.get("body"),
            "user": _profile(comment["author"]["login"]),
            "created_at": comment.get("createdAt"),
            "updated_at": comment.get("updatedAt") or comment.get("createdAt"),
        }
        for comment in gh_issue.get("comments") or []
    ]
    return IssueData(issue=issue, comments=comments)


def _api_headers(token: Optional[str]) -> Dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": USER_AGENT,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _check_response(response: requests.Response, owner: str, repo: str, issue_number: int) -> None:
    if response.status_code == 404:
        raise IssueFetchError(f"Issue #{issue_number} not found in {owner}/{repo}", status_code=404)
    if response.status_code == 401:
        raise IssueFetchError(
            "Auth failed. Run 'gh auth login' or provide a valid token", status_code=401
        )
    if response.status_code != 200:
        raise IssueFetchError(
            f"Failed to fetch issue: HTTP {response.status_code}",
            status_code=response.status_code,
        )


def fetch_issue_with_api(
    owner: str,
    repo: str,
    issue_number: int,
    token: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> IssueData:
    """Fetch an issue and all of its comments from the REST API."""
    http = session or requests.Session()
    headers = _api_headers(token)
    issue_url = f"{GITHUB_API_URL}/repos/{owner}/{repo}/issues/{issue_number}"
    try:
        response = http.get(issue_url, headers=headers, timeout=API_TIMEOUT)
        _check_response(response, owner, repo, issue_number)
        issue: Dict[str, Any] = response.json()

        comments: List[Dict[str, Any]] = []
        next_url: Optional[str] = f"{issue_url}/comments"
        params: Optional[Dict[str, int]] = {"per_page": 100}
        while next_url:
            response = http.get(next_url, headers=headers, params=params, timeout=API_TIMEOUT)
            _check_response(response, owner, repo, issue_number)
            comments.extend(response.json())
            next_url = response.links.get("next", {}).get("url")
            params = None
    except requests.RequestException as exc:
        raise IssueFetchError(f"Failed to fetch issue: {exc}") from exc
    finally:
        if session is None:
            http.close()
    return IssueData(issue=issue, comments=comments)


def fetch_issue(
    owner: str,
    repo: str,
    issue_number: int,
    token: Optional[str] = None,
    use_api: bool = False,
    log: Optional[logging.Logger] = None,
) -> IssueData:
    """Fetch issue data, preferring the gh CLI unless ``use_api`` is set."""
    log = log or logger
    log.info("Fetching issue #%d from %s/%s...", issue_number, owner, repo)

    gh_available = is_gh_available()
    try:
        if not use_api and gh_available:
            log.debug("Using gh CLI for authentication")
            issue_data = fetch_issue_with_gh(owner, repo, issue_number)
        elif token:
            log.debug("Using GitHub API with token")
            issue_data = fetch_issue_with_api(owner, repo, issue_number, token)
        elif gh_available:
            log.debug("Falling back to gh CLI (no token provided)")
            issue_data = fetch_issue_with_gh(owner, repo, issue_number)
        else:
            log.debug("Using GitHub API without authentication")
            issue_data = fetch_issue_with_api(owner, repo, issue_number)
    except IssueFetchError as exc:
        log.error("%s", exc)
        raise

    log.info("Successfully fetched issue with %d comments", len(issue_data.comments))
    return issue_data
