"""High-level orchestration for loading an issue and its images."""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from . import __version__
from .content import collect_issue_text
from .github import fetch_issue, get_gh_token, parse_issue_url
from .images import ImageMap, download_images
from .markdown import issue_to_markdown
from .models import HarvestReport, IssueData, LoadedIssue

logger = logging.getLogger("gh_load_issue")


class InvalidIssueUrl(ValueError):
    """Raised when the input is neither an issue URL nor ``owner/repo#N``."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid issue URL: {value}")
        self.value = value


def issue_to_json(
    issue_data: IssueData, report: Optional[HarvestReport] = None
) -> Dict[str, Any]:
    """Build the structured export for an issue."""
    issue = issue_data.issue
    user = issue.get("user") or {}
    milestone = issue.get("milestone")
    timestamp = (
        dt.datetime.now(dt.timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )
    return {
        "issue": {
            "number": issue.get("number"),
            "title": issue.get("title"),
            "state": issue.get("state"),
            "html_url": issue.get("html_url"),
            "author": {"login": user.get("login"), "html_url": user.get("html_url")},
            "created_at": issue.get("created_at"),
            "updated_at": issue.get("updated_at"),
            "labels": [
                {
                    "name": label.get("name"),
                    "color": label.get("color"),
                    "description": label.get("description"),
                }
                for label in issue.get("labels") or []
            ],
            "assignees": [
                {"login": a.get("login"), "html_url": a.get("html_url")}
                for a in issue.get("assignees") or []
            ],
            "milestone": (
                {"title": milestone.get("title"), "html_url": milestone.get("html_url")}
                if milestone
                else None
            ),
            "body": issue.get("body"),
        },
        "comments": [
            {
                "id": comment.get("id"),
                "author": {
                    "login": (comment.get("user") or {}).get("login"),
                    "html_url": (comment.get("user") or {}).get("html_url"),
                },
                "created_at": comment.get("created_at"),
                "updated_at": comment.get("updated_at"),
                "body": comment.get("body"),
            }
            for comment in issue_data.comments
        ],
        "images": report.to_dict() if report is not None else None,
        "metadata": {
            "downloaded_at": timestamp,
            "tool_version": __version__,
        },
    }


def harvest_issue_images(
    issue_data: IssueData,
    image_dir: Union[str, Path],
    token: Optional[str] = None,
    log: Optional[logging.Logger] = None,
) -> Tuple[ImageMap, HarvestReport]:
    """Download every image in the issue body and comments into ``image_dir``."""
    content = collect_issue_text(issue_data)
    image_token = token or get_gh_token()
    return download_images(content, image_dir, image_token, log=log)


def load_issue(
    issue_url: str,
    token: Optional[str] = None,
    download_images: bool = False,
    image_dir: Optional[Union[str, Path]] = None,
    use_api: bool = False,
    log: Optional[logging.Logger] = None,
) -> LoadedIssue:
    """Load a GitHub issue and return its Markdown and JSON renditions.

    Images are harvested only when ``download_images`` is set and an
    ``image_dir`` is given; otherwise ``images`` is None and the Markdown
    keeps the remote URLs.
    """
    parsed = parse_issue_url(issue_url)
    if not parsed:
        raise InvalidIssueUrl(issue_url)
    owner, repo, issue_number = parsed
    log = log or logger

    if use_api and not token:
        token = get_gh_token()

    issue_data = fetch_issue(owner, repo, issue_number, token, use_api, log=log)

    image_map: Optional[ImageMap] = None
    report: Optional[HarvestReport] = None
    if download_images and image_dir:
        image_map, report = harvest_issue_images(issue_data, image_dir, token, log=log)

    return LoadedIssue(
        owner=owner,
        repo=repo,
        issue_number=issue_number,
        issue=issue_data.issue,
        comments=issue_data.comments,
        markdown=issue_to_markdown(issue_data, image_map),
        json=issue_to_json(issue_data, report),
        images=report,
    )
