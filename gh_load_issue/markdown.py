"""Markdown rendering helpers for loaded issues."""

from __future__ import annotations

import datetime as dt
import re
from typing import Any, Dict, List, Mapping, Optional

from .models import IssueData, LocalImageRecord


def replace_image_links(
    content: Optional[str], image_map: Optional[Mapping[str, LocalImageRecord]]
) -> str:
    """Swap remote image URLs with downloaded asset paths.

    Only URLs inside ``![alt](...)`` and ``<img src=...>`` are rewritten;
    the same URL in a plain link or code span stays untouched.
    """
    if not content:
        return ""
    if not image_map:
        return content
    updated = content
    for url, record in image_map.items():
        escaped = re.escape(url)
        markdown_pattern = re.compile(r'(!\[[^\]]*\]\()' + escaped + r'((?:\s+"[^"]*")?\))')
        html_pattern = re.compile(r"""(<img[^>]+src=["'])""" + escaped + r"""(["'])""", re.IGNORECASE)
        replacement = record.relative_path
        updated = markdown_pattern.sub(lambda m: m.group(1) + replacement + m.group(2), updated)
        updated = html_pattern.sub(lambda m: m.group(1) + replacement + m.group(2), updated)
    return updated


def format_timestamp(value: Optional[str]) -> str:
    """Render an ISO-8601 API timestamp as ``YYYY-MM-DD HH:MM:SS UTC``."""
    if not value:
        return ""
    try:
        parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _user_link(user: Dict[str, Any]) -> str:
    return f"[@{user.get('login', '')}]({user.get('html_url', '')})"


def issue_to_markdown(
    issue_data: IssueData,
    image_map: Optional[Mapping[str, LocalImageRecord]] = None,
) -> str:
    """Generate a standalone Markdown document for an issue and its comments."""
    issue = issue_data.issue
    comments = issue_data.comments

    lines: List[str] = [f"# {issue.get('title', '')}", ""]
    lines.append(f"**Issue:** [#{issue.get('number')}]({issue.get('html_url', '')})  ")
    lines.append(f"**Author:** {_user_link(issue.get('user') or {})}  ")
    lines.append(f"**State:** {issue.get('state', '')}  ")
    lines.append(f"**Created:** {format_timestamp(issue.get('created_at'))}  ")
    lines.append(f"**Updated:** {format_timestamp(issue.get('updated_at'))}  ")

    labels = issue.get("labels") or []
    if labels:
        lines.append("**Labels:** " + ", ".join(f"`{label.get('name', '')}`" for label in labels) + "  ")
    assignees = issue.get("assignees") or []
    if assignees:
        lines.append("**Assignees:** " + ", ".join(_user_link(a) for a in assignees) + "  ")
    milestone = issue.get("milestone")
    if milestone:
        lines.append(f"**Milestone:** [{milestone.get('title', '')}]({milestone.get('html_url', '')})  ")

    markdown = "\n".join(lines) + "\n\n---\n\n"

    if issue.get("body"):
        markdown += "## Description\n\n"
        markdown += replace_image_links(issue["body"], image_map)
        markdown += "\n\n"

    if comments:
        markdown += "---\n\n"
        markdown += f"## Comments ({len(comments)})\n\n"
        for index, comment in enumerate(comments, start=1):
            markdown += f"### Comment {index} by {_user_link(comment.get('user') or {})}\n\n"
            markdown += f"*Posted on {format_timestamp(comment.get('created_at'))}*\n\n"
            markdown += replace_image_links(comment.get("body"), image_map)
            markdown += "\n\n---\n\n"

    return markdown
