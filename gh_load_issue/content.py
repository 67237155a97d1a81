"""Discovery of embedded image references in issue text."""

from __future__ import annotations

import re
from typing import List, Optional

from .models import ImageReference, IssueData

MARKDOWN_IMAGE_PATTERN = re.compile(r'!\[([^\]]*)\]\(([^)\s]+)(?:\s+"[^"]*")?\)')
HTML_IMAGE_PATTERN = re.compile(
    r"""<img[^>]+src=["']([^"']+)["'][^>]*/?>""", re.IGNORECASE
)


def extract_image_references(content: Optional[str]) -> List[ImageReference]:
    """Return markdown image references followed by HTML ``<img>`` references.

    Each syntax is scanned in a separate pass, so all markdown matches come
    first in document order and HTML matches follow. The position in this
    list is the discovery index used to name downloaded files.
    """
    if not content:
        return []

    references: List[ImageReference] = []
    for match in MARKDOWN_IMAGE_PATTERN.finditer(content):
        references.append(
            ImageReference(
                original_text=match.group(0),
                alt_text=match.group(1),
                url=match.group(2),
                syntax="markdown",
            )
        )
    for match in HTML_IMAGE_PATTERN.finditer(content):
        references.append(
            ImageReference(
                original_text=match.group(0),
                alt_text="",
                url=match.group(1),
                syntax="html",
            )
        )
    return references


def collect_issue_text(issue_data: IssueData) -> str:
    """Join the issue body and all comment bodies for image discovery."""
    content = issue_data.issue.get("body") or ""
    for comment in issue_data.comments:
        content += "\n" + (comment.get("body") or "")
    return content
