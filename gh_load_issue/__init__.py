"""Download GitHub issues with their images as self-contained Markdown or JSON."""

import logging

__version__ = "0.1.0"

logging.getLogger("gh_load_issue").addHandler(logging.NullHandler())

from .content import extract_image_references
from .github import IssueFetchError, parse_issue_url
from .loader import InvalidIssueUrl, issue_to_json, load_issue
from .markdown import issue_to_markdown, replace_image_links

__all__ = [
    "InvalidIssueUrl",
    "IssueFetchError",
    "__version__",
    "extract_image_references",
    "issue_to_json",
    "issue_to_markdown",
    "load_issue",
    "parse_issue_url",
    "replace_image_links",
]
