"""MCP server exposing the issue loader as a tool."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .github import parse_issue_url
from .images import remove_empty_image_dir
from .loader import InvalidIssueUrl
from .loader import load_issue as load_issue_data

logger = logging.getLogger("gh_load_issue.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="gh-load-issue")


@mcp.tool()
def load_issue(
    issue: str,
    output_dir: Optional[str] = None,
    format: str = "markdown",
) -> str:
    """Load a GitHub issue (URL or owner/repo#123) as Markdown or JSON.

    Embedded images are downloaded only when ``output_dir`` is given; they
    are stored in ``<output_dir>/issue-<number>-images``.
    """
    if format not in ("markdown", "json"):
        raise ValueError(f"Unsupported format: {format}")
    parsed = parse_issue_url(issue)
    if not parsed:
        raise InvalidIssueUrl(issue)

    image_dir = None
    image_dir_existed = False
    if output_dir:
        image_dir = Path(output_dir).expanduser() / f"issue-{parsed[2]}-images"
        image_dir_existed = image_dir.exists()
    loaded = load_issue_data(
        issue,
        download_images=image_dir is not None,
        image_dir=image_dir,
        log=logger,
    )
    if (
        image_dir is not None
        and not image_dir_existed
        and loaded.images is not None
        and not loaded.images.downloaded
    ):
        remove_empty_image_dir(image_dir)

    if format == "json":
        return json.dumps(loaded.json, indent=2, ensure_ascii=False)
    return loaded.markdown


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
