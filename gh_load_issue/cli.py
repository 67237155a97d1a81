"""Command-line entry point for downloading GitHub issues."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Sequence

from . import __version__
from .config import OUTPUT_FORMATS, OutputConfig
from .github import IssueFetchError, fetch_issue, get_gh_token, parse_issue_url
from .images import remove_empty_image_dir
from .loader import harvest_issue_images, issue_to_json
from .markdown import issue_to_markdown
from .utils import resolve_output_location

logger = logging.getLogger("gh_load_issue.cli")

EXPECTED_FORMAT_HINT = "Expected: https://github.com/owner/repo/issues/123 or owner/repo#123"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="gh-load-issue",
        description="Download a GitHub issue and convert it to Markdown or JSON.",
        epilog=(
            "examples:\n"
            "  gh-load-issue https://github.com/owner/repo/issues/123\n"
            "  gh-load-issue owner/repo#123 -o my-issue.md\n"
            "  gh-load-issue owner/repo#123 --format json --no-download-images"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "issue",
        nargs="?",
        help="GitHub issue URL or short format (owner/repo#123)",
    )
    parser.add_argument(
        "-t",
        "--token",
        default=os.environ.get("GITHUB_TOKEN"),
        help="GitHub personal access token (optional for public issues)",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output directory or file path (default: current directory)",
    )
    parser.add_argument(
        "--download-images",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Download embedded images (default: true)",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=OUTPUT_FORMATS,
        default="markdown",
        help="Output format (default: markdown)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--use-api",
        action="store_true",
        help="Use the GitHub API instead of the gh CLI",
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    if not args.issue:
        logger.error("No issue URL provided. %s", EXPECTED_FORMAT_HINT)
        sys.exit(1)
    parsed = parse_issue_url(args.issue)
    if not parsed:
        logger.error("Invalid issue URL or format. %s", EXPECTED_FORMAT_HINT)
        sys.exit(1)
    owner, repo, issue_number = parsed

    token = args.token
    if args.use_api and not token:
        token = get_gh_token()
        if token:
            logger.info("Using GitHub token from gh CLI for API mode")

    try:
        issue_data = fetch_issue(owner, repo, issue_number, token, args.use_api)
    except IssueFetchError:
        sys.exit(1)

    output_dir, base_name = resolve_output_location(args.output, issue_number)
    config = OutputConfig(
        output_dir=output_dir,
        base_name=base_name,
        format=args.format,
        download_images=args.download_images,
    )
    config.output_dir.mkdir(parents=True, exist_ok=True)

    image_map = None
    report = None
    if config.download_images:
        image_dir_existed = config.image_dir.exists()
        image_map, report = harvest_issue_images(issue_data, config.image_dir, token)
        if not report.downloaded and not image_dir_existed:
            remove_empty_image_dir(config.image_dir)

    logger.info("Converting to %s...", config.format)
    if config.format == "json":
        text = json.dumps(issue_to_json(issue_data, report), indent=2, ensure_ascii=False)
    else:
        text = issue_to_markdown(issue_data, image_map)

    try:
        config.output_path.write_text(text, encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to write file: %s", exc)
        sys.exit(1)
    logger.info("Issue saved to: %s", config.output_path)

    if report and report.downloaded:
        logger.info("Images saved to: %s", config.image_dir)


if __name__ == "__main__":
    main()
