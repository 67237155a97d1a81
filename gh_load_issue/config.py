"""Configuration objects and constants for issue loading."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

USER_AGENT = "gh-load-issue"
GITHUB_API_URL = "https://api.github.com"
IMAGE_FETCH_TIMEOUT = 30.0
MAX_REDIRECTS = 5

# Hosts (and their subdomains) that may receive the GitHub token.
TRUSTED_IMAGE_HOSTS = (
    "github.com",
    "githubusercontent.com",
    "github.githubassets.com",
)

OUTPUT_FORMATS = ("markdown", "json")


@dataclass
class OutputConfig:
    """Where and how a loaded issue should be written."""

    output_dir: Path
    base_name: str
    format: str = "markdown"
    download_images: bool = True

    @property
    def image_dir(self) -> Path:
        return self.output_dir / f"{self.base_name}-images"

    @property
    def output_path(self) -> Path:
        suffix = ".json" if self.format == "json" else ".md"
        return self.output_dir / f"{self.base_name}{suffix}"
