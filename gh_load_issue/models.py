"""Data models used throughout the issue loading pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ImageReference:
    """Embedded image discovered in issue or comment text."""

    original_text: str
    alt_text: str
    url: str
    syntax: str


@dataclass(frozen=True)
class SniffOutcome:
    """Result of classifying a byte buffer by its leading signature."""

    valid: bool
    format: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class LocalImageRecord:
    """Downloaded and validated image stored on disk."""

    local_path: str
    relative_path: str
    format: str
    size: int


@dataclass
class DownloadedImage:
    url: str
    local_path: str
    format: str
    size: int


@dataclass
class FailedImage:
    url: str
    reason: str


@dataclass
class SkippedImage:
    url: str
    reason: str


@dataclass
class HarvestReport:
    """Fate of every image reference found during one harvest."""

    downloaded: List[DownloadedImage] = field(default_factory=list)
    failed: List[FailedImage] = field(default_factory=list)
    skipped: List[SkippedImage] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Render the report in the shape embedded into JSON exports."""
        return {
            "downloaded": [
                {
                    "url": item.url,
                    "localPath": item.local_path,
                    "type": item.format,
                    "size": item.size,
                }
                for item in self.downloaded
            ],
            "failed": [{"url": item.url, "reason": item.reason} for item in self.failed],
            "skipped": [{"url": item.url, "reason": item.reason} for item in self.skipped],
        }


@dataclass
class IssueData:
    """Issue and comments in the GitHub REST API shape."""

    issue: Dict[str, Any]
    comments: List[Dict[str, Any]]


@dataclass
class LoadedIssue:
    """Everything the library call hands back for one issue."""

    owner: str
    repo: str
    issue_number: int
    issue: Dict[str, Any]
    comments: List[Dict[str, Any]]
    markdown: str
    json: Dict[str, Any]
    images: Optional[HarvestReport]
