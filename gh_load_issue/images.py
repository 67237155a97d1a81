"""Image downloading and validation utilities."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union
from urllib.parse import urljoin, urlparse

import requests

from .config import IMAGE_FETCH_TIMEOUT, MAX_REDIRECTS, TRUSTED_IMAGE_HOSTS, USER_AGENT
from .content import extract_image_references
from .models import (
    DownloadedImage,
    FailedImage,
    HarvestReport,
    LocalImageRecord,
    SkippedImage,
    SniffOutcome,
)

logger = logging.getLogger("gh_load_issue")

CHUNK_SIZE = 8 * 1024
SNIFF_TEXT_BYTES = 100

IMAGE_EXTENSIONS = {
    "png": ".png",
    "jpeg": ".jpg",
    "gif": ".gif",
    "webp": ".webp",
    "bmp": ".bmp",
    "ico": ".ico",
    "svg": ".svg",
}

ImageMap = Dict[str, LocalImageRecord]


class ImageFetchError(Exception):
    """Base class for failures while retrieving a single image."""


class TooManyRedirects(ImageFetchError):
    def __init__(self) -> None:
        super().__init__("Too many redirects")


class HttpStatusError(ImageFetchError):
    def __init__(self, status_code: int, reason: Optional[str] = None) -> None:
        self.status_code = status_code
        self.reason = reason or ""
        message = f"HTTP {status_code}: {self.reason}" if self.reason else f"HTTP {status_code}"
        super().__init__(message)


class FetchTimeout(ImageFetchError):
    def __init__(self) -> None:
        super().__init__("Request timeout")


class NetworkError(ImageFetchError):
    pass


def is_trusted_image_host(url: str) -> bool:
    """Return True when ``url`` points at a GitHub-owned content host."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return any(host == trusted or host.endswith("." + trusted) for trusted in TRUSTED_IMAGE_HOSTS)


def _read_body(response: requests.Response, deadline: float) -> bytes:
    chunks: List[bytes] = []
    try:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if time.monotonic() > deadline:
                raise FetchTimeout()
            chunks.append(chunk)
    except requests.Timeout as exc:
        raise FetchTimeout() from exc
    except requests.RequestException as exc:
        raise NetworkError(str(exc)) from exc
    return b"".join(chunks)


def fetch_image_bytes(
    url: str,
    token: Optional[str] = None,
    max_redirects: int = MAX_REDIRECTS,
    session: Optional[requests.Session] = None,
    timeout: float = IMAGE_FETCH_TIMEOUT,
    log: Optional[logging.Logger] = None,
) -> bytes:
    """Download the raw bytes behind ``url``.

    Redirects are followed by hand so the bearer token is only ever sent to
    trusted GitHub hosts, including after a redirect to a third-party CDN.
    Each hop must finish within ``timeout`` seconds of being issued; a slow
    body is abandoned and the connection closed.
    """
    log = log or logger
    if session is None:
        with requests.Session() as own_session:
            return fetch_image_bytes(url, token, max_redirects, own_session, timeout, log)

    if max_redirects <= 0:
        raise TooManyRedirects()

    headers = {"User-Agent": USER_AGENT, "Accept": "image/*,*/*"}
    if token and is_trusted_image_host(url):
        headers["Authorization"] = f"Bearer {token}"

    log.debug("  Downloading from: %s", url)
    deadline = time.monotonic() + timeout
    try:
        response = session.get(
            url,
            headers=headers,
            allow_redirects=False,
            stream=True,
            timeout=timeout,
        )
    except requests.Timeout as exc:
        raise FetchTimeout() from exc
    except (requests.RequestException, ValueError) as exc:
        raise NetworkError(str(exc)) from exc

    try:
        location = response.headers.get("Location")
        if 300 <= response.status_code < 400 and location:
            try:
                redirect_url = urljoin(url, location)
            except ValueError as exc:
                raise NetworkError(f"Invalid redirect location: {location}") from exc
        elif response.status_code != 200:
            raise HttpStatusError(response.status_code, response.reason)
        else:
            return _read_body(response, deadline)
    finally:
        response.close()

    log.debug("  Following redirect to: %s", redirect_url)
    return fetch_image_bytes(redirect_url, token, max_redirects - 1, session, timeout, log)


def detect_image_format(data: Optional[bytes]) -> SniffOutcome:
    """Classify ``data`` by magic bytes; rejects HTML error pages."""
    if not data or len(data) < 4:
        return SniffOutcome(valid=False, reason="buffer too small")
    if data[:4] == b"\x89PNG":
        return SniffOutcome(valid=True, format="png")
    if data[:3] == b"\xff\xd8\xff":
        return SniffOutcome(valid=True, format="jpeg")
    if data[:3] == b"GIF":
        return SniffOutcome(valid=True, format="gif")
    if data[:4] == b"RIFF" and len(data) >= 12 and data[8:12] == b"WEBP":
        return SniffOutcome(valid=True, format="webp")
    if data[:2] == b"BM":
        return SniffOutcome(valid=True, format="bmp")
    if data[:4] == b"\x00\x00\x01\x00":
        return SniffOutcome(valid=True, format="ico")

    text = data[:SNIFF_TEXT_BYTES].decode("utf-8", errors="replace")
    text = text.lstrip("\ufeff").strip().lower()
    if text.startswith("<?xml") or text.startswith("<svg"):
        return SniffOutcome(valid=True, format="svg")
    if "<!doctype html" in text or "<html" in text or "404" in text:
        return SniffOutcome(valid=False, format="html", reason="received HTML instead of image")
    return SniffOutcome(valid=False, reason="unknown file format")


def extension_for_format(image_format: Optional[str]) -> str:
    return IMAGE_EXTENSIONS.get(image_format or "", ".bin")


def download_images(
    content: Optional[str],
    image_dir: Union[str, Path],
    token: Optional[str] = None,
    session: Optional[requests.Session] = None,
    log: Optional[logging.Logger] = None,
) -> Tuple[ImageMap, HarvestReport]:
    """Download images referenced in ``content`` and persist them locally.

    Every discovered reference ends up in exactly one report bucket. Files
    are named after the reference's 1-based discovery index, so skipped or
    failed references leave gaps in the numbering.
    """
    log = log or logger
    image_dir = Path(image_dir)
    references = extract_image_references(content)
    image_map: ImageMap = {}
    report = HarvestReport()
    if not references:
        return image_map, report

    log.info("Found %d image(s) to download...", len(references))
    http = session or requests.Session()
    seen: Set[str] = set()
    try:
        for index, reference in enumerate(references, start=1):
            url = reference.url
            if url in seen:
                log.debug("  Skipping duplicate: %s", url)
                report.skipped.append(SkippedImage(url, "duplicate"))
                continue
            seen.add(url)
            if url.startswith("data:"):
                log.debug("  Skipping data URL")
                report.skipped.append(SkippedImage(url, "data URL"))
                continue
            if not url.startswith(("http://", "https://")):
                log.debug("  Skipping non-HTTP URL: %s", url)
                report.skipped.append(SkippedImage(url, "non-HTTP URL"))
                continue

            log.debug("  [%d/%d] Downloading: %s", index, len(references), url[:80])
            try:
                data = fetch_image_bytes(url, token, session=http, log=log)
            except ImageFetchError as exc:
                log.warning("Failed to download image: %s", exc)
                log.debug("     URL: %s", url)
                report.failed.append(FailedImage(url, str(exc)))
                continue

            outcome = detect_image_format(data)
            if not outcome.valid:
                log.warning("Invalid image (%s): %s", outcome.reason, url[:60])
                report.failed.append(FailedImage(url, outcome.reason or "invalid image"))
                continue

            filename = f"image-{index}{extension_for_format(outcome.format)}"
            destination = image_dir / filename
            try:
                image_dir.mkdir(parents=True, exist_ok=True)
                destination.write_bytes(data)
            except OSError as exc:
                log.warning("Failed to write image %s: %s", destination, exc)
                report.failed.append(FailedImage(url, f"Failed to write image: {exc}"))
                continue

            image_format = outcome.format or ""
            image_map[url] = LocalImageRecord(
                local_path=str(destination),
                relative_path=f"{image_dir.name}/{filename}",
                format=image_format,
                size=len(data),
            )
            report.downloaded.append(
                DownloadedImage(url, str(destination), image_format, len(data))
            )
            log.debug("  Saved as %s (%s, %d bytes)", filename, image_format, len(data))
    finally:
        if session is None:
            http.close()

    if report.downloaded:
        log.info("Downloaded %d image(s)", len(report.downloaded))
    if report.failed:
        log.warning("Failed to download %d image(s)", len(report.failed))
    return image_map, report


def remove_empty_image_dir(image_dir: Union[str, Path]) -> None:
    """Remove ``image_dir`` if it exists and holds no files."""
    image_dir = Path(image_dir)
    try:
        if image_dir.is_dir() and not any(image_dir.iterdir()):
            image_dir.rmdir()
    except OSError as exc:
        logger.debug("Could not remove empty image directory %s: %s", image_dir, exc)
