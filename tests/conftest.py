"""Shared fixtures: a stand-in for ``requests.Session`` with canned responses."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Union

import pytest

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 24
GIF_BYTES = b"GIF89a" + b"\x00" * 24


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        body: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
        reason: str = "OK",
        json_data: Any = None,
        links: Optional[Dict[str, Dict[str, str]]] = None,
        chunk_error: Optional[Exception] = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.headers = headers or {}
        self.reason = reason
        self.json_data = json_data
        self.links = links or {}
        self.chunk_error = chunk_error
        self.chunk_sizes: List[int] = []
        self.closed = False

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        self.chunk_sizes.append(chunk_size)
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start : start + chunk_size]
        if self.chunk_error is not None:
            raise self.chunk_error

    def json(self) -> Any:
        return self.json_data

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Serves responses keyed by URL and records every request made."""

    def __init__(self, routes: Optional[Dict[str, Union[FakeResponse, Exception]]] = None) -> None:
        self.routes = routes or {}
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url: str, headers: Optional[Dict[str, str]] = None, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, "headers": dict(headers or {}), **kwargs})
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(status_code=404, reason="Not Found")
        if isinstance(route, Exception):
            raise route
        return route

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def urls(self) -> List[str]:
        return [call["url"] for call in self.calls]


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def issue_payload() -> Dict[str, Any]:
    return {
        "number": 42,
        "title": "Rendering glitch",
        "html_url": "https://github.com/octo/widgets/issues/42",
        "state": "open",
        "user": {"login": "octocat", "html_url": "https://github.com/octocat"},
        "created_at": "2024-03-01T10:20:30Z",
        "updated_at": "2024-03-02T08:00:00Z",
        "labels": [{"name": "bug", "color": "d73a4a", "description": "Something broke"}],
        "assignees": [{"login": "hubot", "html_url": "https://github.com/hubot"}],
        "milestone": {"title": "v1.0", "html_url": "https://github.com/octo/widgets/milestone/1"},
        "body": "See ![shot](https://example.com/shot.png)",
    }


@pytest.fixture
def comment_payloads() -> List[Dict[str, Any]]:
    return [
        {
            "id": 1001,
            "user": {"login": "hubot", "html_url": "https://github.com/hubot"},
            "created_at": "2024-03-01T12:00:00Z",
            "updated_at": "2024-03-01T12:00:00Z",
            "body": 'Same here <img src="https://example.com/other.gif" width="200">',
        }
    ]
