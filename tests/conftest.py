"""Pytest configuration and fixtures.

Upstream GitHub calls are replaced by ``FakeGitHub``, which patches
``github_proxy.requests.get`` and answers from a path -> response table.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import patch

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import github_proxy  # noqa: E402
from app import app as flask_app, local_fetcher  # noqa: E402

REASONS = {200: "OK", 401: "Unauthorized", 403: "Forbidden", 404: "Not Found", 500: "Internal Server Error"}


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None):
        self.status_code = status_code
        self.reason = REASONS.get(status_code, "Error")
        self._payload = payload

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeGitHub:
    def __init__(self):
        self.routes: Dict[str, Any] = {}
        self.calls: List[Dict[str, Any]] = []

    def add(self, path: str, payload: Any = None, status: int = 200) -> None:
        self.routes[github_proxy.GITHUB_API_BASE + path] = FakeResponse(status, payload)

    def fail(self, path: str, exc: Exception) -> None:
        self.routes[github_proxy.GITHUB_API_BASE + path] = exc

    def get(self, url: str, headers: Optional[dict] = None, params: Optional[dict] = None, timeout: Any = None):
        self.calls.append({"url": url, "headers": headers or {}, "params": params})
        answer = self.routes.get(url)
        if answer is None:
            return FakeResponse(404, {"message": "Not Found"})
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def github():
    fake = FakeGitHub()
    with patch("github_proxy.requests.get", side_effect=fake.get):
        yield fake


@pytest.fixture
def client():
    flask_app.config["TESTING"] = True
    with flask_app.test_client() as c:
        yield c


@pytest.fixture
def proxy_fetcher():
    """The dashboard's in-process fetcher, running the proxy endpoints directly."""
    return local_fetcher()


@pytest.fixture
def octocat(github):
    github.add(
        "/users/octocat",
        {
            "login": "octocat",
            "name": "The Octocat",
            "avatar_url": "https://avatars.githubusercontent.com/u/583231",
            "bio": None,
            "created_at": "2011-01-25T18:44:36Z",
            "followers": 100,
            "following": 9,
            "hireable": None,
            "location": "San Francisco",
            "blog": "https://github.blog",
            "twitter_username": None,
            "html_url": "https://github.com/octocat",
        },
    )
    github.add(
        "/users/octocat/repos",
        [
            {"name": "hello", "language": "Go", "stargazers_count": 10, "forks_count": 2},
            {"name": "world", "language": "Go", "stargazers_count": 5, "forks_count": 1},
            {"name": "spoon", "language": "Python", "stargazers_count": 0, "forks_count": 0},
        ],
    )
    github.add(
        "/users/octocat/events",
        [
            {"type": "PushEvent", "created_at": "2024-03-02T10:00:00Z", "payload": {"commits": [{"sha": "a"}, {"sha": "b"}]}},
            {"type": "WatchEvent", "created_at": "2024-03-02T11:00:00Z", "payload": {}},
            {"type": "PushEvent", "created_at": "2024-03-01T09:00:00Z", "payload": {"commits": [{"sha": "c"}]}},
        ],
    )
    return github
