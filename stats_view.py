"""
Dashboard side of the viewer: calls the three proxy endpoints, reduces their
answers into a single view model and prepares it for the template.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
from typing import Any, Callable, Dict, List, Optional

import requests

logger = logging.getLogger("github_stats.dashboard")

Fetcher = Callable[[str, Dict[str, str]], Any]

COLORS = ["#0088FE", "#00C49F", "#FFBB28", "#FF8042", "#8884D8"]
GITHUB_WEB = "https://github.com"
TWITTER_WEB = "https://twitter.com"

SUCCESS_MESSAGE = "User data fetched successfully!"


class DashboardError(RuntimeError):
    pass


def api_error(reason: str) -> DashboardError:
    """Build the error for a failed proxy call from its HTTP reason phrase."""
    return DashboardError(f"API error: {reason}")


def http_fetcher(base_url: str, session: Optional[requests.Session] = None, timeout: float = 30) -> Fetcher:
    """
    Returns ``fetch(endpoint, params)`` that calls ``{base_url}/api/github/{endpoint}``.
    """
    http = session or requests.Session()
    root = base_url.rstrip("/")

    def fetch(endpoint: str, params: Dict[str, str]) -> Any:
        try:
            resp = http.get(f"{root}/api/github/{endpoint}", params=params, timeout=timeout)
        except requests.RequestException as e:
            raise DashboardError(str(e)) from e
        if not resp.ok:
            raise api_error(resp.reason)
        return resp.json()

    return fetch


# -----------------------------
# Aggregation
# -----------------------------
def summarize_repos(repos: List[Dict[str, Any]]) -> Dict[str, int]:
    total_stars = 0
    total_forks = 0
    for r in repos:
        total_stars += int(r.get("stargazers_count") or 0)
        total_forks += int(r.get("forks_count") or 0)
    return {"total_repos": len(repos), "total_stars": total_stars, "total_forks": total_forks}


def count_languages(repos: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # dicts keep insertion order, so shares come out in order of first encounter
    counts: Dict[str, int] = {}
    for r in repos:
        lang = r.get("language")
        if lang:
            counts[lang] = counts.get(lang, 0) + 1
    return [{"name": name, "value": value} for name, value in counts.items()]


def build_user_data(user_info: Dict[str, Any], repos: List[Dict[str, Any]], contributions: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "user_info": user_info,
        **summarize_repos(repos),
        "contributions_chart_data": list(contributions),
        "languages_data": count_languages(repos),
    }


class StatsDashboard:
    """
    View state for one browser form: idle -> loading -> (success | error).

    ``user_data`` is replaced wholesale on success and cleared at the start of
    every submission. Concurrent submissions are not guarded.
    """

    def __init__(self, fetch: Fetcher):
        self.fetch = fetch
        self.loading = False
        self.user_data: Optional[Dict[str, Any]] = None
        self.notifications: List[Dict[str, str]] = []

    @property
    def state(self) -> str:
        if self.loading:
            return "loading"
        if self.user_data is not None:
            return "success"
        if any(n["kind"] == "error" for n in self.notifications):
            return "error"
        return "idle"

    def notify(self, kind: str, message: str) -> None:
        self.notifications.append({"kind": kind, "message": message})

    def fetch_user_stats(self, username: str, token: str = "") -> Optional[Dict[str, Any]]:
        self.loading = True
        self.user_data = None
        params = {"username": username, "token": token}
        try:
            user_info = self.fetch("userInfo", params)
            repos = self.fetch("userRepos", params)
            contributions = self.fetch("userContributions", params)

            self.user_data = build_user_data(user_info, repos, contributions)
            self.notify("success", SUCCESS_MESSAGE)
        except Exception as e:
            logger.info("Fetching stats for %r failed: %s", username, e)
            self.notify("error", f"Error fetching data: {e}")
        finally:
            self.loading = False
        return self.user_data


# -----------------------------
# Presentation helpers
# -----------------------------
def format_date(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return f"{parsed:%b} {parsed.day}, {parsed.year}"


def stat_tiles(user_data: Dict[str, Any]) -> List[Dict[str, Any]]:
    info = user_data["user_info"]
    profile = f"{GITHUB_WEB}/{info.get('login', '')}"
    return [
        {"label": "Followers", "value": info.get("followers", 0), "url": f"{profile}?tab=followers"},
        {"label": "Following", "value": info.get("following", 0), "url": f"{profile}?tab=following"},
        {"label": "Repositories", "value": user_data["total_repos"], "url": f"{profile}?tab=repositories"},
        {"label": "Stars Received", "value": user_data["total_stars"], "url": f"{profile}?tab=repositories&sort=stargazers"},
    ]


def language_slices(languages_data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{**lang, "color": COLORS[i % len(COLORS)]} for i, lang in enumerate(languages_data)]


def show_hireable(user_info: Dict[str, Any]) -> bool:
    # Missing and null are treated alike: the line is hidden.
    return user_info.get("hireable") is not None


# "scheme://..." and "scheme:" (javascript:, data:, ...) but not "host:port"
SCHEME_URL_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*)://")
OPAQUE_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:(?!\d)")


def blog_url(value: Optional[str]) -> Optional[str]:
    """Return a clickable http(s) URL for a profile blog field, or None."""
    value = (value or "").strip()
    if not value:
        return None
    m = SCHEME_URL_RE.match(value)
    if m:
        return value if m.group(1).lower() in ("http", "https") else None
    if OPAQUE_SCHEME_RE.match(value):
        return None
    return f"https://{value}"


def profile_links(user_info: Dict[str, Any]) -> Dict[str, Optional[str]]:
    twitter = user_info.get("twitter_username")
    return {
        "github": user_info.get("html_url") or f"{GITHUB_WEB}/{user_info.get('login', '')}",
        "blog": blog_url(user_info.get("blog")),
        "twitter": f"{TWITTER_WEB}/{twitter}" if twitter else None,
    }
