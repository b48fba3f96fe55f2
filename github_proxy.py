"""
GitHub REST proxy helpers.

Each fetcher takes a username and an optional personal access token, calls the
matching GitHub REST v3 resource and returns the decoded JSON. Failures are
raised as ProxyError subclasses so the HTTP layer can turn them into
``{"error": ...}`` bodies:

  ValidationError  -> 400 (missing / malformed username)
  UpstreamError    -> 500 (GitHub answered non-2xx, or the network failed)
"""

from __future__ import annotations

import datetime as dt
import logging
import os
import re
from typing import Any, Dict, Iterable, List, Optional

import requests

logger = logging.getLogger("github_stats.proxy")

# -----------------------------
# Config
# -----------------------------
GITHUB_API_BASE = os.getenv("GITHUB_API_BASE", "https://api.github.com").rstrip("/")
API_VERSION = os.getenv("GITHUB_API_VERSION", "2022-11-28")
REQUEST_TIMEOUT = float(os.getenv("GITHUB_TIMEOUT_SECONDS", "20"))

# One page only; no pagination beyond this.
PAGE_SIZE = 100
MAX_CONTRIBUTION_DAYS = 30

# GitHub allows alnum and hyphen; max length 39
USERNAME_RE = re.compile(r"^[A-Za-z0-9-]{1,39}$")

USERNAME_REQUIRED = "Username is required"
UNKNOWN_ERROR = "An unknown error occurred"


# -----------------------------
# Errors
# -----------------------------
class ProxyError(Exception):
    status_code = 500

    def to_dict(self) -> Dict[str, str]:
        return {"error": str(self)}


class ValidationError(ProxyError):
    status_code = 400


class UpstreamError(ProxyError):
    status_code = 500


# -----------------------------
# HTTP helpers
# -----------------------------
def _headers(token: Optional[str] = None) -> Dict[str, str]:
    h = {
        "Accept": "application/vnd.github+json",
        "User-Agent": "github-stats-viewer",
        "X-GitHub-Api-Version": API_VERSION,
    }
    if token:
        h["Authorization"] = f"Bearer {token}"
    return h


def fetch_with_auth(path: str, token: Optional[str] = None, params: Optional[dict] = None) -> Any:
    """
    GET a GitHub REST resource and return its JSON body.

    Any non-2xx answer becomes UpstreamError carrying the reason phrase
    ("Not Found", "Forbidden", ...). Rate-limit responses are passed through
    the same way; there is no retry.
    """
    url = f"{GITHUB_API_BASE}{path}"
    try:
        resp = requests.get(url, headers=_headers(token), params=params, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        logger.warning("GitHub request to %s failed: %s", path, e)
        raise UpstreamError(str(e)) from e

    if not resp.ok:
        logger.info("GitHub answered %s for %s", resp.status_code, path)
        raise UpstreamError(f"GitHub API error: {resp.reason}")

    try:
        return resp.json()
    except ValueError as e:
        raise UpstreamError(f"GitHub API error: invalid JSON ({e})") from e


def require_username(raw: Optional[str]) -> str:
    username = (raw or "").strip()
    if not username:
        raise ValidationError(USERNAME_REQUIRED)
    if not USERNAME_RE.match(username):
        raise ValidationError("Invalid GitHub username format")
    return username


# -----------------------------
# Fetchers
# -----------------------------
def fetch_user_info(username: str, token: Optional[str] = None) -> Dict[str, Any]:
    return fetch_with_auth(f"/users/{username}", token)


def fetch_user_repos(username: str, token: Optional[str] = None) -> List[Dict[str, Any]]:
    return fetch_with_auth(f"/users/{username}/repos", token, params={"per_page": PAGE_SIZE})


def fetch_user_events(username: str, token: Optional[str] = None) -> List[Dict[str, Any]]:
    return fetch_with_auth(f"/users/{username}/events", token, params={"per_page": PAGE_SIZE})


def fetch_user_contributions(username: str, token: Optional[str] = None) -> List[Dict[str, Any]]:
    events = fetch_user_events(username, token)
    if not isinstance(events, list):
        raise UpstreamError("GitHub API error: unexpected events payload")
    return aggregate_contributions(events)


# -----------------------------
# Contribution aggregation
# -----------------------------
def _dateparse(s: Optional[str]) -> Optional[dt.datetime]:
    if not s:
        return None
    try:
        parsed = dt.datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def _push_commit_count(event: Dict[str, Any]) -> int:
    payload = event.get("payload") or {}
    commits = payload.get("commits")
    if isinstance(commits, list):
        return len(commits)
    # Newer event payloads drop the commit list but keep its size.
    return int(payload.get("size") or 0)


def aggregate_contributions(events: Iterable[Dict[str, Any]], days: int = MAX_CONTRIBUTION_DAYS) -> List[Dict[str, Any]]:
    """
    Group push events into per-day commit counts.

    Returns ``[{"date": "YYYY-MM-DD", "commits": n}, ...]`` sorted ascending
    by date and limited to the ``days`` most recent days that saw a push.
    Every other event type is ignored.
    """
    per_day: Dict[dt.date, int] = {}
    for e in events:
        if e.get("type") != "PushEvent":
            continue
        created = _dateparse(e.get("created_at"))
        if created is None:
            logger.debug("Skipping push event %s without a usable created_at", e.get("id"))
            continue
        day = created.astimezone(dt.timezone.utc).date()
        per_day[day] = per_day.get(day, 0) + _push_commit_count(e)

    ordered = sorted(per_day.items())[-days:] if days > 0 else []
    return [{"date": d.isoformat(), "commits": int(c)} for d, c in ordered]
