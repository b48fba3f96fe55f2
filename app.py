"""
GitHub Statistics Viewer (Flask)

What it does:
- Proxies three GitHub REST resources for a username (profile, repos, recent
  push activity), optionally authenticated with a caller-supplied token
- Renders a dashboard: profile card, stat tiles, a commit line chart for the
  last 30 active days and a language pie chart

Setup:
  pip install -e .

Run:
  python app.py
  open http://localhost:5000

Endpoints:
  GET  /                                   -> dashboard form
  POST /                                   -> form-data { username, token } -> dashboard with stats
  GET  /api/github/userInfo?username=      -> GitHub user resource, verbatim
  GET  /api/github/userRepos?username=     -> first page of public repos, verbatim
  GET  /api/github/userContributions?username=
                                           -> [{"date": "YYYY-MM-DD", "commits": n}, ...] (<= 30)
  GET  /healthz                            -> liveness

All proxy endpoints also accept an optional ``token`` query parameter.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Optional, Tuple

from flask import Flask, jsonify, render_template, request
from werkzeug.http import HTTP_STATUS_CODES

import github_proxy
from github_proxy import UNKNOWN_ERROR, ProxyError
from stats_view import (
    Fetcher,
    StatsDashboard,
    api_error,
    format_date,
    http_fetcher,
    language_slices,
    profile_links,
    show_hireable,
    stat_tiles,
)

# -----------------------------
# Logging
# -----------------------------
logger = logging.getLogger("github_stats")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(handler)
logger.propagate = False
logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

# -----------------------------
# Flask app
# -----------------------------
app = Flask(__name__)
app.jinja_env.filters["format_date"] = format_date

# -----------------------------
# Config
# -----------------------------
# Remote proxy the dashboard calls over HTTP; empty runs the proxy in-process.
DASHBOARD_API_BASE = os.getenv("DASHBOARD_API_BASE", "").strip()


# -----------------------------
# Proxy endpoints
# -----------------------------
PROXY_FETCHERS: Dict[str, Callable[[str, Optional[str]], Any]] = {
    "userInfo": github_proxy.fetch_user_info,
    "userRepos": github_proxy.fetch_user_repos,
    "userContributions": github_proxy.fetch_user_contributions,
}


def proxy_call(endpoint: str, raw_username: Optional[str], token: Optional[str]) -> Tuple[Any, int]:
    """
    Run one proxy endpoint and return ``(body, status)``.

    Never raises: validation, upstream and unexpected failures all become
    ``{"error": ...}`` bodies.
    """
    try:
        username = github_proxy.require_username(raw_username)
        return PROXY_FETCHERS[endpoint](username, token or None), 200
    except ProxyError as e:
        if e.status_code >= 500:
            logger.warning("%s failed: %s", endpoint, e)
        return e.to_dict(), e.status_code
    except Exception:
        logger.exception("Unexpected error in %s", endpoint)
        return {"error": UNKNOWN_ERROR}, 500


def _proxy(endpoint: str):
    body, status = proxy_call(endpoint, request.args.get("username"), request.args.get("token"))
    return jsonify(body), status


@app.route("/api/github/userInfo", methods=["GET"])
def api_user_info():
    return _proxy("userInfo")


@app.route("/api/github/userRepos", methods=["GET"])
def api_user_repos():
    return _proxy("userRepos")


@app.route("/api/github/userContributions", methods=["GET"])
def api_user_contributions():
    return _proxy("userContributions")


# -----------------------------
# Dashboard
# -----------------------------
def local_fetcher() -> Fetcher:
    """Dashboard fetcher that runs the proxy endpoints in this process."""

    def fetch(endpoint: str, params: Dict[str, str]) -> Any:
        body, status = proxy_call(endpoint, params.get("username"), params.get("token"))
        if status >= 400:
            raise api_error(HTTP_STATUS_CODES.get(status, "Unknown Error"))
        return body

    return fetch


def make_dashboard() -> StatsDashboard:
    # Only an operator-configured base is ever called over HTTP.
    if DASHBOARD_API_BASE:
        return StatsDashboard(http_fetcher(DASHBOARD_API_BASE))
    return StatsDashboard(local_fetcher())


@app.route("/", methods=["GET", "POST"])
def home():
    dashboard = make_dashboard()
    username = ""
    if request.method == "POST":
        username = (request.form.get("username") or "").strip()
        dashboard.fetch_user_stats(username, request.form.get("token") or "")

    user_data = dashboard.user_data
    return render_template(
        "index.html",
        dashboard=dashboard,
        username=username,
        user_data=user_data,
        tiles=stat_tiles(user_data) if user_data else [],
        slices=language_slices(user_data["languages_data"]) if user_data else [],
        links=profile_links(user_data["user_info"]) if user_data else {},
        show_hireable=show_hireable(user_data["user_info"]) if user_data else False,
    )


@app.route("/healthz", methods=["GET"])
def healthz():
    return jsonify({"ok": True, "api_base": github_proxy.GITHUB_API_BASE, "api_version": github_proxy.API_VERSION})


if __name__ == "__main__":
    port = int(os.getenv("PORT", "5000"))
    app.run(host="0.0.0.0", port=port, debug=True)
