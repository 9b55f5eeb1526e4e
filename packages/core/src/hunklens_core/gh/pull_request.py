from __future__ import annotations

import json
import logging
import os

import requests
from github import Auth, Github

from hunklens_core.models import PullRequestContext

logger = logging.getLogger(__name__)

_DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"
_TIMEOUT = 60


def _api_url() -> str:
    return os.environ.get("GITHUB_API_URL", "https://api.github.com").rstrip("/")


def load_event(event_path: str | None = None) -> dict:
    """Read the GitHub Actions event payload (``GITHUB_EVENT_PATH``)."""
    path = event_path or os.environ.get("GITHUB_EVENT_PATH")
    if not path:
        raise ValueError("GITHUB_EVENT_PATH is not set")
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Could not read event payload {path}: {e}")


def pull_request_from_event(event: dict) -> tuple[str, str, int]:
    """Return (owner, repo, number) for the pull request an event refers to."""
    repository = event.get("repository") or {}
    number = event.get("number") or (event.get("pull_request") or {}).get("number")
    owner = (repository.get("owner") or {}).get("login")
    name = repository.get("name")
    if not owner or not name or not number:
        raise ValueError("Invalid event data structure")
    return owner, name, int(number)


def get_repo(repo_name: str, token: str):
    return Github(auth=Auth.Token(token)).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_pr_context(pr, owner: str, repo: str) -> PullRequestContext:
    return PullRequestContext(
        owner=owner,
        repo=repo,
        pull_number=pr.number,
        title=pr.title or "",
        description=pr.body or "",
    )


def get_changed_files(pr) -> frozenset[str]:
    """The authoritative set of paths the pull request currently changes."""
    return frozenset(f.filename for f in pr.get_files())


def _get_diff_text(url: str, token: str) -> str:
    headers = {"Authorization": f"token {token}", "Accept": _DIFF_MEDIA_TYPE}
    resp = requests.get(url, headers=headers, timeout=_TIMEOUT)
    if resp.status_code != 200:
        logger.error("GitHub API error %s: %s", resp.status_code, resp.text[:500])
        raise RuntimeError(f"GitHub API error {resp.status_code}: {resp.text[:500]}")
    return resp.text or ""


def get_pull_diff(token: str, owner: str, repo: str, pr_number: int) -> str:
    """Full unified diff of a pull request."""
    return _get_diff_text(f"{_api_url()}/repos/{owner}/{repo}/pulls/{pr_number}", token)


def get_compare_diff(token: str, owner: str, repo: str, base: str, head: str) -> str:
    """Unified diff between two commits, used for pushes to an open pull request."""
    return _get_diff_text(f"{_api_url()}/repos/{owner}/{repo}/compare/{base}...{head}", token)


def get_event_diff(token: str, event: dict, pr: PullRequestContext) -> str:
    action = event.get("action")
    if action == "opened":
        return get_pull_diff(token, pr.owner, pr.repo, pr.pull_number)
    if action == "synchronize":
        base, head = event.get("before"), event.get("after")
        if not base or not head:
            raise ValueError("Invalid event data structure: synchronize event without before/after")
        return get_compare_diff(token, pr.owner, pr.repo, base, head)
    raise ValueError(f"Unsupported event: {os.environ.get('GITHUB_EVENT_NAME', 'unknown')} ({action})")
