"""GitHub token resolution for local runs.

Inside Actions the token always arrives as an input. From a terminal the
developer may instead be logged in with the GitHub CLI, so ``gh auth token``
is tried when no token was configured.
"""

from __future__ import annotations

import logging
import subprocess

logger = logging.getLogger(__name__)


def _gh_cli_token() -> str | None:
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token(configured: str | None) -> str | None:
    """Return the configured token, else the gh CLI session token, else None."""
    if configured:
        return configured
    token = _gh_cli_token()
    if token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    return token
