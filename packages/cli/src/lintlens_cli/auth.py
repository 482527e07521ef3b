"""Pick the GitHub token for a scan.

``--token`` wins over the token the config layer read from GITHUB_TOKEN;
without either, the GitHub CLI session (`gh auth token`) is asked.
"""

from __future__ import annotations

import logging
import subprocess

logger = logging.getLogger(__name__)


def _gh_session_token() -> str | None:
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("No token from the gh CLI: %s", e)
        return None
    if result.returncode != 0:
        logger.debug("gh auth token exited with %d", result.returncode)
        return None
    return result.stdout.strip() or None


def resolve_github_token(explicit: str | None = None, configured: str | None = None) -> str | None:
    """Return the first token available from ``explicit``, ``configured`` or gh.

    ``configured`` is ``config["github_token"]`` as set by ``load_config``.
    Returns None when nothing yields a token.
    """
    for source, token in (("--token", explicit), ("configuration", configured)):
        if token:
            logger.debug("Using GitHub token from %s", source)
            return token
    token = _gh_session_token()
    if token:
        logger.debug("Using GitHub token from the gh CLI session")
    return token
