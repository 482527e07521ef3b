"""Per-line commit attribution for a file at a revision."""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from lintlens_core.errors import BlameUnavailable
from lintlens_core.models import BlameEntry

logger = logging.getLogger(__name__)


def build_blame_log(entries: Iterable[BlameEntry]) -> dict[int, str]:
    """Collapse blame entries into ``{line: commit_sha}``.

    A file has exactly one entry per line at a given revision; seeing a line
    twice means the blame source is broken, and nothing in the file can be
    trusted for attribution.
    """
    blame_log: dict[int, str] = {}
    for entry in entries:
        if entry.line in blame_log:
            raise BlameUnavailable(f"Duplicate blame entry for line {entry.line}")
        blame_log[entry.line] = entry.commit_sha
    return blame_log


def attribute_file(
    fetch_blame: Callable[[str, str], list[BlameEntry]],
    file: str,
    revision: str,
) -> dict[int, str]:
    """Fetch blame for ``file`` at ``revision`` and return its blame log.

    BlameUnavailable propagates to the caller, which treats the file as
    having no attributable findings.
    """
    blame_log = build_blame_log(fetch_blame(file, revision))
    logger.debug("Blame for %s@%s covers %d line(s)", file, revision[:7], len(blame_log))
    return blame_log
