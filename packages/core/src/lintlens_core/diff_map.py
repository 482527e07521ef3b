"""Map a file's unified diff to changed lines and GitHub diff positions.

GitHub's review comment API places inline comments by ``position``: the
number of lines below the first ``@@`` hunk header of the file's patch.
Position 1 is the line directly below that first header, and the count keeps
running through every later hunk header until the end of the file's patch.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

from lintlens_core.models import DiffHunkMap

logger = logging.getLogger(__name__)

_HUNK_RE = re.compile(r"^@@ -\d+(?:,\d+)? \+(?P<new_start>\d+)(?:,\d+)? @@")


def build_hunk_map(file: str, base_sha: str, head_sha: str, patch_text: str | None) -> DiffHunkMap:
    """Walk ``patch_text`` and build the DiffHunkMap for ``file``.

    Context and added lines advance the new-file line counter and get a
    position; added lines are also recorded as changed. Removed lines and
    ``\\ No newline at end of file`` markers take up a position but map to
    no new-file line. Anything before the first hunk header (``diff --git``,
    ``---``/``+++``) is ignored, so both bare patches and full per-file diffs
    are accepted.
    """
    hunk_map = DiffHunkMap(file=file, base_sha=base_sha, head_sha=head_sha)
    position = 0
    file_line: int | None = None
    in_hunks = False

    for raw in (patch_text or "").splitlines():
        if raw.startswith("@@"):
            # Only the first header is excluded from the position count.
            if in_hunks:
                position += 1
            in_hunks = True
            match = _HUNK_RE.match(raw)
            if match is None:
                logger.debug("Unparseable hunk header in %s: %r", file, raw)
                file_line = None
            else:
                file_line = int(match.group("new_start"))
            continue

        if not in_hunks:
            continue

        position += 1

        if file_line is None or raw.startswith("\\") or raw.startswith("-"):
            continue

        hunk_map.position_of[file_line] = position
        if raw.startswith("+"):
            hunk_map.changed_lines.add(file_line)
        file_line += 1

    return hunk_map


def map_file_diff(
    fetch_diff: Callable[[str, str, str], str],
    file: str,
    base_sha: str,
    head_sha: str,
) -> DiffHunkMap:
    """Fetch the diff for one file and map it.

    DiffUnavailable raised by ``fetch_diff`` propagates; the pipeline treats
    it as "no changed lines" for this file.
    """
    patch_text = fetch_diff(file, base_sha, head_sha)
    hunk_map = build_hunk_map(file, base_sha, head_sha, patch_text)
    logger.debug(
        "Mapped diff for %s (%s..%s): %d changed line(s), %d positioned line(s)",
        file,
        base_sha[:7],
        head_sha[:7],
        len(hunk_map.changed_lines),
        len(hunk_map.position_of),
    )
    return hunk_map
