"""Read-only access to the local clone of the repository under scan."""

from __future__ import annotations

import logging

import git

from lintlens_core.errors import BlameUnavailable, ConfigError
from lintlens_core.models import BlameEntry

logger = logging.getLogger(__name__)


class LocalRepo:
    def __init__(self, path: str):
        try:
            self.repo = git.Repo(path)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
            raise ConfigError(f"Not a usable git repository: {path} ({type(e).__name__})")
        self.path = path

    def ensure_checked_out(self, commit: str) -> None:
        """Refuse to run unless the clone's HEAD is the commit under scan."""
        try:
            head = self.repo.head.commit.hexsha
        except ValueError:
            raise ConfigError(f"Local repository at {self.path} has no HEAD commit.")
        if head != commit:
            raise ConfigError(f"Local repository at {self.path} is at {head[:7]}, expected {commit[:7]}.")

    def fetch_file(self, revision: str, path: str) -> str | None:
        """Return the committed contents of ``path`` at ``revision``, or None if absent."""
        try:
            blob = self.repo.commit(revision).tree / path
        except (KeyError, ValueError, git.BadName):
            return None
        return blob.data_stream.read().decode("utf-8", errors="replace")

    def blame(self, revision: str, path: str) -> list[BlameEntry]:
        """Return one BlameEntry per line of ``path`` at ``revision``."""
        try:
            blame = self.repo.blame(revision, path)
        except (git.GitCommandError, ValueError) as e:
            raise BlameUnavailable(f"git blame failed for {path}@{revision[:7]}: {e}")

        entries: list[BlameEntry] = []
        line = 1
        for commit, lines in blame or []:
            for _ in lines:
                entries.append(BlameEntry(line=line, commit_sha=commit.hexsha))
                line += 1
        return entries
