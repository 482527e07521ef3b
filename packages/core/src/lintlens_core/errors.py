"""Exception taxonomy for a scan run.

Everything except ConfigError and FatalRunError is recoverable: the affected
file or pull request degrades to "nothing attributable" and the run goes on.
"""

from __future__ import annotations

EXIT_NORMAL = 0
EXIT_USAGE_ERROR = 249
EXIT_ISSUES_FOUND = 250


class LintlensError(Exception):
    """Base class for all lintlens errors."""


class DiffUnavailable(LintlensError):
    """The diff for a file could not be retrieved or was excluded."""


class BlameUnavailable(LintlensError):
    """Blame for a file at a revision could not be computed."""


class AnalyzerOutputUnparseable(LintlensError):
    """An analyzer produced output we could not turn into findings."""

    def __init__(self, analyzer: str, file_name: str, output: str = ""):
        super().__init__(f"{analyzer}: could not parse output for {file_name}")
        self.analyzer = analyzer
        self.file_name = file_name
        self.output = output


class ExternalServiceUnavailable(LintlensError):
    """Listing commits or comments for a pull request failed."""


class ConfigError(LintlensError):
    """Invalid or incomplete configuration. Aborts the run."""


class FatalRunError(LintlensError):
    """Unrecoverable condition such as failed authentication. Aborts the run."""
