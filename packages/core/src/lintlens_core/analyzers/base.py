"""Base analyzer implementing the Template Method pattern.

All analyzers share the same scan algorithm:
    scan() → materialize contents to a temp file
           → _run_tool()  → _command()   ← differs per analyzer
           → _parse()                    ← differs per analyzer
           → collapse duplicates

Subclasses implement ``_command`` and ``_parse`` only. Temp-file handling,
subprocess invocation and error mapping live here so every analyzer fails
the same way: output we cannot read raises AnalyzerOutputUnparseable, and
the scanner turns that into "no findings for this file".
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import PurePosixPath

from lintlens_core.attribution import collapse_duplicates
from lintlens_core.errors import AnalyzerOutputUnparseable
from lintlens_core.models import Finding, ScanType

logger = logging.getLogger(__name__)

_TOOL_TIMEOUT = 300


def file_extension(file_name: str) -> str:
    return PurePosixPath(file_name).suffix.lstrip(".").lower()


class BaseAnalyzer(ABC):
    SCAN_TYPE: ScanType
    TIMEOUT: int = _TOOL_TIMEOUT

    def __init__(self, extensions: tuple[str, ...]):
        self.extensions = tuple(e.lower() for e in extensions)

    @property
    def name(self) -> str:
        return self.SCAN_TYPE.value

    def applies_to(self, file_name: str) -> bool:
        return file_extension(file_name) in self.extensions

    def scan(self, file_name: str, contents: str) -> list[Finding]:
        """Run the analyzer over ``contents`` and return its findings for ``file_name``."""
        suffix = PurePosixPath(file_name).suffix or None
        fd, tmp_path = tempfile.mkstemp(prefix=f"lintlens-{self.name}-", suffix=suffix)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(contents)
            result = self._run_tool(tmp_path, file_name)
            findings = self._parse(result, tmp_path, file_name)
        finally:
            os.unlink(tmp_path)

        logger.debug("%s: %d finding(s) in %s", self.name, len(findings), file_name)
        return collapse_duplicates(findings)

    def _run_tool(self, tmp_path: str, file_name: str) -> subprocess.CompletedProcess:
        cmd = self._command(tmp_path)
        logger.debug("Running %s: %s", self.name, " ".join(cmd))
        try:
            return subprocess.run(cmd, capture_output=True, text=True, timeout=self.TIMEOUT)
        except subprocess.TimeoutExpired:
            raise AnalyzerOutputUnparseable(self.name, file_name, f"timed out after {self.TIMEOUT}s")
        except FileNotFoundError as e:
            raise AnalyzerOutputUnparseable(self.name, file_name, str(e))

    # ------------------------------------------------------------------ #
    # Abstract: implement in each analyzer                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _command(self, tmp_path: str) -> list[str]:
        """Return the argv that scans ``tmp_path``."""

    @abstractmethod
    def _parse(self, result: subprocess.CompletedProcess, tmp_path: str, file_name: str) -> list[Finding]:
        """Turn tool output into findings attributed to ``file_name``.

        Must raise AnalyzerOutputUnparseable when the output is not understood.
        """
