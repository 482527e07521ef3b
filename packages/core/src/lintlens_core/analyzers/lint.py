from __future__ import annotations

import re
import subprocess

from lintlens_core.analyzers.base import BaseAnalyzer
from lintlens_core.errors import AnalyzerOutputUnparseable
from lintlens_core.models import Finding, ScanType

_ERROR_RE = re.compile(r"^(?:PHP )?(?:Parse|Fatal) error:\s*(?P<message>.+?) in (?P<path>.+?) on line (?P<line>\d+)")
_CLEAN_MARKER = "No syntax errors detected"


class LintAnalyzer(BaseAnalyzer):
    """``php -l`` syntax check. Every syntax error is an error-severity finding."""

    SCAN_TYPE = ScanType.LINT

    def __init__(self, php_path: str = "php", extensions: tuple[str, ...] = ("php",)):
        super().__init__(extensions)
        self.php_path = php_path

    def _command(self, tmp_path: str) -> list[str]:
        return [self.php_path, "-d", "error_reporting=24575", "-d", "display_errors=stdout", "-l", tmp_path]

    def _parse(self, result: subprocess.CompletedProcess, tmp_path: str, file_name: str) -> list[Finding]:
        output = (result.stdout or "") + "\n" + (result.stderr or "")
        findings = []
        for line in output.splitlines():
            match = _ERROR_RE.match(line.strip())
            if match:
                findings.append(
                    Finding.create(file_name, int(match.group("line")), match.group("message"), "error", self.SCAN_TYPE)
                )

        if not findings and _CLEAN_MARKER not in output:
            raise AnalyzerOutputUnparseable(self.name, file_name, output[:500])
        return findings
