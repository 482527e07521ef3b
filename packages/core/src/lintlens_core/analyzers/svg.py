from __future__ import annotations

import subprocess

from lintlens_core.analyzers.base import BaseAnalyzer
from lintlens_core.analyzers.phpcs import parse_phpcs_report
from lintlens_core.models import Finding, ScanType


class SvgAnalyzer(BaseAnalyzer):
    """External SVG scanner that reports in the PHPCS JSON format."""

    SCAN_TYPE = ScanType.SVG

    def __init__(self, scanner_path: str, php_path: str = "php"):
        super().__init__(("svg",))
        self.scanner_path = scanner_path
        self.php_path = php_path

    def _command(self, tmp_path: str) -> list[str]:
        return [self.php_path, self.scanner_path, tmp_path]

    def _parse(self, result: subprocess.CompletedProcess, tmp_path: str, file_name: str) -> list[Finding]:
        return parse_phpcs_report(result.stdout, tmp_path, file_name, self.SCAN_TYPE)
