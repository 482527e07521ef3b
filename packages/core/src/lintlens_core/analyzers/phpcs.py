from __future__ import annotations

import json
import subprocess

from lintlens_core.analyzers.base import BaseAnalyzer
from lintlens_core.errors import AnalyzerOutputUnparseable
from lintlens_core.models import Finding, ScanType


def parse_phpcs_report(raw: str, tmp_path: str, file_name: str, source: ScanType) -> list[Finding]:
    """Parse a PHPCS ``--report=json`` document.

    Shape: ``{"totals": {...}, "files": {"<path>": {"messages": [{"line",
    "message", "type", ...}]}}}``. The file key is the temp path we scanned;
    a report with a single file entry is accepted under any key.
    """
    try:
        report = json.loads(raw)
        files = report["files"]
        report["totals"]
    except (json.JSONDecodeError, KeyError, TypeError):
        raise AnalyzerOutputUnparseable(source.value, file_name, raw[:500])

    if tmp_path in files:
        entry = files[tmp_path]
    elif len(files) == 1:
        entry = next(iter(files.values()))
    else:
        raise AnalyzerOutputUnparseable(source.value, file_name, raw[:500])

    findings = []
    for message in entry.get("messages") or []:
        try:
            findings.append(Finding.create(file_name, message["line"], message["message"], message.get("type"), source))
        except (KeyError, TypeError, ValueError):
            raise AnalyzerOutputUnparseable(source.value, file_name, raw[:500])
    return findings


class PhpcsAnalyzer(BaseAnalyzer):
    SCAN_TYPE = ScanType.PHPCS

    def __init__(
        self,
        phpcs_path: str,
        standard: str,
        severity: int,
        php_path: str = "php",
        sniffs_exclude: str | None = None,
        runtime_set: list[list[str]] | None = None,
        extensions: tuple[str, ...] = ("php", "js", "twig"),
    ):
        super().__init__(extensions)
        self.phpcs_path = phpcs_path
        self.standard = standard
        self.severity = severity
        self.php_path = php_path
        self.sniffs_exclude = sniffs_exclude
        self.runtime_set = runtime_set or []

    def _command(self, tmp_path: str) -> list[str]:
        cmd = [
            self.php_path,
            self.phpcs_path,
            f"--standard={self.standard}",
            f"--severity={self.severity}",
            "--report=json",
        ]
        if self.sniffs_exclude:
            cmd.append(f"--exclude={self.sniffs_exclude}")
        for key, value in self.runtime_set:
            cmd.extend(["--runtime-set", key, value])
        cmd.append(tmp_path)
        return cmd

    def _parse(self, result: subprocess.CompletedProcess, tmp_path: str, file_name: str) -> list[Finding]:
        # PHPCS exits non-zero whenever it finds issues; only the output matters.
        return parse_phpcs_report(result.stdout, tmp_path, file_name, self.SCAN_TYPE)
