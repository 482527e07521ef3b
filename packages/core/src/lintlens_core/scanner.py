"""Run the configured analyzers over the files changed by the pull requests."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Callable

from rich.console import Console

from lintlens_core.analyzers.base import BaseAnalyzer
from lintlens_core.analyzers.lint import LintAnalyzer
from lintlens_core.analyzers.phpcs import PhpcsAnalyzer
from lintlens_core.analyzers.svg import SvgAnalyzer
from lintlens_core.errors import AnalyzerOutputUnparseable
from lintlens_core.models import Finding, ScanType

console = Console()
logger = logging.getLogger(__name__)


def build_analyzers(config: dict, lint: bool | None = None) -> list[BaseAnalyzer]:
    """Instantiate the analyzers enabled in ``config``.

    ``lint`` overrides ``config["lint"]``; the runner switches linting off
    when the commit under scan is not the latest on a pull request.
    """
    analyzers: list[BaseAnalyzer] = []
    lint_enabled = config["lint"] if lint is None else lint
    if lint_enabled:
        analyzers.append(LintAnalyzer(php_path=config["php_path"]))
    if config["phpcs"]:
        analyzers.append(
            PhpcsAnalyzer(
                phpcs_path=config["phpcs_path"],
                standard=config["phpcs_standard"],
                severity=config["phpcs_severity"],
                php_path=config["php_path"],
                sniffs_exclude=config.get("phpcs_sniffs_exclude"),
                runtime_set=config.get("phpcs_runtime_set"),
                extensions=tuple(e for e in config["file_extensions"] if e != "svg"),
            )
        )
    if config["svg_checks"]:
        analyzers.append(SvgAnalyzer(scanner_path=config["svg_scanner_path"], php_path=config["php_path"]))
    return analyzers


def dump_scan_output(output_path: str, record: dict) -> None:
    """Append one scan record as a JSON line to ``output_path``."""
    record = {"timestamp": datetime.now(timezone.utc).isoformat(), **record}
    try:
        with open(output_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record) + "\n")
    except OSError as e:
        logger.warning("Could not write scan output to %s: %s", output_path, e)


def _finding_to_dict(finding: Finding) -> dict:
    return {
        "line": finding.line,
        "message": finding.message,
        "severity": finding.severity_text or finding.severity.value,
        "source": finding.source.value,
    }


def scan_files(
    files: list[str],
    fetch_contents: Callable[[str], str | None],
    analyzers: list[BaseAnalyzer],
    output_path: str | None = None,
    commit: str = "",
) -> dict[str, list[Finding]]:
    """Scan ``files`` in order and return their findings keyed by file.

    Dict order is scan order, which later drives the deterministic comment
    cap. A file whose analyzer output cannot be parsed contributes no
    findings from that analyzer; the rest of the run is unaffected.
    """
    findings_by_file: dict[str, list[Finding]] = {}
    total = len(files)

    for i, file_name in enumerate(files, 1):
        applicable = [a for a in analyzers if a.applies_to(file_name)]
        if not applicable:
            continue

        contents = fetch_contents(file_name)
        if contents is None:
            logger.warning("Could not read %s at %s; skipping", file_name, commit[:7])
            continue

        console.print(f"[[{i}/{total}]] Scanning: {file_name}")
        file_findings: list[Finding] = []
        for analyzer in applicable:
            try:
                found = analyzer.scan(file_name, contents)
            except AnalyzerOutputUnparseable as e:
                logger.error("Failed parsing %s output for %s: %s", e.analyzer, file_name, e.output[:200])
                continue
            file_findings.extend(found)
            if output_path:
                dump_scan_output(
                    output_path,
                    {
                        "commit": commit,
                        "file": file_name,
                        "scan": analyzer.name,
                        "issues": [_finding_to_dict(f) for f in found],
                    },
                )

        findings_by_file[file_name] = file_findings
        console.print(f"  {len(file_findings)} issue(s) found.")

    return findings_by_file


def scan_types(analyzers: list[BaseAnalyzer]) -> list[ScanType]:
    return [a.SCAN_TYPE for a in analyzers]
