#!/usr/bin/env python3
"""Quickfix projection of a report: one located entry per error, warning or failing test"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, List, Any, Set, Tuple

from xcodebuild_mcp_server.report import Report, Diagnostic


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class QuickfixEntry:
    filename: str
    line: int
    column: int
    message: str
    severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "line": self.line,
            "column": self.column,
            "message": self.message,
            "severity": self.severity.value,
        }

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}: {self.severity.value}: {self.message}"


def _first_message(messages: List[str]) -> str:
    return messages[0] if messages else ""


def _insert_build_errors(entries: List[QuickfixEntry], report: Report):
    seen: Set[Tuple[str, int, int]] = set()

    for error in report.build_errors:
        if not error.filepath:
            continue

        line = error.line_number or 0
        column = error.column_number or 0
        key = (error.filepath, line, column)
        if key in seen:
            continue

        seen.add(key)
        entries.append(QuickfixEntry(error.filepath, line, column, _first_message(error.message), Severity.ERROR))


def _insert_failing_tests(entries: List[QuickfixEntry], report: Report):
    for test in report.failed_tests():
        if test.filepath and test.line_number:
            entries.append(QuickfixEntry(test.filepath, test.line_number, 0, _first_message(test.message), Severity.ERROR))


def _insert_warnings(entries: List[QuickfixEntry], report: Report):
    for warning in report.warnings:
        if warning.filepath and warning.line_number:
            entries.append(
                QuickfixEntry(
                    warning.filepath,
                    warning.line_number,
                    warning.column_number or 0,
                    _first_message(warning.message),
                    Severity.WARNING,
                )
            )


def resolve_diagnostic_path(diagnostic: Diagnostic,
                            targets_files_map: Optional[Dict[str, List[str]]]) -> Optional[str]:
    """
    Resolve the file a diagnostic points to.

    Absolute paths are used as they are. A relative "Target/File.swift" path is
    looked up among the files of that target.
    """
    filepath = diagnostic.filepath
    if not filepath:
        return None
    if os.path.isabs(filepath):
        return filepath
    if "/" not in filepath or not targets_files_map:
        return None

    target, filename = filepath.split("/", 1)
    for candidate in targets_files_map.get(target, []):
        if candidate.endswith("/" + filename) or candidate == filename:
            return candidate

    return None


def _insert_diagnostics(entries: List[QuickfixEntry],
                        report: Report,
                        targets_files_map: Optional[Dict[str, List[str]]]):
    for diagnostic in report.diagnostics:
        filepath = resolve_diagnostic_path(diagnostic, targets_files_map)
        if filepath and diagnostic.line_number:
            entries.append(
                QuickfixEntry(
                    filepath,
                    diagnostic.line_number,
                    diagnostic.column_number or 0,
                    _first_message(diagnostic.message),
                    Severity.ERROR,
                )
            )


def build_quickfix_list(report: Report,
                        show_warnings: bool = True,
                        show_errors: bool = True,
                        targets_files_map: Optional[Dict[str, List[str]]] = None) -> List[QuickfixEntry]:
    """
    Project a report onto a list of located entries.

    Args:
        report: Parsed build or test report
        show_warnings: Include build warnings
        show_errors: Include build errors, failing tests and diagnostics
        targets_files_map: Target name to source files, used to resolve relative diagnostics

    Returns:
        Entries sorted by filename, line and column
    """
    entries: List[QuickfixEntry] = []

    if show_warnings:
        _insert_warnings(entries, report)

    if show_errors:
        _insert_build_errors(entries, report)
        _insert_failing_tests(entries, report)
        _insert_diagnostics(entries, report, targets_files_map)

    entries.sort(key=lambda entry: (entry.filename, entry.line, entry.column))
    return entries
