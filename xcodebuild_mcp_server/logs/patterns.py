#!/usr/bin/env python3
"""
Line grammar of xcodebuild output.

Each line shape is matched by a named predicate or extractor so that the
parser's state machine never touches a regex directly. When Xcode changes its
log format, this is the only module that needs to follow.
"""

import os
import re
from enum import Enum
from typing import Optional, Tuple, Union

# Source files the compiler reports diagnostics for
SOURCE_FILE = r"[^:]+\.(?:swift|mm|m|h|hpp|cc|cpp|c|metal)"

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")
CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]")

TEST_STARTED_RE = re.compile(r"^Test Case '-\[(?:(\w+)\.)?(\w+) (\S+)\]' started")
TEST_FINISHED_RE = re.compile(r"^Test Case '-\[(?:(\w+)\.)?(\w+) (\S+)\]' (passed|failed)(?: \(([^)]*)\))?")
# Autogenerated test plans: Test case 'MyTests.testFoo()' passed on 'My Mac - App (123)' (0.002 seconds)
AUTOGENERATED_TEST_FINISHED_RE = re.compile(r"^Test case '(\w+)\.([^'(\s]+)\([^']*' (passed|failed) .*\(([^)]*)\)\s*$")
TEST_FINISHED_MARKER_RE = re.compile(r"^Test [Cc]ase .*(?:passed|failed)")

LOCATED_ERROR_RE = re.compile(rf"^\s*({SOURCE_FILE}):(\d+):(\d*):? (?:\w+\s+)?error: (.*)$")
LOCATED_WARNING_RE = re.compile(rf"^\s*({SOURCE_FILE}):(\d+):(\d*):? (?:\w+\s+)?warning: (.*)$")
GENERIC_ERROR_RE = re.compile(r"\berror: (.*)$")
GENERIC_WARNING_RE = re.compile(r"\bwarning: (.*)$")

# App output forwarded by XCTest, e.g. "2024-01-01 10:00:00.000 MyApp[123:4567] error: ..."
XCTEST_LOG_RE = re.compile(r"\s+\w+\[\d+:\d+\]")
# "-[Target.Class testName] : message" prefix of XCTest assertion failures
XCTEST_MESSAGE_PREFIX_RE = re.compile(r"-\[(?:\w+\.)?\w+ \S+\] : (.*)")

CARET_RE = re.compile(r"^[\s~]*\^[\s~^]*$")
BLANK_RE = re.compile(r"^\s*$")
SECTION_BREAK_RE = re.compile(r"^(?:Linting|note:)")
TEST_SUMMARY_RE = re.compile(
    r"^\s*Executed (\d+) tests?, with (\d+) failures? \((\d+) unexpected\) in ([\d.]+) \(([\d.]+)\) seconds"
)
XCRESULT_RE = re.compile(r"^\s*(.*[^./]\.xcresult)\s*$")


class LineKind(Enum):
    TEST_STARTED = "test_started"
    TEST_PASSED = "test_passed"
    TEST_FAILED = "test_failed"
    ERROR = "error"
    WARNING = "warning"
    CARET = "caret"
    BLANK = "blank"
    SECTION_BREAK = "section_break"
    TEST_SUMMARY = "test_summary"
    XCRESULT = "xcresult"
    OTHER = "other"


def clean_line(line: Union[str, bytes]) -> str:
    """Strip CR, ANSI escape sequences and control characters (TAB is kept)."""
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    elif not isinstance(line, str):
        line = str(line)

    if "\x1b" in line:
        line = ANSI_ESCAPE_RE.sub("", line)
    return CONTROL_CHARS_RE.sub("", line)


def classify_line(line: str) -> LineKind:
    """Return the kind of a cleaned log line, independent of parser state."""
    if parse_test_started(line):
        return LineKind.TEST_STARTED
    if TEST_FINISHED_MARKER_RE.match(line):
        finished = parse_test_finished(line) or parse_autogenerated_test_finished(line)
        if finished:
            return LineKind.TEST_PASSED if finished[-2] else LineKind.TEST_FAILED
    if "error:" in line:
        return LineKind.ERROR
    if "warning:" in line:
        return LineKind.WARNING
    if CARET_RE.match(line):
        return LineKind.CARET
    if BLANK_RE.match(line):
        return LineKind.BLANK
    if SECTION_BREAK_RE.match(line):
        return LineKind.SECTION_BREAK
    if TEST_SUMMARY_RE.match(line):
        return LineKind.TEST_SUMMARY
    if line.rstrip().endswith(".xcresult") and XCRESULT_RE.match(line):
        return LineKind.XCRESULT
    return LineKind.OTHER


def is_continuation(line: str) -> bool:
    """Indented, non-blank line following a test failure marker."""
    return bool(line) and line[0].isspace() and not BLANK_RE.match(line)


def is_xctest_log(line: str) -> bool:
    return bool(XCTEST_LOG_RE.search(line))


def parse_test_started(line: str) -> Optional[Tuple[Optional[str], str, str]]:
    """Extract (target, class, test name) from a "started" line."""
    match = TEST_STARTED_RE.match(line)
    if not match:
        return None
    return match.group(1), match.group(2), match.group(3)


def parse_test_finished(line: str) -> Optional[Tuple[Optional[str], str, str, bool, Optional[str]]]:
    """Extract (target, class, test name, passed, time) from a "passed"/"failed" line."""
    match = TEST_FINISHED_RE.match(line)
    if not match:
        return None
    return match.group(1), match.group(2), match.group(3), match.group(4) == "passed", match.group(5)


def parse_autogenerated_test_finished(line: str) -> Optional[Tuple[str, str, bool, str]]:
    """Extract (class, test name, passed, time) from an autogenerated test plan result."""
    match = AUTOGENERATED_TEST_FINISHED_RE.match(line)
    if not match:
        return None
    return match.group(1), match.group(2), match.group(3) == "passed", match.group(4)


def _parse_location(match) -> Tuple[str, int, Optional[int], str]:
    column = match.group(3)
    return (
        match.group(1).strip(),
        int(match.group(2)),
        int(column) if column else None,
        match.group(4),
    )


def parse_located_error(line: str) -> Optional[Tuple[str, int, Optional[int], str]]:
    """Extract (filepath, line, column, message) from "file:line:col: error: message"."""
    match = LOCATED_ERROR_RE.match(line)
    return _parse_location(match) if match else None


def parse_located_warning(line: str) -> Optional[Tuple[str, int, Optional[int], str]]:
    """Extract (filepath, line, column, message) from "file:line:col: warning: message"."""
    match = LOCATED_WARNING_RE.match(line)
    return _parse_location(match) if match else None


def parse_generic_error(line: str) -> Optional[str]:
    match = GENERIC_ERROR_RE.search(line)
    return match.group(1) if match else None


def parse_generic_warning(line: str) -> Optional[str]:
    match = GENERIC_WARNING_RE.search(line)
    return match.group(1) if match else None


def sanitize_test_message(message: str) -> str:
    """Drop the "-[Target.Class test] : " prefix XCTest puts in front of assertion messages."""
    match = XCTEST_MESSAGE_PREFIX_RE.match(message)
    return match.group(1) if match else message


def parse_xcresult_path(line: str) -> Optional[str]:
    match = XCRESULT_RE.match(line)
    return match.group(1).strip() if match else None


def get_filename(filepath: Optional[str]) -> Optional[str]:
    return os.path.basename(filepath) if filepath else None
