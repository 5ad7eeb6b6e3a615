#!/usr/bin/env python3
"""
Streaming parser turning xcodebuild output into a Report.

Lines are processed one at a time by a small state machine:

    SCANNING -> BUILD_ERROR | BUILD_WARNING -> (continuation)* -> SCANNING
    SCANNING -> TEST_STARTED -> passed -> SCANNING
    SCANNING -> TEST_STARTED -> TEST_ERROR -> (continuation)* -> failed -> SCANNING
    failed (no message yet) -> TEST_FAILURE_DETAILS -> (indented line)* -> SCANNING
    TEST_STARTED -> (next test | end of log) -> failed, did not finish

A record stays pending until a new header, a blank line, a caret marker or
the end of the log closes it. The parser never raises on log content and
never touches the filesystem itself; test files are found through the
injected TestLocator.
"""

import sys
from enum import Enum
from typing import Iterable, Optional, Union

from xcodebuild_mcp_server.logs import patterns
from xcodebuild_mcp_server.logs.patterns import LineKind
from xcodebuild_mcp_server.report import (
    BuildError,
    BuildWarning,
    Diagnostic,
    Report,
    TestResult,
    make_test_key,
)
from xcodebuild_mcp_server.utils.test_search import TestLocator


class ParserState(Enum):
    SCANNING = "scanning"
    TEST_STARTED = "test_started"
    TEST_ERROR = "test_error"
    TEST_FAILURE_DETAILS = "test_failure_details"
    BUILD_ERROR = "build_error"
    BUILD_WARNING = "build_warning"


# States whose record absorbs unclassified lines
COLLECTING_STATES = (ParserState.TEST_ERROR, ParserState.BUILD_ERROR, ParserState.BUILD_WARNING)

FAILED_PLACEHOLDER = "Failed"
UNFINISHED_MESSAGE = "Test did not finish (crashed or was interrupted)"


class LogParser:
    def __init__(self,
                 locator: Optional[TestLocator] = None,
                 target_matching: bool = True,
                 project_root: Optional[str] = None):
        """
        Args:
            locator: Test file lookup; without one tests keep no file location
                unless the log carries it.
            target_matching: Group tests under "Target:Class" instead of "Class".
            project_root: When set, located warnings outside this folder are ignored.
        """
        self.locator = locator or TestLocator()
        self.target_matching = target_matching
        self.project_root = project_root.rstrip("/") + "/" if project_root else None
        self.reset()

    def reset(self):
        self.report = Report()
        self._state = ParserState.SCANNING
        self._record = None
        self._record_committed = False
        # Committed failed test still waiting for its "failed" marker
        self._last_test: Optional[TestResult] = None
        # Failed test that may report more assertion failures
        self._failing_test: Optional[TestResult] = None
        self._tests_started = 0
        self._partial = ""
        self._error_keys = set()
        self._warning_keys = set()
        self._diagnostic_keys = set()

    @property
    def state(self) -> ParserState:
        return self._state

    # Feeding

    def feed(self, lines: Iterable[Union[str, bytes]]) -> Report:
        """Process complete lines and return the live report."""
        if isinstance(lines, bytes):
            lines = lines.decode("utf-8", errors="replace")
        if isinstance(lines, str):
            lines = lines.splitlines()
        for line in lines:
            self._process_line(patterns.clean_line(line))
        self.report.recount()
        return self.report

    def feed_text(self, chunk: str) -> Report:
        """Process a raw output chunk; an unterminated last line waits for the next chunk."""
        lines = (self._partial + chunk).split("\n")
        self._partial = lines.pop()
        return self.feed(lines)

    def finish(self) -> Report:
        """Process any carried-over text, close the pending record and return the final report."""
        if self._partial:
            self._process_line(patterns.clean_line(self._partial))
            self._partial = ""
        self._commit_unfinished_test()
        self._flush()
        self._close_failure_details()
        self.report.recount()
        return self.report

    # State machine

    def _process_line(self, line: str):
        self.report.output.append(line)
        kind = patterns.classify_line(line)

        if self._state is ParserState.TEST_FAILURE_DETAILS:
            if kind is LineKind.OTHER and patterns.is_continuation(line):
                self._record.message.append(line.strip())
                return
            self._close_failure_details()

        if kind is LineKind.TEST_STARTED:
            self._on_test_started(line)
        elif kind in (LineKind.TEST_PASSED, LineKind.TEST_FAILED):
            self._on_test_finished(line)
        elif kind is LineKind.ERROR:
            self._on_error(line)
        elif kind is LineKind.WARNING:
            self._on_warning(line)
        elif kind is LineKind.CARET:
            self._flush(line)
        elif kind in (LineKind.BLANK, LineKind.SECTION_BREAK, LineKind.TEST_SUMMARY):
            self._flush()
        elif kind is LineKind.XCRESULT:
            self.report.xcresult_filepath = patterns.parse_xcresult_path(line)
        elif self._state in COLLECTING_STATES:
            self._record.message.append(line)

    def _reset_record(self):
        self._state = ParserState.SCANNING
        self._record = None
        self._record_committed = False

    def _flush(self, line: Optional[str] = None):
        """Close the pending error/warning/test failure, appending {line} to it first."""
        if self._state is ParserState.BUILD_ERROR:
            self._commit_issue(self.report.build_errors, self._error_keys, line)
        elif self._state is ParserState.BUILD_WARNING:
            self._commit_issue(self.report.warnings, self._warning_keys, line)
        elif self._state is ParserState.TEST_ERROR:
            self._commit_test_failure(line)

    def _commit_issue(self, issues, keys, line: Optional[str]):
        issue = self._record
        if line:
            issue.message.append(line)

        key = issue.location_key()
        if key not in keys:
            keys.add(key)
            issues.append(issue)

        self._reset_record()

    def _commit_test_failure(self, line: Optional[str]):
        test = self._record
        if line:
            test.message.append(line)

        if not self._record_committed:
            self._add_test(test)

        self._last_test = test
        self._reset_record()

    def _commit_unfinished_test(self):
        """Record a test that started but has no result line as failed."""
        if self._state is not ParserState.TEST_STARTED:
            return

        test = self._record
        test.success = False
        if not test.message:
            test.message = [UNFINISHED_MESSAGE]
        if test.line_number is None:
            test.line_number = self._find_test_line(test.filepath, test.name)
        if not self._record_committed:
            self._add_test(test)
        self._reset_record()

    def _add_test(self, test: TestResult):
        key = make_test_key(test.target, test.class_name, self.target_matching)
        if key:
            self.report.tests.setdefault(key, []).append(test)

    def _open_failure_details(self, test: TestResult):
        self._state = ParserState.TEST_FAILURE_DETAILS
        self._record = test
        self._record_committed = True

    def _close_failure_details(self):
        if self._state is not ParserState.TEST_FAILURE_DETAILS:
            return
        if not self._record.message:
            self._record.message.append(FAILED_PLACEHOLDER)
        self._reset_record()

    # Tests

    def _on_test_started(self, line: str):
        started = patterns.parse_test_started(line)
        if not started:
            return

        self._commit_unfinished_test()
        self._flush()
        target, class_name, name = started
        self._tests_started += 1
        self._last_test = None
        self._failing_test = None
        self._state = ParserState.TEST_STARTED
        self._record_committed = False
        self._record = TestResult(
            class_name=class_name,
            name=name,
            target=target,
            filepath=self._find_filepath(target, class_name),
        )

    def _on_test_finished(self, line: str):
        finished = patterns.parse_test_finished(line)
        if finished is None:
            self._on_autogenerated_test_finished(line)
            return

        target, class_name, name, passed, time = finished
        if self._state in (ParserState.BUILD_ERROR, ParserState.BUILD_WARNING):
            self._flush()

        pending = self._record if self._state in (ParserState.TEST_STARTED, ParserState.TEST_ERROR) else None
        if pending is not None and not self._is_same_test(pending, class_name, name):
            # The marker belongs to another test: the pending one never finished
            if self._state is ParserState.TEST_ERROR:
                self._flush()
            else:
                self._commit_unfinished_test()
            pending = None

        if pending is not None:
            test = pending
            test.time = time
            test.success = passed
            if not self._record_committed:
                self._add_test(test)
            self._reset_record()
        elif self._last_test is not None and self._is_same_test(self._last_test, class_name, name):
            test = self._last_test
            test.time = time
            test.success = passed
        else:
            # No "started" line seen for this test
            filepath = self._find_filepath(target, class_name)
            test = TestResult(
                class_name=class_name,
                name=name,
                target=target,
                success=passed,
                time=time,
                filepath=filepath,
                line_number=self._find_test_line(filepath, name),
            )
            self._add_test(test)

        self._last_test = None
        self._failing_test = None

        if not test.success and not test.message:
            self._open_failure_details(test)

    def _on_autogenerated_test_finished(self, line: str):
        finished = patterns.parse_autogenerated_test_finished(line)
        if not finished:
            return

        self._commit_unfinished_test()
        self._flush()
        class_name, name, passed, time = finished
        filepath = self._find_filepath(None, class_name)
        test = TestResult(
            class_name=class_name,
            name=name,
            target=self._find_target_for_file(filepath),
            success=passed,
            time=time,
            filepath=filepath,
            line_number=self._find_test_line(filepath, name),
        )
        self._reset_record()
        self._add_test(test)
        self._last_test = None
        self._failing_test = None

        if not passed:
            self._open_failure_details(test)

    @staticmethod
    def _is_same_test(test: TestResult, class_name: str, name: str) -> bool:
        return test.class_name == class_name and test.name == name

    def _start_test_error(self, line: str) -> bool:
        located = patterns.parse_located_error(line)
        if not located:
            return False

        filepath, line_number, column_number, message = located
        test = self._record
        text = patterns.sanitize_test_message(message)
        foreign_file = False

        if self._record_committed:
            # Another assertion of an already failed test
            test.message.append(text)
            foreign_file = patterns.get_filename(filepath) != patterns.get_filename(test.filepath)
        else:
            test.message = [text]
            test.success = False
            if test.filepath is None:
                test.filepath = filepath
                test.line_number = line_number
            elif patterns.get_filename(filepath) != patterns.get_filename(test.filepath):
                # Failure raised in another file: point at the test declaration
                foreign_file = True
                test.line_number = self._find_test_line(test.filepath, test.name)
            else:
                test.line_number = line_number
            self._failing_test = test

        if foreign_file:
            self._add_diagnostic(filepath, line_number, column_number, text)

        self._state = ParserState.TEST_ERROR
        return True

    def _add_diagnostic(self, filepath: str, line_number: int, column_number: Optional[int], text: str):
        diagnostic = Diagnostic(
            filepath=filepath,
            line_number=line_number,
            column_number=column_number,
            message=[text],
        )
        key = diagnostic.location_key()
        if key not in self._diagnostic_keys:
            self._diagnostic_keys.add(key)
            self.report.diagnostics.append(diagnostic)

    # Build errors and warnings

    def _on_error(self, line: str):
        self._flush()

        if patterns.is_xctest_log(line):
            return

        if self._tests_started and self._state is ParserState.SCANNING and self._failing_test is not None:
            self._record = self._failing_test
            self._record_committed = True
            if not self._start_test_error(line):
                self._reset_record()
        elif self._state is ParserState.TEST_STARTED:
            self._start_test_error(line)
        elif not self._tests_started and self._state is ParserState.SCANNING:
            self._start_build_error(line)

    def _start_build_error(self, line: str):
        located = patterns.parse_located_error(line)
        if located:
            filepath, line_number, column_number, message = located
            error = BuildError(
                filepath=filepath,
                line_number=line_number,
                column_number=column_number,
                message=[message],
            )
        else:
            message = patterns.parse_generic_error(line)
            if message is None:
                return
            error = BuildError(message=[message])

        self._record = error
        self._record_committed = False
        self._state = ParserState.BUILD_ERROR

    def _on_warning(self, line: str):
        self._flush()

        # A warning inside a running test must not drop the test
        if self._state is ParserState.TEST_STARTED or patterns.is_xctest_log(line):
            return

        located = patterns.parse_located_warning(line)
        if located:
            filepath, line_number, column_number, message = located
            if self.project_root and not filepath.startswith(self.project_root):
                return
            warning = BuildWarning(
                filepath=filepath,
                line_number=line_number,
                column_number=column_number,
                message=[message],
            )
        else:
            message = patterns.parse_generic_warning(line)
            if message is None:
                return
            warning = BuildWarning(message=[message])

        self._record = warning
        self._record_committed = False
        self._state = ParserState.BUILD_WARNING

    # Locator access

    def _find_filepath(self, target: Optional[str], class_name: str) -> Optional[str]:
        try:
            return self.locator.find_filepath(target, class_name)
        except Exception as e:
            print(f"Debug: Test file lookup failed for {class_name}: {e}", file=sys.stderr)
            return None

    def _find_target_for_file(self, filepath: Optional[str]) -> Optional[str]:
        if not filepath:
            return None
        try:
            return self.locator.find_target_for_file(filepath)
        except Exception as e:
            print(f"Debug: Target lookup failed for {filepath}: {e}", file=sys.stderr)
            return None

    def _find_test_line(self, filepath: Optional[str], test_name: str) -> Optional[int]:
        if not filepath:
            return None
        try:
            return self.locator.find_test_line(filepath, test_name)
        except Exception as e:
            print(f"Debug: Test line lookup failed for {test_name}: {e}", file=sys.stderr)
            return None


def parse_logs(lines: Iterable[Union[str, bytes]],
               locator: Optional[TestLocator] = None,
               target_matching: bool = True,
               project_root: Optional[str] = None) -> Report:
    """
    Parse a complete xcodebuild log.

    Args:
        lines: All log lines, in order
        locator: Optional test file lookup
        target_matching: Group tests under "Target:Class" keys
        project_root: Ignore located warnings outside this folder

    Returns:
        A new Report. Parsing the same log twice yields equal reports.
    """
    parser = LogParser(locator=locator, target_matching=target_matching, project_root=project_root)
    parser.feed(lines)
    return parser.finish()
