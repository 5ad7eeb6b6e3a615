#!/usr/bin/env python3
"""Human-readable renderings of a report: the log summary and short tool replies"""

from typing import List

from xcodebuild_mcp_server.report import Report, Issue

SUMMARY_HEADER = [
    "-------------------------------",
    "-- xcodebuild-mcp summary --",
    "-------------------------------",
    "",
]

MAX_RESULT_LINES = 25


def _location(issue: Issue) -> str:
    return f"{issue.filepath}:{issue.line_number or 0}:{issue.column_number or 0}"


def _warning_lines(report: Report) -> List[str]:
    if not report.warnings:
        return []

    lines = ["Warnings:"]
    for warning in report.warnings:
        if warning.filepath:
            lines.append("   " + _location(warning))
        for index, message in enumerate(warning.message):
            prefix = "   " if index == 0 and not warning.filepath else "    "
            lines.append(prefix + message)
    lines.append("")
    return lines


def _error_lines(report: Report) -> List[str]:
    lines = ["Errors:"]
    for error in report.build_errors:
        if error.filepath:
            lines.append("  ✖ " + _location(error))
        for index, message in enumerate(error.message):
            prefix = "  ✖ " if index == 0 and not error.filepath else "    "
            lines.append(prefix + message)
    lines.extend(["", "  Build Failed", ""])
    return lines


def _test_lines(report: Report) -> List[str]:
    if report.failed_tests_count == 0:
        return [f"  ✔ All Tests Passed [Executed: {report.tests_count}]", ""]

    lines = ["Failing Tests:"]
    for test in report.failed_tests():
        entry = "    ✖ " + (f"{test.target}." if test.target else "") + f"{test.class_name}.{test.name}"
        if test.line_number:
            entry += f":{test.line_number}"
        lines.append(entry)
        lines.extend("        " + message for message in test.message)
    lines.extend(["", f"  {report.failed_tests_count} Test(s) Failed", ""])
    return lines


def format_summary(report: Report, is_testing: bool, show_warnings: bool = True) -> List[str]:
    """
    Render the summary block appended to xcodebuild.log.

    Args:
        report: Parsed report
        is_testing: Whether the run was a test run (test results are listed)
        show_warnings: Include the warnings section

    Returns:
        Summary lines
    """
    lines = list(SUMMARY_HEADER)

    if show_warnings:
        lines.extend(_warning_lines(report))

    if report.build_errors:
        lines.extend(_error_lines(report))
    elif is_testing:
        lines.extend(_test_lines(report))
    else:
        lines.extend(["  ✔ Build Succeeded", ""])

    return lines


def format_logs(report: Report, is_testing: bool, only_summary: bool = False, show_warnings: bool = True) -> List[str]:
    """Raw output (unless only_summary) followed by the summary block."""
    lines = [] if only_summary else list(report.output)
    lines.extend(format_summary(report, is_testing, show_warnings))
    return lines


def format_build_result(report: Report, show_warnings: bool, max_lines: int = MAX_RESULT_LINES) -> str:
    """
    Short build result for a tool reply.

    Args:
        report: Parsed build report
        show_warnings: Include warnings after the errors
        max_lines: Maximum number of error/warning lines returned

    Returns:
        A one-line verdict followed by at most max_lines diagnostic lines
    """
    error_lines = [_issue_line(error, "error") for error in report.build_errors]
    warning_lines = [_issue_line(warning, "warning") for warning in report.warnings] if show_warnings else []

    total_errors = len(error_lines)
    total_warnings = len(warning_lines)

    important_lines = (error_lines + warning_lines)[:max_lines]
    displayed_errors = min(total_errors, max_lines)
    displayed_warnings = 0 if total_errors >= max_lines else min(total_warnings, max_lines - total_errors)
    important_list = "\n".join(important_lines)

    if error_lines and warning_lines:
        count_msg = f"Build failed with {total_errors} error(s) and {total_warnings} warning(s)."
        if total_errors + total_warnings > max_lines:
            if displayed_warnings == 0:
                count_msg += f" Showing first {displayed_errors} errors."
            else:
                count_msg += f" Showing {displayed_errors} error(s) and first {displayed_warnings} warning(s)."
        return f"{count_msg}\n{important_list}"
    elif error_lines:
        count_msg = f"Build failed with {total_errors} error(s)."
        if total_errors > max_lines:
            count_msg += f" Showing first {max_lines} errors."
        return f"{count_msg}\n{important_list}"
    elif warning_lines:
        count_msg = f"Build succeeded with {total_warnings} warning(s)."
        if total_warnings > max_lines:
            count_msg += f" Showing first {max_lines} warnings."
        return f"{count_msg}\n{important_list}"
    else:
        return "Build succeeded with 0 errors."


def _issue_line(issue: Issue, kind: str) -> str:
    message = issue.message[0] if issue.message else ""
    if issue.filepath:
        return f"{_location(issue)}: {kind}: {message}"
    return f"{kind}: {message}"


def format_test_result(report: Report, max_lines: int = MAX_RESULT_LINES) -> str:
    """Short test result for a tool reply."""
    if report.build_errors:
        return format_build_result(report, show_warnings=False, max_lines=max_lines)

    if report.tests_count == 0:
        return "No tests were executed."

    if report.failed_tests_count == 0:
        return f"All tests passed ({report.tests_count} executed)."

    lines = [f"{report.failed_tests_count} of {report.tests_count} test(s) failed:"]
    for test in report.failed_tests():
        location = ""
        if test.filepath:
            location = f" ({test.filepath}:{test.line_number})" if test.line_number else f" ({test.filepath})"
        message = test.message[0] if test.message else "Failed"
        lines.append(f"  ✖ {test.identifier}{location}: {message}")

    if len(lines) > max_lines + 1:
        hidden = len(lines) - max_lines - 1
        lines = lines[:max_lines + 1]
        lines.append(f"  ... and {hidden} more")

    if report.xcresult_filepath:
        lines.append(f"\nResult bundle: {report.xcresult_filepath}")

    return "\n".join(lines)
