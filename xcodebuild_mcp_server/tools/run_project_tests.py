#!/usr/bin/env python3
"""run_project_tests tool - Run Xcode project tests with xcodebuild"""

import os
from typing import Optional, List

from xcodebuild_mcp_server.server import mcp
from xcodebuild_mcp_server.security import validate_and_normalize_project_path
from xcodebuild_mcp_server.exceptions import InvalidParameterError
from xcodebuild_mcp_server.logs.formatter import format_test_result
from xcodebuild_mcp_server.runner import Action, RunOutcome, get_session
from xcodebuild_mcp_server.utils.notifications import show_notification, NOTIFICATION_TITLE
from xcodebuild_mcp_server.utils.xcodebuild import test_command


def normalize_tests_to_run(tests_to_run) -> Optional[List[str]]:
    """
    Handle various forms of empty/invalid tests_to_run parameter.
    This works around MCP client issues with optional list parameters.
    """
    if tests_to_run is None:
        return None

    if isinstance(tests_to_run, str):
        tests_to_run = tests_to_run.strip()
        if not tests_to_run or tests_to_run in ['[]', 'null', 'undefined']:
            return None
        # Parse as a comma-separated list
        return [t.strip() for t in tests_to_run.split(',') if t.strip()]

    tests = [str(t).strip() for t in tests_to_run if str(t).strip()]
    return tests or None


@mcp.tool()
def run_project_tests(project_path: str,
                      scheme: Optional[str] = None,
                      tests_to_run: Optional[List[str]] = None,
                      destination: Optional[str] = None,
                      test_plan: Optional[str] = None,
                      configuration: Optional[str] = None,
                      without_building: bool = False,
                      wait_seconds: int = 900) -> str:
    """
    Run tests for the specified Xcode project or workspace with xcodebuild.

    A build or test run already in progress for the same project is stopped first.

    Args:
        project_path: Path to Xcode project/workspace directory
        scheme: Scheme to test. If not provided, xcodebuild picks the default.
        tests_to_run: Optional list of test identifiers to run.
                     If None or empty list, runs ALL tests.
                     Format: ["Target/ClassName/testMethod", "Target/ClassName", ...]
        destination: Device/simulator id or a full -destination specifier
        test_plan: Test plan to run
        configuration: Build configuration (e.g. Debug)
        without_building: Use test-without-building (requires a previous build-for-testing)
        wait_seconds: Maximum seconds to wait for completion (default 900).
                     Set to 0 to start tests and return immediately.

    Returns:
        Test results if wait_seconds > 0, otherwise confirmation message
    """
    if wait_seconds < 0:
        raise InvalidParameterError("wait_seconds must be >= 0")

    project_path = validate_and_normalize_project_path(project_path)
    tests = normalize_tests_to_run(tests_to_run)

    command = test_command(
        project_path,
        scheme=scheme,
        destination=destination,
        configuration=configuration,
        test_plan=test_plan,
        tests_to_run=tests,
        without_building=without_building,
    )

    project_name = os.path.basename(project_path)
    show_notification(NOTIFICATION_TITLE, subtitle=project_name, message="Running tests")

    session = get_session(project_path)
    job = session.start(Action.TEST, command)

    if wait_seconds == 0:
        return f"Tests started for {project_name}. Use `get_latest_report` to check progress or `stop_project` to cancel."

    if not job.wait(wait_seconds):
        report = job.report
        return (f"Tests are still running after {wait_seconds} seconds "
                f"[Executed: {report.tests_count}, Failed: {report.failed_tests_count}]. "
                "Use `get_latest_report` to check progress or `stop_project` to cancel.")

    outcome = job.outcome
    if outcome is RunOutcome.CANCELLED:
        return "Test run was cancelled."

    report = session.current_report() or job.report
    result = format_test_result(report)

    if outcome is RunOutcome.FAILED and report.build_succeeded and report.failed_tests_count == 0:
        tail = "\n".join(line for line in report.output[-10:] if line.strip())
        return f"xcodebuild failed with exit code {job.exit_code}.\n{result}\n{tail}"

    return result
