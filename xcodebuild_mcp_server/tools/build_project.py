#!/usr/bin/env python3
"""build_project tool - Build an Xcode project with xcodebuild"""

import os
from typing import Optional

from xcodebuild_mcp_server.server import mcp
from xcodebuild_mcp_server.config_manager import resolve_show_warnings
from xcodebuild_mcp_server.security import validate_and_normalize_project_path
from xcodebuild_mcp_server.exceptions import InvalidParameterError
from xcodebuild_mcp_server.logs.formatter import format_build_result
from xcodebuild_mcp_server.runner import Action, RunOutcome, get_session
from xcodebuild_mcp_server.utils.notifications import show_notification, NOTIFICATION_TITLE
from xcodebuild_mcp_server.utils.xcodebuild import build_command


@mcp.tool()
def build_project(project_path: str,
                  scheme: Optional[str] = None,
                  destination: Optional[str] = None,
                  configuration: Optional[str] = None,
                  clean: bool = False,
                  for_testing: bool = False,
                  include_warnings: Optional[bool] = None,
                  wait_seconds: int = 600) -> str:
    """
    Build the specified Xcode project or workspace with xcodebuild.

    A build already running for the same project is stopped first.

    Args:
        project_path: Path to an Xcode project or workspace directory.
        scheme: Name of the scheme to build. If not provided, xcodebuild picks the default.
        destination: Device/simulator id, or a full -destination specifier such as
            "platform=iOS Simulator,name=iPhone 15".
        configuration: Build configuration (e.g. Debug, Release).
        clean: Clean before building.
        for_testing: Run build-for-testing, so that `run_project_tests` can later
            use without_building=True.
        include_warnings: Include warnings in build output. If not provided, uses global setting.
        wait_seconds: Maximum seconds to wait for the build (default 600).
            Set to 0 to start the build and return immediately.

    Returns:
        On success, "Build succeeded with 0 errors." (or the warnings found).
        On failure, the first (up to) 25 error/warning lines.
    """
    if include_warnings is not None and not isinstance(include_warnings, bool):
        raise InvalidParameterError("include_warnings must be a boolean value")
    if wait_seconds < 0:
        raise InvalidParameterError("wait_seconds must be >= 0")

    normalized_path = validate_and_normalize_project_path(project_path)
    command = build_command(normalized_path, scheme, destination, configuration,
                            clean=clean, for_testing=for_testing)

    project_name = os.path.basename(normalized_path)
    show_notification(NOTIFICATION_TITLE, subtitle=scheme or "default scheme", message=f"Building {project_name}")

    session = get_session(normalized_path)
    job = session.start(Action.BUILD, command)

    if wait_seconds == 0:
        return f"Build of {project_name} started. Use `get_latest_report` to check progress or `stop_project` to cancel."

    if not job.wait(wait_seconds):
        return (f"Build of {project_name} is still running after {wait_seconds} seconds. "
                "Use `get_latest_report` to check progress or `stop_project` to cancel.")

    outcome = job.outcome
    if outcome is RunOutcome.CANCELLED:
        return "Build was cancelled."

    report = session.current_report() or job.report
    result = format_build_result(report, resolve_show_warnings(include_warnings))

    if outcome is RunOutcome.FAILED and report.build_succeeded:
        # xcodebuild failed without a parsable error (bad scheme, missing destination ...)
        tail = "\n".join(line for line in report.output[-10:] if line.strip())
        return f"Build failed with exit code {job.exit_code} (no specific errors found in output).\n{tail}"

    if outcome is RunOutcome.SUCCEEDED:
        result += "\n\nUse `run_project_tests` to run tests."
    return result
