#!/usr/bin/env python3
"""get_latest_report tool - Structured report of the current or last run"""

import json

from xcodebuild_mcp_server.server import mcp
from xcodebuild_mcp_server.security import validate_and_normalize_project_path
from xcodebuild_mcp_server.exceptions import XcodebuildMCPError
from xcodebuild_mcp_server.runner import get_session


@mcp.tool()
def get_latest_report(project_path: str, include_output: bool = False) -> str:
    """
    Get the report of the running or most recent build/test run as JSON.

    When no run happened since the server started, the report saved by the
    last finished run is returned.

    Args:
        project_path: Path to Xcode project/workspace directory
        include_output: Also include the raw xcodebuild output lines

    Returns:
        JSON document with buildErrors, warnings, diagnostics, tests,
        testsCount, failedTestsCount, xcresultFilepath and status
    """
    normalized_path = validate_and_normalize_project_path(project_path)
    session = get_session(normalized_path)

    report = session.current_report()
    if report is None:
        raise XcodebuildMCPError(f"No report available for {project_path}. Build or test the project first.")

    data = report.to_dict(include_output=include_output)
    status = session.status()
    data["status"] = status.value if status is not None else "restored"
    return json.dumps(data, indent=2)
