#!/usr/bin/env python3
"""get_build_logs tool - Formatted log of the last finished run"""

from xcodebuild_mcp_server.server import mcp
from xcodebuild_mcp_server.security import validate_and_normalize_project_path
from xcodebuild_mcp_server.exceptions import InvalidParameterError
from xcodebuild_mcp_server.runner import get_session


@mcp.tool()
def get_build_logs(project_path: str, max_lines: int = 200) -> str:
    """
    Get the end of xcodebuild.log: the output of the last finished run
    followed by its summary (errors, warnings and failing tests).

    Args:
        project_path: Path to Xcode project/workspace directory
        max_lines: Maximum number of lines returned from the end of the log (default 200)

    Returns:
        The log lines
    """
    if max_lines < 1:
        raise InvalidParameterError("max_lines must be at least 1")

    normalized_path = validate_and_normalize_project_path(project_path)
    lines = get_session(normalized_path).appdata.read_build_logs()
    if not lines:
        return "No build logs available. Build or test the project first."

    if len(lines) > max_lines:
        lines = [f"... {len(lines) - max_lines} earlier line(s) omitted"] + lines[-max_lines:]
    return "\n".join(lines)
