#!/usr/bin/env python3
"""stop_project tool - Cancel a running build or test run"""

from xcodebuild_mcp_server.server import mcp
from xcodebuild_mcp_server.security import validate_and_normalize_project_path
from xcodebuild_mcp_server.exceptions import InvalidParameterError
from xcodebuild_mcp_server.runner import get_session


@mcp.tool()
def stop_project(project_path: str) -> str:
    """
    Stop the build or test run currently in progress for the specified project.

    Args:
        project_path: Path to an Xcode project/workspace directory, which must
        end in '.xcodeproj' or '.xcworkspace' and must exist.

    Returns:
        A message indicating that the run was cancelled
    """
    normalized_path = validate_and_normalize_project_path(project_path)

    session = get_session(normalized_path, create=False)
    if session is None or not session.stop():
        raise InvalidParameterError(f"No build or test run in progress for: {project_path}")

    return "Cancelled the running xcodebuild job. The partial report was not saved."
