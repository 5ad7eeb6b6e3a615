#!/usr/bin/env python3
"""get_quickfix_list tool - Located errors, warnings and failing tests"""

from typing import Optional

from xcodebuild_mcp_server.server import mcp
from xcodebuild_mcp_server.config_manager import resolve_show_warnings
from xcodebuild_mcp_server.security import validate_and_normalize_project_path
from xcodebuild_mcp_server.exceptions import InvalidParameterError, XcodebuildMCPError
from xcodebuild_mcp_server.quickfix import build_quickfix_list
from xcodebuild_mcp_server.runner import get_session
from xcodebuild_mcp_server.utils.test_search import load_targets_files_map
from xcodebuild_mcp_server.utils.xcodebuild import find_intermediates_dir


@mcp.tool()
def get_quickfix_list(project_path: str, include_warnings: Optional[bool] = None) -> str:
    """
    List the source locations of the last run's problems, one per line,
    in "file:line:column: severity: message" form, sorted by file and line.

    Args:
        project_path: Path to Xcode project/workspace directory
        include_warnings: Include build warnings. If not provided, uses global setting.

    Returns:
        The quickfix list, or a message when there is nothing to fix
    """
    if include_warnings is not None and not isinstance(include_warnings, bool):
        raise InvalidParameterError("include_warnings must be a boolean value")

    normalized_path = validate_and_normalize_project_path(project_path)
    session = get_session(normalized_path)

    report = session.current_report()
    if report is None:
        raise XcodebuildMCPError(f"No report available for {project_path}. Build or test the project first.")

    targets_files_map = None
    if report.diagnostics:
        targets_files_map = load_targets_files_map(find_intermediates_dir(normalized_path))

    entries = build_quickfix_list(
        report,
        show_warnings=resolve_show_warnings(include_warnings),
        targets_files_map=targets_files_map,
    )
    if not entries:
        return "No errors, warnings or failing tests with a source location."

    return "\n".join(str(entry) for entry in entries)
