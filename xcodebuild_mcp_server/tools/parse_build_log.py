#!/usr/bin/env python3
"""parse_build_log tool - Parse xcodebuild output supplied by the client"""

import json
from typing import Optional

from xcodebuild_mcp_server.server import mcp
from xcodebuild_mcp_server import config_manager
from xcodebuild_mcp_server.security import validate_directory
from xcodebuild_mcp_server.exceptions import InvalidParameterError
from xcodebuild_mcp_server.logs.parser import parse_logs
from xcodebuild_mcp_server.utils.test_search import SwiftFileTestLocator


@mcp.tool()
def parse_build_log(log_text: str, project_root: Optional[str] = None) -> str:
    """
    Parse raw xcodebuild output into a structured report.

    Args:
        log_text: The complete xcodebuild output
        project_root: Optional project folder. When given, test classes are
            looked up in its Swift files and warnings from other folders are dropped.

    Returns:
        JSON document with buildErrors, warnings, diagnostics, tests,
        testsCount, failedTestsCount and xcresultFilepath
    """
    if not isinstance(log_text, str):
        raise InvalidParameterError("log_text must be a string")

    locator = None
    if project_root:
        project_root = validate_directory(project_root)
        locator = SwiftFileTestLocator(project_root, target_matching=config_manager.TARGET_MATCHING)

    report = parse_logs(
        log_text.splitlines(),
        locator=locator,
        target_matching=config_manager.TARGET_MATCHING,
        project_root=project_root,
    )
    return json.dumps(report.to_dict(), indent=2)
