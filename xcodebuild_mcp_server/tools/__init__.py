"""MCP tools - importing this package registers every tool on the server"""

from xcodebuild_mcp_server.tools import (  # noqa: F401
    build_project,
    get_build_logs,
    get_latest_report,
    get_quickfix_list,
    parse_build_log,
    run_project_tests,
    stop_project,
)
