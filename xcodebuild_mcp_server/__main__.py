#!/usr/bin/env python3
"""Command line entry point of the Xcodebuild MCP Server"""

import argparse
import sys

from xcodebuild_mcp_server import __version__, config_manager, security
from xcodebuild_mcp_server.server import mcp
from xcodebuild_mcp_server.utils.notifications import set_notifications_enabled

# Register the tools on the server
import xcodebuild_mcp_server.tools  # noqa: F401

NO_ALLOWED_FOLDERS_MESSAGE = f"""
========================================================================
ERROR: Xcodebuild MCP Server cannot start - No valid allowed folders!
========================================================================

No valid folders were found to allow access to.

To fix this, you can either:

1. Set the {security.ALLOWED_FOLDERS_ENV} environment variable:
   export {security.ALLOWED_FOLDERS_ENV}="/path/to/folder1:/path/to/folder2"

2. Use the --allowed command line option:
   xcodebuild-mcp-server --allowed /path/to/folder1 --allowed /path/to/folder2

3. Ensure your $HOME directory exists and is accessible

All specified folders must:
- Be absolute paths
- Exist on the filesystem
- Be directories (not files)
- Not contain '..' components

========================================================================
"""


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Xcodebuild MCP Server")
    parser.add_argument("--version", action="version", version=f"xcodebuild-mcp-server {__version__}")
    parser.add_argument("--allowed", action="append", help="Add an allowed folder path (can be used multiple times)")
    parser.add_argument("--show-notifications", action="store_true", help="Enable notifications for finished runs")
    parser.add_argument("--hide-notifications", action="store_true", help="Disable notifications for finished runs")
    parser.add_argument("--no-build-warnings", action="store_true", help="Exclude warnings from build output")
    parser.add_argument("--always-include-build-warnings", action="store_true", help="Always include warnings in build output")
    parser.add_argument("--no-target-matching", action="store_true",
                        help="Group test results by class only, without the test target")
    parser.add_argument("--only-summary", action="store_true",
                        help="Write only the summary, not the raw output, to xcodebuild.log")
    parser.add_argument("--no-persist-report", action="store_true",
                        help="Do not save report.json and log files after each run")
    return parser


def apply_arguments(args: argparse.Namespace):
    """Apply parsed command line flags to the global settings. Exits on conflicting flags."""
    if args.show_notifications and args.hide_notifications:
        print("Error: Cannot use both --show-notifications and --hide-notifications", file=sys.stderr)
        sys.exit(1)
    elif args.show_notifications:
        set_notifications_enabled(True)
        print("Notifications enabled", file=sys.stderr)
    elif args.hide_notifications:
        set_notifications_enabled(False)
        print("Notifications disabled", file=sys.stderr)

    if args.no_build_warnings and args.always_include_build_warnings:
        print("Error: Cannot use both --no-build-warnings and --always-include-build-warnings", file=sys.stderr)
        sys.exit(1)
    elif args.no_build_warnings:
        config_manager.set_build_warnings_enabled(False, forced=True)
        print("Build warnings forcibly disabled", file=sys.stderr)
    elif args.always_include_build_warnings:
        config_manager.set_build_warnings_enabled(True, forced=True)
        print("Build warnings forcibly enabled", file=sys.stderr)

    if args.no_target_matching:
        config_manager.set_target_matching(False)
    if args.only_summary:
        config_manager.set_only_summary(True)
    if args.no_persist_report:
        config_manager.set_persist_report(False)
        print("Report persistence disabled", file=sys.stderr)


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    apply_arguments(args)

    # Initialize allowed folders from environment and command line
    allowed_folders = security.get_allowed_folders(args.allowed)
    if not allowed_folders:
        print(NO_ALLOWED_FOLDERS_MESSAGE, file=sys.stderr)
        sys.exit(1)

    security.set_allowed_folders(allowed_folders)
    print(f"Total allowed folders: {allowed_folders}", file=sys.stderr)

    mcp.run()


if __name__ == "__main__":
    main()
