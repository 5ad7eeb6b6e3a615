#!/usr/bin/env python3
"""Process-wide settings - initialized by CLI flags and environment variables"""

import os
import sys
from typing import Optional

APPDIR_ENV = "XCODEBUILD_MCP_APPDIR"
DEBUG_ENV = "XCODEBUILD_MCP_DEBUG"
DEFAULT_APPDIR_NAME = ".xcodebuild-mcp"

# Global build warning settings
BUILD_WARNINGS_ENABLED = True
BUILD_WARNINGS_FORCED = None  # True if forced on, False if forced off, None if not forced

# Group test results by "Target:Class" instead of "Class"
TARGET_MATCHING = True

# Write only the summary (not the raw output) to xcodebuild.log
ONLY_SUMMARY = False

# Persist report.json and the log files after each finished run
PERSIST_REPORT = True


def set_build_warnings_enabled(enabled: bool, forced: bool = False):
    """Set the global build warnings setting"""
    global BUILD_WARNINGS_ENABLED, BUILD_WARNINGS_FORCED
    BUILD_WARNINGS_ENABLED = enabled
    BUILD_WARNINGS_FORCED = enabled if forced else None


def set_target_matching(enabled: bool):
    global TARGET_MATCHING
    TARGET_MATCHING = enabled


def set_only_summary(enabled: bool):
    global ONLY_SUMMARY
    ONLY_SUMMARY = enabled


def set_persist_report(enabled: bool):
    global PERSIST_REPORT
    PERSIST_REPORT = enabled


def resolve_show_warnings(include_warnings: Optional[bool] = None) -> bool:
    """
    Decide whether warnings are shown.

    Command-line flags override the tool parameter (user control > LLM control).

    Args:
        include_warnings: Value requested by the tool caller, if any

    Returns:
        True if warnings should be included in the output
    """
    if BUILD_WARNINGS_FORCED is not None:
        return BUILD_WARNINGS_FORCED
    if include_warnings is not None:
        return include_warnings
    return BUILD_WARNINGS_ENABLED


def get_appdir_name() -> str:
    """Name of the per-project folder holding the report and logs."""
    name = os.environ.get(APPDIR_ENV, "").strip()
    if not name:
        return DEFAULT_APPDIR_NAME
    if os.sep in name.rstrip(os.sep) and not os.path.isabs(name):
        print(f"Warning: Ignoring relative {APPDIR_ENV} with path separators: {name}", file=sys.stderr)
        return DEFAULT_APPDIR_NAME
    return name


def is_debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV, "").lower() in ("1", "true", "yes")
