#!/usr/bin/env python3
"""macOS notifications for finished builds and test runs"""

import shutil
import subprocess
from typing import Optional

from xcodebuild_mcp_server.report import Report

NOTIFICATION_TITLE = "Xcodebuild MCP"

# Global notification setting - initialized by CLI
NOTIFICATIONS_ENABLED = True


def set_notifications_enabled(enabled: bool):
    """Set the global notification setting"""
    global NOTIFICATIONS_ENABLED
    NOTIFICATIONS_ENABLED = enabled


def escape_applescript_string(s: str) -> str:
    """
    Escape a string for safe use in AppleScript.

    Args:
        s: String to escape

    Returns:
        Escaped string safe for AppleScript
    """
    # Escape backslashes first, then quotes
    s = s.replace("\\", "\\\\")
    s = s.replace('"', '\\"')
    return s


def show_notification(title: str, subtitle: Optional[str] = None, message: Optional[str] = None, sound: bool = False):
    """Show a macOS notification if notifications are enabled

    Args:
        title: Notification title
        subtitle: Optional subtitle (shown below title)
        message: Notification message body
        sound: Whether to play a sound (for errors/important events)
    """
    if not NOTIFICATIONS_ENABLED or shutil.which("osascript") is None:
        return

    # Message is required by AppleScript
    msg = escape_applescript_string(message or subtitle or title)
    script = f'display notification "{msg}" with title "{escape_applescript_string(title)}"'
    if subtitle:
        script += f' subtitle "{escape_applescript_string(subtitle)}"'
    if sound:
        script += ' sound name "Frog"'

    try:
        subprocess.run(['osascript', '-e', script], capture_output=True, timeout=10)
    except (OSError, subprocess.SubprocessError):
        pass  # Ignore notification errors


def show_error_notification(message: str, details: Optional[str] = None):
    """Show an error notification with sound"""
    show_notification(NOTIFICATION_TITLE, subtitle=details, message=f"❌ {message}", sound=True)


def show_warning_notification(message: str, details: Optional[str] = None):
    show_notification(NOTIFICATION_TITLE, subtitle=details, message=f"⚠️ {message}")


def show_result_notification(message: str, details: Optional[str] = None):
    show_notification(NOTIFICATION_TITLE, subtitle=details, message=message)


def send_build_finished(report: Report, cancelled: bool, duration: Optional[float] = None, project: Optional[str] = None):
    if cancelled:
        show_warning_notification("Build cancelled", project)
    elif report.build_errors:
        show_error_notification(f"Build Failed [{len(report.build_errors)} error(s)]", project)
    elif duration is not None:
        show_result_notification(f"Build Succeeded [{int(duration)} seconds]", project)
    else:
        show_result_notification("Build Succeeded", project)


def send_tests_finished(report: Report, cancelled: bool, project: Optional[str] = None):
    if cancelled:
        show_warning_notification("Tests cancelled", project)
    elif report.build_errors:
        show_error_notification(f"Build Failed [{len(report.build_errors)} error(s)]", project)
    elif report.tests_count == 0:
        show_error_notification("Error: No Test Executed", project)
    elif report.failed_tests_count == 0:
        show_result_notification(f"All Tests Passed [Executed: {report.tests_count}]", project)
    else:
        show_error_notification(
            f"Tests Failed [Executed: {report.tests_count}, Failed: {report.failed_tests_count}]",
            project,
        )
