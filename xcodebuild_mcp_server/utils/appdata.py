#!/usr/bin/env python3
"""Per-project storage of the last report and its log files"""

import json
import os
import sys
from typing import Optional, List

from xcodebuild_mcp_server import config_manager
from xcodebuild_mcp_server.report import Report

REPORT_FILENAME = "report.json"
ORIGINAL_LOGS_FILENAME = "original_logs.log"
BUILD_LOGS_FILENAME = "xcodebuild.log"


class AppData:
    """
    Files kept for one project:

        report.json        last Report, without the raw output
        original_logs.log  raw xcodebuild output of the last run
        xcodebuild.log     formatted output with the summary block

    Writes never raise; failures are reported on stderr.
    """

    def __init__(self, appdir: str):
        self.appdir = appdir

    @classmethod
    def for_project(cls, project_path: str) -> "AppData":
        """App data folder next to the .xcodeproj / .xcworkspace."""
        name = config_manager.get_appdir_name()
        if os.path.isabs(name):
            return cls(name)
        project_dir = os.path.dirname(os.path.realpath(project_path))
        return cls(os.path.join(project_dir, name))

    @property
    def report_filepath(self) -> str:
        return os.path.join(self.appdir, REPORT_FILENAME)

    @property
    def original_logs_filepath(self) -> str:
        return os.path.join(self.appdir, ORIGINAL_LOGS_FILENAME)

    @property
    def build_logs_filepath(self) -> str:
        return os.path.join(self.appdir, BUILD_LOGS_FILENAME)

    def create_app_dir(self) -> bool:
        try:
            os.makedirs(self.appdir, exist_ok=True)
            return True
        except OSError as e:
            print(f"Error creating app data folder {self.appdir}: {e}", file=sys.stderr)
            return False

    def save_report(self, report: Report) -> bool:
        """
        Write report.json. The raw output is left out.

        Returns:
            True if the file was written
        """
        if not self.create_app_dir():
            return False

        try:
            with open(self.report_filepath, "w", encoding="utf-8") as f:
                json.dump(report.to_dict(include_output=False), f, indent=2)
            return True
        except (OSError, TypeError, ValueError) as e:
            print(f"Error saving report to {self.report_filepath}: {e}", file=sys.stderr)
            return False

    def load_report(self) -> Optional[Report]:
        """
        Read report.json.

        Returns:
            The stored Report, or None if the file is missing or unreadable
        """
        if not os.path.exists(self.report_filepath):
            return None

        try:
            with open(self.report_filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            print(f"Debug: Could not load report from {self.report_filepath}: {e}", file=sys.stderr)
            return None

        if not isinstance(data, dict):
            print(f"Debug: Ignoring malformed report in {self.report_filepath}", file=sys.stderr)
            return None

        try:
            return Report.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            print(f"Debug: Ignoring malformed report in {self.report_filepath}: {e}", file=sys.stderr)
            return None

    def _write_lines(self, filepath: str, lines: List[str]) -> bool:
        if not self.create_app_dir():
            return False

        try:
            with open(filepath, "w", encoding="utf-8") as f:
                for line in lines:
                    f.write(line)
                    f.write("\n")
            return True
        except OSError as e:
            print(f"Error writing {filepath}: {e}", file=sys.stderr)
            return False

    def _read_lines(self, filepath: str) -> List[str]:
        try:
            with open(filepath, "r", encoding="utf-8", errors="replace") as f:
                return f.read().splitlines()
        except FileNotFoundError:
            return []
        except OSError as e:
            print(f"Debug: Could not read {filepath}: {e}", file=sys.stderr)
            return []

    def write_original_logs(self, lines: List[str]) -> bool:
        return self._write_lines(self.original_logs_filepath, lines)

    def read_original_logs(self) -> List[str]:
        return self._read_lines(self.original_logs_filepath)

    def write_build_logs(self, lines: List[str]) -> bool:
        return self._write_lines(self.build_logs_filepath, lines)

    def read_build_logs(self) -> List[str]:
        return self._read_lines(self.build_logs_filepath)
