#!/usr/bin/env python3
"""
Running xcodebuild: one job at a time per project, output streamed into the log parser.

A job merges stdout and stderr and feeds each line to its LogParser on a
reader thread. When the process ends the job is finalized, unless it was
cancelled: exit code 143 (SIGTERM), a SIGTERM death or an explicit stop().
A cancelled run keeps its partial report in memory but is never persisted
and never reported as a success or a failure.
"""

import copy
import os
import signal
import subprocess
import sys
import threading
import time
from enum import Enum
from typing import Callable, Dict, List, Optional

from xcodebuild_mcp_server import config_manager
from xcodebuild_mcp_server.exceptions import XcodebuildMCPError
from xcodebuild_mcp_server.logs.formatter import format_logs
from xcodebuild_mcp_server.logs.parser import LogParser
from xcodebuild_mcp_server.report import Report
from xcodebuild_mcp_server.utils import notifications
from xcodebuild_mcp_server.utils.appdata import AppData
from xcodebuild_mcp_server.utils.test_search import SwiftFileTestLocator, TestLocator
from xcodebuild_mcp_server.utils.xcodebuild import find_intermediates_dir, find_xcresult_bundle

CANCELLED_CODE = 143

# Seconds granted to xcodebuild to exit after SIGTERM before it is killed
STOP_GRACE_SECONDS = 10

# Seconds to wait for the finalized job once its process group was killed
START_WAIT_SECONDS = 30

# Seconds the output may stay open after xcodebuild exited before leftover helpers are killed
EXIT_DRAIN_SECONDS = 5


class Action(Enum):
    BUILD = "build"
    TEST = "test"


class RunOutcome(Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


def is_cancelled_exit_code(code: Optional[int]) -> bool:
    # Popen reports a signal death as the negative signal number
    return code == CANCELLED_CODE or code == -signal.SIGTERM


class XcodebuildJob:
    """A single xcodebuild process and the report parsed from its output."""

    def __init__(self,
                 action: Action,
                 command: List[str],
                 parser: LogParser,
                 cwd: Optional[str] = None,
                 on_exit: Optional[Callable[["XcodebuildJob"], None]] = None):
        self.action = action
        self.command = command
        self.parser = parser
        self.cwd = cwd
        self.on_exit = on_exit
        self.exit_code: Optional[int] = None
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None
        self._process: Optional[subprocess.Popen] = None
        self._reader: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._output_closed = threading.Event()
        self._stop_requested = False

    def start(self):
        if self._process is not None:
            raise XcodebuildMCPError("Job was already started")

        print(f"Debug: Running {' '.join(self.command)}", file=sys.stderr)
        try:
            self._process = subprocess.Popen(
                self.command,
                cwd=self.cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                bufsize=1,
                start_new_session=True,
            )
        except OSError as e:
            raise XcodebuildMCPError(f"Failed to start {self.command[0]}: {e}")

        self.started_at = time.monotonic()
        self._reader = threading.Thread(target=self._read_output, name=f"xcodebuild-{self.action.value}", daemon=True)
        self._reader.start()
        threading.Thread(target=self._watch_exit, name=f"xcodebuild-{self.action.value}-exit", daemon=True).start()

    def _read_output(self):
        debug = config_manager.is_debug_enabled()
        try:
            for line in self._process.stdout:
                if debug:
                    print(f"Debug: xcodebuild: {line.rstrip()}", file=sys.stderr)
                with self._lock:
                    self.parser.feed([line])
        finally:
            self._output_closed.set()
            self._process.stdout.close()
            code = self._process.wait()
            with self._lock:
                self.exit_code = code
                self.finished_at = time.monotonic()
                if not self.cancelled:
                    self.parser.finish()

            try:
                if self.on_exit:
                    self.on_exit(self)
            finally:
                self._done.set()

    def _watch_exit(self):
        self._process.wait()
        if not self._output_closed.wait(EXIT_DRAIN_SECONDS):
            print("Debug: xcodebuild exited but its output is still open, killing leftover processes", file=sys.stderr)
            self._signal_group(signal.SIGKILL)

    def _signal_group(self, sig: int):
        # xcodebuild runs in its own session; its helpers share the process group
        try:
            os.killpg(self._process.pid, sig)
        except ProcessLookupError:
            pass
        except OSError as e:
            print(f"Debug: Could not signal xcodebuild process group: {e}", file=sys.stderr)

    def stop(self) -> bool:
        """
        Terminate the process group with SIGTERM, killing it if it does not exit in time.

        Returns:
            True if a running process was stopped
        """
        if self._process is None or not self.is_running:
            return False

        self._stop_requested = True
        self._signal_group(signal.SIGTERM)
        try:
            self._process.wait(timeout=STOP_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            print("Debug: xcodebuild ignored SIGTERM, killing it", file=sys.stderr)
            self._signal_group(signal.SIGKILL)

        if not self.wait(STOP_GRACE_SECONDS):
            # Children that outlived xcodebuild still hold the output pipe open
            print("Debug: xcodebuild output still open, killing its process group", file=sys.stderr)
            self._signal_group(signal.SIGKILL)
            self.wait(STOP_GRACE_SECONDS)
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the job to end and be finalized. Returns False on timeout."""
        if self._process is None:
            return True
        return self._done.wait(timeout)

    @property
    def is_running(self) -> bool:
        return self._process is not None and not self._done.is_set()

    @property
    def cancelled(self) -> bool:
        return self._stop_requested or is_cancelled_exit_code(self.exit_code)

    @property
    def duration(self) -> Optional[float]:
        if self.started_at is None:
            return None
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    @property
    def outcome(self) -> RunOutcome:
        with self._lock:
            if self.exit_code is None:
                return RunOutcome.RUNNING
            if self.cancelled:
                return RunOutcome.CANCELLED
            report = self.parser.report
            if self.exit_code == 0 and report.build_succeeded and report.failed_tests_count == 0:
                return RunOutcome.SUCCEEDED
            return RunOutcome.FAILED

    @property
    def report(self) -> Report:
        """Snapshot of the report parsed so far."""
        with self._lock:
            return copy.deepcopy(self.parser.report)


class RunSession:
    """
    Build and test runs of one project.

    At most one job is in flight: starting a new one stops the previous job
    and waits for it to end first.
    """

    def __init__(self,
                 project_path: str,
                 appdata: Optional[AppData] = None,
                 locator: Optional[TestLocator] = None):
        self.project_path = project_path
        self.project_dir = os.path.dirname(project_path)
        self.appdata = appdata or AppData.for_project(project_path)
        self.locator = locator
        self._job: Optional[XcodebuildJob] = None
        self._last_report: Optional[Report] = None
        self._start_lock = threading.Lock()
        self._lock = threading.Lock()

    @property
    def job(self) -> Optional[XcodebuildJob]:
        with self._lock:
            return self._job

    def _make_locator(self) -> TestLocator:
        if self.locator is not None:
            return self.locator
        return SwiftFileTestLocator(
            self.project_dir,
            intermediates_dir=find_intermediates_dir(self.project_path),
            target_matching=config_manager.TARGET_MATCHING,
        )

    def start(self, action: Action, command: List[str]) -> XcodebuildJob:
        """Stop any running job, then start a new one."""
        with self._start_lock:
            previous = self.job
            if previous is not None and previous.is_running:
                print(f"Debug: Stopping running {previous.action.value} before starting {action.value}", file=sys.stderr)
                previous.stop()
                if not previous.wait(START_WAIT_SECONDS):
                    print(f"Debug: Previous {previous.action.value} did not finish, starting anyway", file=sys.stderr)

            parser = LogParser(
                locator=self._make_locator(),
                target_matching=config_manager.TARGET_MATCHING,
                project_root=self.project_dir,
            )
            job = XcodebuildJob(action, command, parser, cwd=self.project_dir or None, on_exit=self._on_exit)
            with self._lock:
                self._job = job
                self._last_report = None
            job.start()
            return job

    def _on_exit(self, job: XcodebuildJob):
        # Runs on the job's reader thread: never take _start_lock here
        report = job.report
        project = os.path.basename(self.project_path)
        is_testing = job.action is Action.TEST

        if job.cancelled:
            print(f"Debug: {job.action.value} cancelled (exit code {job.exit_code})", file=sys.stderr)
            if is_testing:
                notifications.send_tests_finished(report, cancelled=True, project=project)
            else:
                notifications.send_build_finished(report, cancelled=True, project=project)
            return

        if is_testing and not report.xcresult_filepath:
            report.xcresult_filepath = find_xcresult_bundle(self.project_path)

        if config_manager.PERSIST_REPORT:
            self.appdata.save_report(report)
            self.appdata.write_original_logs(report.output)
            self.appdata.write_build_logs(
                format_logs(
                    report,
                    is_testing,
                    only_summary=config_manager.ONLY_SUMMARY,
                    show_warnings=config_manager.resolve_show_warnings(),
                )
            )

        with self._lock:
            if self._job is job:
                self._last_report = report

        if is_testing:
            notifications.send_tests_finished(report, cancelled=False, project=project)
        else:
            notifications.send_build_finished(report, cancelled=False, duration=job.duration, project=project)

    def stop(self) -> bool:
        job = self.job
        if job is None:
            return False
        return job.stop()

    def status(self) -> Optional[RunOutcome]:
        job = self.job
        return job.outcome if job is not None else None

    def current_report(self) -> Optional[Report]:
        """
        Report of the current or last run.

        Falls back to the report persisted by an earlier server session.
        """
        with self._lock:
            job = self._job
            last_report = self._last_report

        if last_report is not None:
            return last_report
        if job is not None:
            return job.report
        return self.appdata.load_report()


_SESSIONS: Dict[str, RunSession] = {}
_SESSIONS_LOCK = threading.Lock()


def get_session(project_path: str, create: bool = True) -> Optional[RunSession]:
    """Session registry keyed by the normalized project path."""
    key = os.path.realpath(project_path)
    with _SESSIONS_LOCK:
        session = _SESSIONS.get(key)
        if session is None and create:
            session = RunSession(key)
            _SESSIONS[key] = session
        return session
