#!/usr/bin/env python3
"""Test file lookup used to place test results in source files"""

import os
import re
import sys
from typing import Callable, Dict, List, Optional


class TestLocator:
    """
    Lookup capability handed to the log parser.

    The base class finds nothing, which keeps the parser usable without a
    filesystem. Subclasses answer from disk, an index or any other source.
    """

    __test__ = False

    def find_filepath(self, target: Optional[str], class_name: str) -> Optional[str]:
        return None

    def find_target_for_file(self, filepath: str) -> Optional[str]:
        return None

    def find_test_line(self, filepath: str, test_name: str) -> Optional[int]:
        return None


class FunctionTestLocator(TestLocator):
    """Adapts a plain (target, class_name) -> filepath function."""

    def __init__(self, find_filepath: Callable[[Optional[str], str], Optional[str]]):
        self._find_filepath = find_filepath

    def find_filepath(self, target: Optional[str], class_name: str) -> Optional[str]:
        return self._find_filepath(target, class_name)


def load_targets_files_map(intermediates_dir: str) -> Dict[str, List[str]]:
    """
    Map each build target to its Swift source files.

    Xcode writes a <Target>.SwiftFileList for every target under
    Build/Intermediates.noindex; each line is one (escaped) source path.

    Args:
        intermediates_dir: Path to the Intermediates.noindex directory

    Returns:
        Dictionary of target name to list of source file paths
    """
    targets_files_map: Dict[str, List[str]] = {}

    if not intermediates_dir or not os.path.isdir(intermediates_dir):
        return targets_files_map

    for root, _, files in os.walk(intermediates_dir):
        for filename in files:
            if not filename.lower().endswith(".swiftfilelist"):
                continue

            target = os.path.splitext(filename)[0]
            try:
                with open(os.path.join(root, filename), "r", encoding="utf-8") as f:
                    lines = f.read().splitlines()
            except OSError as e:
                print(f"Debug: Could not read {filename}: {e}", file=sys.stderr)
                continue

            files_for_target = targets_files_map.setdefault(target, [])
            for line in lines:
                line = line.replace("\\", "").strip()
                if line:
                    files_for_target.append(line)

    return targets_files_map


class SwiftFileTestLocator(TestLocator):
    """
    Finds test files by name: a test class `FooTests` is expected in `FooTests.swift`.

    When a target map is available and target matching is enabled, a file is only
    accepted if it belongs to the target reported in the logs.
    """

    def __init__(self,
                 root: str,
                 intermediates_dir: Optional[str] = None,
                 target_matching: bool = True):
        self.root = root
        self.intermediates_dir = intermediates_dir
        self.target_matching = target_matching
        self._swift_files: Optional[Dict[str, List[str]]] = None
        self._targets_files_map: Optional[Dict[str, List[str]]] = None
        self._file_lines: Dict[str, Optional[List[str]]] = {}

    @property
    def swift_files(self) -> Dict[str, List[str]]:
        if self._swift_files is None:
            self._swift_files = self._index_swift_files()
        return self._swift_files

    @property
    def targets_files_map(self) -> Dict[str, List[str]]:
        if self._targets_files_map is None:
            self._targets_files_map = load_targets_files_map(self.intermediates_dir) if self.intermediates_dir else {}
        return self._targets_files_map

    def _index_swift_files(self) -> Dict[str, List[str]]:
        files_by_name: Dict[str, List[str]] = {}
        if not self.root or not os.path.isdir(self.root):
            return files_by_name

        for root, dirs, files in os.walk(self.root):
            # Skip hidden folders (.git, .build, .swiftpm ...)
            dirs[:] = sorted(d for d in dirs if not d.startswith("."))
            for filename in sorted(files):
                if filename.endswith(".swift"):
                    name = filename[:-len(".swift")]
                    files_by_name.setdefault(name, []).append(os.path.join(root, filename))

        return files_by_name

    def find_target_for_file(self, filepath: str) -> Optional[str]:
        for target, files in self.targets_files_map.items():
            if filepath in files:
                return target
        return None

    def find_filepath(self, target: Optional[str], class_name: str) -> Optional[str]:
        candidates = self.swift_files.get(class_name)
        if not candidates:
            return None

        for filepath in candidates:
            if not target or not self.target_matching or not self.targets_files_map:
                return filepath
            if self.find_target_for_file(filepath) == target:
                return filepath

        return None

    def find_test_line(self, filepath: str, test_name: str) -> Optional[int]:
        if not filepath:
            return None

        if filepath not in self._file_lines:
            try:
                with open(filepath, "r", encoding="utf-8", errors="replace") as f:
                    self._file_lines[filepath] = f.read().splitlines()
            except OSError:
                self._file_lines[filepath] = None

        lines = self._file_lines[filepath]
        if lines is None:
            return None

        declaration = re.compile(r"func\s+" + re.escape(test_name) + r"\s*\(")
        for line_number, line in enumerate(lines, 1):
            if declaration.search(line):
                return line_number

        return None
