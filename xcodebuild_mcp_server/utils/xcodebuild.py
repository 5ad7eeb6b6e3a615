#!/usr/bin/env python3
"""xcodebuild command lines and DerivedData lookups"""

import os
import sys
from typing import Optional, List

from xcodebuild_mcp_server.exceptions import InvalidParameterError

DERIVED_DATA_DIR = "~/Library/Developer/Xcode/DerivedData"


def project_command(project_path: str) -> List[str]:
    """-workspace or -project arguments for the given path."""
    if project_path.endswith(".xcworkspace"):
        return ["-workspace", project_path]
    if project_path.endswith(".xcodeproj"):
        return ["-project", project_path]
    raise InvalidParameterError("project_path must end with '.xcodeproj' or '.xcworkspace'")


def destination_argument(destination: str) -> str:
    """A bare device id becomes "id=<udid>"; full specifiers are passed through."""
    destination = destination.strip()
    if "=" in destination:
        return destination
    return f"id={destination}"


def _common_arguments(scheme: Optional[str],
                      destination: Optional[str],
                      configuration: Optional[str]) -> List[str]:
    args = []
    if scheme:
        args += ["-scheme", scheme]
    if destination:
        args += ["-destination", destination_argument(destination)]
    if configuration:
        args += ["-configuration", configuration]
    return args


def build_command(project_path: str,
                  scheme: Optional[str] = None,
                  destination: Optional[str] = None,
                  configuration: Optional[str] = None,
                  clean: bool = False,
                  for_testing: bool = False) -> List[str]:
    """
    Command line of a build.

    Args:
        project_path: Path to the .xcodeproj or .xcworkspace
        scheme: Scheme to build
        destination: Device id or full -destination specifier
        configuration: Build configuration (Debug, Release ...)
        clean: Clean before building
        for_testing: Use build-for-testing instead of build

    Returns:
        Argument list starting with "xcodebuild"
    """
    command = ["xcodebuild"]
    if clean:
        command.append("clean")
    command.append("build-for-testing" if for_testing else "build")
    command += project_command(project_path)
    command += _common_arguments(scheme, destination, configuration)
    return command


def test_command(project_path: str,
                 scheme: Optional[str] = None,
                 destination: Optional[str] = None,
                 configuration: Optional[str] = None,
                 test_plan: Optional[str] = None,
                 tests_to_run: Optional[List[str]] = None,
                 without_building: bool = False) -> List[str]:
    """
    Command line of a test run.

    Args:
        tests_to_run: Test identifiers ("Target/Class/test", "Target/Class" ...),
            each passed as -only-testing. Empty or None runs everything.
        without_building: Use test-without-building

    Returns:
        Argument list starting with "xcodebuild"
    """
    command = ["xcodebuild", "test-without-building" if without_building else "test"]
    command += project_command(project_path)
    command += _common_arguments(scheme, destination, configuration)
    if test_plan:
        command += ["-testPlan", test_plan]
    for test_id in tests_to_run or []:
        command.append(f"-only-testing:{test_id}")
    return command


def project_name(project_path: str) -> str:
    normalized_path = os.path.realpath(project_path)
    return os.path.basename(normalized_path).replace('.xcworkspace', '').replace('.xcodeproj', '')


def find_derived_data_dirs(project_path: str, derived_data_base: Optional[str] = None) -> List[str]:
    """
    DerivedData folders of the project, most recently modified first.

    DerivedData directories have the format ProjectName-randomhash.
    """
    base = derived_data_base or os.path.expanduser(DERIVED_DATA_DIR)
    name = project_name(project_path)

    try:
        entries = os.listdir(base)
    except OSError as e:
        print(f"Debug: Cannot list DerivedData at {base}: {e}", file=sys.stderr)
        return []

    matches = []
    for derived_dir in entries:
        if derived_dir.startswith(name + "-"):
            full_path = os.path.join(base, derived_dir)
            if os.path.isdir(full_path):
                matches.append((os.path.getmtime(full_path), full_path))

    matches.sort(reverse=True)
    return [path for _, path in matches]


def find_xcresult_bundle(project_path: str, derived_data_base: Optional[str] = None) -> Optional[str]:
    """
    Find the most recent .xcresult bundle for the project.

    Args:
        project_path: Path to the Xcode project
        derived_data_base: DerivedData folder, defaults to the user's

    Returns:
        Path to the most recent xcresult bundle or None if not found
    """
    xcresult_files = []
    for derived_dir in find_derived_data_dirs(project_path, derived_data_base):
        logs_dir = os.path.join(derived_dir, "Logs", "Test")
        if not os.path.isdir(logs_dir):
            continue

        for f in os.listdir(logs_dir):
            if f.endswith('.xcresult'):
                full_path = os.path.join(logs_dir, f)
                xcresult_files.append((os.path.getmtime(full_path), full_path))

    if not xcresult_files:
        return None

    xcresult_files.sort(reverse=True)
    most_recent = xcresult_files[0][1]
    print(f"Debug: Found xcresult bundle at {most_recent}", file=sys.stderr)
    return most_recent


def find_intermediates_dir(project_path: str, derived_data_base: Optional[str] = None) -> Optional[str]:
    """Build/Intermediates.noindex of the most recent DerivedData folder, if any."""
    for derived_dir in find_derived_data_dirs(project_path, derived_data_base):
        intermediates = os.path.join(derived_dir, "Build", "Intermediates.noindex")
        if os.path.isdir(intermediates):
            return intermediates
    return None
