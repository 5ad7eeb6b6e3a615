#!/usr/bin/env python3
"""Allowed-folders access control and project path validation"""

import os
import sys
from typing import Optional, List, Set

from xcodebuild_mcp_server.exceptions import AccessDeniedError, InvalidParameterError

ALLOWED_FOLDERS_ENV = "XCODEBUILD_MCP_ALLOWED_FOLDERS"

# Global allowed folders - initialized by CLI
ALLOWED_FOLDERS: Set[str] = set()


def set_allowed_folders(folders: Set[str]):
    global ALLOWED_FOLDERS
    ALLOWED_FOLDERS = set(folders)


def get_allowed_folders(command_line_folders: Optional[List[str]] = None) -> Set[str]:
    """
    Get the allowed folders from environment variable and command line.
    Validates that paths are absolute, exist, and are directories.

    Args:
        command_line_folders: List of folders provided via command line

    Returns:
        Set of validated folder paths
    """
    allowed_folders = set()
    folders_to_process = []

    folder_list_str = os.environ.get(ALLOWED_FOLDERS_ENV)
    if folder_list_str:
        print(f"Using allowed folders from environment: {folder_list_str}", file=sys.stderr)
        folders_to_process.extend(folder_list_str.split(":"))

    if command_line_folders:
        print(f"Adding {len(command_line_folders)} folder(s) from command line", file=sys.stderr)
        folders_to_process.extend(command_line_folders)

    # If no folders specified, use $HOME
    if not folders_to_process:
        print("Warning: No allowed folders specified via environment or command line.", file=sys.stderr)
        print(f"Set {ALLOWED_FOLDERS_ENV} environment variable or use --allowed flag.", file=sys.stderr)
        home = os.environ.get("HOME", "/")
        print(f"Using default: $HOME = {home}", file=sys.stderr)
        folders_to_process = [home]

    for folder in folders_to_process:
        folder = folder.rstrip("/")

        if not folder:
            print("Warning: Skipping empty folder entry", file=sys.stderr)
            continue

        if not os.path.isabs(folder):
            print(f"Warning: Skipping non-absolute path: {folder}", file=sys.stderr)
            continue

        if ".." in folder.split("/"):
            print(f"Warning: Skipping path with '..' components: {folder}", file=sys.stderr)
            continue

        if not os.path.isdir(folder):
            print(f"Warning: Skipping non-existent or non-directory path: {folder}", file=sys.stderr)
            continue

        allowed_folders.add(folder)
        print(f"Added allowed folder: {folder}", file=sys.stderr)

    return allowed_folders


def is_path_allowed(project_path: str) -> bool:
    """
    Check if a project path is allowed based on the allowed folders list.
    Path must be a subfolder or direct match of an allowed folder.
    """
    if not project_path:
        print("Debug: Empty project_path provided", file=sys.stderr)
        return False

    # If no allowed folders are specified, nothing is allowed
    if not ALLOWED_FOLDERS:
        print("Debug: ALLOWED_FOLDERS is empty, denying access", file=sys.stderr)
        return False

    project_path = os.path.abspath(project_path).rstrip("/")

    for allowed_folder in ALLOWED_FOLDERS:
        if project_path == allowed_folder or project_path.startswith(allowed_folder + "/"):
            return True

    print(f"Debug: No match found for {project_path}", file=sys.stderr)
    return False


def validate_and_normalize_project_path(project_path: str) -> str:
    """
    Validate and normalize a project path for xcodebuild operations.

    Args:
        project_path: The project path to validate

    Returns:
        Normalized project path

    Raises:
        InvalidParameterError: If validation fails
        AccessDeniedError: If path access is denied
    """
    if not project_path or project_path.strip() == "":
        raise InvalidParameterError("project_path cannot be empty")

    project_path = project_path.strip().rstrip("/")

    if not (project_path.endswith('.xcodeproj') or project_path.endswith('.xcworkspace')):
        raise InvalidParameterError("project_path must end with '.xcodeproj' or '.xcworkspace'")

    if not is_path_allowed(project_path):
        raise AccessDeniedError(
            f"Access to path '{project_path}' is not allowed. Set {ALLOWED_FOLDERS_ENV} environment variable."
        )

    if not os.path.exists(project_path):
        raise InvalidParameterError(f"Project path does not exist: {project_path}")

    # Normalize the path to resolve symlinks
    return os.path.realpath(project_path)


def validate_directory(path: str) -> str:
    """Validate a plain directory (e.g. a project root used to filter warnings)."""
    if not path or path.strip() == "":
        raise InvalidParameterError("path cannot be empty")

    path = path.strip()
    if not is_path_allowed(path):
        raise AccessDeniedError(f"Access to path '{path}' is not allowed. Set {ALLOWED_FOLDERS_ENV} environment variable.")

    if not os.path.isdir(path):
        raise InvalidParameterError(f"Directory does not exist: {path}")

    return os.path.realpath(path)
