import os

import pytest

from xcodebuild_mcp_server.exceptions import InvalidParameterError
from xcodebuild_mcp_server.utils import xcodebuild
from xcodebuild_mcp_server.utils.xcodebuild import (
    build_command,
    destination_argument,
    find_intermediates_dir,
    find_xcresult_bundle,
    project_command,
)


def test_project_command():
    assert project_command("/src/App.xcodeproj") == ["-project", "/src/App.xcodeproj"]
    assert project_command("/src/App.xcworkspace") == ["-workspace", "/src/App.xcworkspace"]
    with pytest.raises(InvalidParameterError):
        project_command("/src/App")


def test_destination_argument():
    assert destination_argument("1234-ABCD") == "id=1234-ABCD"
    assert destination_argument("platform=iOS Simulator,name=iPhone 15") == "platform=iOS Simulator,name=iPhone 15"


def test_build_command():
    assert build_command("/src/App.xcodeproj", scheme="App", destination="ABC", configuration="Debug", clean=True) == [
        "xcodebuild", "clean", "build",
        "-project", "/src/App.xcodeproj",
        "-scheme", "App",
        "-destination", "id=ABC",
        "-configuration", "Debug",
    ]
    assert build_command("/src/App.xcworkspace", for_testing=True)[:2] == ["xcodebuild", "build-for-testing"]


def test_test_command():
    command = xcodebuild.test_command(
        "/src/App.xcworkspace",
        scheme="App",
        test_plan="Unit",
        tests_to_run=["AppTests/LoginTests/testValid", "AppTests/CartTests"],
        without_building=True,
    )

    assert command[:2] == ["xcodebuild", "test-without-building"]
    assert command[command.index("-testPlan") + 1] == "Unit"
    assert command[-2:] == ["-only-testing:AppTests/LoginTests/testValid", "-only-testing:AppTests/CartTests"]


def test_test_command_runs_everything_by_default():
    command = xcodebuild.test_command("/src/App.xcodeproj")

    assert command == ["xcodebuild", "test", "-project", "/src/App.xcodeproj"]


def test_derived_data_lookups(tmp_path):
    derived_data = tmp_path / "DerivedData"
    logs = derived_data / "App-abcdef" / "Logs" / "Test"
    logs.mkdir(parents=True)
    older = logs / "Test-App-1.xcresult"
    newer = logs / "Test-App-2.xcresult"
    older.mkdir()
    newer.mkdir()
    os.utime(older, (1000, 1000))
    os.utime(newer, (2000, 2000))
    intermediates = derived_data / "App-abcdef" / "Build" / "Intermediates.noindex"
    intermediates.mkdir(parents=True)
    (derived_data / "Application-123").mkdir()

    project = str(tmp_path / "App.xcodeproj")

    assert find_xcresult_bundle(project, str(derived_data)) == str(newer)
    assert find_intermediates_dir(project, str(derived_data)) == str(intermediates)


def test_derived_data_lookups_without_derived_data(tmp_path):
    project = str(tmp_path / "App.xcodeproj")

    assert find_xcresult_bundle(project, str(tmp_path / "missing")) is None
    assert find_intermediates_dir(project, str(tmp_path / "missing")) is None
