import pytest

from xcodebuild_mcp_server.utils.test_search import (
    FunctionTestLocator,
    SwiftFileTestLocator,
    TestLocator,
    load_targets_files_map,
)

LOGIN_TESTS = """import XCTest

final class LoginTests: XCTestCase {
    func testValid() {
        XCTAssertTrue(true)
    }

    func testInvalid() throws {
        XCTAssertTrue(false)
    }
}
"""


@pytest.fixture
def source_tree(tmp_path):
    tests_dir = tmp_path / "AppTests"
    tests_dir.mkdir()
    login = tests_dir / "LoginTests.swift"
    login.write_text(LOGIN_TESTS)

    other_dir = tmp_path / "OtherTests"
    other_dir.mkdir()
    other_login = other_dir / "LoginTests.swift"
    other_login.write_text(LOGIN_TESTS)

    hidden = tmp_path / ".build" / "checkouts"
    hidden.mkdir(parents=True)
    (hidden / "CartTests.swift").write_text("")

    intermediates = tmp_path / "Intermediates.noindex"
    file_list_dir = intermediates / "App.build" / "Debug" / "AppTests.build" / "Objects-normal" / "arm64"
    file_list_dir.mkdir(parents=True)
    (file_list_dir / "AppTests.SwiftFileList").write_text(str(login).replace(" ", "\\ ") + "\n")
    other_list_dir = intermediates / "App.build" / "Debug" / "OtherTests.build" / "Objects-normal" / "arm64"
    other_list_dir.mkdir(parents=True)
    (other_list_dir / "OtherTests.SwiftFileList").write_text(str(other_login) + "\n")

    return tmp_path, str(login), str(other_login), str(intermediates)


def test_base_locator_finds_nothing():
    locator = TestLocator()

    assert locator.find_filepath("AppTests", "LoginTests") is None
    assert locator.find_target_for_file("/src/a.swift") is None
    assert locator.find_test_line("/src/a.swift", "testA") is None


def test_function_locator():
    locator = FunctionTestLocator(lambda target, class_name: f"/src/{class_name}.swift" if target else None)

    assert locator.find_filepath("AppTests", "LoginTests") == "/src/LoginTests.swift"
    assert locator.find_filepath(None, "LoginTests") is None


def test_targets_files_map(source_tree):
    _, login, other_login, intermediates = source_tree

    targets = load_targets_files_map(intermediates)

    assert targets == {"AppTests": [login], "OtherTests": [other_login]}


def test_targets_files_map_of_missing_folder():
    assert load_targets_files_map("/does/not/exist") == {}


def test_find_filepath_matches_target(source_tree):
    root, login, other_login, intermediates = source_tree
    locator = SwiftFileTestLocator(str(root), intermediates_dir=intermediates)

    assert locator.find_filepath("AppTests", "LoginTests") == login
    assert locator.find_filepath("OtherTests", "LoginTests") == other_login
    assert locator.find_filepath("UnknownTests", "LoginTests") is None
    assert locator.find_target_for_file(other_login) == "OtherTests"


def test_find_filepath_without_target_matching(source_tree):
    root, login, _, intermediates = source_tree
    locator = SwiftFileTestLocator(str(root), intermediates_dir=intermediates, target_matching=False)

    assert locator.find_filepath("UnknownTests", "LoginTests") == login


def test_hidden_folders_are_skipped(source_tree):
    root = source_tree[0]
    locator = SwiftFileTestLocator(str(root))

    assert locator.find_filepath(None, "CartTests") is None


def test_find_test_line(source_tree):
    root, login, _, _ = source_tree
    locator = SwiftFileTestLocator(str(root))

    assert locator.find_test_line(login, "testValid") == 4
    assert locator.find_test_line(login, "testInvalid") == 8
    assert locator.find_test_line(login, "testMissing") is None
    assert locator.find_test_line(str(root / "missing.swift"), "testValid") is None
