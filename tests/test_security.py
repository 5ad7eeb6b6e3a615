import pytest

from xcodebuild_mcp_server import security
from xcodebuild_mcp_server.exceptions import AccessDeniedError, InvalidParameterError


def test_get_allowed_folders_validates_entries(tmp_path, monkeypatch):
    existing = tmp_path / "work"
    existing.mkdir()
    a_file = tmp_path / "file.txt"
    a_file.write_text("")
    monkeypatch.setenv(security.ALLOWED_FOLDERS_ENV, f"{existing}/:relative/path:{tmp_path}/missing")

    folders = security.get_allowed_folders([str(a_file), "", str(tmp_path / "work" / ".." / "work")])

    assert folders == {str(existing)}


def test_get_allowed_folders_defaults_to_home(tmp_path, monkeypatch):
    monkeypatch.delenv(security.ALLOWED_FOLDERS_ENV, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))

    assert security.get_allowed_folders() == {str(tmp_path)}


def test_is_path_allowed(allowed_tmp_path):
    assert security.is_path_allowed(str(allowed_tmp_path))
    assert security.is_path_allowed(str(allowed_tmp_path / "App.xcodeproj"))
    assert not security.is_path_allowed(str(allowed_tmp_path) + "-sibling/App.xcodeproj")
    assert not security.is_path_allowed("")


def test_nothing_is_allowed_without_folders(tmp_path):
    assert not security.is_path_allowed(str(tmp_path))


def test_validate_and_normalize_project_path(project):
    assert security.validate_and_normalize_project_path(str(project) + "/") == str(project)


def test_validate_rejects_bad_paths(project, allowed_tmp_path, tmp_path_factory):
    with pytest.raises(InvalidParameterError):
        security.validate_and_normalize_project_path("  ")
    with pytest.raises(InvalidParameterError):
        security.validate_and_normalize_project_path(str(allowed_tmp_path / "App"))
    with pytest.raises(InvalidParameterError):
        security.validate_and_normalize_project_path(str(allowed_tmp_path / "Missing.xcodeproj"))

    outside = tmp_path_factory.mktemp("outside") / "Other.xcodeproj"
    outside.mkdir()
    with pytest.raises(AccessDeniedError):
        security.validate_and_normalize_project_path(str(outside))


def test_validate_directory(allowed_tmp_path):
    assert security.validate_directory(str(allowed_tmp_path)) == str(allowed_tmp_path)
    with pytest.raises(InvalidParameterError):
        security.validate_directory(str(allowed_tmp_path / "missing"))
