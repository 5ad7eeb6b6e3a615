import pytest

from xcodebuild_mcp_server import config_manager, security
from xcodebuild_mcp_server.utils import notifications


@pytest.fixture(autouse=True)
def quiet_settings(monkeypatch):
    """Fresh global settings for every test, with notifications off."""
    monkeypatch.setattr(notifications, "NOTIFICATIONS_ENABLED", False)
    monkeypatch.setattr(config_manager, "BUILD_WARNINGS_ENABLED", True)
    monkeypatch.setattr(config_manager, "BUILD_WARNINGS_FORCED", None)
    monkeypatch.setattr(config_manager, "TARGET_MATCHING", True)
    monkeypatch.setattr(config_manager, "ONLY_SUMMARY", False)
    monkeypatch.setattr(config_manager, "PERSIST_REPORT", True)
    monkeypatch.setattr(security, "ALLOWED_FOLDERS", set())
    monkeypatch.delenv(config_manager.APPDIR_ENV, raising=False)
    monkeypatch.delenv(config_manager.DEBUG_ENV, raising=False)


@pytest.fixture
def posted_notifications(monkeypatch):
    """Messages of the notifications shown during the test."""
    messages = []

    def record(title, subtitle=None, message=None, sound=False):
        messages.append(message)

    monkeypatch.setattr(notifications, "show_notification", record)
    return messages


@pytest.fixture
def allowed_tmp_path(tmp_path):
    """tmp_path registered as the only allowed folder."""
    root = str(tmp_path.resolve())
    security.set_allowed_folders({root})
    return tmp_path.resolve()


@pytest.fixture
def project(allowed_tmp_path):
    """An (empty) App.xcodeproj inside the allowed folder."""
    path = allowed_tmp_path / "App.xcodeproj"
    path.mkdir()
    return path
