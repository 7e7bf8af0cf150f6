"""Tests für den Nachrichten-Dispatch."""

import pytest

import background
from models import Statistics, UserSettings, default_settings


def test_get_settings_returns_defaults(storage):
    assert background.handle_message(storage, {"type": "get_settings"}) == default_settings()


def test_save_settings_accepts_dict_and_model(storage):
    result = background.handle_message(
        storage, {"type": "save_settings", "data": {"keywords": ["python"], "min_score": 60}}
    )
    assert result == {"success": True}
    assert storage.get_settings().keywords == ["python"]

    background.handle_message(
        storage, {"type": "save_settings", "data": UserSettings(keywords=["rust"])}
    )
    assert storage.get_settings().keywords == ["rust"]


def test_get_statistics_and_history(storage):
    assert isinstance(background.handle_message(storage, {"type": "get_statistics"}), Statistics)
    assert background.handle_message(storage, {"type": "get_history"}) == []


def test_clear_data_restores_defaults_and_keeps_version(storage):
    storage.set_version("0.1.0")
    storage.save_settings(UserSettings(keywords=["x"]))
    storage.update_statistics({"total_analyzed": 5})

    assert background.handle_message(storage, {"type": "clear_data"}) == {"success": True}
    assert storage.get_settings() == default_settings()
    assert storage.get_statistics().total_analyzed == 0
    assert storage.get_version() == "0.1.0"


def test_analyze_message_uses_stored_settings(storage):
    storage.save_settings(UserSettings(keywords=["python"]))
    result = background.handle_message(storage, {
        "type": "analyze",
        "data": {"post_id": "1", "author": "a", "content": "I love Python"},
    })
    assert result["keywords"] == ["python"]
    assert result["is_spam"] is False


def test_unknown_type_raises(storage):
    with pytest.raises(ValueError, match="Unknown message type"):
        background.handle_message(storage, {"type": "nope"})


def test_dispatch_returns_error_dict(storage):
    assert background.dispatch(storage, {"type": "nope"}) == {"error": "Unknown message type: nope"}
    # unvollständiger Post
    assert "error" in background.dispatch(storage, {"type": "analyze", "data": {}})


class TestInstall:
    def test_first_start_is_install(self, storage):
        assert background.ensure_installed(storage, "0.1.0") == "install"
        assert storage.get_settings() == default_settings()
        assert storage.get_version() == "0.1.0"

    def test_same_version_does_nothing(self, storage):
        background.ensure_installed(storage, "0.1.0")
        storage.save_settings(UserSettings(keywords=["custom"]))

        assert background.ensure_installed(storage, "0.1.0") is None
        assert storage.get_settings().keywords == ["custom"]

    def test_new_version_is_update(self, storage):
        background.ensure_installed(storage, "0.1.0")
        storage.save_settings(UserSettings(keywords=["custom"]))

        assert background.ensure_installed(storage, "0.2.0") == "update"
        assert storage.get_settings().keywords == ["custom"]
        assert storage.get_version() == "0.2.0"
