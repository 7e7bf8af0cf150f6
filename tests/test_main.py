"""Tests für die Kommandozeile."""

import pytest

import main
from models import default_settings
from storage import StorageManager


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


def cli(data_dir, *args):
    return main.main(["--data-dir", str(data_dir), *args])


def open_storage(data_dir):
    return StorageManager(data_dir / "assistant.db")


def test_parse_helpers():
    assert main.parse_list(" a, ,b ,") == ["a", "b"]
    assert main.parse_list("") == []
    assert main.parse_int("55", 70) == 55
    assert main.parse_int("abc", 70) == 70
    assert main.parse_int("0", 50) == 50
    assert main.parse_int("60点", 70) == 60
    assert main.parse_int(" 12.5", 50) == 12
    assert main.parse_int(None, 70) == 70


def test_first_start_installs_defaults(data_dir):
    assert cli(data_dir, "settings", "show") == 0
    storage = open_storage(data_dir)
    assert storage.get_settings() == default_settings()
    assert storage.get_version() is not None


def test_stats_empty(data_dir, capsys):
    assert cli(data_dir, "stats") == 0
    out = capsys.readouterr().out
    assert "データがありません" in out
    assert "0点" in out


def test_settings_set(data_dir, capsys):
    code = cli(
        data_dir, "settings", "set",
        "--keywords", " Python, ,Rust ",
        "--exclude-keywords", "crypto",
        "--min-score", "abc",
        "--min-followers", "10",
        "--ai-provider", "anthropic",
    )
    assert code == 0
    assert "Einstellungen gespeichert" in capsys.readouterr().out

    settings = open_storage(data_dir).get_settings()
    assert settings.keywords == ["Python", "Rust"]
    assert settings.exclude_keywords == ["crypto"]
    assert settings.min_score == 70
    assert settings.min_followers == 10
    assert settings.ai_provider == "anthropic"
    assert settings.target_genres == default_settings().target_genres


def test_scan_and_stats(data_dir, feed_file, tmp_path, capsys):
    annotated = tmp_path / "annotated.html"
    assert cli(data_dir, "scan", str(feed_file), "--annotate", str(annotated)) == 0
    out = capsys.readouterr().out
    assert "POSTS AB 70 PUNKTEN (1 von 2)" in out
    assert "@alice" in out
    assert annotated.exists()

    assert cli(data_dir, "stats") == 0
    out = capsys.readouterr().out
    assert "Analysierte Posts:  2" in out
    assert "AI開発" in out


def test_scan_without_posts(data_dir, tmp_path):
    empty = tmp_path / "empty.html"
    empty.write_text("<html><body></body></html>", encoding="utf-8")
    assert cli(data_dir, "scan", str(empty)) == 1


def test_history_empty(data_dir, capsys):
    assert cli(data_dir, "history") == 0
    assert "Kein Verlauf vorhanden" in capsys.readouterr().out


def test_clear_requires_confirmation(data_dir, monkeypatch):
    cli(data_dir, "settings", "set", "--keywords", "custom")

    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    assert cli(data_dir, "clear") == 0
    assert open_storage(data_dir).get_settings().keywords == ["custom"]

    assert cli(data_dir, "clear", "--yes") == 0
    assert open_storage(data_dir).get_settings() == default_settings()


def test_report(data_dir, feed_file, tmp_path, capsys):
    cli(data_dir, "scan", str(feed_file))
    output = tmp_path / "report.png"
    assert cli(data_dir, "report", "--output", str(output)) == 0
    assert output.exists()
    assert "cached_posts" in capsys.readouterr().out


def test_errors_return_one(data_dir, tmp_path):
    assert cli(data_dir, "scan", str(tmp_path / "missing.html")) == 1
