"""Gemeinsame Fixtures für die Tests."""

import pytest

from config import Config
from models import UserSettings
from storage import StorageManager

FEED_HTML = """
<html><body><main>
<article data-testid="tweet">
  <div data-testid="User-Name"><span>Alice</span><a href="/alice">@alice</a></div>
  <a href="/alice/status/1001"><time datetime="2024-05-01T12:00:00.000Z">May 1</time></a>
  <div data-testid="tweetText" lang="ja">Claude と ChatGPT で AI 開発が便利になった。LLM の使い方を解説します https://example.com #AI</div>
  <div role="group">
    <button data-testid="reply" aria-label="3 Replies. Reply"></button>
    <button data-testid="retweet" aria-label="12 Reposts. Repost"></button>
    <button data-testid="like" aria-label="1,234 Likes. Like"></button>
  </div>
</article>
<article data-testid="tweet">
  <div data-testid="User-Name"><span>Bob</span><a href="/bob_99">@bob_99</a></div>
  <a href="/bob_99/status/1002"><time datetime="2024-05-02T08:30:00.000Z">May 2</time></a>
  <div data-testid="tweetText" lang="ja">絶対稼げる副業を教えます！今すぐDMして</div>
  <div role="group">
    <button data-testid="like" aria-label="2 Likes. Like"></button>
  </div>
</article>
<article data-testid="tweet">
  <div data-testid="User-Name"><span>Carol</span><a href="/carol">@carol</a></div>
  <a href="/carol/status/1003"><time datetime="2024-05-03T09:00:00.000Z">May 3</time></a>
</article>
</main></body></html>
"""


@pytest.fixture(autouse=True)
def restore_config(monkeypatch):
    """CLI-Tests verändern Config; nach jedem Test zurücksetzen."""
    for name in ("DATA_DIR", "DB_PATH", "PROFILE_DIR", "REPORT_PATH",
                 "HEADLESS", "AUTO_SCROLL", "POLL_INTERVAL", "SEEN_LIMIT"):
        monkeypatch.setattr(Config, name, getattr(Config, name))


@pytest.fixture
def storage(tmp_path):
    return StorageManager(tmp_path / "test.db")


@pytest.fixture
def feed_html():
    return FEED_HTML


@pytest.fixture
def feed_file(tmp_path):
    path = tmp_path / "feed.html"
    path.write_text(FEED_HTML, encoding="utf-8")
    return path


@pytest.fixture
def python_settings():
    return UserSettings(
        target_genres=["プログラミング"],
        keywords=["python", "rust"],
        exclude_keywords=["crypto"],
    )
