"""Tests für Badges und Quick-Action-Buttons."""

import asyncio

import pytest
from bs4 import BeautifulSoup

from config import Config
from injector import UIInjector, score_color, star_rating
from models import AnalysisResult


def result(score, genre="AI開発", reason="理由"):
    return AnalysisResult(score=score, genre=genre, reason=reason)


@pytest.fixture
def article(feed_html):
    soup = BeautifulSoup(feed_html, "html.parser")
    return soup, soup.select_one("article")


@pytest.mark.parametrize("score,color", [
    (100, "#10b981"), (80, "#10b981"), (79, "#3b82f6"), (60, "#3b82f6"),
    (59, "#f59e0b"), (40, "#f59e0b"), (39, "#6b7280"), (0, "#6b7280"),
])
def test_score_color(score, color):
    assert score_color(score) == color


@pytest.mark.parametrize("score,stars", [(90, 5), (89, 4), (75, 4), (74, 3), (60, 3), (40, 2), (39, 1)])
def test_star_rating(score, stars):
    assert star_rating(score) == "⭐" * stars


def test_badge_markup():
    badge = UIInjector().build_badge(result(85, reason="高関連性"))
    html = str(badge)

    assert Config.BADGE_CLASS in html
    assert badge.select_one(".fea-score").get_text() == "85点"
    assert badge.select_one(".fea-stars").get_text() == "⭐" * 4
    assert badge.select_one(".fea-genre").get_text() == "AI開発"
    assert badge.select_one(".fea-reason").get_text() == "高関連性"
    assert "#10b981" in html


def test_badge_escapes_text():
    html = str(UIInjector().build_badge(result(10, genre="<b>x</b>")))
    assert "<b>" not in html
    assert "&lt;b&gt;" in html


def test_annotate_high_score_adds_button(article):
    soup, tag = article
    injector = UIInjector()
    injector.annotate(tag, result(75), "1001")

    badge = tag.select_one(f".{Config.BADGE_CLASS}")
    button = badge.find_next_sibling()
    assert button.name == "button"
    assert button["data-post-id"] == "1001"
    assert injector.is_injected(tag)
    # Badge sitzt vor dem Post-Text
    assert tag.find() is badge


def test_annotate_low_score_has_no_button(article):
    _, tag = article
    UIInjector().annotate(tag, result(59), "1001")
    assert tag.select_one(f".{Config.BUTTON_CLASS}") is None
    assert tag.select_one(f".{Config.BADGE_CLASS}") is not None


def test_annotate_twice_replaces_badge(article):
    _, tag = article
    injector = UIInjector()
    injector.annotate(tag, result(70), "1001")
    injector.annotate(tag, result(90), "1001")

    assert len(tag.select(f".{Config.BADGE_CLASS}")) == 1
    assert len(tag.select(f".{Config.BUTTON_CLASS}")) == 1
    assert tag.select_one(".fea-score").get_text() == "90点"


def test_remove_injected_elements(article):
    _, tag = article
    injector = UIInjector()
    injector.annotate(tag, result(70), "1001")
    injector.remove_injected_elements(tag)

    assert tag.select_one(f".{Config.BADGE_CLASS}") is None
    assert tag.select_one(f".{Config.BUTTON_CLASS}") is None
    assert not injector.is_injected(tag)


def test_mark_as_injected_keeps_existing_classes():
    tag = BeautifulSoup('<div class="tweet big"></div>', "html.parser").div
    UIInjector().mark_as_injected(tag)
    assert tag["class"] == ["tweet", "big", Config.INJECTED_CLASS]


class RecordingHandle:
    def __init__(self, injected=False):
        self.injected = injected
        self.calls = []

    async def evaluate(self, script, arg=None):
        self.calls.append((script, arg))
        if "classList.contains" in script:
            return self.injected
        return None


def test_inject_live_passes_markup_and_callback():
    handle = RecordingHandle()
    asyncio.run(UIInjector().inject_live(handle, result(80), "1001"))

    _, args = handle.calls[0]
    assert Config.BADGE_CLASS in args["badge"]
    assert 'data-post-id="1001"' in args["button"]
    assert args["callback"] == Config.LIKE_CALLBACK
    assert args["postId"] == "1001"


def test_inject_live_without_button_for_low_score():
    handle = RecordingHandle()
    asyncio.run(UIInjector().inject_live(handle, result(20), "1001"))
    assert handle.calls[0][1]["button"] is None


def test_is_injected_live():
    injector = UIInjector()
    assert asyncio.run(injector.is_injected_live(RecordingHandle(injected=True))) is True
    assert asyncio.run(injector.is_injected_live(RecordingHandle())) is False


def test_remove_live():
    handle = RecordingHandle(injected=True)
    asyncio.run(UIInjector().remove_live(handle))

    script, args = handle.calls[0]
    assert "classList.remove" in script
    assert args["injectedClass"] == Config.INJECTED_CLASS
