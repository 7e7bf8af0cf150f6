"""Tests für die pandas-Auswertung."""

from datetime import datetime

import matplotlib.pyplot as plt
import pytest

from analysis import (
    build_report, daily_actions_frame, genre_frame, genre_labels, history_frame, plot_report, score_frame,
)
from models import ActionHistory, AnalysisResult


@pytest.fixture
def filled_storage(storage):
    storage.cache_analysis("1", AnalysisResult(score=80, genre="AI開発", sentiment="positive"))
    storage.cache_analysis("2", AnalysisResult(score=0, genre="スパム", sentiment="negative", is_spam=True))
    storage.cache_analysis("3", AnalysisResult(score=50, genre="AI開発"))
    storage.update_statistics({
        "total_analyzed": 3,
        "total_liked": 2,
        "average_score": 43,
        "genre_distribution": {"AI開発": 2, "スパム": 1},
    })
    for n, (day, kind) in enumerate([(1, "like"), (1, "like"), (2, "retweet")]):
        storage.add_history(ActionHistory(
            id=f"action-{n}", post_id=str(n), action=kind,
            timestamp=datetime(2024, 5, day, 10, n), score=80, genre="AI開発",
        ))
    return storage


def test_empty_storage(storage):
    assert history_frame(storage).empty
    assert daily_actions_frame(storage).empty
    assert genre_frame(storage).empty
    assert score_frame(storage).empty

    report = build_report(storage)
    assert report["cached_posts"] == 0
    assert report["spam_posts"] == 0
    assert report["actions"] == {}


def test_daily_actions(filled_storage):
    daily = daily_actions_frame(filled_storage)
    rows = [(str(r["date"]), r["action"], r["count"]) for r in daily.to_dict("records")]
    assert rows == [("2024-05-01", "like", 2), ("2024-05-02", "retweet", 1)]


def test_genre_frame_sorted_with_share(filled_storage):
    genres = genre_frame(filled_storage)
    assert list(genres["genre"]) == ["AI開発", "スパム"]
    assert genres["share"].sum() == pytest.approx(100)


def test_build_report(filled_storage):
    report = build_report(filled_storage)
    assert report["total_analyzed"] == 3
    assert report["cached_posts"] == 3
    assert report["spam_posts"] == 1
    assert report["median_score"] == 50.0
    assert report["actions"] == {"like": 2, "retweet": 1}
    assert report["sentiments"]["neutral"] == 1


def test_plot_report_writes_png(filled_storage, tmp_path):
    path = plot_report(filled_storage, tmp_path / "out" / "report.png")
    assert path.exists()
    assert path.read_bytes().startswith(b"\x89PNG")


def test_plot_report_empty(storage, tmp_path):
    assert plot_report(storage, tmp_path / "empty.png").exists()


def test_genre_labels_fall_back_to_numbers():
    assert genre_labels(["AI開発", "スパム"], None) == ["#1", "#2"]
    assert genre_labels(["AI開発"], "Noto Sans CJK JP") == ["AI開発"]


def test_plot_report_draws_with_found_font(filled_storage, tmp_path, monkeypatch):
    families = []

    def record(genres, font):
        families.append(list(plt.rcParams["font.family"]))
        return list(genres)

    # DejaVu Sans ist bei matplotlib immer dabei
    monkeypatch.setattr("analysis.find_cjk_font", lambda: "DejaVu Sans")
    monkeypatch.setattr("analysis.genre_labels", record)

    assert plot_report(filled_storage, tmp_path / "report.png").exists()
    assert families == [["DejaVu Sans", "DejaVu Sans"]]
