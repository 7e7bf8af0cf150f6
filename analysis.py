import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib import font_manager
from pathlib import Path
from typing import Any, Dict, List, Optional

from storage import StorageManager

HISTORY_COLUMNS = ["id", "post_id", "action", "timestamp", "score", "genre"]

# Schriften mit japanischen Glyphen, in dieser Reihenfolge bevorzugt
CJK_FONTS = [
    "Noto Sans CJK JP", "Noto Sans JP", "IPAexGothic", "IPAGothic",
    "TakaoGothic", "Hiragino Sans", "Yu Gothic", "MS Gothic",
]


def find_cjk_font() -> Optional[str]:
    installed = {font.name for font in font_manager.fontManager.ttflist}
    return next((name for name in CJK_FONTS if name in installed), None)


def genre_labels(genres: List[str], font: Optional[str]) -> List[str]:
    """Ohne CJK-Schrift werden die Balken nummeriert (Reihenfolge wie im Bericht)"""
    if font:
        return list(genres)
    return [f"#{n}" for n in range(1, len(genres) + 1)]


def history_frame(storage: StorageManager) -> pd.DataFrame:
    """Aktionsverlauf als DataFrame"""
    rows = [entry.to_dict() for entry in storage.get_history()]
    df = pd.DataFrame(rows, columns=HISTORY_COLUMNS)
    df["timestamp"] = pd.to_datetime(df["timestamp"])
    return df


def daily_actions_frame(storage: StorageManager) -> pd.DataFrame:
    """Aktionen pro Tag und Typ"""
    df = history_frame(storage)
    if df.empty:
        return pd.DataFrame(columns=["date", "action", "count"])

    df["date"] = df["timestamp"].dt.date
    return (
        df.groupby(["date", "action"])
        .size()
        .reset_index(name="count")
        .sort_values(["date", "action"])
        .reset_index(drop=True)
    )


def genre_frame(storage: StorageManager) -> pd.DataFrame:
    """Genre-Verteilung, absteigend sortiert"""
    distribution = storage.get_statistics().genre_distribution
    df = pd.DataFrame(list(distribution.items()), columns=["genre", "count"])
    if df.empty:
        return df
    df["share"] = df["count"] / df["count"].sum() * 100
    return df.sort_values("count", ascending=False).reset_index(drop=True)


def score_frame(storage: StorageManager) -> pd.DataFrame:
    """Alle gecachten Analysen (eine Zeile pro Post)"""
    rows = [
        {"post_id": post_id, "score": a.score, "genre": a.genre,
         "sentiment": a.sentiment, "is_spam": a.is_spam}
        for post_id, a in storage.get_cache().items()
    ]
    return pd.DataFrame(rows, columns=["post_id", "score", "genre", "sentiment", "is_spam"])


def build_report(storage: StorageManager) -> Dict[str, Any]:
    scores = score_frame(storage)
    history = history_frame(storage)
    stats = storage.get_statistics()

    return {
        "total_analyzed": stats.total_analyzed,
        "total_liked": stats.total_liked,
        "average_score": stats.average_score,
        "cached_posts": len(scores),
        "spam_posts": int(scores["is_spam"].sum()) if not scores.empty else 0,
        "median_score": float(scores["score"].median()) if not scores.empty else 0.0,
        "sentiments": scores["sentiment"].value_counts().to_dict() if not scores.empty else {},
        "actions": history["action"].value_counts().to_dict() if not history.empty else {},
    }


def plot_report(storage: StorageManager, output_path) -> Path:
    """Schreibt eine PNG-Übersicht: Aktionen pro Tag, Genres, Score-Verteilung"""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    daily = daily_actions_frame(storage)
    genres = genre_frame(storage)
    scores = score_frame(storage)

    font = find_cjk_font()
    rc = {"font.family": [font, "DejaVu Sans"]} if font else {}

    with plt.rc_context(rc):
        fig = _draw_report(daily, genres, scores, font)
        fig.tight_layout()
        fig.savefig(output_path)
    plt.close(fig)
    return output_path


def _draw_report(daily, genres, scores, font):
    fig, axes = plt.subplots(1, 3, figsize=(18, 5))

    ax = axes[0]
    if not daily.empty:
        pivot = daily.pivot(index="date", columns="action", values="count").fillna(0)
        pivot.plot(ax=ax, marker="o")
    ax.set_title("Actions per day")
    ax.set_xlabel("Date")
    ax.set_ylabel("Actions")

    ax = axes[1]
    if not genres.empty:
        ax.bar(genre_labels(genres["genre"], font), genres["count"])
        ax.tick_params(axis="x", rotation=45)
    ax.set_title("Genre distribution")
    ax.set_ylabel("Posts")

    ax = axes[2]
    if not scores.empty:
        ax.hist(scores["score"], bins=range(0, 101, 10))
    ax.set_title("Score distribution")
    ax.set_xlabel("Score")
    ax.set_ylabel("Posts")

    return fig
