# scoring.py
"""
Regelbasierte Analyse von Feed-Posts.

Bewertet jeden Post mit festen Schlüsselwort-Tabellen und einfachen
Heuristiken (Länge, Links, Hashtags, Emojis, Stimmung, Engagement) und
liefert eine Score von 0 bis 100.
"""

import logging
import math
import re
from typing import List

from models import AnalysisResult, Post, UserSettings

logger = logging.getLogger(__name__)

SPAM_GENRE = 'スパム'
OTHER_GENRE = 'その他'
SPAM_REASON = 'スパムと判定されました'

SPAM_PATTERNS = [
    '絶対稼げる',
    '100%',
    '今すぐ',
    '無料で稼ぐ',
    '簡単に稼げる',
    'DM下さい',
    'ライン追加',
]

# Reihenfolge ist relevant: bei Gleichstand gewinnt das frühere Genre
GENRE_KEYWORDS = {
    'AI開発': ['ai', 'claude', 'chatgpt', 'llm', '機械学習', 'ml', 'deep learning'],
    'プログラミング': ['プログラミング', 'コーディング', 'javascript', 'python', 'typescript', '開発'],
    'テクノロジー': ['テクノロジー', 'tech', '技術', 'スタートアップ', 'saas'],
    'マーケティング': ['マーケティング', 'seo', 'sns', '集客', 'ブランディング'],
    'ビジネス': ['ビジネス', '起業', '経営', '売上', 'マネタイズ'],
}

POSITIVE_WORDS = ['良い', '素晴らしい', '便利', '最高', '成功', '改善', '効果的', '優れた']
NEGATIVE_WORDS = ['悪い', '問題', 'バグ', 'エラー', '失敗', '困難', '難しい']

URL_PATTERN = re.compile(r"https?://")
EMOJI_PATTERN = re.compile("[\U0001F600-\U0001F64F]")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class RuleAnalyzer:
    """
    Analyse-Engine mit festen Regeln. Kein Modell, keine Lernphase:
    Schlüsselwort-Lookup plus gewichtete Summe.
    """

    def __init__(self, settings: UserSettings):
        self.settings = settings

    def analyze(self, post: Post) -> AnalysisResult:
        """Bewertet einen Post und liefert das Analyseergebnis"""
        content = (post.content or '').lower()

        if self.detect_spam(content):
            logger.debug(f"Spam erkannt: {post.post_id}")
            return AnalysisResult(
                score=0,
                genre=SPAM_GENRE,
                keywords=[],
                relevance=0.0,
                sentiment='negative',
                is_spam=True,
                reason=SPAM_REASON,
            )

        matched = self.extract_keywords(content)
        relevance = self.calculate_relevance(content, matched)
        genre = self.classify_genre(content)
        sentiment = self.analyze_sentiment(content)
        score = self.calculate_score(post, relevance, sentiment)

        return AnalysisResult(
            score=score,
            genre=genre,
            keywords=matched,
            relevance=relevance,
            sentiment=sentiment,
            is_spam=False,
            reason=self.generate_reason(score, matched, genre),
        )

    def detect_spam(self, content: str) -> bool:
        patterns = [*self.settings.exclude_keywords, *SPAM_PATTERNS]
        return any(p.lower() in content for p in patterns if p)

    def extract_keywords(self, content: str) -> List[str]:
        return [kw for kw in self.settings.keywords if kw and kw.lower() in content]

    def calculate_relevance(self, content: str, keywords: List[str]) -> float:
        if not keywords:
            return 0.0

        match_ratio = len(keywords) / len(self.settings.keywords)
        quality = self.assess_quality(content)
        return min(1.0, match_ratio * 0.7 + quality * 0.3)

    def assess_quality(self, content: str) -> float:
        """
        Qualitätsschätzung 0-1:
        - angemessene Länge (50-280 Zeichen)
        - Link vorhanden (Quelle)
        - 1-3 Hashtags, nicht mehr als 5
        - nicht mehr als 10 Emojis
        """
        score = 0.5

        length = len(content)
        if 50 <= length <= 280:
            score += 0.2
        elif length < 20:
            score -= 0.3

        if URL_PATTERN.search(content):
            score += 0.1

        hashtags = content.count('#')
        if 1 <= hashtags <= 3:
            score += 0.1
        elif hashtags > 5:
            score -= 0.2

        if len(EMOJI_PATTERN.findall(content)) > 10:
            score -= 0.2

        return max(0.0, min(1.0, score))

    def classify_genre(self, content: str) -> str:
        best_genre = OTHER_GENRE
        max_matches = 0

        for genre, genre_keys in GENRE_KEYWORDS.items():
            matches = sum(1 for key in genre_keys if key.lower() in content)
            if matches > max_matches:
                max_matches = matches
                best_genre = genre

        return best_genre

    def analyze_sentiment(self, content: str) -> str:
        positive = sum(1 for w in POSITIVE_WORDS if w in content)
        negative = sum(1 for w in NEGATIVE_WORDS if w in content)

        if positive > negative:
            return 'positive'
        if negative > positive:
            return 'negative'
        return 'neutral'

    def calculate_score(self, post: Post, relevance: float, sentiment: str) -> int:
        score = relevance * 100

        if sentiment == 'positive':
            score += 10
        elif sentiment == 'negative':
            score -= 10

        # Engagement: Retweets zählen doppelt, max. 20 Punkte
        score += min(20, (post.likes + post.retweets * 2) / 10)

        return max(0, min(100, round_half_up(score)))

    def generate_reason(self, score: int, keywords: List[str], genre: str) -> str:
        if score >= 80:
            return f"高関連性: {', '.join(keywords)} に関する質の高い投稿"
        if score >= 60:
            return f"関連性あり: {genre} ジャンルの投稿"
        if score >= 40:
            return "やや関連: 一部キーワードがマッチ"
        return "低関連性: ターゲットジャンルと異なる"

    def update_settings(self, settings: UserSettings):
        self.settings = settings
