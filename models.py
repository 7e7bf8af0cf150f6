# models.py

import copy
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Tuple

SENTIMENTS = ("positive", "neutral", "negative")
ACTION_TYPES = ("like", "retweet", "reply", "follow")
AI_PROVIDERS = ("openai", "anthropic", "local")


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


class _Record:
    """Gemeinsame Dict-Serialisierung für die Speicher-Modelle"""

    _DATETIME_FIELDS: ClassVar[Tuple[str, ...]] = ()

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                data[f.name] = value.isoformat()
            else:
                data[f.name] = copy.deepcopy(value)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]):
        known = {f.name for f in fields(cls)}
        values = {k: copy.deepcopy(v) for k, v in (data or {}).items() if k in known}
        for name in cls._DATETIME_FIELDS:
            if name in values:
                values[name] = _parse_datetime(values[name])
        return cls(**values)


@dataclass
class Post(_Record):
    """Post-Modell (ein Beitrag aus dem Feed)"""
    post_id: str
    author: str
    content: str
    author_handle: str = ''
    timestamp: Optional[datetime] = None
    likes: int = 0
    retweets: int = 0
    replies: int = 0
    url: str = ''

    _DATETIME_FIELDS: ClassVar[Tuple[str, ...]] = ("timestamp",)


@dataclass
class AnalysisResult(_Record):
    """Ergebnis der regelbasierten Analyse"""
    score: int                  # 0-100
    genre: str
    keywords: List[str] = field(default_factory=list)
    relevance: float = 0.0      # 0-1
    sentiment: str = 'neutral'  # positive | neutral | negative
    is_spam: bool = False
    reason: str = ''


@dataclass
class UserSettings(_Record):
    """Benutzereinstellungen"""
    target_genres: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    exclude_keywords: List[str] = field(default_factory=list)
    min_score: int = 70
    min_followers: int = 50
    language: str = 'ja'
    ai_provider: str = 'local'
    api_key: Optional[str] = None


@dataclass
class ActionHistory(_Record):
    """Eintrag im Aktionsverlauf"""
    id: str
    post_id: str
    action: str                 # like | retweet | reply | follow
    timestamp: datetime
    score: int
    genre: str

    _DATETIME_FIELDS: ClassVar[Tuple[str, ...]] = ("timestamp",)


@dataclass
class Statistics(_Record):
    """Aggregierte Statistik"""
    total_analyzed: int = 0
    total_liked: int = 0
    total_retweeted: int = 0
    average_score: int = 0
    genre_distribution: Dict[str, int] = field(default_factory=dict)
    daily_actions: Dict[str, int] = field(default_factory=dict)
    last_updated: Optional[datetime] = None

    _DATETIME_FIELDS: ClassVar[Tuple[str, ...]] = ("last_updated",)


DEFAULT_SETTINGS = UserSettings(
    target_genres=['AI開発', 'テクノロジー', 'プログラミング'],
    keywords=['AI', 'Claude', 'ChatGPT', 'LLM', '機械学習', '開発'],
    exclude_keywords=['スパム', '詐欺', '怪しい', '稼げる'],
    min_score=70,
    min_followers=50,
    language='ja',
    ai_provider='local',
)


def default_settings() -> UserSettings:
    """Frische Kopie der Standardeinstellungen"""
    return UserSettings.from_dict(DEFAULT_SETTINGS.to_dict())


def default_statistics() -> Statistics:
    return Statistics(last_updated=datetime.now())
