# storage.py
import json
import logging
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import Config
from models import (
    ActionHistory,
    AnalysisResult,
    Statistics,
    UserSettings,
    default_settings,
    default_statistics,
)

logger = logging.getLogger(__name__)


class StorageManager:
    """
    Lokaler Key-Value-Speicher auf SQLite.
    Jeder Schlüssel hält einen JSON-Wert: Einstellungen, Verlauf,
    Statistik und Analyse-Cache.
    """

    KEYS = {
        "SETTINGS": "settings",
        "HISTORY": "history",
        "STATISTICS": "statistics",
        "CACHE": "cache",
        "VERSION": "version",
    }

    def __init__(self, db_path=None, history_limit: int = None, cache_limit: int = None):
        self.db_path = Path(db_path or Config.DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.history_limit = history_limit or Config.HISTORY_LIMIT
        self.cache_limit = cache_limit or Config.CACHE_LIMIT

        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )

    # -----------------------------
    # KEY-VALUE
    # -----------------------------
    def get(self, key: str, default: Any = None) -> Any:
        with closing(sqlite3.connect(self.db_path)) as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            return default
        return json.loads(row[0])

    def set(self, key: str, value: Any):
        payload = json.dumps(value, ensure_ascii=False)
        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, payload),
            )

    def clear_all(self):
        """Löscht alle gespeicherten Daten"""
        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            conn.execute("DELETE FROM kv")
        logger.info("Alle Daten gelöscht")

    # -----------------------------
    # EINSTELLUNGEN
    # -----------------------------
    def get_settings(self) -> UserSettings:
        data = self.get(self.KEYS["SETTINGS"])
        if data is None:
            return default_settings()
        return UserSettings.from_dict(data)

    def save_settings(self, settings: UserSettings):
        self.set(self.KEYS["SETTINGS"], settings.to_dict())

    # -----------------------------
    # AKTIONSVERLAUF
    # -----------------------------
    def get_history(self) -> List[ActionHistory]:
        return [ActionHistory.from_dict(d) for d in self.get(self.KEYS["HISTORY"], [])]

    def add_history(self, action: ActionHistory):
        """Hängt eine Aktion an; nur die neuesten Einträge bleiben erhalten"""
        history = self.get(self.KEYS["HISTORY"], [])
        history.append(action.to_dict())
        self.set(self.KEYS["HISTORY"], history[-self.history_limit:])

    # -----------------------------
    # STATISTIK
    # -----------------------------
    def get_statistics(self) -> Statistics:
        data = self.get(self.KEYS["STATISTICS"])
        if data is None:
            return default_statistics()
        return Statistics.from_dict(data)

    def update_statistics(self, updates: Dict[str, Any]) -> Statistics:
        stats = self.get_statistics().to_dict()
        stats.update(updates)
        stats["last_updated"] = datetime.now().isoformat()
        self.set(self.KEYS["STATISTICS"], stats)
        return Statistics.from_dict(stats)

    # -----------------------------
    # ANALYSE-CACHE
    # -----------------------------
    def get_cache(self) -> Dict[str, AnalysisResult]:
        cache = self.get(self.KEYS["CACHE"], {})
        return {post_id: AnalysisResult.from_dict(d) for post_id, d in cache.items()}

    def get_cached_analysis(self, post_id: str) -> Optional[AnalysisResult]:
        cached = self.get(self.KEYS["CACHE"], {}).get(post_id)
        return AnalysisResult.from_dict(cached) if cached else None

    def cache_analysis(self, post_id: str, analysis: AnalysisResult):
        """Speichert eine Analyse; der Cache hält nur die zuletzt eingefügten Einträge"""
        cache = self.get(self.KEYS["CACHE"], {})
        cache[post_id] = analysis.to_dict()

        if len(cache) > self.cache_limit:
            cache = dict(list(cache.items())[-self.cache_limit:])
        self.set(self.KEYS["CACHE"], cache)

    # -----------------------------
    # INSTALLATIONSSTATUS
    # -----------------------------
    def get_version(self) -> Optional[str]:
        return self.get(self.KEYS["VERSION"])

    def set_version(self, version: str):
        self.set(self.KEYS["VERSION"], version)
