# background.py
"""
Nachrichten-Dispatch zwischen Oberfläche (CLI) und Speicher.

Jede Nachricht ist ein Dict mit ``type`` und optional ``data``.
"""

import logging
from typing import Any, Dict, Optional

from models import Post, UserSettings, default_settings
from scoring import RuleAnalyzer
from storage import StorageManager

logger = logging.getLogger(__name__)


def on_installed(storage: StorageManager, reason: str):
    """Initialisierung bei Installation bzw. Update"""
    logger.info(f"Initialisierung ({reason})")

    if reason == "install":
        storage.save_settings(default_settings())
        logger.info("Standardeinstellungen gespeichert")
    elif reason == "update":
        logger.info("Feed Engagement Assistant wurde aktualisiert")


def ensure_installed(storage: StorageManager, version: str) -> Optional[str]:
    """
    Vergleicht die gespeicherte Version mit der laufenden und löst bei
    Bedarf ``on_installed`` aus. Gibt den Grund zurück (oder None).
    """
    stored = storage.get_version()
    if stored == version:
        return None

    reason = "install" if stored is None else "update"
    on_installed(storage, reason)
    storage.set_version(version)
    return reason


def handle_message(storage: StorageManager, message: Dict[str, Any]) -> Any:
    """Verarbeitet eine Nachricht; unbekannte Typen lösen ValueError aus"""
    msg_type = message.get("type")
    data = message.get("data")

    if msg_type == "get_settings":
        return storage.get_settings()

    if msg_type == "save_settings":
        settings = data if isinstance(data, UserSettings) else UserSettings.from_dict(data)
        storage.save_settings(settings)
        return {"success": True}

    if msg_type == "get_statistics":
        return storage.get_statistics()

    if msg_type == "get_history":
        return storage.get_history()

    if msg_type == "clear_data":
        version = storage.get_version()
        storage.clear_all()
        storage.save_settings(default_settings())
        if version:
            storage.set_version(version)
        return {"success": True}

    if msg_type == "analyze":
        post = data if isinstance(data, Post) else Post.from_dict(data)
        analyzer = RuleAnalyzer(storage.get_settings())
        return analyzer.analyze(post).to_dict()

    raise ValueError(f"Unknown message type: {msg_type}")


def dispatch(storage: StorageManager, message: Dict[str, Any]) -> Any:
    """Wie handle_message, aber Fehler werden geloggt und als Dict zurückgegeben"""
    logger.debug(f"Nachricht empfangen: {message.get('type')}")
    try:
        return handle_message(storage, message)
    except Exception as e:
        logger.error(f"Fehler bei der Nachrichtenverarbeitung: {e}")
        return {"error": str(e)}
