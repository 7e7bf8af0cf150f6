# config.py

from pathlib import Path


class Config:
    """Konfiguration für den Feed Engagement Assistant"""

    VERSION = "0.1.0"

    # ========================================
    # 🌐 WEBSITE KONFIGURATION
    # ========================================
    BASE_URL = "https://x.com"
    FEED_URL = "https://x.com/home"

    # ========================================
    # 🎯 SELEKTOREN (CSS-Selektoren für HTML-Elemente)
    # ========================================

    # Einzelner Post
    POST_SELECTOR = "[data-testid='tweet'], article.tweet, [data-tweet-id]"
    POST_MARKER_TESTID = "tweet"
    POST_MARKER_CLASS = "tweet"
    POST_ID_ATTRIBUTE = "data-tweet-id"

    # Felder innerhalb eines Posts (erste Übereinstimmung gewinnt)
    AUTHOR_SELECTORS = [
        '[data-testid="User-Name"] span',
        ".tweet-author",
        '[dir="ltr"] span[dir="ltr"]',
    ]
    CONTENT_SELECTORS = [
        '[data-testid="tweetText"]',
        "[lang]",
        ".tweet-text",
    ]
    STATUS_LINK_SELECTOR = 'a[href*="/status/"]'
    HANDLE_LINK_SELECTOR = 'a[href^="/"]'
    TIME_SELECTOR = "time"

    ENGAGEMENT_SELECTORS = {
        "like": ['[data-testid="like"]', '[aria-label*="いいね"]', '[aria-label*="Like"]'],
        "retweet": ['[data-testid="retweet"]', '[aria-label*="リツイート"]', '[aria-label*="Retweet"]'],
        "reply": ['[data-testid="reply"]', '[aria-label*="返信"]', '[aria-label*="Reply"]'],
    }
    LIKED_MARKERS = ["いいね済み", "Unlike"]

    # ========================================
    # 🏷️ INJIZIERTE UI
    # ========================================
    INJECTED_CLASS = "fea-injected"
    BADGE_CLASS = "fea-score-badge"
    BUTTON_CLASS = "fea-quick-action"
    LIKE_CALLBACK = "feaOnLike"     # im Browser exponierte Funktion
    QUICK_ACTION_MIN_SCORE = 60     # Button erst ab dieser Score
    BUTTON_RESET_MS = 3000

    # ========================================
    # ⏱️ TIMING
    # ========================================
    REQUEST_TIMEOUT = 30    # Sekunden
    POLL_INTERVAL = 1.5     # Sekunden zwischen DOM-Durchläufen
    SCROLL_STEP = 800       # Pixel pro Scroll
    RATE_LIMIT_DELAY = 5.0  # Sekunden bei Rate Limit
    HTTP_RETRIES = 3
    HTTP_CONCURRENCY = 3

    # ========================================
    # 🎯 LIMITS
    # ========================================
    MAX_POSTS = None        # Maximale Anzahl Posts pro Lauf (None = unbegrenzt)
    AUTO_SCROLL = True
    HISTORY_LIMIT = 1000    # Neueste Einträge im Aktionsverlauf
    CACHE_LIMIT = 500       # Neueste Analysen im Cache
    SEEN_LIMIT = 5000       # Größe des Duplikat-Sets

    # ========================================
    # 🌐 HTTP KONFIGURATION
    # ========================================
    USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"

    # ========================================
    # 🖥️ BROWSER KONFIGURATION
    # ========================================
    HEADLESS = False  # Browser sichtbar (True = unsichtbar); Login erfolgt manuell

    # ========================================
    # 📊 LOGGING
    # ========================================
    LOG_LEVEL = "INFO"  # DEBUG, INFO, WARNING, ERROR

    # ========================================
    # 💾 DATENBANK
    # ========================================
    DATA_DIR = Path("data")
    DB_PATH = DATA_DIR / "assistant.db"
    PROFILE_DIR = DATA_DIR / "browser_profile"
    REPORT_PATH = DATA_DIR / "report.png"

    @classmethod
    def use_data_dir(cls, data_dir):
        """Setzt alle abgeleiteten Pfade auf ein neues Datenverzeichnis"""
        cls.DATA_DIR = Path(data_dir)
        cls.DB_PATH = cls.DATA_DIR / "assistant.db"
        cls.PROFILE_DIR = cls.DATA_DIR / "browser_profile"
        cls.REPORT_PATH = cls.DATA_DIR / "report.png"

    @classmethod
    def setup_directories(cls):
        """Erstellt alle benötigten Verzeichnisse"""
        cls.DATA_DIR.mkdir(parents=True, exist_ok=True)
        cls.PROFILE_DIR.mkdir(exist_ok=True)
        return cls.DATA_DIR
