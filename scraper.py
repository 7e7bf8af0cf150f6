import asyncio
import aiohttp
import logging

from collections import OrderedDict
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple
from bs4 import BeautifulSoup
from playwright.async_api import (
    async_playwright,
    BrowserContext,
    ElementHandle,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
)

from config import Config
from extractor import PostExtractor
from injector import UIInjector
from models import ACTION_TYPES, ActionHistory, AnalysisResult, Post
from scoring import RuleAnalyzer, round_half_up
from storage import StorageManager

logging.basicConfig(level=Config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ============================================================
# GLOBALE KONFIGURATION FÜR HTTP-ABRUFE
# ============================================================

# Maximale Anzahl paralleler HTTP-Anfragen
HTTP_CONCURRENCY_LIMIT = getattr(Config, "HTTP_CONCURRENCY", 3)

# Semaphore zur Durchsetzung der maximalen Parallelität
HTTP_SEMAPHORE = asyncio.Semaphore(HTTP_CONCURRENCY_LIMIT)

# Basiswert für exponentielles Backoff bei Rate Limits / Serverfehlern
BASE_BACKOFF = getattr(Config, "RATE_LIMIT_DELAY", 2.0)

# Obergrenze für Backoff-Zeiten
MAX_BACKOFF = 60.0

DEFAULT_HEADERS = {
    "User-Agent": Config.USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ja,en-US;q=0.8,en;q=0.7",
}


class SeenSet:
    """Begrenztes Set bereits verarbeiteter Post-IDs (älteste fallen zuerst heraus)"""

    def __init__(self, maxlen: int):
        self.maxlen = maxlen
        self._items: "OrderedDict[str, None]" = OrderedDict()

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def add(self, key: str):
        if key in self._items:
            self._items.move_to_end(key)
            return
        self._items[key] = None
        while len(self._items) > self.maxlen:
            self._items.popitem(last=False)


class FeedProcessor:
    """
    Kern der Verarbeitung ohne Browser: Duplikatprüfung, Cache,
    Analyse und Statistik.
    """

    def __init__(self, storage: StorageManager, seen_limit: int = None):
        self.storage = storage
        self.analyzer = RuleAnalyzer(storage.get_settings())
        self.seen_posts = SeenSet(seen_limit or Config.SEEN_LIMIT)

    def reload_settings(self):
        self.analyzer.update_settings(self.storage.get_settings())

    def process(self, post: Post) -> Optional[AnalysisResult]:
        """
        Liefert die Analyse eines Posts (aus dem Cache oder neu berechnet).
        Bereits gesehene Posts und Fehler ergeben None.
        """
        if post.post_id in self.seen_posts:
            logger.debug(f"Duplikat-Post übersprungen: {post.post_id}")
            return None
        self.seen_posts.add(post.post_id)

        try:
            analysis = self.storage.get_cached_analysis(post.post_id)
            if analysis is None:
                analysis = self.analyzer.analyze(post)
                self.storage.cache_analysis(post.post_id, analysis)
                self.update_statistics(analysis)
            return analysis
        except Exception as e:
            logger.error(f"Post-Verarbeitung fehlgeschlagen ({post.post_id}): {e}")
            return None

    def update_statistics(self, analysis: AnalysisResult):
        stats = self.storage.get_statistics()

        genre_distribution = dict(stats.genre_distribution)
        genre_distribution[analysis.genre] = genre_distribution.get(analysis.genre, 0) + 1

        # laufender Durchschnitt
        total = stats.total_analyzed + 1
        average = (stats.average_score * stats.total_analyzed + analysis.score) / total

        self.storage.update_statistics({
            "total_analyzed": total,
            "average_score": round_half_up(average),
            "genre_distribution": genre_distribution,
        })

    def record_action(self, post: Post, analysis: AnalysisResult, action: str = "like") -> ActionHistory:
        """Speichert eine ausgeführte Aktion im Verlauf und in der Statistik"""
        if action not in ACTION_TYPES:
            raise ValueError(f"Unbekannte Aktion: {action}")

        now = datetime.now()
        entry = ActionHistory(
            id=f"action-{int(now.timestamp() * 1000)}",
            post_id=post.post_id,
            action=action,
            timestamp=now,
            score=analysis.score,
            genre=analysis.genre,
        )
        self.storage.add_history(entry)

        stats = self.storage.get_statistics()
        daily_actions = dict(stats.daily_actions)
        day = now.strftime("%Y-%m-%d")
        daily_actions[day] = daily_actions.get(day, 0) + 1

        updates = {"daily_actions": daily_actions}
        if action == "like":
            updates["total_liked"] = stats.total_liked + 1
        elif action == "retweet":
            updates["total_retweeted"] = stats.total_retweeted + 1
        self.storage.update_statistics(updates)
        return entry


# ============================================================
# STATISCHER SCAN (aiohttp / Datei)
# ============================================================

async def fetch_feed_html(url: str, session: Optional[aiohttp.ClientSession] = None) -> Optional[str]:
    """
    Lädt eine Feed-Seite per HTTP. Bei 429/5xx wird mit exponentiellem
    Backoff erneut versucht; nach allen Versuchen None.
    """
    own_session = session is None
    if own_session:
        session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=Config.REQUEST_TIMEOUT),
            headers=DEFAULT_HEADERS,
        )

    try:
        for attempt in range(Config.HTTP_RETRIES):
            async with HTTP_SEMAPHORE:
                try:
                    logger.debug(f"GET {url} (Versuch {attempt + 1}/{Config.HTTP_RETRIES})")
                    async with session.get(url) as resp:
                        if resp.status == 429 or resp.status >= 500:
                            logger.warning(f"HTTP {resp.status} für {url}")
                        elif resp.status >= 400:
                            logger.error(f"HTTP {resp.status} für {url}")
                            return None
                        else:
                            return await resp.text()
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    logger.warning(f"Netzwerkfehler für {url}: {e}")

            await asyncio.sleep(min(MAX_BACKOFF, BASE_BACKOFF * 2 ** attempt))

        logger.error(f"Seite konnte nach {Config.HTTP_RETRIES} Versuchen nicht geladen werden: {url}")
        return None
    finally:
        if own_session:
            await session.close()


async def scan_feed(
    source: str,
    processor: FeedProcessor,
    annotate_to: Optional[Path] = None,
) -> List[Tuple[Post, AnalysisResult]]:
    """
    Analysiert alle Posts einer URL oder lokalen HTML-Datei.
    Optional wird das HTML mit Badges versehen und gespeichert.
    """
    if source.startswith(("http://", "https://")):
        html = await fetch_feed_html(source)
    else:
        html = Path(source).read_text(encoding="utf-8")
    if not html:
        return []

    extractor = PostExtractor()
    injector = UIInjector()
    soup = BeautifulSoup(html, "html.parser")

    results = []
    for tag in extractor.find_post_elements(soup):
        post = extractor.extract_post(tag)
        if not post:
            continue
        analysis = processor.process(post)
        if analysis is None:
            continue
        if annotate_to:
            injector.annotate(tag, analysis, post.post_id)
        results.append((post, analysis))

    logger.info(f"{len(results)} Posts analysiert ({source})")

    if annotate_to:
        Path(annotate_to).write_text(str(soup), encoding="utf-8")
        logger.info(f"Annotiertes HTML gespeichert: {annotate_to}")

    return results


# ============================================================
# LIVE-ASSISTENT (Playwright)
# ============================================================

class FeedAssistant:
    """
    Öffnet den Feed in einem Browser, analysiert neu erscheinende Posts,
    blendet Badges ein und führt Likes über den Quick-Action-Button aus.
    """

    def __init__(self, storage: StorageManager, processor: Optional[FeedProcessor] = None):
        self.storage = storage
        self.processor = processor or FeedProcessor(storage)
        self.extractor = PostExtractor()
        self.injector = UIInjector()

        # Playwright-Komponenten
        self.playwright: Optional[Playwright] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

        # Post-ID -> (Element, Post, Analyse) für Quick Actions
        self.tracked: "OrderedDict[str, Tuple[ElementHandle, Post, AnalysisResult]]" = OrderedDict()
        self.processed_count = 0

    async def __aenter__(self):
        """
        Startet einen Browser mit persistentem Profil (Login bleibt erhalten).
        """
        self.playwright = await async_playwright().start()
        self.context = await self.playwright.chromium.launch_persistent_context(
            str(Config.PROFILE_DIR),
            headless=Config.HEADLESS,
            user_agent=Config.USER_AGENT,
            viewport={"width": 1280, "height": 900},
        )
        self.page = self.context.pages[0] if self.context.pages else await self.context.new_page()
        await self.page.expose_function(Config.LIKE_CALLBACK, self.handle_like)
        return self

    async def __aexit__(self, *args):
        if self.context:
            await self.context.close()
        if self.playwright:
            await self.playwright.stop()
        logger.info("Feed Engagement Assistant gestoppt")

    async def load_feed(self, url: str = None) -> bool:
        """
        Öffnet den Feed und wartet, bis Posts im DOM sichtbar sind.
        """
        if not self.page:
            raise RuntimeError("Browser nicht initialisiert")

        url = url or Config.FEED_URL
        logger.info(f"Lade Feed {url} ...")

        max_retries = 3
        for attempt in range(max_retries):
            try:
                await self.page.goto(url, wait_until="domcontentloaded", timeout=30_000)
                break
            except PlaywrightError as e:
                if "net::ERR_NAME_NOT_RESOLVED" in str(e):
                    logger.warning(f"DNS-Fehler beim Laden der Seite (Versuch {attempt + 1}/{max_retries})")
                    await asyncio.sleep(2)
                else:
                    raise
        else:
            logger.error("Seite konnte nach mehreren Versuchen nicht geladen werden")
            return False

        try:
            await self.page.wait_for_selector(Config.POST_SELECTOR, state="visible", timeout=15_000)
        except PlaywrightTimeoutError:
            # z.B. Login noch nicht erfolgt; die Schleife wartet weiter
            logger.warning("Noch keine Posts sichtbar - bitte ggf. im Browserfenster einloggen")
        return True

    async def process_element(self, handle: ElementHandle) -> Optional[AnalysisResult]:
        """Analysiert ein Post-Element und injiziert Badge/Button"""
        try:
            if await self.injector.is_injected_live(handle):
                return None

            html = await handle.evaluate("el => el.outerHTML")
            tag = BeautifulSoup(html, "html.parser").find()
            if not self.extractor.is_post_element(tag):
                return None

            post = self.extractor.extract_post(tag)
            if not post:
                return None

            analysis = self.processor.process(post)
            if analysis is None:
                return None

            await self.injector.inject_live(handle, analysis, post.post_id)
            await self._track(post, analysis, handle)
            logger.debug(f"Post {post.post_id}: {analysis.score} Punkte ({analysis.genre})")
            return analysis

        except Exception as e:
            logger.error(f"Fehler bei der Post-Verarbeitung: {e}")
            return None

    async def poll(self, max_posts: Optional[int] = None, duration: Optional[float] = None) -> int:
        """
        Beobachtungsschleife: verarbeitet sichtbare Posts, scrollt weiter
        und wiederholt bis max_posts oder duration erreicht ist.
        """
        loop = asyncio.get_running_loop()
        start = loop.time()

        while True:
            # Einstellungen können während des Laufs per CLI geändert werden
            self.processor.reload_settings()

            handles = await self.page.query_selector_all(Config.POST_SELECTOR)
            for index, handle in enumerate(handles):
                if await self.process_element(handle):
                    self.processed_count += 1
                else:
                    await self._release(handle)
                if max_posts and self.processed_count >= max_posts:
                    for rest in handles[index + 1:]:
                        await self._release(rest)
                    logger.info(f"Maximale Anzahl von Posts ({max_posts}) erreicht.")
                    return self.processed_count

            if duration is not None and loop.time() - start >= duration:
                break

            if Config.AUTO_SCROLL:
                await self.page.evaluate("step => window.scrollBy(0, step)", Config.SCROLL_STEP)
            await asyncio.sleep(Config.POLL_INTERVAL)

        return self.processed_count

    async def handle_like(self, post_id: str) -> bool:
        """Like für einen Post ausführen (vom Quick-Action-Button aufgerufen)"""
        entry = self.tracked.get(post_id)
        if not entry:
            logger.warning(f"Unbekannter Post für Like: {post_id}")
            return False

        handle, post, analysis = entry
        try:
            logger.info(f"Like für {post_id}")
            html = await handle.evaluate("el => el.outerHTML")
            if self.extractor.is_liked(BeautifulSoup(html, "html.parser")):
                logger.info("Bereits geliked")
                return False

            button = await self._find_like_button(handle)
            if not button:
                logger.warning("Like-Button nicht gefunden")
                return False

            await button.click()
            self.processor.record_action(post, analysis, "like")
            logger.info("Like abgeschlossen")
            return True

        except Exception as e:
            logger.error(f"Like-Fehler: {e}")
            return False

    async def _find_like_button(self, handle: ElementHandle) -> Optional[ElementHandle]:
        for selector in Config.ENGAGEMENT_SELECTORS["like"]:
            button = await handle.query_selector(selector)
            if button:
                return button
        return None

    async def _track(self, post: Post, analysis: AnalysisResult, handle: ElementHandle):
        previous = self.tracked.pop(post.post_id, None)
        if previous and previous[0] is not handle:
            await self._release(previous[0])
        self.tracked[post.post_id] = (handle, post, analysis)
        while len(self.tracked) > Config.SEEN_LIMIT:
            _, (old_handle, _, _) = self.tracked.popitem(last=False)
            await self._release(old_handle)

    async def _release(self, handle: ElementHandle):
        # nur getrackte Handles bleiben im Browser registriert
        try:
            await handle.dispose()
        except PlaywrightError as e:
            logger.debug(f"Handle konnte nicht freigegeben werden: {e}")
