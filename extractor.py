# extractor.py

import logging
import random
import re
import string
import time
from datetime import datetime
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from config import Config
from models import Post

logger = logging.getLogger(__name__)

STATUS_ID_PATTERN = re.compile(r"/status/(\d+)")
HANDLE_PATTERN = re.compile(r"^/[a-zA-Z0-9_]+$")
COUNT_PATTERN = re.compile(r"(\d[\d,]*(?:\.\d+)?)([KkMm万]?)(?![A-Za-z])")
COUNT_MULTIPLIERS = {"k": 1_000, "m": 1_000_000, "万": 10_000}

_BASE36 = string.digits + string.ascii_lowercase


def generate_fallback_id() -> str:
    """Eindeutige ID für Posts ohne Status-Link"""
    suffix = "".join(random.choice(_BASE36) for _ in range(9))
    return f"post-{int(time.time() * 1000)}-{suffix}"


def parse_count(label: str) -> Optional[int]:
    """
    Erste Zahl eines Labels: "1,234" -> 1234, "1.5K" -> 1500, "3.2万" -> 32000.
    Ohne Zahl None.
    """
    match = COUNT_PATTERN.search(label)
    if not match:
        return None
    number = float(match.group(1).replace(",", ""))
    return round(number * COUNT_MULTIPLIERS.get(match.group(2).lower(), 1))


class PostExtractor:
    """
    Extrahiert Post-Daten aus dem HTML eines Feeds.
    Die Selektoren stehen in Config, da sich das Markup häufig ändert.
    """

    def is_post_element(self, tag: Optional[Tag]) -> bool:
        if not isinstance(tag, Tag):
            return False
        return (
            tag.get("data-testid") == Config.POST_MARKER_TESTID
            or tag.select_one(f'[data-testid="{Config.POST_MARKER_TESTID}"]') is not None
            or Config.POST_MARKER_CLASS in (tag.get("class") or [])
            or tag.has_attr(Config.POST_ID_ATTRIBUTE)
        )

    def extract_posts(self, html: str) -> List[Post]:
        """Alle Posts einer Seite extrahieren"""
        soup = BeautifulSoup(html, "html.parser")
        posts = []
        for tag in self.find_post_elements(soup):
            post = self.extract_post(tag)
            if post:
                posts.append(post)
        return posts

    def find_post_elements(self, soup: BeautifulSoup) -> List[Tag]:
        # verschachtelte Treffer (Wrapper + innerer Post) nur einmal zählen
        elements = soup.select(Config.POST_SELECTOR)
        ids = {id(tag) for tag in elements}
        return [
            tag for tag in elements
            if not any(id(parent) in ids for parent in tag.parents)
        ]

    def extract_post(self, tag: Tag) -> Optional[Post]:
        """Baut ein Post-Objekt aus einem Post-Element"""
        try:
            post_id = self._extract_id(tag)
            content = self._extract_content(tag)
            if not post_id or not content:
                return None

            handle = self._extract_handle(tag) or ""
            return Post(
                post_id=post_id,
                author=self._extract_author(tag) or "Unknown",
                author_handle=handle,
                content=content,
                timestamp=self._extract_timestamp(tag) or datetime.now(),
                likes=self._extract_engagement_count(tag, "like"),
                retweets=self._extract_engagement_count(tag, "retweet"),
                replies=self._extract_engagement_count(tag, "reply"),
                url=self._extract_url(tag),
            )
        except Exception as e:
            logger.error(f"Post-Extraktion fehlgeschlagen: {e}")
            return None

    # ============================================================
    # HILFSMETHODEN ZUR DATENEXTRAKTION
    # ============================================================

    def _extract_id(self, tag: Tag) -> str:
        explicit = tag.get(Config.POST_ID_ATTRIBUTE)
        if explicit:
            return str(explicit)

        for link in tag.select(Config.STATUS_LINK_SELECTOR):
            match = STATUS_ID_PATTERN.search(link.get("href", ""))
            if match:
                return match.group(1)

        return generate_fallback_id()

    def _extract_url(self, tag: Tag) -> str:
        link = tag.select_one(Config.STATUS_LINK_SELECTOR)
        if not link or not link.get("href"):
            return ""
        href = link["href"]
        return f"{Config.BASE_URL}{href}" if href.startswith("/") else href

    def _extract_author(self, tag: Tag) -> Optional[str]:
        for selector in Config.AUTHOR_SELECTORS:
            element = tag.select_one(selector)
            if element:
                text = element.get_text(strip=True)
                if text:
                    return text
        return None

    def _extract_handle(self, tag: Tag) -> Optional[str]:
        for link in tag.select(Config.HANDLE_LINK_SELECTOR):
            href = link.get("href", "")
            if HANDLE_PATTERN.match(href):
                return href[1:]
        return None

    def _extract_content(self, tag: Tag) -> Optional[str]:
        for selector in Config.CONTENT_SELECTORS:
            element = tag.select_one(selector)
            if element:
                text = element.get_text().strip()
                if text:
                    return text
        return None

    def _extract_timestamp(self, tag: Tag) -> Optional[datetime]:
        time_tag = tag.select_one(Config.TIME_SELECTOR)
        if not time_tag or not time_tag.get("datetime"):
            return None
        try:
            return datetime.fromisoformat(time_tag["datetime"].replace("Z", "+00:00"))
        except ValueError:
            logger.debug(f"Ungültiger Zeitstempel: {time_tag['datetime']}")
            return None

    def _extract_engagement_count(self, tag: Tag, kind: str) -> int:
        for selector in Config.ENGAGEMENT_SELECTORS[kind]:
            element = tag.select_one(selector)
            if not element:
                continue
            label = element.get("aria-label")
            if label:
                count = parse_count(label)
                if count is not None:
                    return count
        return 0

    # ============================================================
    # LIKE-BUTTON
    # ============================================================

    def find_like_button(self, tag: Tag) -> Optional[Tag]:
        for selector in Config.ENGAGEMENT_SELECTORS["like"]:
            button = tag.select_one(selector)
            if button:
                return button
        return None

    def is_liked(self, tag: Tag) -> bool:
        button = self.find_like_button(tag)
        if not button:
            return False
        label = button.get("aria-label") or ""
        return any(marker in label for marker in Config.LIKED_MARKERS)
