# injector.py

import logging
from typing import List, Optional

from bs4 import BeautifulSoup, Tag
from playwright.async_api import ElementHandle

from config import Config
from models import AnalysisResult

logger = logging.getLogger(__name__)

BUTTON_LABEL = "いいね"
BUTTON_DONE_LABEL = "✓ 完了"

# Fügt Badge und Button in ein Live-Element ein und verdrahtet den Klick
# mit der exponierten Python-Funktion.
_INJECT_JS = """
(el, args) => {
    const remove = (cls) => { const old = el.querySelector('.' + cls); if (old) old.remove(); };
    remove(args.badgeClass);
    remove(args.buttonClass);

    let target = el;
    for (const selector of args.contentSelectors) {
        const content = el.querySelector(selector);
        if (content && content.parentElement) { target = content.parentElement; break; }
    }
    target.insertAdjacentHTML('afterbegin', args.badge);

    if (args.button) {
        const badge = el.querySelector('.' + args.badgeClass);
        (badge || target).insertAdjacentHTML('afterend', args.button);
        const button = el.querySelector('.' + args.buttonClass);
        const idle = button.innerHTML;
        button.addEventListener('click', (e) => {
            e.preventDefault();
            e.stopPropagation();
            button.disabled = true;
            button.innerHTML = '<span>' + args.doneLabel + '</span>';
            window[args.callback](args.postId);
            setTimeout(() => { button.disabled = false; button.innerHTML = idle; }, args.resetMs);
        });
    }
    el.classList.add(args.injectedClass);
}
"""

_REMOVE_JS = """
(el, args) => {
    for (const cls of [args.badgeClass, args.buttonClass]) {
        const node = el.querySelector('.' + cls);
        if (node) node.remove();
    }
    el.classList.remove(args.injectedClass);
}
"""


def _classes(tag: Tag) -> List[str]:
    value = tag.get("class") or []
    return value.split() if isinstance(value, str) else list(value)


def score_color(score: int) -> str:
    if score >= 80:
        return "#10b981"  # grün
    if score >= 60:
        return "#3b82f6"  # blau
    if score >= 40:
        return "#f59e0b"  # orange
    return "#6b7280"      # grau


def star_rating(score: int) -> str:
    if score >= 90:
        return "⭐" * 5
    if score >= 75:
        return "⭐" * 4
    if score >= 60:
        return "⭐" * 3
    if score >= 40:
        return "⭐" * 2
    return "⭐"


class UIInjector:
    """
    Erzeugt Score-Badges und Quick-Action-Buttons und fügt sie in Posts ein.
    Statisch (BeautifulSoup-Tags) oder live im Browser (Playwright).
    """

    def __init__(self):
        self._factory = BeautifulSoup("", "html.parser")

    # ============================================================
    # MARKUP
    # ============================================================

    def build_badge(self, analysis: AnalysisResult) -> Tag:
        badge = self._factory.new_tag("div", attrs={"class": Config.BADGE_CLASS})

        container = self._factory.new_tag(
            "div",
            attrs={
                "class": "fea-badge-container",
                "style": f"background: {score_color(analysis.score)}; color: white;",
            },
        )
        for cls, text in (
            ("fea-stars", star_rating(analysis.score)),
            ("fea-score", f"{analysis.score}点"),
            ("fea-genre", analysis.genre),
        ):
            span = self._factory.new_tag("span", attrs={"class": cls})
            span.string = text
            container.append(span)
        badge.append(container)

        reason = self._factory.new_tag("div", attrs={"class": "fea-reason"})
        reason.string = analysis.reason
        badge.append(reason)
        return badge

    def build_quick_action(self, post_id: str) -> Tag:
        button = self._factory.new_tag(
            "button",
            attrs={"class": Config.BUTTON_CLASS, "data-post-id": post_id, "type": "button"},
        )
        icon = self._factory.new_tag("span")
        icon.string = "⚡"
        label = self._factory.new_tag("span")
        label.string = BUTTON_LABEL
        button.append(icon)
        button.append(label)
        return button

    def wants_quick_action(self, analysis: AnalysisResult) -> bool:
        return analysis.score >= Config.QUICK_ACTION_MIN_SCORE

    # ============================================================
    # STATISCHE INJEKTION (BeautifulSoup)
    # ============================================================

    def is_injected(self, tag: Tag) -> bool:
        return Config.INJECTED_CLASS in _classes(tag)

    def mark_as_injected(self, tag: Tag):
        classes = _classes(tag)
        if Config.INJECTED_CLASS not in classes:
            classes.append(Config.INJECTED_CLASS)
        tag["class"] = classes

    def annotate(self, tag: Tag, analysis: AnalysisResult, post_id: str):
        """Badge (und ggf. Button) in ein Post-Element einsetzen"""
        self._remove(tag, Config.BADGE_CLASS)
        self._remove(tag, Config.BUTTON_CLASS)

        badge = self.build_badge(analysis)
        self._insertion_point(tag).insert(0, badge)

        if self.wants_quick_action(analysis):
            badge.insert_after(self.build_quick_action(post_id))

        self.mark_as_injected(tag)

    def remove_injected_elements(self, tag: Tag):
        self._remove(tag, Config.BADGE_CLASS)
        self._remove(tag, Config.BUTTON_CLASS)
        classes = [c for c in _classes(tag) if c != Config.INJECTED_CLASS]
        if classes:
            tag["class"] = classes
        elif tag.has_attr("class"):
            del tag["class"]

    def _insertion_point(self, tag: Tag) -> Tag:
        for selector in Config.CONTENT_SELECTORS:
            content = tag.select_one(selector)
            if content and content.parent is not None:
                return content.parent
        return tag

    def _remove(self, tag: Tag, cls: str):
        existing: Optional[Tag] = tag.select_one(f".{cls}")
        if existing:
            existing.decompose()

    # ============================================================
    # LIVE-INJEKTION (Playwright)
    # ============================================================

    async def is_injected_live(self, handle: ElementHandle) -> bool:
        return await handle.evaluate(
            "(el, cls) => el.classList.contains(cls)", Config.INJECTED_CLASS
        )

    async def inject_live(self, handle: ElementHandle, analysis: AnalysisResult, post_id: str):
        button = self.build_quick_action(post_id) if self.wants_quick_action(analysis) else None
        await handle.evaluate(_INJECT_JS, {
            "badge": str(self.build_badge(analysis)),
            "button": str(button) if button is not None else None,
            "badgeClass": Config.BADGE_CLASS,
            "buttonClass": Config.BUTTON_CLASS,
            "injectedClass": Config.INJECTED_CLASS,
            "contentSelectors": Config.CONTENT_SELECTORS,
            "callback": Config.LIKE_CALLBACK,
            "postId": post_id,
            "doneLabel": BUTTON_DONE_LABEL,
            "resetMs": Config.BUTTON_RESET_MS,
        })

    async def remove_live(self, handle: ElementHandle):
        await handle.evaluate(_REMOVE_JS, {
            "badgeClass": Config.BADGE_CLASS,
            "buttonClass": Config.BUTTON_CLASS,
            "injectedClass": Config.INJECTED_CLASS,
        })
