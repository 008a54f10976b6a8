"""Finds and clicks the control that advances the flow.

Phrases are tried best first (primary calls to action before generic
"next" before confirmers); for each phrase every element shape is
tried. Controls whose own text is an exit gate are never clicked.
"""

from __future__ import annotations

import logging

from flowaudit.core.browser import BrowserDriver
from flowaudit.models.patterns import NEXT_PATTERNS, STOP_PATTERNS, PatternTable
from flowaudit.models.types import ActionResult
from flowaudit.utils.page_data import element_label

logger = logging.getLogger(__name__)


# (selector, matched on) element shapes tried for each phrase.
CONTROL_TEMPLATES: list[tuple[str, str]] = [
    ("button", "text"),
    ("a", "text"),
    ('[role="button"]', "text"),
    ('input[type="submit"]', "value"),
    ('input[type="button"]', "value"),
]

FALLBACK_SELECTORS: list[str] = [
    '[type="submit"]',
    'button[class*="primary" i]',
    'a[class*="primary" i]',
    '[class*="cta" i]',
    '[class*="next" i]',
    '[class*="continue" i]',
    '[class*="submit" i]',
]


class NavigationActuator:
    def __init__(
        self,
        next_patterns: PatternTable = NEXT_PATTERNS,
        stop_patterns: PatternTable = STOP_PATTERNS,
    ):
        self._next = next_patterns
        self._stop = stop_patterns

    async def click_next(self, driver: BrowserDriver) -> ActionResult:
        shapes = await self._collect_shapes(driver)

        for phrase in self._next.phrases:
            for elements in shapes:
                for el, label in elements:
                    if not self._next.matches_phrase(phrase, label):
                        continue
                    result = await self._try_click(driver, el, label)
                    if result is not None:
                        return result

        for selector in FALLBACK_SELECTORS:
            try:
                elements = await driver.query(selector)
            except Exception:
                logger.debug("Fallback selector %s failed", selector, exc_info=True)
                continue
            for el in elements:
                try:
                    label = await element_label(driver, el)
                except Exception:
                    continue
                result = await self._try_click(driver, el, label)
                if result is not None:
                    return result

        return ActionResult(action_type="click_next", outcome="empty")

    async def _collect_shapes(self, driver: BrowserDriver) -> list[list[tuple[object, str]]]:
        """Elements of each template with the text they are matched on."""
        shapes = []
        for selector, source in CONTROL_TEMPLATES:
            found = []
            try:
                for el in await driver.query(selector):
                    if source == "value":
                        label = (await driver.get_attribute(el, "value") or "").strip()
                    else:
                        label = await driver.text_of(el)
                    if label:
                        found.append((el, label))
            except Exception:
                logger.debug("Control template %s failed", selector, exc_info=True)
            shapes.append(found)
        return shapes

    async def _try_click(self, driver: BrowserDriver, el, label: str) -> ActionResult | None:
        """Click el when it qualifies; None means keep searching."""
        try:
            if self._stop.matches(label):
                return None
            if not await driver.is_visible(el) or not await driver.is_enabled(el):
                return None
        except Exception:
            return None

        target = label[:50]
        try:
            await driver.click(el)
        except Exception as e:
            return ActionResult(action_type="click_next", outcome="error", target=target, error=str(e)[:300])
        return ActionResult(action_type="click_next", outcome="success", target=target, count=1)
