"""Picks one answer on quiz- and selection-style pages.

Candidates are gathered from selector families in priority order. The
first visible, unselected candidate whose text is not a flow control is
clicked. At most one click happens per call.
"""

from __future__ import annotations

import logging

from flowaudit.core.browser import BrowserDriver
from flowaudit.models.patterns import NAVIGATION_PATTERNS, STOP_PATTERNS, PatternTable
from flowaudit.models.types import ActionResult

logger = logging.getLogger(__name__)


# (family, selector) in priority order.
OPTION_FAMILIES: list[tuple[str, str]] = [
    ("input_label", 'label:has(input[type="radio"]), label:has(input[type="checkbox"])'),
    ("aria_role", '[role="option"], [role="radio"], [role="checkbox"]'),
    ("class_name", '[class*="option" i], [class*="choice" i], [class*="answer" i]'),
    ("list_item", 'ul li, button[data-value], button[aria-pressed]'),
]

CHOICE_INPUT_SELECTOR = 'input[type="radio"], input[type="checkbox"]'

# List items inside site chrome are menus, not answers.
CHROME_SELECTOR = "nav, header, footer"

MAX_OPTION_TEXT = 100

_SELECTED_CLASSES = ("selected", "active")
_SELECTED_ARIA = ("aria-selected", "aria-checked", "aria-pressed")


class OptionSelector:
    def __init__(
        self,
        navigation_patterns: PatternTable = NAVIGATION_PATTERNS,
        stop_patterns: PatternTable = STOP_PATTERNS,
        families: list[tuple[str, str]] | None = None,
    ):
        self._navigation = navigation_patterns
        self._stop = stop_patterns
        self._families = families or OPTION_FAMILIES

    async def select_option(self, driver: BrowserDriver) -> ActionResult:
        for family, selector in self._families:
            try:
                candidates = await driver.query(selector)
            except Exception:
                logger.debug("Option family %s query failed", family, exc_info=True)
                continue

            for el in candidates:
                try:
                    text = await self._eligible_text(driver, el, family)
                except Exception:
                    continue
                if text is None:
                    continue
                return await self._click(driver, el, text)

        return await self._fallback(driver)

    async def _eligible_text(self, driver: BrowserDriver, el, family: str) -> str | None:
        """Candidate text when it may be clicked, else None."""
        if not await driver.is_visible(el):
            return None
        text = await driver.text_of(el)
        if not text or len(text) > MAX_OPTION_TEXT:
            return None
        if self._navigation.matches(text) or self._stop.matches(text):
            return None
        if await self.is_selected(driver, el):
            return None
        if family == "list_item" and await driver.closest(el, CHROME_SELECTOR) is not None:
            return None
        return text

    async def is_selected(self, driver: BrowserDriver, el) -> bool:
        classes = (await driver.class_names(el)).split()
        if any(name in classes for name in _SELECTED_CLASSES):
            return True
        for attr in _SELECTED_ARIA:
            if (await driver.get_attribute(el, attr) or "").lower() == "true":
                return True

        if await driver.tag_name(el) == "input":
            return await driver.is_checked(el)
        for inp in await driver.query(CHOICE_INPUT_SELECTOR, root=el):
            if await driver.is_checked(inp):
                return True
        target = await driver.get_attribute(el, "for")
        if target:
            for inp in await driver.query(f'input[id="{target}"]'):
                if await driver.is_checked(inp):
                    return True
        return False

    async def _click(self, driver: BrowserDriver, el, text: str) -> ActionResult:
        target = text[:50]
        try:
            await driver.click(el)
        except Exception as e:
            return ActionResult(action_type="select_option", outcome="error", target=target, error=str(e)[:300])
        return ActionResult(action_type="select_option", outcome="success", target=target, count=1)

    async def _fallback(self, driver: BrowserDriver) -> ActionResult:
        """First visible unchecked radio/checkbox, clicked through its label when it has one."""
        try:
            inputs = await driver.query(CHOICE_INPUT_SELECTOR)
        except Exception as e:
            return ActionResult(action_type="select_option", outcome="error", error=str(e)[:300])

        for inp in inputs:
            try:
                if not await driver.is_visible(inp) or await driver.is_checked(inp):
                    continue
                label = await self._label_for(driver, inp)
                if label is not None:
                    text = await driver.text_of(label)
                    return await self._click(driver, label, text or "(unlabeled choice)")
                value = await driver.get_attribute(inp, "value") or await driver.get_attribute(inp, "name")
                return await self._click(driver, inp, value or "(unlabeled choice)")
            except Exception:
                continue

        return ActionResult(action_type="select_option", outcome="empty")

    async def _label_for(self, driver: BrowserDriver, inp):
        input_id = await driver.get_attribute(inp, "id")
        if input_id:
            labels = await driver.query(f'label[for="{input_id}"]')
            if labels:
                return labels[0]
        return await driver.closest(inp, "label")
