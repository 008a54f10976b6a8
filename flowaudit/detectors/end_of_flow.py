"""Decides when the evaluable part of a flow is over."""

from __future__ import annotations

import logging

from flowaudit.core.browser import BrowserDriver
from flowaudit.models.patterns import STOP_PATTERNS, TERMINAL_PATTERNS, PatternTable
from flowaudit.utils.page_data import element_label

logger = logging.getLogger(__name__)

INTERACTIVE_SELECTOR = 'button, a, [role="button"], input[type="submit"]'


class EndOfFlowClassifier:
    """An exit-gate control or a confirmation phrase each end the flow."""

    def __init__(
        self,
        stop_patterns: PatternTable = STOP_PATTERNS,
        terminal_patterns: PatternTable = TERMINAL_PATTERNS,
    ):
        self._stop = stop_patterns
        self._terminal = terminal_patterns
        self.last_reason: str = ""

    async def is_end_of_flow(self, driver: BrowserDriver) -> bool:
        self.last_reason = ""

        gate = await self.find_exit_gate(driver)
        if gate:
            self.last_reason = f'Exit gate reached: "{gate}"'
            return True

        try:
            body = await driver.inner_text("body")
        except Exception:
            logger.debug("Could not read body text", exc_info=True)
            body = ""
        phrase = self.terminal_phrase(body)
        if phrase:
            self.last_reason = f'Final page detected ("{phrase}")'
            return True
        return False

    def terminal_phrase(self, body_text: str) -> str | None:
        hit = self._terminal.first_match(body_text.lower())
        return hit[0] if hit else None

    async def find_exit_gate(self, driver: BrowserDriver) -> str | None:
        """Text of the first visible control leading to a signup/checkout-style gate."""
        try:
            elements = await driver.query(INTERACTIVE_SELECTOR)
        except Exception:
            logger.debug("Interactive element query failed", exc_info=True)
            return None
        for el in elements:
            try:
                text = await element_label(driver, el)
                if not text or not self._stop.matches(text):
                    continue
                if await driver.is_visible(el):
                    return text[:50]
            except Exception:
                continue
        return None
