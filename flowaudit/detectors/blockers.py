"""Detects pages that need a human: 2FA, verification, CAPTCHA, login walls.

These are reported and end the run. Nothing here tries to get past them.
"""

from __future__ import annotations

import logging

from flowaudit.core.browser import BrowserDriver
from flowaudit.models.patterns import BLOCKER_PATTERNS, BLOCKER_PROBES, PatternTable
from flowaudit.models.types import BlockCategory, BlockingResult, NOT_BLOCKED

logger = logging.getLogger(__name__)

_REASONS = {
    BlockCategory.TWO_FACTOR: "Two-factor authentication required",
    BlockCategory.EMAIL_VERIFICATION: "Email verification required",
    BlockCategory.SMS_VERIFICATION: "SMS verification required",
    BlockCategory.CAPTCHA: "CAPTCHA challenge detected",
    BlockCategory.LOGIN_REQUIRED: "Login required to continue",
    BlockCategory.ACCOUNT_REQUIRED: "Account required to continue",
    BlockCategory.VERIFICATION_INPUT: "Verification input detected",
}


class BlockerClassifier:
    """Text patterns first (table order wins), then DOM probes. Read-only."""

    def __init__(
        self,
        patterns: PatternTable = BLOCKER_PATTERNS,
        probes: tuple[str, ...] = BLOCKER_PROBES,
    ):
        self._patterns = patterns
        self._probes = probes

    def classify_text(self, page_text: str, page_title: str = "") -> BlockingResult:
        hit = self._patterns.first_match(f"{page_title}\n{page_text}")
        if not hit:
            return NOT_BLOCKED
        phrase, category = hit
        category = BlockCategory(category)
        return BlockingResult(
            is_blocked=True,
            category=category,
            reason=f'{_REASONS[category]} (matched "{phrase}")',
        )

    async def classify(
        self, page_text: str, page_title: str, driver: BrowserDriver | None = None,
    ) -> BlockingResult:
        result = self.classify_text(page_text, page_title)
        if result.is_blocked or driver is None:
            return result
        return await self.probe(driver)

    async def probe(self, driver: BrowserDriver) -> BlockingResult:
        for selector in self._probes:
            try:
                for el in await driver.query(selector):
                    if await driver.is_visible(el):
                        return BlockingResult(
                            is_blocked=True,
                            category=BlockCategory.VERIFICATION_INPUT,
                            reason=f"{_REASONS[BlockCategory.VERIFICATION_INPUT]} ({selector})",
                        )
            except Exception:
                # Fail open.
                logger.debug("Blocker probe %s failed", selector, exc_info=True)
                continue
        return NOT_BLOCKED
