"""Settle waits between traversal actions.

Load-state waits are bounded and never fail the step: on timeout the
engine proceeds with whatever the page has rendered so far.
"""

from __future__ import annotations

import logging

from flowaudit.config import Timing
from flowaudit.core.browser import BrowserDriver

logger = logging.getLogger(__name__)


async def settle(driver: BrowserDriver, ms: int):
    """Fixed pause for client-side rendering to catch up."""
    if ms <= 0:
        return
    try:
        await driver.wait(ms)
    except Exception:
        logger.debug("Settle wait of %dms interrupted", ms, exc_info=True)


async def wait_for_page_ready(driver: BrowserDriver, timing: Timing) -> bool:
    """Wait for DOMContentLoaded, then a short settle. Returns False on timeout."""
    ready = True
    try:
        await driver.wait_for_load_state("domcontentloaded", timeout_ms=timing.load_state_timeout_ms)
    except Exception:
        logger.debug("Load state wait timed out after %dms", timing.load_state_timeout_ms)
        ready = False
    await settle(driver, timing.ready_ms)
    return ready


async def wait_after_advance(driver: BrowserDriver, url_before: str, timing: Timing):
    """Give a click time to navigate; same-URL updates (SPAs) get extra time."""
    await settle(driver, timing.post_click_ms)
    try:
        url_after = await driver.current_url()
    except Exception:
        return
    if url_after == url_before:
        await settle(driver, timing.same_url_extra_ms)
