"""Page-state fingerprints for loop detection.

A fingerprint hashes the normalized path, the primary headings and the
set of button labels. Query strings and fragments are ignored so that
tracking parameters do not defeat revisit detection.
"""

from __future__ import annotations

import hashlib
import json
from urllib.parse import urlparse

from flowaudit.core.browser import BrowserDriver
from flowaudit.utils.page_data import button_labels, heading_texts


def normalize_path(url: str) -> str:
    path = urlparse(url).path.lower().rstrip("/")
    return path or "/"


class PageFingerprinter:
    """Deterministic signature of what the page currently shows."""

    def __init__(self, heading_selector: str = "h1, h2"):
        self._heading_selector = heading_selector

    async def fingerprint(self, driver: BrowserDriver) -> str:
        url = await driver.current_url()
        headings = await heading_texts(driver, self._heading_selector)
        buttons = sorted(set(await button_labels(driver)))
        return self.signature(url, headings, buttons)

    @staticmethod
    def signature(url: str, headings: list[str], buttons: list[str]) -> str:
        state = {
            "path": normalize_path(url),
            "headings": [" ".join(h.split()).lower() for h in headings],
            "buttons": sorted({" ".join(b.split()).lower() for b in buttons}),
        }
        blob = json.dumps(state, sort_keys=True)
        return hashlib.sha256(blob.encode()).hexdigest()[:16]


class LoopGuard:
    """Remembers fingerprints seen during one run.

    The first two steps may legitimately repeat (pages often re-render
    before the flow starts), so revisits only count from step 3 on.
    """

    def __init__(self, grace_steps: int = 2):
        self._seen: set[str] = set()
        self._grace_steps = grace_steps

    def check(self, fingerprint: str, step_number: int) -> bool:
        """Record the fingerprint; True means the run is looping."""
        looping = fingerprint in self._seen and step_number > self._grace_steps
        self._seen.add(fingerprint)
        return looping

    def __len__(self) -> int:
        return len(self._seen)
