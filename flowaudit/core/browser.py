"""Browser access for the traversal engine.

Every heuristic talks to the page through BrowserDriver, a small
capability surface (query / visible / enabled / text / click / fill ...).
PlaywrightDriver adapts a Playwright async Page to it; tests plug in an
in-memory driver instead. BrowserSession owns the Playwright browser for
exactly one evaluation run.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Any

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

from flowaudit.config import EvaluationConfig, Settings, USER_AGENT

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class FatalSessionError(Exception):
    """The browser session could not be started or died mid-run."""


class BrowserDriver(ABC):
    """What the engine needs from a browser. Elements are opaque handles."""

    @abstractmethod
    async def goto(self, url: str, timeout_ms: int = 30000) -> None: ...

    @abstractmethod
    async def query(self, selector: str, root: Any = None) -> list[Any]: ...

    @abstractmethod
    async def is_visible(self, element: Any) -> bool: ...

    @abstractmethod
    async def is_enabled(self, element: Any) -> bool: ...

    @abstractmethod
    async def is_checked(self, element: Any) -> bool: ...

    @abstractmethod
    async def text_of(self, element: Any) -> str: ...

    @abstractmethod
    async def get_attribute(self, element: Any, name: str) -> str | None: ...

    @abstractmethod
    async def input_value(self, element: Any) -> str: ...

    @abstractmethod
    async def tag_name(self, element: Any) -> str: ...

    @abstractmethod
    async def closest(self, element: Any, selector: str) -> Any | None: ...

    @abstractmethod
    async def click(self, element: Any) -> None: ...

    @abstractmethod
    async def fill(self, element: Any, value: str) -> None: ...

    @abstractmethod
    async def select_option(self, element: Any, value: str) -> None: ...

    @abstractmethod
    async def screenshot(self, full_page: bool = False) -> bytes: ...

    @abstractmethod
    async def evaluate(self, script: str, arg: Any = None) -> Any: ...

    @abstractmethod
    async def text_content(self, selector: str) -> str: ...

    @abstractmethod
    async def inner_text(self, selector: str) -> str:
        """Rendered text of the first match, without script or style source."""

    @abstractmethod
    async def title(self) -> str: ...

    @abstractmethod
    async def current_url(self) -> str: ...

    @abstractmethod
    async def wait_for_load_state(self, state: str = "domcontentloaded", timeout_ms: int = 10000) -> None: ...

    @abstractmethod
    async def wait(self, ms: int) -> None: ...

    async def first(self, selector: str) -> Any | None:
        found = await self.query(selector)
        return found[0] if found else None

    async def class_names(self, element: Any) -> str:
        return (await self.get_attribute(element, "class") or "").lower()


class PlaywrightDriver(BrowserDriver):
    """BrowserDriver over a Playwright async Page."""

    def __init__(self, page: Page, action_timeout_ms: int = 5000):
        self.page = page
        self._action_timeout = action_timeout_ms

    async def goto(self, url: str, timeout_ms: int = 30000) -> None:
        await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

    async def query(self, selector: str, root: Any = None) -> list[Any]:
        scope = root if root is not None else self.page
        return await scope.query_selector_all(selector)

    async def is_visible(self, element: Any) -> bool:
        return await element.is_visible()

    async def is_enabled(self, element: Any) -> bool:
        return await element.is_enabled()

    async def is_checked(self, element: Any) -> bool:
        return await element.is_checked()

    async def text_of(self, element: Any) -> str:
        text = await element.text_content() or ""
        return _WHITESPACE.sub(" ", text).strip()

    async def get_attribute(self, element: Any, name: str) -> str | None:
        return await element.get_attribute(name)

    async def input_value(self, element: Any) -> str:
        return await element.input_value(timeout=self._action_timeout)

    async def tag_name(self, element: Any) -> str:
        return await element.evaluate("el => el.tagName.toLowerCase()")

    async def closest(self, element: Any, selector: str) -> Any | None:
        handle = await element.evaluate_handle("(el, sel) => el.closest(sel)", selector)
        return handle.as_element()

    async def click(self, element: Any) -> None:
        await element.click(timeout=self._action_timeout)

    async def fill(self, element: Any, value: str) -> None:
        await element.fill(value, timeout=self._action_timeout)

    async def select_option(self, element: Any, value: str) -> None:
        await element.select_option(value, timeout=self._action_timeout)

    async def screenshot(self, full_page: bool = False) -> bytes:
        return await self.page.screenshot(full_page=full_page, type="png")

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self.page.evaluate(script, arg)

    async def text_content(self, selector: str) -> str:
        element = await self.page.query_selector(selector)
        if not element:
            return ""
        return await element.text_content() or ""

    async def inner_text(self, selector: str) -> str:
        element = await self.page.query_selector(selector)
        if not element:
            return ""
        return await element.inner_text()

    async def title(self) -> str:
        return await self.page.title()

    async def current_url(self) -> str:
        return self.page.url

    async def wait_for_load_state(self, state: str = "domcontentloaded", timeout_ms: int = 10000) -> None:
        await self.page.wait_for_load_state(state, timeout=timeout_ms)

    async def wait(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)


class BrowserSession:
    """Owns one browser for one run. Always released on exit.

    Launches local Chromium, or connects to a remote browser when a
    Browserless token is configured.
    """

    def __init__(self, config: EvaluationConfig, settings: Settings | None = None):
        self._config = config
        self._settings = settings or Settings.from_env()
        self._pw: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    async def __aenter__(self) -> PlaywrightDriver:
        try:
            self._pw = await async_playwright().start()
            if self._settings.use_remote_browser:
                self._browser = await self._pw.chromium.connect(self._settings.remote_endpoint)
                logger.info("Connected to remote browser at %s", self._settings.browserless_url)
            else:
                self._browser = await self._pw.chromium.launch(headless=self._config.headless)
            self._context = await self._browser.new_context(
                viewport=self._config.viewport_size,
                user_agent=USER_AGENT,
            )
            page = await self._context.new_page()
        except Exception as e:
            await self._close()
            raise FatalSessionError(f"Browser launch failed: {str(e)[:300]}") from e
        return PlaywrightDriver(page)

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self._close()

    async def _close(self):
        if self._browser:
            try:
                await self._browser.close()
            except Exception:
                logger.debug("Browser close failed", exc_info=True)
            self._browser = None
        if self._pw:
            try:
                await self._pw.stop()
            except Exception:
                logger.debug("Playwright stop failed", exc_info=True)
            self._pw = None
