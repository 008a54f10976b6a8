"""In-memory browser for tests.

FakeDriver implements BrowserDriver over BeautifulSoup documents. A
"site" is a dict of url -> html; clicking an element (or a descendant of
one) carrying data-goto="<url>" navigates there, and data-fail makes
click/fill raise like a detached or intercepted element would.
query_failures maps a url to how many of its next queries raise, like a
page whose execution context is replaced mid-read.
"""

from __future__ import annotations

import asyncio

import pytest
from bs4 import BeautifulSoup, Comment, NavigableString

from flowaudit.config import EvaluationConfig, Timing
from flowaudit.core.browser import BrowserDriver, FatalSessionError
from flowaudit.core.store import MemoryReportStore


NON_RENDERED_TAGS = ["script", "style", "noscript", "template"]


def _style_hides(node) -> bool:
    style = (node.get("style") or "").replace(" ", "").lower()
    return "display:none" in style or "visibility:hidden" in style


class FakeDriver(BrowserDriver):
    def __init__(self, pages: dict[str, str], url: str | None = None, sleep_on_wait: bool = False):
        self.pages = pages
        self.url = ""
        self.soup = BeautifulSoup("", "html.parser")
        self.clicks: list[str] = []
        self.fills: list[tuple[str, str]] = []
        self.visits: list[str] = []
        self.screenshot_failures: set[int] = set()
        self.screenshots_taken = 0
        self.query_failures: dict[str, int] = {}
        self._sleep_on_wait = sleep_on_wait
        if url:
            self._load(url)

    def _load(self, url: str):
        self.url = url
        self.soup = BeautifulSoup(self.pages[url], "html.parser")
        self.visits.append(url)

    async def goto(self, url: str, timeout_ms: int = 30000) -> None:
        if url not in self.pages:
            raise RuntimeError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        self._load(url)

    async def query(self, selector: str, root=None) -> list:
        if self.query_failures.get(self.url, 0) > 0:
            self.query_failures[self.url] -= 1
            raise RuntimeError("Execution context was destroyed, most likely because of a navigation")
        scope = root if root is not None else self.soup
        return scope.select(selector)

    async def is_visible(self, element) -> bool:
        if element.name == "input" and (element.get("type") or "").lower() == "hidden":
            return False
        node = element
        while node is not None and node.name != "[document]":
            if node.has_attr("hidden") or _style_hides(node):
                return False
            node = node.parent
        return True

    async def is_enabled(self, element) -> bool:
        return not element.has_attr("disabled")

    async def is_checked(self, element) -> bool:
        return element.has_attr("checked")

    async def text_of(self, element) -> str:
        return " ".join(element.get_text(" ").split())

    async def get_attribute(self, element, name: str):
        value = element.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    async def input_value(self, element) -> str:
        if element.name == "select":
            options = element.find_all("option")
            chosen = [o for o in options if o.has_attr("selected")] or options[:1]
            return chosen[0].get("value", "") if chosen else ""
        if element.name == "textarea":
            return element.get_text()
        return element.get("value", "")

    async def tag_name(self, element) -> str:
        return element.name

    async def closest(self, element, selector: str):
        return element.css.closest(selector)

    async def click(self, element) -> None:
        if element.has_attr("data-fail"):
            raise RuntimeError("Element is not attached to the DOM")
        if element.has_attr("disabled"):
            raise RuntimeError("Timeout 5000ms exceeded: element is disabled")
        self.clicks.append(" ".join(element.get_text(" ").split()) or element.get("value", ""))

        choice = self._choice_input(element)
        if choice is not None:
            self._toggle(choice)

        target = element if element.has_attr("data-goto") else element.find_parent(attrs={"data-goto": True})
        if target is not None:
            self._load(target["data-goto"])

    def _choice_input(self, element):
        if element.name == "input" and element.get("type") in ("radio", "checkbox"):
            return element
        if element.name == "label":
            if element.get("for"):
                return self.soup.find("input", id=element["for"])
            return element.find("input", attrs={"type": ["radio", "checkbox"]})
        return None

    def _toggle(self, inp):
        if inp.get("type") == "radio":
            for other in self.soup.find_all("input", attrs={"type": "radio", "name": inp.get("name")}):
                if other.has_attr("checked"):
                    del other["checked"]
            inp["checked"] = ""
        elif inp.has_attr("checked"):
            del inp["checked"]
        else:
            inp["checked"] = ""

    async def fill(self, element, value: str) -> None:
        if element.has_attr("data-fail"):
            raise RuntimeError("Element is not editable")
        if element.name == "textarea":
            element.string = value
        else:
            element["value"] = value
        self.fills.append((element.get("name") or element.get("id") or "", value))

    async def select_option(self, element, value: str) -> None:
        for option in element.find_all("option"):
            if option.has_attr("selected"):
                del option["selected"]
            if option.get("value") == value:
                option["selected"] = ""

    async def screenshot(self, full_page: bool = False) -> bytes:
        self.screenshots_taken += 1
        if self.screenshots_taken in self.screenshot_failures:
            raise RuntimeError("Target page, context or browser has been closed")
        return b"\x89PNG\r\n\x1a\n" + self.url.encode()

    async def evaluate(self, script: str, arg=None):
        return None

    async def text_content(self, selector: str) -> str:
        element = self.soup.select_one(selector)
        if element is None:
            return ""
        return " ".join(s for s in element.descendants if isinstance(s, NavigableString) and not isinstance(s, Comment))

    async def inner_text(self, selector: str) -> str:
        element = self.soup.select_one(selector)
        if element is None:
            return ""
        return " ".join(
            s for s in element.descendants
            if isinstance(s, NavigableString) and not isinstance(s, Comment)
            and s.find_parent(NON_RENDERED_TAGS) is None
        )

    async def title(self) -> str:
        return self.soup.title.get_text().strip() if self.soup.title else ""

    async def current_url(self) -> str:
        return self.url

    async def wait_for_load_state(self, state: str = "domcontentloaded", timeout_ms: int = 10000) -> None:
        return None

    async def wait(self, ms: int) -> None:
        if self._sleep_on_wait:
            await asyncio.sleep(ms / 1000)


class FakeSession:
    """Stands in for BrowserSession: yields a FakeDriver and records release."""

    def __init__(self, driver: FakeDriver, fail: str | None = None):
        self.driver = driver
        self.fail = fail
        self.entered = False
        self.closed = False

    async def __aenter__(self) -> FakeDriver:
        if self.fail:
            raise FatalSessionError(self.fail)
        self.entered = True
        return self.driver

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.closed = True


def page(body: str, title: str = "Test Page") -> str:
    return f"<html><head><title>{title}</title></head><body>{body}</body></html>"


@pytest.fixture
def driver_for():
    """Build a FakeDriver already showing a single page of HTML body."""
    def build(body: str, title: str = "Test Page", url: str = "https://flow.test/") -> FakeDriver:
        return FakeDriver({url: page(body, title)}, url=url)
    return build


@pytest.fixture
def store():
    return MemoryReportStore()


@pytest.fixture
def make_config():
    def build(url: str = "https://flow.test/", **kwargs) -> EvaluationConfig:
        kwargs.setdefault("timing", Timing.instant())
        return EvaluationConfig(start_url=url, **kwargs)
    return build
