"""Run configuration, viewport presets and process settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse


VIEWPORTS = {
    "desktop": {"width": 1920, "height": 1080},
    "tablet": {"width": 768, "height": 1024},
    "mobile": {"width": 375, "height": 812},
}

SCREENSHOT_MODES = ("viewport", "fullpage")

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class Timing:
    """Settle delays and timeouts, in milliseconds.

    These are guesses about how arbitrary sites render, not guarantees.
    """

    pre_step_ms: int = 1000
    ready_ms: int = 500
    post_fill_ms: int = 500
    post_click_ms: int = 2000
    same_url_extra_ms: int = 1000
    load_state_timeout_ms: int = 10000
    navigation_timeout_ms: int = 30000

    @classmethod
    def instant(cls) -> Timing:
        return cls(
            pre_step_ms=0, ready_ms=0, post_fill_ms=0, post_click_ms=0,
            same_url_extra_ms=0, load_state_timeout_ms=1000,
            navigation_timeout_ms=5000,
        )


@dataclass
class EvaluationConfig:
    start_url: str
    website_name: str = ""
    max_steps: int = 20
    viewport: str = "desktop"
    screenshot_mode: str = "viewport"
    auto_fill_forms: bool = True
    test_data: dict[str, str] = field(default_factory=dict)
    timing: Timing = field(default_factory=Timing)
    run_timeout_s: float = 300
    headless: bool = True

    def __post_init__(self):
        parsed = urlparse(self.start_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid URL provided: {self.start_url!r}")
        if self.viewport not in VIEWPORTS:
            raise ValueError(f"Unknown viewport {self.viewport!r}; expected one of {', '.join(VIEWPORTS)}")
        if self.screenshot_mode not in SCREENSHOT_MODES:
            raise ValueError(f"Unknown screenshot mode {self.screenshot_mode!r}")
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")

    @property
    def viewport_size(self) -> dict[str, int]:
        return VIEWPORTS[self.viewport]

    @property
    def full_page(self) -> bool:
        return self.screenshot_mode == "fullpage"

    @property
    def display_name(self) -> str:
        return self.website_name or urlparse(self.start_url).netloc

    @classmethod
    def from_dict(cls, body: dict) -> EvaluationConfig:
        """Build from the camelCase request body used by the HTTP API."""
        return cls(
            start_url=(body.get("startUrl") or "").strip(),
            website_name=body.get("websiteName") or "",
            max_steps=body.get("maxSteps") or 20,
            viewport=body.get("viewport") or "desktop",
            screenshot_mode=body.get("screenshotMode") or "viewport",
            auto_fill_forms=body.get("autoFillForms") is not False,
            test_data=dict(body.get("testData") or {}),
            headless=headless_from_env(),
        )


@dataclass
class Settings:
    """Process-wide settings read from the environment."""

    browserless_url: str = "wss://chrome.browserless.io"
    browserless_token: str | None = None
    data_dir: Path = Path("data")

    @property
    def use_remote_browser(self) -> bool:
        return bool(self.browserless_token)

    @property
    def remote_endpoint(self) -> str:
        return f"{self.browserless_url}?token={self.browserless_token}"

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            browserless_url=os.environ.get("BROWSERLESS_URL", "wss://chrome.browserless.io"),
            browserless_token=os.environ.get("BROWSERLESS_TOKEN") or None,
            data_dir=Path(os.environ.get("FLOWAUDIT_DATA_DIR", "data")),
        )


def headless_from_env() -> bool:
    return os.environ.get("FLOWAUDIT_HEADLESS", "1").lower() not in ("0", "false", "no")
