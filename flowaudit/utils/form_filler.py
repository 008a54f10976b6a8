"""Fills empty visible form fields with synthetic test data.

A field is identified by its name, id and placeholder. The identifier is
matched against the test-data dictionary by substring in either
direction; when nothing matches, the input type and a few keywords pick
the value. Fields that already hold a value are never touched, so a
second pass over the same page is a no-op.
"""

from __future__ import annotations

import logging
import re

from flowaudit.core.browser import BrowserDriver
from flowaudit.models.types import ActionResult
from flowaudit.utils.test_data import merge_test_data

logger = logging.getLogger(__name__)


FILLABLE_SELECTOR = (
    'input:not([type="hidden"]):not([type="submit"]):not([type="button"])'
    ':not([type="radio"]):not([type="checkbox"]):not([type="reset"])'
    ':not([type="image"]):not([type="file"]), textarea, select'
)

# (test-data key, keyword pattern) checked in order when no dictionary key matched.
KEYWORD_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("email",       re.compile(r"e[-_]?mail", re.I)),
    ("phone",       re.compile(r"phone|tel|mobile|cell", re.I)),
    ("dateOfBirth", re.compile(r"birth|dob", re.I)),
    ("zip",         re.compile(r"zip|postal", re.I)),
    ("firstName",   re.compile(r"first.*name|name.*first", re.I)),
    ("lastName",    re.compile(r"last.*name|name.*last|surname", re.I)),
    ("name",        re.compile(r"full.*name|name", re.I)),
    ("city",        re.compile(r"city|town", re.I)),
    ("state",       re.compile(r"state|province|region", re.I)),
    ("age",         re.compile(r"\bage\b|years.?old", re.I)),
    ("height",      re.compile(r"height", re.I)),
    ("weight",      re.compile(r"weight|lbs", re.I)),
]

_TYPE_KEYS = {
    "email": "email",
    "tel": "phone",
    "date": "dateOfBirth",
}


def match_dictionary(identifier: str, test_data: dict[str, str]) -> str | None:
    """Value of the first key contained in the identifier, or containing it."""
    if not identifier:
        return None
    for key, value in test_data.items():
        k = key.lower()
        if k in identifier or identifier in k:
            return value
    return None


def infer_value(identifier: str, input_type: str, test_data: dict[str, str]) -> str | None:
    key = _TYPE_KEYS.get(input_type)
    if key is None:
        for kind, pattern in KEYWORD_PATTERNS:
            if pattern.search(identifier):
                key = kind
                break
    if key is None:
        return None
    return test_data.get(key)


class FormAutofiller:
    """Sets empty visible fields; never raises for a single field."""

    def __init__(self, select_index: int = 1):
        # Index 0 of a <select> is assumed to be a placeholder.
        self.select_index = select_index

    async def fill(self, driver: BrowserDriver, test_data: dict[str, str] | None = None) -> ActionResult:
        data = merge_test_data(test_data)
        try:
            fields = await driver.query(FILLABLE_SELECTOR)
        except Exception as e:
            return ActionResult(action_type="fill_forms", outcome="error", error=str(e)[:300])

        filled = 0
        for el in fields:
            try:
                if await self._fill_field(driver, el, data):
                    filled += 1
            except Exception:
                logger.debug("Skipping field that could not be filled", exc_info=True)
                continue

        return ActionResult(
            action_type="fill_forms",
            outcome="success" if filled else "empty",
            count=filled,
        )

    async def _fill_field(self, driver: BrowserDriver, el, data: dict[str, str]) -> bool:
        if not await driver.is_visible(el):
            return False

        current = await driver.input_value(el)
        if current:
            return False

        tag = await driver.tag_name(el)
        if tag == "select":
            return await self._choose_option(driver, el)

        input_type = (await driver.get_attribute(el, "type") or "text").lower()
        parts = [
            await driver.get_attribute(el, "name") or "",
            await driver.get_attribute(el, "id") or "",
            await driver.get_attribute(el, "placeholder") or "",
        ]
        identifier = " ".join(p for p in parts if p).lower()

        value = match_dictionary(identifier, data) or infer_value(identifier, input_type, data)
        if not value:
            return False
        await driver.fill(el, value)
        return True

    async def _choose_option(self, driver: BrowserDriver, el) -> bool:
        options = await driver.query("option", root=el)
        if len(options) <= self.select_index:
            return False
        value = await driver.get_attribute(options[self.select_index], "value")
        if not value:
            return False
        await driver.select_option(el, value)
        return True
