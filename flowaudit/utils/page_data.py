"""Metadata snapshot of the current page: title, heading, fields, buttons."""

from __future__ import annotations

from dataclasses import dataclass, field

from flowaudit.core.browser import BrowserDriver
from flowaudit.models.types import FormField


BUTTON_SELECTOR = 'button, input[type="submit"], a.btn, a.button, [role="button"]'
FIELD_SELECTOR = "input, select, textarea"


@dataclass
class PageData:
    title: str = ""
    h1: str | None = None
    form_fields: list[FormField] = field(default_factory=list)
    buttons: list[str] = field(default_factory=list)


async def element_label(driver: BrowserDriver, element) -> str:
    """Visible text of a control; input buttons carry it in value."""
    text = await driver.text_of(element)
    if not text and await driver.tag_name(element) == "input":
        text = (await driver.get_attribute(element, "value") or "").strip()
    return text


async def button_labels(driver: BrowserDriver) -> list[str]:
    labels: list[str] = []
    for el in await driver.query(BUTTON_SELECTOR):
        text = await element_label(driver, el)
        if 0 < len(text) < 50 and text not in labels:
            labels.append(text)
    return labels


async def heading_texts(driver: BrowserDriver, selector: str = "h1, h2") -> list[str]:
    texts = []
    for el in await driver.query(selector):
        text = await driver.text_of(el)
        if text:
            texts.append(text)
    return texts


async def form_fields(driver: BrowserDriver) -> list[FormField]:
    fields = []
    for el in await driver.query(FIELD_SELECTOR):
        tag = await driver.tag_name(el)
        input_type = (await driver.get_attribute(el, "type") or tag).lower()
        if input_type == "hidden":
            continue
        placeholder = await driver.get_attribute(el, "placeholder") or ""
        name = (
            await driver.get_attribute(el, "name")
            or await driver.get_attribute(el, "id")
            or placeholder
        )
        if not name:
            continue
        required = await driver.get_attribute(el, "required") is not None
        fields.append(FormField(name=name, type=input_type, required=required, placeholder=placeholder))
    return fields


async def collect_page_data(driver: BrowserDriver) -> PageData:
    headings = await heading_texts(driver, "h1")
    return PageData(
        title=await driver.title(),
        h1=headings[0] if headings else None,
        form_fields=await form_fields(driver),
        buttons=await button_labels(driver),
    )
