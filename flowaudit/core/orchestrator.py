"""Autonomous traversal of an unknown multi-page flow.

Each step observes the page, checks for loops, captures metadata and a
screenshot, then decides: stop (blocked, end of flow) or interact
(select an option, fill the form, click next) and move on. Everything in
a run is sequential; a run owns its browser session from start to
finish and always hands back a finalized report.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Callable

from flowaudit.config import EvaluationConfig, Settings
from flowaudit.core.browser import BrowserDriver, BrowserSession, FatalSessionError
from flowaudit.core.store import MemoryReportStore, ReportStore, screenshot_key
from flowaudit.detectors.blockers import BlockerClassifier
from flowaudit.detectors.end_of_flow import EndOfFlowClassifier
from flowaudit.models.events import EventType, ProgressCallback
from flowaudit.models.types import (
    EvaluationReport, StepObservation, Termination, format_duration,
)
from flowaudit.utils.fingerprint import LoopGuard, PageFingerprinter
from flowaudit.utils.form_filler import FormAutofiller
from flowaudit.utils.navigator import NavigationActuator
from flowaudit.utils.option_selector import OptionSelector
from flowaudit.utils.page_data import PageData, collect_page_data
from flowaudit.utils.smart_wait import settle, wait_after_advance, wait_for_page_ready

logger = logging.getLogger(__name__)

SessionFactory = Callable[[EvaluationConfig], object]


class TraversalOrchestrator:
    """Runs one evaluation. Create a new instance per run."""

    def __init__(
        self,
        config: EvaluationConfig,
        store: ReportStore | None = None,
        on_progress: ProgressCallback | None = None,
        session_factory: SessionFactory | None = None,
        settings: Settings | None = None,
        fingerprinter: PageFingerprinter | None = None,
        blockers: BlockerClassifier | None = None,
        end_of_flow: EndOfFlowClassifier | None = None,
        option_selector: OptionSelector | None = None,
        autofiller: FormAutofiller | None = None,
        navigator: NavigationActuator | None = None,
    ):
        self.config = config
        self.store = store if store is not None else MemoryReportStore()
        self._on_progress = on_progress or (lambda *_: None)
        self._session_factory = session_factory or (lambda cfg: BrowserSession(cfg, settings))
        self._fingerprinter = fingerprinter or PageFingerprinter()
        self._blockers = blockers or BlockerClassifier()
        self._end_of_flow = end_of_flow or EndOfFlowClassifier()
        self._options = option_selector or OptionSelector()
        self._autofill = autofiller or FormAutofiller()
        self._navigator = navigator or NavigationActuator()
        self._loop_guard = LoopGuard()

        self.report = EvaluationReport(
            id=str(uuid.uuid4()),
            flow_name=f"Auto: {config.display_name}",
            website_name=config.website_name,
            viewport=config.viewport,
        )
        self._last_url = config.start_url

    @property
    def evaluation_id(self) -> str:
        return self.report.id

    async def run(self) -> EvaluationReport:
        if self.report.finalized:
            raise RuntimeError("An orchestrator runs exactly once")

        start = time.monotonic()
        self._emit(EventType.INIT, {
            "evaluation_id": self.report.id,
            "mode": "auto",
            "message": "Starting automatic flow evaluation...",
        })
        logger.info("Evaluation %s started for %s", self.report.id, self.config.start_url)

        try:
            termination = await asyncio.wait_for(self._traverse(), timeout=self.config.run_timeout_s)
        except asyncio.TimeoutError:
            termination = Termination.TIMEOUT
            self._info(f"Run timed out after {self.config.run_timeout_s:g}s, keeping the steps collected so far")
        except FatalSessionError as e:
            termination = Termination.FATAL_ERROR
            self._record_fatal(str(e))
        except Exception as e:
            logger.exception("Evaluation %s aborted", self.report.id)
            termination = Termination.FATAL_ERROR
            self._record_fatal(str(e) or type(e).__name__)

        duration_ms = int((time.monotonic() - start) * 1000)
        self.report.finalize(termination, duration_ms)
        self.store.save(self.report)
        logger.info(
            "Evaluation %s finished: %s (%s, %d steps)",
            self.report.id, self.report.status.value, termination.value, self.report.total_steps,
        )

        self._emit(EventType.COMPLETE, {
            "evaluation_id": self.report.id,
            "status": self.report.status.value,
            "termination": termination.value,
            "total_steps": self.report.total_steps,
            "total_duration": format_duration(duration_ms),
        })
        return self.report

    async def _traverse(self) -> Termination:
        async with self._session_factory(self.config) as driver:
            self._info(f"Navigating to {self.config.start_url}")
            try:
                await driver.goto(self.config.start_url, timeout_ms=self.config.timing.navigation_timeout_ms)
            except Exception as e:
                raise FatalSessionError(f"Could not open {self.config.start_url}: {str(e)[:300]}") from e

            for step_number in range(1, self.config.max_steps + 1):
                termination = await self._run_step(driver, step_number)
                if termination is not None:
                    return termination

            self._info(f"Reached maximum steps limit ({self.config.max_steps})")
            return Termination.MAX_STEPS

    async def _run_step(self, driver: BrowserDriver, step_number: int) -> Termination | None:
        """One page of the flow. Returns the termination reason, or None to keep going."""
        timing = self.config.timing
        url = await self._current_url(driver)
        self._last_url = url
        errors: list[str] = []

        fingerprint = await self._fingerprint(driver, url, errors)
        if self._loop_guard.check(fingerprint, step_number):
            self._info("Detected page loop, stopping evaluation")
            return Termination.LOOP_DETECTED

        self._emit(EventType.STEP_START, {
            "step_number": step_number,
            "name": f"Step {step_number}",
            "url": url,
        })
        logger.info("Step %d: %s", step_number, url)
        step_start = time.monotonic()

        await settle(driver, timing.pre_step_ms)
        await wait_for_page_ready(driver, timing)

        try:
            page = await collect_page_data(driver)
        except Exception as e:
            logger.debug("Metadata collection failed on step %d", step_number, exc_info=True)
            page = PageData()
            errors.append(f"Could not read page metadata: {str(e)[:200]}")
        screenshot = await self._capture(driver, step_number, errors)
        load_time_ms = int((time.monotonic() - step_start) * 1000)

        def observe(notes: str | None = None, blocked: bool = False) -> StepObservation:
            return self._record(StepObservation(
                step_number=step_number,
                name=page.h1 or page.title or f"Step {step_number}",
                url=url,
                page_title=page.title,
                h1=page.h1,
                form_fields=tuple(page.form_fields),
                buttons=tuple(page.buttons),
                screenshot=screenshot,
                load_time_ms=load_time_ms,
                errors=tuple(errors),
                notes=notes,
                blocked=blocked,
            ))

        body = await self._body_text(driver)
        block = await self._blockers.classify(body, page.title, driver)
        if block.is_blocked:
            observe(notes=block.reason, blocked=True)
            self._emit(EventType.BLOCKED, {
                "step_number": step_number,
                "category": block.category.value,
                "reason": block.reason,
            })
            logger.info("Step %d blocked: %s", step_number, block.reason)
            return Termination.BLOCKED

        if await self._end_of_flow.is_end_of_flow(driver):
            observe(notes=self._end_of_flow.last_reason)
            self._info(f"Reached end of flow ({self._end_of_flow.last_reason})")
            return Termination.END_OF_FLOW

        actions: list[str] = []

        selected = await self._options.select_option(driver)
        if selected.succeeded:
            actions.append(f'selected "{selected.target}"')
            self._emit(EventType.OPTION_SELECTED, {"step_number": step_number, "label": selected.target})
            await settle(driver, timing.post_fill_ms)
        elif selected.outcome == "error":
            errors.append(f"Option selection failed: {selected.error}")

        if self.config.auto_fill_forms:
            filled = await self._autofill.fill(driver, self.config.test_data)
            if filled.succeeded:
                actions.append(f"filled {filled.count} field(s)")
                self._emit(EventType.FORM_FILLED, {"step_number": step_number, "count": filled.count})
                await settle(driver, timing.post_fill_ms)
            elif filled.outcome == "error":
                errors.append(f"Form fill failed: {filled.error}")

        url_before = await driver.current_url()
        advanced = await self._navigator.click_next(driver)
        if advanced.succeeded:
            actions.append(f'clicked "{advanced.target}"')
        elif advanced.outcome == "error":
            errors.append(f'Click on "{advanced.target}" failed: {advanced.error}')

        observe(notes="; ".join(actions) or None)

        if advanced.outcome == "empty":
            self._info("No actionable button found, stopping evaluation")
            return Termination.NO_ACTIONABLE_CONTROL

        await wait_after_advance(driver, url_before, timing)
        return None

    def _record(self, step: StepObservation) -> StepObservation:
        self.report.steps.append(step)
        payload = {
            "step_number": step.step_number,
            "name": step.name,
            "url": step.url,
            "screenshot": step.screenshot,
            "duration": format_duration(step.load_time_ms),
            "form_fields": len(step.form_fields),
            "buttons": len(step.buttons),
        }
        if step.ok:
            self._emit(EventType.STEP_COMPLETE, payload)
        else:
            self._emit(EventType.STEP_ERROR, {**payload, "errors": list(step.errors)})
        return step

    def _record_fatal(self, message: str):
        logger.error("Evaluation %s hit a fatal error: %s", self.report.id, message)
        self._emit(EventType.ERROR, {"message": message})
        first = not self.report.steps
        self.report.steps.append(StepObservation(
            step_number=self.report.total_steps + 1,
            name="Initialization" if first else "Error",
            url=self._last_url,
            errors=(message,),
        ))

    async def _current_url(self, driver: BrowserDriver) -> str:
        try:
            return await driver.current_url()
        except Exception as e:
            raise FatalSessionError(f"Lost access to the page: {str(e)[:300]}") from e

    async def _fingerprint(self, driver: BrowserDriver, url: str, errors: list[str]) -> str:
        """Fingerprint the page, retrying once after a ready wait.

        A page that keeps changing while it is read (a navigation still
        committing) falls back to a URL-only fingerprint and a step error.
        """
        try:
            return await self._fingerprinter.fingerprint(driver)
        except Exception:
            logger.debug("Fingerprint failed on %s, retrying", url, exc_info=True)

        await wait_for_page_ready(driver, self.config.timing)
        try:
            return await self._fingerprinter.fingerprint(driver)
        except Exception as e:
            await self._current_url(driver)
            errors.append(f"Could not fingerprint page: {str(e)[:200]}")
            return self._fingerprinter.signature(url, [], [])

    async def _capture(self, driver: BrowserDriver, step_number: int, errors: list[str]) -> str:
        key = screenshot_key(self.report.id, step_number)
        try:
            png = await driver.screenshot(full_page=self.config.full_page)
            self.store.put_screenshot(key, png)
        except Exception as e:
            logger.debug("Screenshot failed on step %d", step_number, exc_info=True)
            errors.append(f"Screenshot failed: {str(e)[:200]}")
            return ""
        return key

    async def _body_text(self, driver: BrowserDriver) -> str:
        try:
            return await driver.inner_text("body")
        except Exception:
            logger.debug("Could not read body text", exc_info=True)
            return ""

    def _info(self, message: str):
        logger.info(message)
        self._emit(EventType.INFO, {"message": message})

    def _emit(self, event_type: EventType, data: dict):
        try:
            self._on_progress(event_type.value, data)
        except Exception:
            logger.debug("Progress callback raised for %s", event_type.value, exc_info=True)


async def run_auto_evaluation(
    config: EvaluationConfig,
    on_progress: ProgressCallback | None = None,
    store: ReportStore | None = None,
    **kwargs,
) -> EvaluationReport:
    """Run one evaluation with a fresh orchestrator and return its report."""
    orchestrator = TraversalOrchestrator(config, store=store, on_progress=on_progress, **kwargs)
    return await orchestrator.run()
