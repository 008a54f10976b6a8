"""Core data structures for an evaluation run.

StepObservation is the per-page audit record, EvaluationReport the
finalized run. ActionResult is what every heuristic hands back to the
orchestrator instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class RunStatus(str, Enum):
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    BLOCKED = "blocked"


class Termination(str, Enum):
    MAX_STEPS = "max_steps"
    LOOP_DETECTED = "loop_detected"
    BLOCKED = "blocked"
    END_OF_FLOW = "end_of_flow"
    NO_ACTIONABLE_CONTROL = "no_actionable_control"
    FATAL_ERROR = "fatal_error"
    TIMEOUT = "timeout"


class BlockCategory(str, Enum):
    NONE = "none"
    TWO_FACTOR = "two_factor"
    EMAIL_VERIFICATION = "email_verification"
    SMS_VERIFICATION = "sms_verification"
    CAPTCHA = "captcha"
    LOGIN_REQUIRED = "login_required"
    ACCOUNT_REQUIRED = "account_required"
    VERIFICATION_INPUT = "verification_input"


@dataclass(frozen=True)
class FormField:
    name: str
    type: str
    required: bool = False
    placeholder: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type,
            "required": self.required,
            "placeholder": self.placeholder,
        }


@dataclass(frozen=True)
class BlockingResult:
    """Outcome of a blocker check on one page."""

    is_blocked: bool
    category: BlockCategory = BlockCategory.NONE
    reason: str = ""

    def to_dict(self) -> dict:
        return {
            "is_blocked": self.is_blocked,
            "category": self.category.value,
            "reason": self.reason,
        }


NOT_BLOCKED = BlockingResult(is_blocked=False)


@dataclass
class ActionResult:
    """The outcome of one heuristic interaction with a page."""

    action_type: str     # select_option | fill_forms | click_next
    outcome: str         # success | empty | error
    target: str = ""     # audit label of the element acted on
    count: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == "success"

    def to_dict(self) -> dict:
        return {
            "action_type": self.action_type,
            "outcome": self.outcome,
            "target": self.target,
            "count": self.count,
            "error": self.error,
        }


@dataclass(frozen=True)
class StepObservation:
    """Everything captured on one page of the flow. Never mutated once recorded."""

    step_number: int
    name: str
    url: str
    page_title: str = ""
    h1: str | None = None
    form_fields: tuple[FormField, ...] = ()
    buttons: tuple[str, ...] = ()
    screenshot: str = ""
    load_time_ms: int = 0
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    errors: tuple[str, ...] = ()
    notes: str | None = None
    blocked: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "step_number": self.step_number,
            "name": self.name,
            "url": self.url,
            "page_title": self.page_title,
            "h1": self.h1,
            "form_fields": [f.to_dict() for f in self.form_fields],
            "buttons": list(self.buttons),
            "screenshot": self.screenshot,
            "load_time_ms": self.load_time_ms,
            "timestamp": self.timestamp,
            "errors": list(self.errors),
            "notes": self.notes,
            "blocked": self.blocked,
        }

    @classmethod
    def from_dict(cls, data: dict) -> StepObservation:
        return cls(
            step_number=data["step_number"],
            name=data.get("name", ""),
            url=data.get("url", ""),
            page_title=data.get("page_title", ""),
            h1=data.get("h1"),
            form_fields=tuple(FormField(**f) for f in data.get("form_fields", [])),
            buttons=tuple(data.get("buttons", [])),
            screenshot=data.get("screenshot", ""),
            load_time_ms=data.get("load_time_ms", 0),
            timestamp=data.get("timestamp", ""),
            errors=tuple(data.get("errors", [])),
            notes=data.get("notes"),
            blocked=data.get("blocked", False),
        )


def derive_status(steps: list[StepObservation]) -> RunStatus:
    """Resolve the overall status from the recorded steps."""
    if any(s.blocked for s in steps):
        return RunStatus.BLOCKED
    completed = sum(1 for s in steps if s.ok)
    if completed == 0:
        return RunStatus.FAILED
    if completed < len(steps):
        return RunStatus.PARTIAL
    return RunStatus.COMPLETED


@dataclass
class EvaluationReport:
    id: str
    flow_name: str
    website_name: str = ""
    viewport: str = "desktop"
    flow_id: str = "auto"
    run_date: datetime = field(default_factory=datetime.now)
    steps: list[StepObservation] = field(default_factory=list)
    status: RunStatus | None = None
    termination: Termination | None = None
    total_duration_ms: int = 0

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def completed_steps(self) -> int:
        return sum(1 for s in self.steps if s.ok)

    @property
    def failed_steps(self) -> int:
        return sum(1 for s in self.steps if not s.ok)

    @property
    def finalized(self) -> bool:
        return self.status is not None

    def finalize(self, termination: Termination, duration_ms: int):
        if self.finalized:
            raise RuntimeError(f"Report {self.id} is already finalized")
        self.termination = termination
        self.total_duration_ms = duration_ms
        self.status = derive_status(self.steps)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "flow_id": self.flow_id,
            "flow_name": self.flow_name,
            "run_date": self.run_date.isoformat(),
            "status": self.status.value if self.status else None,
            "completed_steps": self.completed_steps,
            "total_steps": self.total_steps,
            "total_duration": format_duration(self.total_duration_ms),
        }

    def to_dict(self) -> dict:
        return {
            **self.summary(),
            "website_name": self.website_name,
            "viewport": self.viewport,
            "failed_steps": self.failed_steps,
            "termination": self.termination.value if self.termination else None,
            "total_duration_ms": self.total_duration_ms,
            "steps": [s.to_dict() for s in self.steps],
        }

    @classmethod
    def from_dict(cls, data: dict) -> EvaluationReport:
        status = data.get("status")
        termination = data.get("termination")
        return cls(
            id=data["id"],
            flow_id=data.get("flow_id", "auto"),
            flow_name=data.get("flow_name", ""),
            website_name=data.get("website_name", ""),
            viewport=data.get("viewport", "desktop"),
            run_date=datetime.fromisoformat(data["run_date"]),
            steps=[StepObservation.from_dict(s) for s in data.get("steps", [])],
            status=RunStatus(status) if status else None,
            termination=Termination(termination) if termination else None,
            total_duration_ms=data.get("total_duration_ms", 0),
        )


def format_duration(ms: int) -> str:
    if ms < 1000:
        return f"{ms}ms"
    seconds = ms // 1000
    if seconds < 60:
        return f"{seconds}s"
    return f"{seconds // 60}m {seconds % 60}s"
