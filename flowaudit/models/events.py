"""Progress events emitted by the orchestrator for live consumers."""

from __future__ import annotations

from enum import Enum
from typing import Callable


class EventType(str, Enum):
    INIT = "init"
    INFO = "info"
    STEP_START = "step-start"
    STEP_COMPLETE = "step-complete"
    STEP_ERROR = "step-error"
    OPTION_SELECTED = "option-selected"
    FORM_FILLED = "form-filled"
    BLOCKED = "blocked"
    ERROR = "error"
    COMPLETE = "complete"


ProgressCallback = Callable[[str, dict], None]
