"""Report and screenshot persistence.

The orchestrator only needs save/get/list plus screenshot put/get. The
store is handed in by whoever owns the process (CLI or API), so its
lifetime is explicit.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from flowaudit.models.types import EvaluationReport

logger = logging.getLogger(__name__)


def screenshot_key(report_id: str, step_number: int) -> str:
    return f"/screenshots/{report_id}/step-{step_number}.png"


class ReportStore(ABC):
    """Append-only results keyed by run id."""

    @abstractmethod
    def save(self, report: EvaluationReport) -> None: ...

    @abstractmethod
    def get(self, report_id: str) -> EvaluationReport | None: ...

    @abstractmethod
    def list(self) -> list[EvaluationReport]:
        """All reports, most recent run first."""

    @abstractmethod
    def put_screenshot(self, key: str, png: bytes) -> None: ...

    @abstractmethod
    def get_screenshot(self, key: str) -> bytes | None: ...


class MemoryReportStore(ReportStore):
    """Process-scoped store; contents are gone when the process exits."""

    def __init__(self):
        self._reports: dict[str, EvaluationReport] = {}
        self._screenshots: dict[str, bytes] = {}

    def save(self, report: EvaluationReport) -> None:
        self._reports[report.id] = report

    def get(self, report_id: str) -> EvaluationReport | None:
        return self._reports.get(report_id)

    def list(self) -> list[EvaluationReport]:
        return sorted(self._reports.values(), key=lambda r: r.run_date, reverse=True)

    def put_screenshot(self, key: str, png: bytes) -> None:
        self._screenshots[key] = png

    def get_screenshot(self, key: str) -> bytes | None:
        return self._screenshots.get(key)


class FileReportStore(ReportStore):
    """Reports as JSON under <root>/reports, screenshots as PNG under <root>/screenshots."""

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.reports_dir = self.root / "reports"

    def save(self, report: EvaluationReport) -> None:
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        path = self.reports_dir / f"{report.id}.json"
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(report.to_dict(), indent=2))
        try:
            tmp.replace(path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        logger.info("Saved report %s to %s", report.id, path)

    def get(self, report_id: str) -> EvaluationReport | None:
        path = self._report_path(report_id)
        if path is None or not path.exists():
            return None
        return EvaluationReport.from_dict(json.loads(path.read_text()))

    def list(self) -> list[EvaluationReport]:
        reports = []
        for path in self.reports_dir.glob("*.json"):
            try:
                reports.append(EvaluationReport.from_dict(json.loads(path.read_text())))
            except (OSError, ValueError, KeyError):
                logger.warning("Skipping unreadable report %s", path)
                continue
        return sorted(reports, key=lambda r: r.run_date, reverse=True)

    def put_screenshot(self, key: str, png: bytes) -> None:
        path = self._screenshot_path(key)
        if path is None:
            raise ValueError(f"Invalid screenshot key {key!r}")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(png)

    def get_screenshot(self, key: str) -> bytes | None:
        path = self._screenshot_path(key)
        if path is None or not path.exists():
            return None
        return path.read_bytes()

    def _report_path(self, report_id: str) -> Path | None:
        if not report_id or "/" in report_id or "\\" in report_id or ".." in report_id:
            return None
        return self.reports_dir / f"{report_id}.json"

    def _screenshot_path(self, key: str) -> Path | None:
        """Map a /screenshots/<id>/step-N.png key to a file inside root."""
        parts = [p for p in key.split("/") if p]
        if len(parts) != 3 or parts[0] != "screenshots" or any(p in (".", "..") for p in parts):
            return None
        return self.root.joinpath(*parts)
