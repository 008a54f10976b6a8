import io

import pytest
from rich.console import Console

from evaluate import _cli_progress, parse_test_data
from flowaudit.core.report import print_report
from flowaudit.models.types import EvaluationReport, StepObservation, Termination


def test_parse_test_data():
    assert parse_test_data(["email=qa@x.test", "zip=10001", "note=a=b"]) == {
        "email": "qa@x.test",
        "zip": "10001",
        "note": "a=b",
    }
    with pytest.raises(SystemExit):
        parse_test_data(["novalue"])


def test_progress_lines(capsys):
    _cli_progress("step-start", {"step_number": 1, "url": "https://flow.test/"})
    _cli_progress("blocked", {"reason": "CAPTCHA challenge detected"})
    _cli_progress("something-else", {})
    out = capsys.readouterr().out
    assert "[1] https://flow.test/" in out
    assert "[BLOCKED] CAPTCHA challenge detected" in out


def test_print_report_renders_steps():
    report = EvaluationReport(
        id="r1",
        flow_name="Auto: flow.test",
        steps=[
            StepObservation(step_number=1, name="Welcome", url="https://flow.test/", notes='clicked "Continue"'),
            StepObservation(step_number=2, name="Payment", url="https://flow.test/pay", errors=("Screenshot failed",)),
        ],
    )
    report.finalize(Termination.END_OF_FLOW, 3000)

    buf = io.StringIO()
    print_report(report, Console(file=buf, width=140))
    out = buf.getvalue()
    assert "PARTIAL" in out
    assert "Welcome" in out
    assert "Screenshot failed" in out
    assert "Report id: r1" in out
