#!/usr/bin/env python3
"""
FlowAudit CLI
Usage: python evaluate.py https://example.com/quiz [--steps 20] [--viewport mobile] [--headful]
"""

import argparse
import asyncio
import json
import logging
import sys

from flowaudit.config import EvaluationConfig, Settings, Timing, VIEWPORTS
from flowaudit.core.orchestrator import run_auto_evaluation
from flowaudit.core.report import print_report
from flowaudit.core.store import FileReportStore


def main():
    parser = argparse.ArgumentParser(
        description="FlowAudit: walk a website's onboarding or quiz flow and audit every step",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  python evaluate.py https://example.com/get-started\n"
               "  python evaluate.py https://quiz.app --steps 10 --viewport mobile --full-page\n"
               "  python evaluate.py https://intake.app --data email=qa@example.com --data zip=10001",
    )
    parser.add_argument("url", help="URL where the flow starts")
    parser.add_argument("--steps", type=int, default=20, help="Max steps to take (default: 20)")
    parser.add_argument("--viewport", default="desktop", choices=list(VIEWPORTS), help="Viewport preset (default: desktop)")
    parser.add_argument("--full-page", action="store_true", help="Capture full-page screenshots")
    parser.add_argument("--no-fill", action="store_true", help="Do not auto-fill form fields")
    parser.add_argument("--data", action="append", default=[], metavar="KEY=VALUE", help="Test data override (repeatable)")
    parser.add_argument("--name", default="", help="Website name used in the report title")
    parser.add_argument("--timeout", type=float, default=300, help="Overall run timeout in seconds (default: 300)")
    parser.add_argument("--headful", action="store_true", help="Run browser visibly")
    parser.add_argument("--json", action="store_true", help="Output the report as JSON instead of a table")
    parser.add_argument("--out", default=None, help="Directory for reports and screenshots (default: $FLOWAUDIT_DATA_DIR or ./data)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    url = args.url
    if not url.startswith("http"):
        url = f"https://{url}"

    try:
        config = EvaluationConfig(
            start_url=url,
            website_name=args.name,
            max_steps=args.steps,
            viewport=args.viewport,
            screenshot_mode="fullpage" if args.full_page else "viewport",
            auto_fill_forms=not args.no_fill,
            test_data=parse_test_data(args.data),
            timing=Timing(),
            run_timeout_s=args.timeout,
            headless=not args.headful,
        )
    except ValueError as e:
        parser.error(str(e))

    store = FileReportStore(args.out or Settings.from_env().data_dir)

    if not args.json:
        print(f"\n  FlowAudit evaluating {config.start_url}")
        print(f"  Max steps: {config.max_steps} | Viewport: {config.viewport}", end="")
        print(" | Mode: headful (visible browser)" if args.headful else " | Mode: headless")
        print()

    progress = None if args.json else _cli_progress
    report = asyncio.run(run_auto_evaluation(config, on_progress=progress, store=store))

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)
        print(f"  Saved to {store.reports_dir / (report.id + '.json')}\n")

    sys.exit(0 if report.status.value in ("completed", "partial") else 1)


def parse_test_data(pairs: list[str]) -> dict[str, str]:
    data = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise SystemExit(f"  Invalid --data value {pair!r}; expected KEY=VALUE")
        data[key.strip()] = value
    return data


def _cli_progress(event_type: str, data: dict):
    if event_type == "step-start":
        print(f"   [{data.get('step_number', '?')}] {data.get('url', '')[:80]}")
    elif event_type == "step-complete":
        print(f"         {data.get('name', '')[:60]} ({data.get('form_fields', 0)} fields, {data.get('buttons', 0)} buttons, {data.get('duration', '')})")
    elif event_type == "step-error":
        for err in data.get("errors", [])[:3]:
            print(f"         [ERROR] {err[:100]}")
    elif event_type == "option-selected":
        print(f"         Selected: {data.get('label', '')}")
    elif event_type == "form-filled":
        print(f"         Auto-filled {data.get('count', 0)} form field(s)")
    elif event_type == "blocked":
        print(f"         [BLOCKED] {data.get('reason', '')[:100]}")
    elif event_type == "info":
        print(f"   {data.get('message', '')}")
    elif event_type == "error":
        print(f"\n  Error during evaluation: {data.get('message', '')[:200]}")
    elif event_type == "complete":
        print(f"\n   Done: {data.get('total_steps', 0)} steps, {data.get('status', '').upper()} in {data.get('total_duration', '')}\n")


if __name__ == "__main__":
    main()
