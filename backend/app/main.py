"""FlowAudit API: streams live evaluation progress as NDJSON and serves stored reports."""

import asyncio
import base64
import json
import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from flowaudit.config import EvaluationConfig, Settings
from flowaudit.core.orchestrator import SessionFactory, TraversalOrchestrator
from flowaudit.core.store import FileReportStore, ReportStore

logger = logging.getLogger(__name__)


class AutoEvaluateRequest(BaseModel):
    startUrl: str
    websiteName: str = ""
    maxSteps: int = 20
    viewport: str = "desktop"
    screenshotMode: str = "viewport"
    autoFillForms: bool = True
    testData: dict[str, str] = {}


def create_app(
    store: ReportStore | None = None,
    settings: Settings | None = None,
    session_factory: SessionFactory | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    store = store if store is not None else FileReportStore(settings.data_dir)

    app = FastAPI(title="FlowAudit API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.store = store
    # Strong references so running evaluations are not garbage collected.
    app.state.running = set()

    @app.get("/health")
    def health():
        return {"status": "ok", "service": "flowaudit-api", "version": "0.1.0"}

    @app.get("/api/config")
    def get_config():
        return {
            "has_browserless_token": settings.use_remote_browser,
            "can_run_evaluations": True,
        }

    @app.post("/api/auto-evaluate")
    async def auto_evaluate(req: AutoEvaluateRequest):
        try:
            config = EvaluationConfig.from_dict(req.model_dump())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        queue: asyncio.Queue = asyncio.Queue()

        def on_progress(event_type: str, data: dict):
            queue.put_nowait({"type": event_type, **data})

        orchestrator = TraversalOrchestrator(
            config,
            store=store,
            on_progress=on_progress,
            session_factory=session_factory,
            settings=settings,
        )

        async def event_stream():
            task = asyncio.create_task(orchestrator.run())
            app.state.running.add(task)
            task.add_done_callback(app.state.running.discard)
            task.add_done_callback(lambda _: queue.put_nowait(None))

            while True:
                event = await queue.get()
                if event is None:
                    break
                yield json.dumps(event) + "\n"

            if not task.cancelled() and task.exception() is not None:
                logger.error("Evaluation %s failed: %s", orchestrator.evaluation_id, task.exception())
                yield json.dumps({"type": "error", "message": str(task.exception())[:500]}) + "\n"

        return StreamingResponse(
            event_stream(),
            media_type="application/x-ndjson",
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
                "X-Evaluation-Id": orchestrator.evaluation_id,
            },
        )

    @app.get("/api/reports")
    def list_reports():
        return [r.summary() for r in store.list()]

    @app.get("/api/reports/{report_id}")
    def get_report(report_id: str):
        report = store.get(report_id)
        if report is None:
            raise HTTPException(status_code=404, detail="Report not found")
        return report.to_dict()

    @app.get("/api/screenshot")
    def get_screenshot(path: str):
        png = store.get_screenshot(path)
        if png is None:
            raise HTTPException(status_code=404, detail="Screenshot not found")
        return {"dataUrl": "data:image/png;base64," + base64.b64encode(png).decode()}

    return app


app = create_app()
