import asyncio
import logging
from typing import Callable, Optional, Set

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse

from .adapters.openai_adapter import OpenAISpeechToTextAdapter, OpenAIVisionJudgeAdapter
from .config import WorkerConfig
from .coordinator import EventChannel, PipelineCoordinator
from .models import PipelineResult, Slide
from .pipeline.transcribe import TranscriptionAdapter
from .pipeline.vision import FrameClassifier
from .report import render_report_html, DEFAULT_TITLE, REPORT_FILENAME
from .schemas import DocumentRequest

logger = logging.getLogger("slides_worker")

CoordinatorFactory = Callable[[], PipelineCoordinator]

SSE_HEADERS = {
    'Cache-Control': 'no-cache',
    'Connection': 'keep-alive',
}


def build_coordinator_factory(config: WorkerConfig) -> CoordinatorFactory:
    """Wire the OpenAI adapters into a factory producing one coordinator per run"""
    transcriber = TranscriptionAdapter(
        OpenAISpeechToTextAdapter(model=config.TRANSCRIPTION_MODEL, timeout=config.ADAPTER_TIMEOUT_SEC),
        timeout_sec=config.ADAPTER_TIMEOUT_SEC
    )
    classifier = FrameClassifier(
        OpenAIVisionJudgeAdapter(model=config.VISION_MODEL, timeout=config.ADAPTER_TIMEOUT_SEC),
        timeout_sec=config.ADAPTER_TIMEOUT_SEC
    )

    def factory() -> PipelineCoordinator:
        return PipelineCoordinator(
            transcriber,
            classifier,
            max_frames=config.MAX_FRAMES_PER_RUN,
            classify_concurrency=config.CLASSIFY_CONCURRENCY
        )

    return factory


class ProcessingServer:
    def __init__(self, config: WorkerConfig, coordinator_factory: Optional[CoordinatorFactory] = None):
        self.config = config
        self.coordinator_factory = coordinator_factory or build_coordinator_factory(config)
        self.app = FastAPI(title="Slides Worker API")
        self.runs: Set[asyncio.Task] = set()
        self.setup_routes()

    def setup_routes(self):
        """Setup API routes"""

        @self.app.get("/healthz")
        async def health_check():
            """Health check endpoint"""
            return {"ok": True, "status": "healthy", "active_runs": len(self.runs)}

        @self.app.post("/api/process")
        async def process(request: Request):
            """Run the pipeline and stream its events as server-sent events"""
            body = await request.body()
            channel = EventChannel()
            coordinator = self.coordinator_factory()

            task = asyncio.create_task(coordinator.run(body, channel))
            self.runs.add(task)
            task.add_done_callback(self.runs.discard)

            async def event_stream():
                try:
                    async for event in channel:
                        yield event.to_sse()
                finally:
                    # Reached early only when the transport went away mid-run
                    if not channel.closed:
                        logger.warning("Event stream closed by client, cancelling run")
                        channel.cancel()
                        task.cancel()

            return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)

        @self.app.post("/api/generate-document")
        async def generate_document(document: DocumentRequest):
            """Render a finished result as a downloadable HTML report"""
            try:
                result = PipelineResult(
                    transcript=document.transcription,
                    slides=tuple(Slide(image=s.image, timestamp=s.timestamp) for s in document.slides)
                )
                html = render_report_html(result, title=document.title or DEFAULT_TITLE)
            except Exception as e:
                logger.error(f"Error generating document: {str(e)}")
                return JSONResponse({"error": str(e) or "Failed to generate document"}, status_code=500)

            return HTMLResponse(
                html,
                headers={'Content-Disposition': f'attachment; filename="{REPORT_FILENAME}"'}
            )

    def start(self):
        """Serve the API; blocks until the server shuts down"""
        logger.info(f"Slides worker listening on {self.config.HTTP_HOST}:{self.config.HTTP_PORT}")
        uvicorn.run(
            self.app,
            host=self.config.HTTP_HOST,
            port=self.config.HTTP_PORT,
            log_level="warning",  # Reduce uvicorn logging
            access_log=False
        )


def create_app(config: Optional[WorkerConfig] = None, coordinator_factory: Optional[CoordinatorFactory] = None) -> FastAPI:
    """Build the FastAPI application"""
    return ProcessingServer(config or WorkerConfig.from_env(), coordinator_factory).app
