"""
TikTok Upload Automator - Main Server
FastAPI + WebSocket surface for the controller panel.
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Import our modules
from browser.controller import BrowserController
from coordinator import ControllerPanel, Coordinator
from utils.settings import AutomatorSettings
from utils.tracing import AutomationTracer

# Create FastAPI app
app = FastAPI(
    title="TikTok Upload Automator",
    description="Drives the TikTok upload page on behalf of a controller panel",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global state
settings = AutomatorSettings.from_env()
tracer = AutomationTracer()
controller: Optional[BrowserController] = None
coordinator: Optional[Coordinator] = None
panel: Optional[ControllerPanel] = None


class Message(BaseModel):
    action: str
    data: Optional[Dict[str, Any]] = None


@app.on_event("startup")
async def startup():
    """Launch the browser and wire the coordinator to it."""
    global controller, coordinator, panel

    logger.info("Starting upload automator server...")

    controller = BrowserController(
        headless=settings.headless,
        viewport_width=settings.viewport_width,
        viewport_height=settings.viewport_height,
    )
    await controller.start()

    coordinator = Coordinator(controller, settings, tracer=tracer)
    coordinator.start()
    panel = ControllerPanel(coordinator)

    logger.info("Server startup complete")


@app.on_event("shutdown")
async def shutdown():
    """Cleanup on shutdown."""
    logger.info("Shutting down...")

    if controller is not None:
        await controller.close()

    logger.info("Shutdown complete")


def _require_coordinator() -> Coordinator:
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Browser not started")
    return coordinator


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "running",
        "browser_running": controller is not None and controller.is_running,
    }


@app.get("/health")
async def health():
    """Detailed health check."""
    session = coordinator.session if coordinator is not None else None
    return {
        "status": "healthy",
        "browser_running": controller is not None and controller.is_running,
        "attached_pages": len(session.agents) if session else 0,
        "aux_window_open": session.aux_window_open if session else False,
        "webhook_url": settings.webhook_url,
    }


@app.post("/api/messages")
async def post_message(message: Message):
    """Relay one {action, data} message and return its response."""
    return await _require_coordinator().dispatch(message.model_dump())


@app.get("/api/upload-page")
async def upload_page_status():
    """Whether an upload page is open (the panel polls this)."""
    if panel is None:
        raise HTTPException(status_code=503, detail="Browser not started")
    return panel.upload_page_status()


@app.get("/api/metrics")
async def get_metrics():
    """Command timing statistics."""
    return tracer.get_stats()


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for the panel.

    Protocol:
    - Client sends: {"action": "...", "data": {...}}
    - Server sends: {"type": "response", "action": "...", "result": {...}}
      or {"type": "error", "message": "..."} for malformed input
    """
    await websocket.accept()
    logger.info("WebSocket connected")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue

            if not isinstance(message, dict) or "action" not in message:
                await websocket.send_json({"type": "error", "message": "Missing action"})
                continue

            if coordinator is None:
                await websocket.send_json({"type": "error", "message": "Browser not started"})
                continue

            result = await coordinator.dispatch(message)
            await websocket.send_json({
                "type": "response",
                "action": message["action"],
                "result": result,
            })

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        log_level="info",
    )
