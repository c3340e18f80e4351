"""HTTP + WebSocket server for air drawing.

Landmark frames arrive either from the server's own camera (when a camera
index is configured) or from WebSocket clients running their own hand
tracker. Both feed the same CanvasSession on the event loop.

Endpoints:
- GET  /api/status               session state and stats
- GET  /api/gestures             gesture rules in priority order
- GET  /api/settings             tool / color / brush width
- PUT  /api/settings             change any of them
- GET  /api/canvas               strokes in paint order
- POST /api/canvas/clear         clear the drawing
- GET  /api/canvas.png           download the current raster
- GET  /api/gallery              saved images, newest first
- POST /api/gallery              save the current raster
- GET  /api/gallery/{id}.png     download a saved image
- DELETE /api/gallery/{id}       delete a saved image
- POST /api/camera/start|stop    start or stop the frame source
- GET  /metrics                  Prometheus metrics
- WS   /ws                       push frames, receive frame results

Usage:
    air-canvas serve
    # or
    uvicorn air_canvas.server:app --host 0.0.0.0 --port 8765
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel

from air_canvas import __version__
from air_canvas.canvas import SurfaceNotReadyError
from air_canvas.config import CanvasConfig
from air_canvas.detector import CameraSource, HandDetector, TrackingError
from air_canvas.gallery import Gallery
from air_canvas.session import CanvasSession

logger = logging.getLogger("air_canvas.server")


# --- State ---

class ServerState:
    def __init__(self, config: Optional[CanvasConfig] = None):
        self.configure(config or CanvasConfig())

    def configure(self, config: CanvasConfig):
        self.config = config
        self.session = CanvasSession(config)
        self.gallery = Gallery(max_images=config.gallery_max_images)
        self.clients: set[WebSocket] = set()
        self.camera_task: Optional[asyncio.Task] = None
        self.camera_running = False
        self.error: Optional[str] = None
        # Debounce clock; client timestamps are only echoed back
        self.clock = time.monotonic

    @property
    def metrics(self):
        return self.session.metrics


state = ServerState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if state.config.camera_index is not None:
        start_camera()
    yield
    await stop_camera()


app = FastAPI(title="Air Canvas", version=__version__, lifespan=lifespan)


class SettingsUpdate(BaseModel):
    tool: Optional[str] = None
    color: Optional[str] = None
    brush_width: Optional[int] = None


# --- API endpoints ---

@app.get("/api/status")
async def api_status():
    stats = state.session.stats
    last = state.session.last_result
    return {
        "version": __version__,
        "running": stats.running,
        "camera": state.camera_running,
        "error": state.error,
        "clients": len(state.clients),
        "fps": round(stats.fps, 1),
        "latency_ms": round(stats.avg_latency_ms, 2),
        "total_frames": stats.total_frames,
        "dropped_frames": stats.dropped_frames,
        "total_actions": stats.total_actions,
        "strokes": stats.stroke_count,
        "gallery": len(state.gallery),
        "last_result": last.to_dict() if last else None,
        "stages": stats.stage_summary,
    }


@app.get("/api/gestures")
async def list_gestures():
    return {
        "gestures": [rule.to_dict() for rule in state.session.classifier.rules],
        "mappings": state.session.mapper.mappings,
    }


def _settings() -> dict:
    engine = state.session.engine
    return {
        "tool": engine.tool.value,
        "color": engine.color,
        "brush_width": engine.brush_width,
        "palette": list(engine.palette),
        "min_brush_width": engine.min_brush_width,
        "max_brush_width": engine.max_brush_width,
    }


@app.get("/api/settings")
async def get_settings():
    return _settings()


@app.put("/api/settings")
async def update_settings(update: SettingsUpdate):
    engine = state.session.engine
    try:
        if update.tool is not None:
            engine.change_tool(update.tool)
        if update.color is not None:
            engine.change_color(update.color)
        if update.brush_width is not None:
            engine.change_brush_width(update.brush_width)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _settings()


@app.get("/api/canvas")
async def get_canvas():
    engine = state.session.engine
    size = engine.surface_size
    return {
        "width": size[0] if size else None,
        "height": size[1] if size else None,
        "strokes": engine.get_full_state(),
    }


@app.post("/api/canvas/clear")
async def clear_canvas():
    state.session.clear()
    await broadcast({"type": "cleared"})
    return {"status": "cleared"}


def _export_png() -> bytes:
    try:
        return state.session.engine.export_raster()
    except SurfaceNotReadyError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/api/canvas.png")
async def download_canvas():
    filename = f"air-canvas-{int(time.time() * 1000)}.png"
    return Response(
        content=_export_png(),
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/gallery")
async def list_gallery():
    return {"images": [image.to_dict() for image in state.gallery]}


@app.post("/api/gallery", status_code=201)
async def save_to_gallery():
    image = state.gallery.save(_export_png())
    state.metrics.set_gallery_images(len(state.gallery))
    return image.to_dict()


@app.get("/api/gallery/{image_id}.png")
async def download_image(image_id: str):
    try:
        image = state.gallery.get(image_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Image {image_id} not found")
    return Response(
        content=image.data,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{image.filename}"'},
    )


@app.delete("/api/gallery/{image_id}")
async def delete_image(image_id: str):
    try:
        state.gallery.delete(image_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Image {image_id} not found")
    state.metrics.set_gallery_images(len(state.gallery))
    return {"status": "deleted", "id": image_id}


@app.post("/api/camera/start")
async def api_start_camera():
    state.session.start()
    if state.config.camera_index is not None:
        start_camera()
    return {"running": state.session.running, "camera": state.camera_running}


@app.post("/api/camera/stop")
async def api_stop_camera():
    await stop_camera()
    state.session.stop()
    return {"running": state.session.running, "camera": state.camera_running}


# --- Prometheus metrics ---

@app.get("/metrics")
async def metrics():
    state.metrics.set_connections(len(state.clients))
    return PlainTextResponse(
        state.metrics.render(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    state.clients.add(ws)
    logger.info("Client connected (%d total)", len(state.clients))

    try:
        await ws.send_json({
            "type": "connected",
            "settings": _settings(),
            "strokes": state.session.engine.stroke_count,
        })

        while True:
            try:
                msg = await asyncio.wait_for(ws.receive_text(), timeout=30)
            except asyncio.TimeoutError:
                await ws.send_json({"type": "ping"})
                continue

            try:
                data = json.loads(msg)
            except json.JSONDecodeError:
                data = None
            if not isinstance(data, dict):
                await ws.send_json({"type": "error", "detail": "expected a JSON object"})
                continue

            kind = data.get("type")
            if kind == "frame":
                client_ts = data.get("timestamp")
                if client_ts is not None and (
                    isinstance(client_ts, bool) or not isinstance(client_ts, (int, float))
                ):
                    await ws.send_json({"type": "error", "detail": "timestamp must be a number"})
                    continue
                frame = state.session.on_frame(data.get("landmarks"), state.clock())
                if frame is None:
                    await ws.send_json({"type": "frame_skipped", "running": state.session.running})
                else:
                    await ws.send_json({
                        "type": "frame_result",
                        **frame.to_dict(),
                        "client_timestamp": client_ts,
                    })
            elif kind == "ping":
                await ws.send_json({"type": "pong", "server_time": time.time()})
            elif kind == "clear":
                state.session.clear()
                await broadcast({"type": "cleared"})
            else:
                await ws.send_json({"type": "error", "detail": f"unknown message type {kind!r}"})
    except WebSocketDisconnect:
        pass
    finally:
        state.clients.discard(ws)
        logger.info("Client disconnected (%d total)", len(state.clients))


async def broadcast(message: dict):
    """Send message to all connected clients."""
    if not state.clients:
        return
    dead = set()
    payload = json.dumps(message)
    for ws in state.clients:
        try:
            await ws.send_text(payload)
        except (WebSocketDisconnect, RuntimeError):
            dead.add(ws)
    state.clients -= dead


# --- Camera capture loop ---

def start_camera():
    if state.camera_task is None or state.camera_task.done():
        state.camera_task = asyncio.create_task(capture_loop(state.config.camera_index))


async def stop_camera():
    state.camera_running = False
    task = state.camera_task
    state.camera_task = None
    if task is not None and not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


async def capture_loop(camera_index: int):
    """Capture frames, detect the hand and feed the session."""
    camera = None
    try:
        camera = CameraSource(camera_index, state.config.canvas_width, state.config.canvas_height)
        detector = HandDetector()
    except TrackingError as e:
        if camera is not None:
            camera.close()
        # Fatal for this session; restarting is up to the operator
        state.error = str(e)
        logger.error("Hand tracking unavailable: %s", e)
        return

    state.error = None
    state.camera_running = True
    logger.info("Capture loop started on camera %d", camera_index)

    try:
        while state.camera_running:
            frame_rgb = camera.read_rgb()
            if frame_rgb is None:
                await asyncio.sleep(0.01)
                continue

            landmarks = detector.detect(frame_rgb)
            frame = state.session.on_frame(landmarks, state.clock())
            if frame is not None and (frame.action is not None or frame.drawing):
                await broadcast({"type": "frame_result", **frame.to_dict()})

            await asyncio.sleep(0.001)
    finally:
        state.camera_running = False
        camera.close()
        detector.close()
        logger.info("Capture loop stopped")
