"""Frame-driven drawing session: landmarks → gesture → actions → strokes."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from air_canvas.actions import ActionMapper, ActionType, GestureAction
from air_canvas.canvas import StrokeEngine
from air_canvas.classifier import GestureClassifier
from air_canvas.config import CanvasConfig
from air_canvas.gestures import Gesture, GestureResult, to_landmark_array
from air_canvas.metrics import MetricsCollector

logger = logging.getLogger("air_canvas.session")


@dataclass
class FrameResult:
    """Outcome of processing one landmark frame."""
    result: GestureResult
    action: Optional[GestureAction]
    drawing: bool
    clearing: bool
    stroke_count: int
    timestamp: float

    def to_dict(self) -> dict:
        return {
            **self.result.to_dict(),
            "action": self.action.to_dict() if self.action else None,
            "drawing": self.drawing,
            "clearing": self.clearing,
            "stroke_count": self.stroke_count,
            "timestamp": self.timestamp,
        }


@dataclass
class SessionStats:
    """Runtime performance statistics."""
    running: bool
    fps: float
    avg_latency_ms: float
    total_frames: int
    dropped_frames: int
    total_actions: int
    stroke_count: int
    stage_summary: dict = field(default_factory=dict)


class CanvasSession:
    """Single-hand air drawing session.

    ``on_frame`` is the only input boundary. It processes each frame to
    completion before returning; a frame that arrives while another is still
    being processed is dropped. Stopping the session keeps the drawing and
    stops classification until ``start`` is called again.
    """

    def __init__(
        self,
        config: Optional[CanvasConfig] = None,
        classifier: Optional[GestureClassifier] = None,
        mapper: Optional[ActionMapper] = None,
        engine: Optional[StrokeEngine] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or CanvasConfig()
        self.classifier = classifier or GestureClassifier(
            ok_sign_distance=self.config.ok_sign_distance,
        )
        self.mapper = mapper or ActionMapper.from_config(self.config)
        self.engine = engine or StrokeEngine(
            surface_size=(self.config.canvas_width, self.config.canvas_height),
            palette=self.config.palette,
            color=self.config.default_color,
            brush_width=self.config.default_brush_width,
            min_brush_width=self.config.min_brush_width,
            max_brush_width=self.config.max_brush_width,
        )
        self.metrics = metrics or MetricsCollector()

        self._callbacks: list[Callable[[FrameResult], None]] = []
        self._running = True
        self._busy = False
        self._clearing = False
        self._last: Optional[FrameResult] = None
        self._frame_times: deque = deque(maxlen=60)
        self._total_actions = 0

    def on_result(self, callback: Callable[[FrameResult], None]):
        """Register a callback invoked after every processed frame."""
        self._callbacks.append(callback)

    def on_frame(self, landmarks: Any, now: Optional[float] = None) -> Optional[FrameResult]:
        """Process one landmark frame.

        Args:
            landmarks: 21 hand landmarks, or an empty/None frame when no hand
                is visible.
            now: Frame time in seconds; defaults to ``time.monotonic()``.

        Returns:
            FrameResult, or None if the session is stopped or busy.
        """
        if not self._running:
            return None
        if self._busy:
            self.metrics.record_dropped_frame()
            logger.warning("Dropping frame: previous frame still processing")
            return None

        self._busy = True
        try:
            return self._process(landmarks, now)
        finally:
            self._busy = False

    def _process(self, landmarks: Any, now: Optional[float]) -> FrameResult:
        t_start = time.monotonic()
        if now is None:
            now = t_start
        self._clearing = False

        with self.metrics.stage("classification"):
            result = self.classifier.classify(landmarks)

        with self.metrics.stage("actions"):
            action = self.mapper.handle(
                result, now, tool=self.engine.tool, color=self.engine.color,
            )
            if action is not None:
                self._apply(action)

        drawing = (
            result.gesture is Gesture.POINT
            and result.confidence > self.config.draw_min_confidence
        )
        with self.metrics.stage("stroke_update"):
            self.engine.update(drawing, result.position)

        frame = FrameResult(
            result=result,
            action=action,
            drawing=drawing,
            clearing=self._clearing,
            stroke_count=self.engine.stroke_count,
            timestamp=now,
        )
        self._last = frame

        elapsed = time.monotonic() - t_start
        self._frame_times.append(elapsed)
        self.metrics.record_stage("total", elapsed)
        self.metrics.record_frame(elapsed, to_landmark_array(landmarks) is not None)
        self.metrics.record_gesture(result.gesture.value)
        self.metrics.set_strokes(self.engine.stroke_count)

        for cb in self._callbacks:
            cb(frame)

        return frame

    def _apply(self, fired: GestureAction):
        action = fired.action
        if action.type is ActionType.SET_TOOL:
            self.engine.change_tool(action.tool)
        elif action.type is ActionType.NEXT_COLOR:
            self.engine.change_color(fired.color)
        elif action.type is ActionType.CLEAR:
            self.engine.clear()
            self._clearing = True
        self._total_actions += 1
        self.metrics.record_action(action.name)

    def clear(self):
        """Clear the drawing outside of gesture control."""
        self.engine.clear()
        self.metrics.set_strokes(0)

    def start(self):
        if not self._running:
            logger.info("Session started")
        self._running = True

    def stop(self):
        """Stop accepting frames. Strokes are kept."""
        if self._running:
            logger.info("Session stopped (%d strokes kept)", self.engine.stroke_count)
        self._running = False
        self.engine.update(False, None)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def clearing(self) -> bool:
        """True only for the frame in which a gesture cleared the canvas."""
        return self._clearing

    @property
    def last_result(self) -> Optional[FrameResult]:
        return self._last

    @property
    def stats(self) -> SessionStats:
        if self._frame_times:
            avg_latency = sum(self._frame_times) / len(self._frame_times)
            fps = 1.0 / avg_latency if avg_latency > 0 else 0.0
        else:
            avg_latency = 0.0
            fps = 0.0

        return SessionStats(
            running=self._running,
            fps=fps,
            avg_latency_ms=avg_latency * 1000,
            total_frames=self.metrics.frames_total,
            dropped_frames=self.metrics.dropped_total,
            total_actions=self._total_actions,
            stroke_count=self.engine.stroke_count,
            stage_summary=self.metrics.stage_summary(),
        )

    def reset(self):
        """Clear strokes, cooldown and frame timings."""
        self.engine.clear()
        self.mapper.reset()
        self._frame_times.clear()
        self._total_actions = 0
        self._last = None
        self._clearing = False
