"""Prometheus-compatible metrics for Air Canvas.

Renders the Prometheus text exposition format directly.

Tracked metrics:
- air_canvas_frames_total (counter)
- air_canvas_hands_detected_total (counter)
- air_canvas_dropped_frames_total (counter)
- air_canvas_gestures_total (counter, by gesture)
- air_canvas_actions_total (counter, by action)
- air_canvas_frame_latency_seconds (histogram)
- air_canvas_stage_latency_seconds (histogram, by stage)
- air_canvas_strokes (gauge)
- air_canvas_gallery_images (gauge)
- air_canvas_active_connections (gauge)
"""

from __future__ import annotations

import threading
import time
from collections import Counter, deque
from contextlib import contextmanager
from typing import Iterator

LATENCY_BUCKETS = (0.0005, 0.001, 0.002, 0.005, 0.010, 0.020, 0.033, 0.050, 0.100)


class _Histogram:
    """Cumulative-bucket histogram."""

    def __init__(self, buckets=LATENCY_BUCKETS):
        self.buckets = sorted(buckets)
        self.bucket_counts = [0] * len(self.buckets)
        self.count = 0
        self.sum = 0.0

    def observe(self, value: float):
        self.count += 1
        self.sum += value
        for i, b in enumerate(self.buckets):
            if value <= b:
                self.bucket_counts[i] += 1
                break

    def render_lines(self, name: str, labels: str = "") -> list[str]:
        sep = "," if labels else ""
        lines = []
        cumulative = 0
        for b, n in zip(self.buckets, self.bucket_counts):
            cumulative += n
            lines.append(f'{name}_bucket{{{labels}{sep}le="{b}"}} {cumulative}')
        lines.append(f'{name}_bucket{{{labels}{sep}le="+Inf"}} {self.count}')
        suffix = f"{{{labels}}}" if labels else ""
        lines.append(f"{name}_sum{suffix} {self.sum:.6f}")
        lines.append(f"{name}_count{suffix} {self.count}")
        return lines


def _header(name: str, kind: str, help_text: str) -> list[str]:
    return [f"# HELP {name} {help_text}", f"# TYPE {name} {kind}"]


class MetricsCollector:
    """Collects frame, gesture and stage timing metrics for one session."""

    def __init__(self, window_size: int = 120):
        self._lock = threading.Lock()
        self._gestures: Counter = Counter()
        self._actions: Counter = Counter()
        self._frames_total = 0
        self._hands_total = 0
        self._dropped_total = 0
        self._strokes = 0
        self._gallery_images = 0
        self._connections = 0
        self._latency = _Histogram()
        self._stages: dict[str, _Histogram] = {}
        self._recent: dict[str, deque[float]] = {}
        self._window_size = window_size
        self._start_time = time.time()

    def record_frame(self, latency_seconds: float, hand_detected: bool):
        with self._lock:
            self._frames_total += 1
            self._hands_total += int(hand_detected)
            self._latency.observe(latency_seconds)

    def record_dropped_frame(self):
        with self._lock:
            self._dropped_total += 1

    def record_gesture(self, name: str):
        with self._lock:
            self._gestures[name] += 1

    def record_action(self, name: str):
        with self._lock:
            self._actions[name] += 1

    def record_stage(self, stage: str, seconds: float):
        with self._lock:
            if stage not in self._stages:
                self._stages[stage] = _Histogram()
                self._recent[stage] = deque(maxlen=self._window_size)
            self._stages[stage].observe(seconds)
            self._recent[stage].append(seconds * 1000.0)

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Time a block of code as a named pipeline stage."""
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.record_stage(name, time.perf_counter() - t0)

    def set_strokes(self, count: int):
        self._strokes = count

    def set_gallery_images(self, count: int):
        self._gallery_images = count

    def set_connections(self, count: int):
        self._connections = count

    def stage_summary(self) -> dict[str, dict]:
        """Recent per-stage timings in milliseconds."""
        result = {}
        with self._lock:
            for name, recent in self._recent.items():
                if not recent:
                    continue
                ordered = sorted(recent)
                n = len(ordered)
                result[name] = {
                    "avg_ms": round(sum(ordered) / n, 3),
                    "max_ms": round(ordered[-1], 3),
                    "p95_ms": round(ordered[min(n - 1, int(n * 0.95))], 3),
                    "calls": self._stages[name].count,
                }
        return result

    def render(self) -> str:
        """Render all metrics in Prometheus text exposition format."""
        lines: list[str] = []

        def block(name: str, kind: str, help_text: str, samples: list[str]):
            lines.extend(_header(name, kind, help_text))
            lines.extend(samples)
            lines.append("")

        with self._lock:
            block("air_canvas_uptime_seconds", "gauge", "Time since collector start",
                  [f"air_canvas_uptime_seconds {time.time() - self._start_time:.1f}"])
            block("air_canvas_frames_total", "counter", "Total landmark frames processed",
                  [f"air_canvas_frames_total {self._frames_total}"])
            block("air_canvas_hands_detected_total", "counter", "Frames that contained a hand",
                  [f"air_canvas_hands_detected_total {self._hands_total}"])
            block("air_canvas_dropped_frames_total", "counter", "Frames dropped while busy",
                  [f"air_canvas_dropped_frames_total {self._dropped_total}"])
            block("air_canvas_gestures_total", "counter", "Classified gestures by name",
                  [f'air_canvas_gestures_total{{gesture="{g}"}} {n}'
                   for g, n in sorted(self._gestures.items())])
            block("air_canvas_actions_total", "counter", "Gesture-triggered actions by name",
                  [f'air_canvas_actions_total{{action="{a}"}} {n}'
                   for a, n in sorted(self._actions.items())])
            block("air_canvas_frame_latency_seconds", "histogram", "Frame processing latency",
                  self._latency.render_lines("air_canvas_frame_latency_seconds"))

            stage_lines: list[str] = []
            for name, hist in sorted(self._stages.items()):
                stage_lines.extend(
                    hist.render_lines("air_canvas_stage_latency_seconds", f'stage="{name}"')
                )
            block("air_canvas_stage_latency_seconds", "histogram", "Latency per pipeline stage",
                  stage_lines)

            block("air_canvas_strokes", "gauge", "Strokes on the canvas",
                  [f"air_canvas_strokes {self._strokes}"])
            block("air_canvas_gallery_images", "gauge", "Images saved in the gallery",
                  [f"air_canvas_gallery_images {self._gallery_images}"])
            block("air_canvas_active_connections", "gauge", "Current WebSocket connections",
                  [f"air_canvas_active_connections {self._connections}"])

        return "\n".join(lines) + "\n"

    @property
    def gesture_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._gestures)

    @property
    def action_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._actions)

    @property
    def frames_total(self) -> int:
        return self._frames_total

    @property
    def dropped_total(self) -> int:
        return self._dropped_total
