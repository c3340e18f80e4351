"""Stroke accumulation and rasterization for air drawing.

Tracks the fingertip position of the ``point`` gesture and builds an ordered
list of strokes. Every mutation replays the whole stroke list onto an RGBA
surface, so the raster always equals a fresh render of the strokes.

Usage:
    engine = StrokeEngine(surface_size=(640, 480))
    # In frame loop:
    engine.update(drawing_active, position)
    png = engine.export_raster()
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

import cv2
import numpy as np

logger = logging.getLogger("air_canvas.canvas")


class Tool(Enum):
    BRUSH = "brush"
    ERASER = "eraser"


PALETTE = (
    "#ef4444",  # red
    "#f97316",  # orange
    "#eab308",  # yellow
    "#22c55e",  # green
    "#3b82f6",  # blue
    "#8b5cf6",  # violet
    "#ec4899",  # pink
    "#000000",  # black
)
DEFAULT_COLOR = "#3b82f6"
DEFAULT_BRUSH_WIDTH = 8
MIN_BRUSH_WIDTH = 2
MAX_BRUSH_WIDTH = 20

BACKGROUND = (255, 255, 255, 255)
TRANSPARENT = (0, 0, 0, 0)


class SurfaceNotReadyError(RuntimeError):
    """Raised when rendering output is requested before the surface is sized."""


def parse_hex_color(color: str) -> tuple[int, int, int]:
    """'#rrggbb' → (r, g, b)."""
    value = color.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Invalid color: {color!r}")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


@dataclass
class Stroke:
    """An ordered run of points drawn with one tool/color/width."""
    points: list[tuple[float, float]] = field(default_factory=list)
    color: str = DEFAULT_COLOR
    width: int = DEFAULT_BRUSH_WIDTH
    tool: Tool = Tool.BRUSH

    @property
    def style(self) -> tuple[Tool, str, int]:
        return self.tool, self.color, self.width

    def to_dict(self) -> dict:
        return {
            "tool": self.tool.value,
            "color": self.color,
            "width": self.width,
            "points": [[round(x, 4), round(y, 4)] for x, y in self.points],
        }


class StrokeEngine:
    """Owns the stroke list and its rasterized surface.

    Coordinates are normalized to [0, 1] and scaled to the surface on render,
    so a resize replays the same drawing at the new resolution.
    """

    def __init__(
        self,
        surface_size: Optional[tuple[int, int]] = (640, 480),
        palette: Sequence[str] = PALETTE,
        color: str = DEFAULT_COLOR,
        brush_width: int = DEFAULT_BRUSH_WIDTH,
        tool: Tool | str = Tool.BRUSH,
        min_brush_width: int = MIN_BRUSH_WIDTH,
        max_brush_width: int = MAX_BRUSH_WIDTH,
    ):
        if not palette:
            raise ValueError("Palette must contain at least one color")
        for c in palette:
            parse_hex_color(c)

        self.palette = tuple(palette)
        self.min_brush_width = min_brush_width
        self.max_brush_width = max_brush_width

        self._strokes: list[Stroke] = []
        self._current: Optional[Stroke] = None
        self._last_point: Optional[tuple[float, float]] = None
        self._surface: Optional[np.ndarray] = None

        self._tool = Tool.BRUSH
        self._color = self.palette[0]
        self._brush_width = DEFAULT_BRUSH_WIDTH
        self.change_tool(tool)
        self.change_color(color)
        self.change_brush_width(brush_width)

        if surface_size is not None:
            self.resize(*surface_size)

    # --- Settings ---

    @property
    def tool(self) -> Tool:
        return self._tool

    @property
    def color(self) -> str:
        return self._color

    @property
    def brush_width(self) -> int:
        return self._brush_width

    def _check_color(self, color: str) -> str:
        if color not in self.palette:
            raise ValueError(f"Color {color!r} is not in the palette")
        return color

    def _check_width(self, width: int) -> int:
        width = int(width)
        if not self.min_brush_width <= width <= self.max_brush_width:
            raise ValueError(
                f"Brush width must be between {self.min_brush_width} "
                f"and {self.max_brush_width}, got {width}"
            )
        return width

    def change_tool(self, tool: Tool | str):
        """Select the tool used from the next update on."""
        self._tool = Tool(tool)

    def change_color(self, color: str):
        self._color = self._check_color(color)

    def change_brush_width(self, width: int):
        self._brush_width = self._check_width(width)

    # --- Drawing ---

    def update(
        self,
        drawing_active: bool,
        position: Optional[tuple[float, float]],
        tool: Optional[Tool | str] = None,
        color: Optional[str] = None,
        brush_width: Optional[int] = None,
    ) -> bool:
        """Process one frame of pointer input.

        Args:
            drawing_active: Whether the pointer is currently drawing.
            position: Normalized (x, y) pointer position, or None.
            tool, color, brush_width: Style for this frame; the engine's
                current settings are used for any that are omitted.
                Overrides are validated like the setters.

        Returns:
            True if the stroke list changed (and the surface was re-rendered).

        Raises:
            ValueError: If an override is not a known tool, a palette color
                or a width within bounds. Engine state is left unchanged.
        """
        style = (
            Tool(tool) if tool is not None else self._tool,
            self._check_color(color) if color is not None else self._color,
            self._check_width(brush_width) if brush_width is not None else self._brush_width,
        )

        if not drawing_active or position is None:
            # Lifting the pointer ends the current stroke
            self._last_point = None
            self._current = None
            return False

        point = (float(position[0]), float(position[1]))

        if self._last_point is None:
            self._last_point = point
            return False

        if self._current is None or self._current.style != style:
            self._current = Stroke(
                points=[self._last_point, point],
                tool=style[0],
                color=style[1],
                width=style[2],
            )
            self._strokes.append(self._current)
            logger.debug("Stroke %d started (%s, %s, %d)", len(self._strokes), *style)
        else:
            self._current.points.append(point)

        self._last_point = point
        self._render()
        return True

    def clear(self):
        """Remove all strokes and reset pointer tracking."""
        self._strokes = []
        self._current = None
        self._last_point = None
        self._render()

    def resize(self, width: int, height: int):
        """Allocate a new surface and replay the strokes onto it."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Surface size must be positive, got {width}x{height}")
        self._surface = np.empty((int(height), int(width), 4), dtype=np.uint8)
        self._render()

    def _render(self):
        """Replay every stroke onto a blank white surface."""
        if self._surface is None:
            return

        surface = self._surface
        h, w = surface.shape[:2]
        surface[:] = BACKGROUND
        mask = np.zeros((h, w), dtype=np.uint8)

        for stroke in self._strokes:
            if len(stroke.points) < 2:
                continue

            pts = np.array(
                [[int(round(x * w)), int(round(y * h))] for x, y in stroke.points],
                dtype=np.int32,
            )
            mask.fill(0)
            cv2.polylines(mask, [pts], isClosed=False, color=255, thickness=stroke.width)
            # Round caps and joins
            radius = max(1, stroke.width // 2)
            for x, y in pts:
                cv2.circle(mask, (int(x), int(y)), radius, 255, -1)

            if stroke.tool is Tool.ERASER:
                surface[mask > 0] = TRANSPARENT
            else:
                surface[mask > 0] = (*parse_hex_color(stroke.color), 255)

    # --- Output ---

    def _require_surface(self) -> np.ndarray:
        if self._surface is None:
            raise SurfaceNotReadyError("Canvas surface has not been sized yet")
        return self._surface

    def snapshot(self) -> np.ndarray:
        """Copy of the current RGBA surface, shape (height, width, 4)."""
        return self._require_surface().copy()

    def export_raster(self) -> bytes:
        """Encode the current surface as PNG bytes."""
        bgra = cv2.cvtColor(self._require_surface(), cv2.COLOR_RGBA2BGRA)
        ok, buf = cv2.imencode(".png", bgra)
        if not ok:
            raise RuntimeError("PNG encoding failed")
        return buf.tobytes()

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.export_raster()).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def get_full_state(self) -> list[dict]:
        """All strokes in paint order, for client sync."""
        return [s.to_dict() for s in self._strokes]

    @property
    def strokes(self) -> list[Stroke]:
        return list(self._strokes)

    @property
    def stroke_count(self) -> int:
        return len(self._strokes)

    @property
    def is_drawing(self) -> bool:
        return self._last_point is not None

    @property
    def surface_size(self) -> Optional[tuple[int, int]]:
        if self._surface is None:
            return None
        h, w = self._surface.shape[:2]
        return w, h
