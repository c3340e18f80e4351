"""Air Canvas configuration management."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

from air_canvas.actions import DEFAULT_MAPPINGS, Action
from air_canvas.canvas import (
    DEFAULT_BRUSH_WIDTH,
    DEFAULT_COLOR,
    MAX_BRUSH_WIDTH,
    MIN_BRUSH_WIDTH,
    PALETTE,
    parse_hex_color,
)
from air_canvas.gestures import Gesture

logger = logging.getLogger("air_canvas.config")


@dataclass
class CanvasConfig:
    canvas_width: int = 640
    canvas_height: int = 480
    palette: list[str] = field(default_factory=lambda: list(PALETTE))
    default_color: str = DEFAULT_COLOR
    default_brush_width: int = DEFAULT_BRUSH_WIDTH
    min_brush_width: int = MIN_BRUSH_WIDTH
    max_brush_width: int = MAX_BRUSH_WIDTH
    action_cooldown: float = 1.0
    action_min_confidence: float = 0.7
    draw_min_confidence: float = 0.6
    ok_sign_distance: float = 0.05
    camera_index: Optional[int] = None
    gallery_max_images: int = 0  # 0 = unlimited
    mappings: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MAPPINGS))

    def __post_init__(self):
        if self.canvas_width <= 0 or self.canvas_height <= 0:
            raise ValueError("Canvas size must be positive")
        if not self.palette:
            raise ValueError("Palette must contain at least one color")
        for color in self.palette:
            parse_hex_color(color)
        if self.default_color not in self.palette:
            raise ValueError(f"Default color {self.default_color!r} is not in the palette")
        if not 1 <= self.min_brush_width <= self.max_brush_width:
            raise ValueError("Brush width bounds must satisfy 1 <= min <= max")
        if not self.min_brush_width <= self.default_brush_width <= self.max_brush_width:
            raise ValueError("Default brush width is outside the width bounds")
        if self.action_cooldown < 0:
            raise ValueError("Action cooldown must be non-negative")
        for name in ("action_min_confidence", "draw_min_confidence"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be within [0, 1]")
        if self.ok_sign_distance <= 0:
            raise ValueError("ok_sign_distance must be positive")
        for gesture, action in self.mappings.items():
            Gesture(gesture)
            Action.from_name(action)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> CanvasConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: str | Path) -> CanvasConfig:
        """Load configuration from a YAML file. Missing keys keep defaults."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    def to_yaml(self, path: str | Path):
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def load_config(path: Optional[str | Path] = None) -> CanvasConfig:
    if path is None:
        return CanvasConfig()
    config = CanvasConfig.from_yaml(path)
    logger.info("Loaded config from %s", path)
    return config
