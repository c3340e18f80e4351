"""Gesture-to-action mapping with a global cooldown.

Per-frame classification is noisy, so at most one action fires per cooldown
window (1 s by default), and only for confident classifications.

Default mappings:
- peace     → eraser tool
- thumbs_up → next palette color
- point     → brush tool
- ok_sign   → clear canvas

Mappings can be overridden from the YAML config:
    mappings:
      peace: eraser
      fist: clear
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from air_canvas.canvas import PALETTE, Tool
from air_canvas.gestures import Gesture, GestureResult

logger = logging.getLogger("air_canvas.actions")


class ActionType(Enum):
    SET_TOOL = "set_tool"
    NEXT_COLOR = "next_color"
    CLEAR = "clear"


@dataclass(frozen=True)
class Action:
    """A canvas action a gesture can trigger."""
    type: ActionType
    tool: Optional[Tool] = None

    @property
    def name(self) -> str:
        return self.tool.value if self.tool is not None else self.type.value

    @classmethod
    def from_name(cls, name: str) -> Action:
        """Parse 'brush', 'eraser', 'next_color' or 'clear'."""
        if name in (t.value for t in Tool):
            return cls(ActionType.SET_TOOL, Tool(name))
        action_type = ActionType(name)
        if action_type is ActionType.SET_TOOL:
            raise ValueError("set_tool needs a tool name: 'brush' or 'eraser'")
        return cls(action_type)


DEFAULT_MAPPINGS = {
    "peace": "eraser",
    "thumbs_up": "next_color",
    "point": "brush",
    "ok_sign": "clear",
}


@dataclass
class GestureAction:
    """An action that fired, with the gesture that triggered it."""
    action: Action
    gesture: Gesture
    confidence: float
    timestamp: float
    color: Optional[str] = None  # new color for NEXT_COLOR

    def to_dict(self) -> dict:
        data = {
            "action": self.action.name,
            "gesture": self.gesture.value,
            "confidence": round(self.confidence, 3),
            "timestamp": self.timestamp,
        }
        if self.color is not None:
            data["color"] = self.color
        return data


class ActionMapper:
    """Turns classified gestures into debounced canvas actions.

    Usage:
        mapper = ActionMapper()
        fired = mapper.handle(result, now, tool=engine.tool, color=engine.color)
        if fired:
            ...apply fired.action to the engine...
    """

    def __init__(
        self,
        mappings: Optional[dict[str, str]] = None,
        palette: Sequence[str] = PALETTE,
        cooldown: float = 1.0,
        min_confidence: float = 0.7,
    ):
        self.palette = tuple(palette)
        self.cooldown = cooldown
        self.min_confidence = min_confidence
        self._mappings: dict[Gesture, Action] = {}
        self._last_action_time: Optional[float] = None

        for gesture, action in (mappings if mappings is not None else DEFAULT_MAPPINGS).items():
            self.add_mapping(gesture, action)

    def add_mapping(self, gesture: Gesture | str, action: Action | str):
        """Register (or replace) the action for a gesture."""
        if not isinstance(action, Action):
            action = Action.from_name(action)
        self._mappings[Gesture(gesture)] = action

    def remove_mapping(self, gesture: Gesture | str):
        self._mappings.pop(Gesture(gesture), None)

    def next_color(self, color: str) -> str:
        """Color after ``color`` in the cyclic palette.

        The step is taken from the current color rather than from a separate
        counter, so the default ``#3b82f6`` advances to ``#8b5cf6`` and a color
        picked through the settings API continues the cycle from there.
        """
        try:
            idx = self.palette.index(color)
        except ValueError:
            return self.palette[0]
        return self.palette[(idx + 1) % len(self.palette)]

    def handle(
        self,
        result: GestureResult,
        now: float,
        tool: Tool | str,
        color: str,
    ) -> Optional[GestureAction]:
        """Fire the action mapped to ``result.gesture`` if allowed.

        Args:
            result: Classification of the current frame.
            now: Current time in seconds.
            tool: Tool currently selected on the canvas.
            color: Color currently selected on the canvas.

        Returns:
            The fired GestureAction, or None when the cooldown is active, the
            confidence is too low, nothing is mapped, or the action would be
            a no-op tool switch.
        """
        if self._last_action_time is not None and now - self._last_action_time < self.cooldown:
            return None
        if result.confidence <= self.min_confidence:
            return None

        action = self._mappings.get(result.gesture)
        if action is None:
            return None

        fired = GestureAction(
            action=action,
            gesture=result.gesture,
            confidence=result.confidence,
            timestamp=now,
        )

        if action.type is ActionType.SET_TOOL:
            if Tool(tool) is action.tool:
                # Already selected: no action, cooldown untouched
                return None
        elif action.type is ActionType.NEXT_COLOR:
            fired.color = self.next_color(color)

        self._last_action_time = now
        logger.info(
            "Action %s fired by %s (confidence %.2f)",
            action.name, result.gesture.value, result.confidence,
        )
        return fired

    def reset(self):
        """Forget the last action time so the next action fires immediately."""
        self._last_action_time = None

    @classmethod
    def from_config(cls, config) -> ActionMapper:
        return cls(
            mappings=config.mappings,
            palette=config.palette,
            cooldown=config.action_cooldown,
            min_confidence=config.action_min_confidence,
        )

    @property
    def last_action_time(self) -> Optional[float]:
        return self._last_action_time

    @property
    def mappings(self) -> dict[str, str]:
        return {g.value: a.name for g, a in self._mappings.items()}
