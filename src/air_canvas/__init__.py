"""Air Canvas - draw in the air with hand gestures."""

__version__ = "0.1.0"

from air_canvas.gestures import Gesture, GestureResult, GestureRule, FingerState
from air_canvas.classifier import GestureClassifier
from air_canvas.canvas import StrokeEngine, Stroke, Tool, SurfaceNotReadyError, PALETTE
from air_canvas.actions import ActionMapper, Action, ActionType, GestureAction
from air_canvas.config import CanvasConfig, load_config
from air_canvas.session import CanvasSession, FrameResult
from air_canvas.gallery import Gallery, SavedImage
from air_canvas.recorder import GestureRecorder, GesturePlayer
from air_canvas.metrics import MetricsCollector
