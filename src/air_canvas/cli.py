"""Air Canvas CLI: the main entry point for all operations.

Usage:
    air-canvas serve      - Start the HTTP/WebSocket server
    air-canvas record     - Record landmark frames from the camera
    air-canvas render     - Replay a recording and save the drawing as PNG
    air-canvas classify   - Print the gesture of every frame in a recording
"""

from __future__ import annotations

import dataclasses
import logging
import time
from pathlib import Path
from typing import Optional

import typer

from air_canvas.config import CanvasConfig, load_config

app = typer.Typer(
    name="air-canvas",
    help="✍️  Draw in the air with hand gestures.",
    add_completion=False,
)


def _setup(config_path: Optional[str], log_level: str, **overrides) -> CanvasConfig:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = load_config(config_path)
        # replace() re-runs validation on the overridden fields
        return dataclasses.replace(config, **overrides) if overrides else config
    except (OSError, ValueError) as e:
        typer.echo(f"❌ Invalid config {config_path or '(command-line options)'}: {e}", err=True)
        raise typer.Exit(1)


def _load_recording(recording: str):
    from air_canvas.recorder import GesturePlayer

    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)
    return GesturePlayer.load(path)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8765, help="Port"),
    camera: Optional[int] = typer.Option(None, help="Capture from this camera index"),
    config: Optional[str] = typer.Option(None, "--config", help="Path to YAML config"),
    log_level: str = typer.Option("info", help="Log level"),
):
    """Start the air drawing server."""
    import uvicorn
    from air_canvas.server import app as fastapi_app, state

    overrides = {"camera_index": camera} if camera is not None else {}
    cfg = _setup(config, log_level, **overrides)
    state.configure(cfg)

    typer.echo(f"🚀 Starting Air Canvas server on {host}:{port}")
    if cfg.camera_index is not None:
        typer.echo(f"   Capturing from camera {cfg.camera_index}")
    else:
        typer.echo(f"   Waiting for landmark frames on ws://{host}:{port}/ws")
    uvicorn.run(fastapi_app, host=host, port=port, log_level=log_level)


@app.command()
def record(
    output: str = typer.Option("recording.json", "-o", help="Output file path"),
    duration: float = typer.Option(0, help="Recording duration in seconds (0 = until Ctrl+C)"),
    compact: bool = typer.Option(False, help="Save in compact .npz format"),
    camera: int = typer.Option(0, help="Camera device index"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Record hand landmark frames from the camera."""
    from air_canvas.classifier import GestureClassifier
    from air_canvas.detector import CameraSource, HandDetector, TrackingError
    from air_canvas.recorder import GestureRecorder

    _setup(None, log_level)
    try:
        source = CameraSource(camera)
        detector = HandDetector()
    except TrackingError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    classifier = GestureClassifier()
    recorder = GestureRecorder()

    typer.echo(f"🎥 Recording from camera {camera}...")
    typer.echo("   Press Ctrl+C to stop")
    recorder.start()
    start = time.monotonic()

    try:
        while True:
            frame_rgb = source.read_rgb()
            if frame_rgb is None:
                continue

            landmarks = detector.detect(frame_rgb)
            result = classifier.classify(landmarks)
            recorder.add_frame(landmarks, result)

            if recorder.frame_count % 30 == 0:
                elapsed = time.monotonic() - start
                typer.echo(
                    f"\r   Frames: {recorder.frame_count} | Duration: {elapsed:.1f}s"
                    f" | Gesture: {result.gesture.value:<10}",
                    nl=False,
                )

            if duration > 0 and (time.monotonic() - start) >= duration:
                break
    except KeyboardInterrupt:
        pass
    finally:
        recorder.stop()
        source.close()
        detector.close()

    typer.echo(f"\n\n📼 Recorded {recorder.frame_count} frames ({recorder.duration:.1f}s)")
    path = recorder.save_compact(output) if compact else recorder.save(output)
    typer.echo(f"💾 Saved to: {path}")


@app.command()
def render(
    recording: str = typer.Argument(..., help="Path to recording file"),
    output: str = typer.Option("air-canvas.png", "-o", help="Output PNG path"),
    width: Optional[int] = typer.Option(None, help="Canvas width (default from config)"),
    height: Optional[int] = typer.Option(None, help="Canvas height (default from config)"),
    config: Optional[str] = typer.Option(None, "--config", help="Path to YAML config"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Replay a recording through the drawing session and save the result."""
    from air_canvas.session import CanvasSession

    overrides = {}
    if width is not None:
        overrides["canvas_width"] = width
    if height is not None:
        overrides["canvas_height"] = height
    cfg = _setup(config, log_level, **overrides)

    player = _load_recording(recording)
    session = CanvasSession(cfg)

    actions = 0
    for frame in player.play():
        result = session.on_frame(frame.landmarks, frame.timestamp)
        if result is not None and result.action is not None:
            actions += 1

    out = Path(output)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(session.engine.export_raster())

    typer.echo(
        f"🖼  Rendered {player.frame_count} frames → {session.engine.stroke_count} strokes,"
        f" {actions} actions"
    )
    typer.echo(f"💾 Saved to: {out}")


@app.command()
def classify(
    recording: str = typer.Argument(..., help="Path to recording file"),
    changes_only: bool = typer.Option(True, help="Only print when the gesture changes"),
):
    """Print the classified gesture of each frame in a recording."""
    from air_canvas.classifier import GestureClassifier

    player = _load_recording(recording)
    classifier = GestureClassifier()

    previous = None
    for i, frame in enumerate(player.play()):
        result = classifier.classify(frame.landmarks)
        if changes_only and result.gesture is previous:
            continue
        previous = result.gesture
        line = f"   {i:5d} {frame.timestamp:7.2f}s  {result.gesture.value:<10} {result.confidence:.2f}"
        if result.position is not None:
            line += f"  ({result.position[0]:.3f}, {result.position[1]:.3f})"
        typer.echo(line)


def main():
    app()


if __name__ == "__main__":
    main()
