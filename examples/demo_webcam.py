#!/usr/bin/env python3
"""Live webcam air drawing demo.

Point with the index finger to draw, peace sign for the eraser, thumbs up to
cycle colors and OK sign to clear. The preview window needs the full
opencv-python build; use --no-display with the headless build.

Usage:
    python examples/demo_webcam.py [--camera 0] [--no-display] [-o drawing.png]
"""

import argparse
import sys

import cv2
import numpy as np

sys.path.insert(0, "src")
from air_canvas import CanvasConfig, CanvasSession, FrameResult
from air_canvas.detector import CameraSource, HandDetector, TrackingError


def draw_overlay(frame_bgr, session: CanvasSession, last: FrameResult):
    """Blend the drawing over the mirrored camera frame."""
    frame = cv2.flip(frame_bgr, 1)
    h, w = frame.shape[:2]
    canvas = cv2.resize(session.engine.snapshot(), (w, h), interpolation=cv2.INTER_NEAREST)

    # Only painted pixels are blended; white background and erased pixels show the camera
    painted = np.any(canvas[:, :, :3] != 255, axis=2) & (canvas[:, :, 3] > 0)
    frame[painted] = cv2.cvtColor(canvas, cv2.COLOR_RGBA2BGR)[painted]

    engine = session.engine
    stats = session.stats
    label = f"{last.result.gesture.value} ({last.result.confidence:.0%})" if last else "-"
    cv2.putText(
        frame,
        f"FPS: {stats.fps:.0f} | {label} | {engine.tool.value} {engine.color} {engine.brush_width}px",
        (10, 30),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.6,
        (0, 255, 0),
        2,
    )
    return frame


def main():
    parser = argparse.ArgumentParser(description="Air Canvas Webcam Demo")
    parser.add_argument("--camera", type=int, default=0, help="Camera index")
    parser.add_argument("--no-display", action="store_true", help="Run headless")
    parser.add_argument("-o", "--output", default="air-canvas.png", help="PNG written on exit")
    args = parser.parse_args()

    try:
        source = CameraSource(args.camera)
        detector = HandDetector()
    except TrackingError as e:
        print(f"Error: {e}")
        sys.exit(1)

    session = CanvasSession(CanvasConfig())

    def on_result(frame: FrameResult):
        if frame.action is not None:
            print(f"  ✋ {frame.action.gesture.value} → {frame.action.action.name}")

    session.on_result(on_result)

    print("Starting Air Canvas...")
    print("Press 'q' (or Ctrl+C) to quit\n")

    last = None
    try:
        with source, detector:
            while True:
                frame_rgb = source.read_rgb()
                if frame_rgb is None:
                    break

                last = session.on_frame(detector.detect(frame_rgb)) or last

                if not args.no_display:
                    frame_bgr = cv2.cvtColor(frame_rgb, cv2.COLOR_RGB2BGR)
                    cv2.imshow("Air Canvas", draw_overlay(frame_bgr, session, last))
                    if cv2.waitKey(1) & 0xFF == ord("q"):
                        break
    except KeyboardInterrupt:
        pass
    finally:
        if not args.no_display:
            cv2.destroyAllWindows()

    with open(args.output, "wb") as f:
        f.write(session.engine.export_raster())

    stats = session.stats
    print(f"\nProcessed {stats.total_frames} frames, {stats.total_actions} actions,"
          f" {stats.stroke_count} strokes → {args.output}")


if __name__ == "__main__":
    main()
