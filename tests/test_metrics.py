"""Tests for Prometheus metrics."""

import time

import pytest

from air_canvas.metrics import MetricsCollector, _Histogram


class TestMetricsCollector:
    def test_record_gesture(self):
        m = MetricsCollector()
        m.record_gesture("fist")
        m.record_gesture("fist")
        m.record_gesture("peace")
        assert m.gesture_counts == {"fist": 2, "peace": 1}

    def test_record_frame(self):
        m = MetricsCollector()
        m.record_frame(0.005, True)
        m.record_frame(0.010, False)
        assert m.frames_total == 2
        assert m._hands_total == 1

    def test_dropped_frames(self):
        m = MetricsCollector()
        m.record_dropped_frame()
        assert m.dropped_total == 1

    def test_render_prometheus_format(self):
        m = MetricsCollector()
        m.record_gesture("thumbs_up")
        m.record_action("next_color")
        m.record_frame(0.005, True)
        m.set_connections(3)
        m.set_strokes(4)
        m.set_gallery_images(2)

        output = m.render()
        assert "# TYPE air_canvas_frames_total counter" in output
        assert 'air_canvas_gestures_total{gesture="thumbs_up"} 1' in output
        assert 'air_canvas_actions_total{action="next_color"} 1' in output
        assert "air_canvas_active_connections 3" in output
        assert "air_canvas_strokes 4" in output
        assert "air_canvas_gallery_images 2" in output
        assert "air_canvas_frame_latency_seconds_count 1" in output

    def test_stage_timing(self):
        m = MetricsCollector()
        with m.stage("classification"):
            time.sleep(0.001)
        summary = m.stage_summary()
        assert summary["classification"]["calls"] == 1
        assert summary["classification"]["avg_ms"] > 0
        assert 'air_canvas_stage_latency_seconds_count{stage="classification"} 1' in m.render()

    def test_stage_recorded_on_error(self):
        m = MetricsCollector()
        with pytest.raises(RuntimeError):
            with m.stage("actions"):
                raise RuntimeError("boom")
        assert m.stage_summary()["actions"]["calls"] == 1

    def test_stage_window(self):
        m = MetricsCollector(window_size=3)
        for ms in (1, 2, 3, 100):
            m.record_stage("s", ms / 1000)
        summary = m.stage_summary()["s"]
        assert summary["calls"] == 4
        assert summary["max_ms"] == 100.0
        assert summary["avg_ms"] == pytest.approx(35.0)


class TestHistogram:
    def test_cumulative_buckets(self):
        h = _Histogram(buckets=(0.01, 0.1))
        h.observe(0.005)
        h.observe(0.05)
        h.observe(1.0)
        lines = h.render_lines("lat")
        assert 'lat_bucket{le="0.01"} 1' in lines
        assert 'lat_bucket{le="0.1"} 2' in lines
        assert 'lat_bucket{le="+Inf"} 3' in lines
        assert "lat_count 3" in lines

    def test_labels(self):
        h = _Histogram(buckets=(0.01,))
        h.observe(0.001)
        lines = h.render_lines("lat", 'stage="x"')
        assert 'lat_bucket{stage="x",le="0.01"} 1' in lines
        assert 'lat_count{stage="x"} 1' in lines
