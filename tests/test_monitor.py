"""
Tests for the monitoring session: alerts, stats, status and pause handling
"""

import json
import threading
from datetime import date

import numpy as np
import pytest

from brrrr.alerts import AlertCoordinator
from brrrr.classifier import TouchState
from brrrr.config import AlertConfig, AppConfig, ClassifierConfig
from brrrr.detections import VisionDetections
from brrrr.monitor import TouchMonitor
from brrrr.stats import TouchStats, TouchStatsStore


class SilentSound:
    def __init__(self):
        self.plays = 0

    def play(self, sound_path="", volume=1.0):
        self.plays += 1
        return True


class SilentNotifier:
    def notify(self, title, message, timeout_seconds=3):
        return True


@pytest.fixture
def published():
    return []


@pytest.fixture
def sound():
    return SilentSound()


@pytest.fixture
def monitor(tmp_path, published, sound):
    # alpha 1 so every frame lands on its raw confidence
    config = AppConfig(classifier=ClassifierConfig(smoothing_alpha=1.0))
    alerts = AlertCoordinator(AlertConfig(), notifier=SilentNotifier(), sound_player=sound)
    return TouchMonitor(config, alerts=alerts, stats=TouchStatsStore(tmp_path), listener=published.append)


@pytest.fixture
def touching(nose_lips_face, make_hand, snapshot):
    def _make(timestamp=0.0):
        return snapshot(hands=[make_hand((0.5, 0.55))], faces=[nose_lips_face], timestamp=timestamp)

    return _make


class TestHandleDetections:
    def test_touch_alerts_with_cooldown(self, monitor, touching, sound):
        monitor.handle_detections(touching(0.0), now=0.0)
        assert monitor.flash_pulse == 1

        monitor.handle_detections(touching(0.5), now=0.5)
        assert monitor.flash_pulse == 1

        monitor.handle_detections(touching(3.5), now=3.5)
        assert monitor.flash_pulse == 2
        assert sound.plays == 2

    def test_each_touch_episode_counts_once(self, monitor, touching):
        for t in (0.0, 0.1, 0.2):
            monitor.handle_detections(touching(t), now=t)
        assert monitor.status()["touches_today"] == 1

        monitor.handle_detections(VisionDetections.empty(0.3), now=0.3)
        monitor.handle_detections(touching(0.4), now=0.4)
        assert monitor.status()["touches_today"] == 2

    def test_status_text(self, monitor, touching):
        monitor.handle_detections(touching(), now=0.0)
        assert monitor.status_text == "Faces: 1  Hands: 1  •  Touching  •  d=0.000"

        monitor.handle_detections(VisionDetections.empty(1.0), now=1.0)
        assert monitor.status_text == "Faces: 0  Hands: 0  •  No touch"

    def test_published_status(self, monitor, touching, published):
        monitor.handle_detections(touching(2.0), now=2.0)

        status = published[-1]
        assert status["state"] == "touching"
        assert status["timestamp"] == 2.0
        assert status["has_face"] and status["has_hand"]
        assert status["paused"] is False
        assert status["flash_pulse"] == 1

    def test_measured_fps_is_smoothed(self, monitor):
        monitor.handle_detections(VisionDetections.empty(0.0))
        assert monitor.measured_fps == 0.0

        monitor.handle_detections(VisionDetections.empty(0.1))
        assert monitor.measured_fps == pytest.approx(10.0)

        monitor.handle_detections(VisionDetections.empty(0.3))
        assert monitor.measured_fps == pytest.approx(9.0)

    def test_listener_errors_are_contained(self, tmp_path, caplog):
        def broken(_status):
            raise RuntimeError("boom")

        monitor = TouchMonitor(AppConfig(), stats=TouchStatsStore(tmp_path), listener=broken)
        monitor.handle_detections(VisionDetections.empty(0.0))

        assert "Status listener failed" in caplog.text


class TestPause:
    def test_timed_pause(self, monitor, touching):
        monitor.handle_detections(touching(), now=0.0)
        monitor.pause_for(1, now=100.0)

        assert monitor.is_paused
        assert monitor.status_text == "Paused"
        assert monitor.classifier.state == TouchState.NO_TOUCH
        assert monitor.pause_remaining_seconds(now=130.0) == 30

        monitor.tick(now=159.0)
        assert monitor.is_paused

        monitor.tick(now=161.0)
        assert not monitor.is_paused
        assert monitor.status_text == "Vision: starting…"

    def test_indefinite_pause(self, monitor):
        monitor.pause_for(0, now=0.0)

        monitor.tick(now=1e9)
        assert monitor.is_paused
        assert monitor.pause_remaining_seconds(now=1e9) == 0

        monitor.toggle_pause()
        assert not monitor.is_paused

    def test_pause_publishes(self, monitor, published):
        monitor.pause()
        assert published[-1]["paused"] is True
        monitor.resume()
        assert published[-1]["paused"] is False


class TestCommands:
    def test_pause_and_resume(self, monitor):
        monitor.apply_command({"type": "pause", "minutes": 5})
        assert monitor.is_paused
        assert 295 <= monitor.pause_remaining_seconds() <= 300

        monitor.apply_command({"type": "resume"})
        assert not monitor.is_paused

    def test_test_alert_ignores_cooldown(self, monitor, touching, sound):
        monitor.handle_detections(touching(), now=0.0)
        monitor.apply_command({"type": "test_alert"})

        assert monitor.flash_pulse == 2
        assert sound.plays == 2

    def test_reset(self, monitor, touching):
        monitor.handle_detections(touching(), now=0.0)
        monitor.apply_command({"type": "reset"})

        assert monitor.classifier.state == TouchState.NO_TOUCH
        assert monitor.classifier.smoothed_confidence == 0.0

    def test_unknown_command_is_logged(self, monitor, caplog):
        monitor.apply_command({"type": "dance"})
        assert "Unknown command: dance" in caplog.text


class FakeCamera:
    def __init__(self, frames):
        self.remaining = frames
        self.reads = 0

    def read(self):
        if self.remaining <= 0:
            return False, None
        self.remaining -= 1
        self.reads += 1
        return True, np.zeros((4, 6, 3), dtype=np.uint8)


class FakePipeline:
    def __init__(self, detections_factory):
        self.factory = detections_factory
        self.frames = []

    def process_frame(self, frame, timestamp=None):
        self.frames.append(frame)
        return self.factory(len(self.frames) * 0.1)


class QueuedCommands:
    def __init__(self, *commands):
        self.commands = list(commands)

    def get_command(self):
        return self.commands.pop(0) if self.commands else None


class TestRunLoop:
    def test_runs_until_camera_fails(self, monitor, touching):
        camera = FakeCamera(frames=3)
        pipeline = FakePipeline(touching)

        monitor.run(camera, pipeline)

        assert camera.reads == 3
        assert len(pipeline.frames) == 3
        assert monitor.touch_state == TouchState.TOUCHING
        assert monitor.status_text == "Stopped"

    def test_stop_event(self, tmp_path, touching):
        stop_event = threading.Event()
        monitor = TouchMonitor(
            AppConfig(),
            alerts=AlertCoordinator(notifier=SilentNotifier(), sound_player=SilentSound()),
            stats=TouchStatsStore(tmp_path),
            listener=lambda status: stop_event.set(),
        )
        camera = FakeCamera(frames=100)

        monitor.run(camera, FakePipeline(touching), stop_event=stop_event)

        assert camera.reads == 1

    def test_commands_applied_between_frames(self, monitor, touching):
        camera = FakeCamera(frames=2)
        pipeline = FakePipeline(touching)

        monitor.run(camera, pipeline, commands=QueuedCommands({"type": "test_alert"}))

        # one forced alert, then the touch alert falls inside its cooldown
        assert monitor.flash_pulse == 1
        assert camera.reads == 2


class TestMalformedCommands:
    @pytest.mark.parametrize("minutes", ["soon", float("inf"), float("nan"), [5], True])
    def test_invalid_pause_minutes_are_ignored(self, monitor, caplog, minutes):
        monitor.apply_command({"type": "pause", "minutes": minutes})

        assert not monitor.is_paused
        assert monitor.pause_remaining_seconds() == 0
        assert "Ignoring pause with invalid minutes" in caplog.text

    def test_infinite_pause_for_is_indefinite(self, monitor):
        monitor.pause_for(float("inf"), now=0.0)

        assert monitor.is_paused
        assert monitor.pause_remaining_seconds(now=10.0) == 0

    def test_loop_survives_malformed_command(self, monitor, touching):
        camera = FakeCamera(frames=2)
        commands = QueuedCommands(
            {"type": "pause", "minutes": "soon"},
            json.loads('{"type": "pause", "minutes": Infinity}'),
        )

        monitor.run(camera, FakePipeline(touching), commands=commands)

        assert camera.reads == 2
        assert monitor.touch_state == TouchState.TOUCHING


def test_touches_today_rolls_over_at_midnight(monitor, touching):
    monitor.handle_detections(touching(), now=0.0)
    assert monitor.status()["touches_today"] == 1

    # counter left over from an earlier day
    monitor.stats.stats = TouchStats(day=date(2000, 1, 1), count=7)

    assert monitor.status()["touches_today"] == 1
