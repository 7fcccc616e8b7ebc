"""Monitoring session: feeds snapshots to the classifier and reacts to its output."""

import logging
import math
import threading
import time
from typing import Any, Callable, Dict, Optional

import cv2

from .alerts import AlertCoordinator
from .classifier import TouchClassifier, TouchClassifierOutput, TouchState
from .config import AppConfig
from .detections import VisionDetections
from .stats import TouchStatsStore

logger = logging.getLogger(__name__)

StatusListener = Callable[[Dict[str, Any]], None]

# Weight of the previous value when smoothing the measured frame rate.
FPS_SMOOTHING = 0.8


class TouchMonitor:
    """Single consumer of detection snapshots for one monitoring session.

    Everything here runs on the monitoring thread; commands from other
    threads arrive through ``apply_command`` between frames.
    """

    def __init__(
        self,
        config: AppConfig,
        classifier: Optional[TouchClassifier] = None,
        alerts: Optional[AlertCoordinator] = None,
        stats: Optional[TouchStatsStore] = None,
        listener: Optional[StatusListener] = None,
    ):
        self.config = config
        self.classifier = classifier or TouchClassifier(config.classifier)
        self.alerts = alerts or AlertCoordinator(config.alerts)
        self.stats = stats or TouchStatsStore()
        self.listener = listener

        self.touch_state = TouchState.NO_TOUCH
        self.status_text = "Not started"
        self.flash_pulse = 0
        self.measured_fps = 0.0
        self.last_output: Optional[TouchClassifierOutput] = None
        self.is_paused = False
        self._last_frame_time: Optional[float] = None
        self._pause_until: Optional[float] = None

    def handle_detections(self, detections: VisionDetections, now: Optional[float] = None) -> TouchClassifierOutput:
        """Classify one snapshot and run alerting, stats and status updates."""
        self._update_fps(detections.timestamp)

        previous_state = self.touch_state
        output = self.classifier.update(detections)
        self.last_output = output
        self.touch_state = output.state

        self.status_text = self._format_status(detections, output)

        if output.state == TouchState.TOUCHING:
            if previous_state != TouchState.TOUCHING:
                count = self.stats.increment()
                logger.info(f"Face touch detected ({count} today)")
            if self.alerts.trigger_if_allowed(now=now):
                self.flash_pulse += 1
        elif output.state != previous_state:
            logger.info(f"Touch state: {output.state.label}")

        self._publish(detections.timestamp)
        return output

    def _update_fps(self, timestamp: float) -> None:
        if self._last_frame_time is not None:
            dt = timestamp - self._last_frame_time
            if dt > 0:
                fps = 1.0 / dt
                if self.measured_fps == 0:
                    self.measured_fps = fps
                else:
                    self.measured_fps = self.measured_fps * FPS_SMOOTHING + fps * (1 - FPS_SMOOTHING)
        self._last_frame_time = timestamp

    @staticmethod
    def _format_status(detections: VisionDetections, output: TouchClassifierOutput) -> str:
        text = f"Faces: {len(detections.faces)}  Hands: {len(detections.hands)}  •  {output.state.label}"
        if output.min_distance_to_face_normalized is not None:
            text += f"  •  d={output.min_distance_to_face_normalized:.3f}"
        return text

    def status(self) -> Dict[str, Any]:
        data: Dict[str, Any] = self.last_output.to_dict() if self.last_output else {"state": self.touch_state.name.lower()}
        data.update(
            {
                "status_text": self.status_text,
                "measured_fps": round(self.measured_fps, 2),
                "paused": self.is_paused,
                "pause_remaining_seconds": self.pause_remaining_seconds(),
                "flash_pulse": self.flash_pulse,
                "touches_today": self.stats.current().count,
            }
        )
        return data

    def _publish(self, timestamp: Optional[float] = None) -> None:
        if not self.listener:
            return
        data = self.status()
        data["timestamp"] = timestamp if timestamp is not None else time.time()
        try:
            self.listener(data)
        except Exception as e:
            logger.error(f"Status listener failed: {e}")

    # Pause handling

    def pause(self) -> None:
        if self.is_paused:
            return
        self.is_paused = True
        self._pause_until = None
        self._enter_paused_state()

    def pause_for(self, minutes: float, now: Optional[float] = None) -> None:
        """Pause for a number of minutes; non-positive or infinite means until resumed."""
        seconds = max(0.0, minutes) * 60
        if seconds <= 0 or not math.isfinite(seconds):
            self.pause()
            return

        now = time.monotonic() if now is None else now
        self.is_paused = True
        self._pause_until = now + seconds
        self._enter_paused_state()
        logger.info(f"Paused for {minutes:g} minutes")

    def _enter_paused_state(self) -> None:
        self.classifier.reset()
        self.touch_state = TouchState.NO_TOUCH
        self.last_output = None
        self._last_frame_time = None
        self.measured_fps = 0.0
        self.status_text = "Paused"
        logger.info("Monitoring paused")
        self._publish()

    def resume(self) -> None:
        if not self.is_paused:
            return
        self.is_paused = False
        self._pause_until = None
        self.classifier.reset()
        self.status_text = "Vision: starting…"
        logger.info("Monitoring resumed")
        self._publish()

    def toggle_pause(self) -> None:
        if self.is_paused:
            self.resume()
        else:
            self.pause()

    def pause_remaining_seconds(self, now: Optional[float] = None) -> int:
        if not self.is_paused or self._pause_until is None:
            return 0
        now = time.monotonic() if now is None else now
        return max(0, math.ceil(self._pause_until - now))

    def tick(self, now: Optional[float] = None) -> None:
        """Resume once a timed pause has run out."""
        if self.is_paused and self._pause_until is not None:
            now = time.monotonic() if now is None else now
            if now >= self._pause_until:
                self.resume()

    def test_alert(self) -> bool:
        triggered = self.alerts.trigger_if_allowed(ignore_cooldown=True)
        if triggered:
            self.flash_pulse += 1
        return triggered

    def apply_command(self, command: Dict[str, Any]) -> None:
        """Apply a control command received from a status client."""
        kind = command.get("type")
        if kind == "pause":
            minutes = command.get("minutes")
            if minutes is None:
                self.pause()
            elif isinstance(minutes, bool) or not isinstance(minutes, (int, float)) or not math.isfinite(minutes):
                logger.warning(f"Ignoring pause with invalid minutes: {minutes!r}")
            else:
                self.pause_for(float(minutes))
        elif kind == "resume":
            self.resume()
        elif kind == "reset":
            self.classifier.reset()
            self.touch_state = TouchState.NO_TOUCH
            logger.info("Classifier reset")
        elif kind == "test_alert":
            self.test_alert()
        else:
            logger.warning(f"Unknown command: {kind}")

    def run(self, camera, pipeline, commands=None, stop_event: Optional[threading.Event] = None) -> None:
        """Capture/classify loop; returns when the camera fails or ``stop_event`` is set.

        ``commands`` is anything with a non-blocking ``get_command()``.
        """
        stop_event = stop_event or threading.Event()
        self.status_text = "Vision: starting…"

        try:
            while not stop_event.is_set():
                if commands is not None:
                    command = commands.get_command()
                    while command is not None:
                        self.apply_command(command)
                        command = commands.get_command()

                self.tick()
                if self.is_paused:
                    time.sleep(0.1)
                    continue

                ret, frame = camera.read()
                if not ret:
                    logger.error("Could not read frame from camera")
                    break

                if self.config.vision.mirror_video:
                    frame = cv2.flip(frame, 1)

                detections = pipeline.process_frame(frame)
                if detections is None:
                    time.sleep(0.005)
                    continue

                self.handle_detections(detections)

        except KeyboardInterrupt:
            logger.info("Monitoring interrupted by keyboard")
        finally:
            self.status_text = "Stopped"
