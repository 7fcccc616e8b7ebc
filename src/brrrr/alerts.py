"""Cross-platform alert delivery with a shared cooldown."""

import logging
import platform
import subprocess
import sys
import time
from pathlib import Path
from typing import List, Optional

from .config import AlertConfig, AlertMode
from .geometry import clamp

logger = logging.getLogger(__name__)

__all__ = ["AlertCoordinator", "AlertMode", "DesktopNotifier", "SoundPlayer"]


class DesktopNotifier:
    """Shows desktop notifications with automatic method detection."""

    def __init__(self) -> None:
        self.system = platform.system()
        self._working_method = self._detect_notification_method()

    @property
    def method(self) -> Optional[str]:
        return self._working_method

    def _detect_notification_method(self) -> Optional[str]:
        """Detect the best available notification method."""
        if self.system == "Darwin":
            try:
                subprocess.run(["osascript", "-e", ""], capture_output=True, timeout=1)
                return "osascript"
            except (OSError, subprocess.SubprocessError):
                pass

        elif self.system == "Linux":
            try:
                subprocess.run(["notify-send", "--version"], capture_output=True, timeout=1)
                return "notify-send"
            except (OSError, subprocess.SubprocessError):
                pass

        try:
            from plyer import notification  # noqa: F401

            return "plyer"
        except ImportError:
            return None

    def notify(self, title: str, message: str, timeout_seconds: int = 3) -> bool:
        """Send a notification; falls back to the log when nothing is available."""
        if not self._working_method:
            logger.warning(f"🔔 {title}: {message}")
            return True

        try:
            if self._working_method == "osascript":
                script = f'display notification "{message}" with title "{title}"'
                result = subprocess.run(["osascript", "-e", script], capture_output=True, text=True, timeout=5)
                if result.returncode != 0 and "not allowed" in result.stderr:
                    logger.warning("Notification permission required. Please grant permission in System Settings.")

            elif self._working_method == "notify-send":
                subprocess.run(
                    ["notify-send", "--expire-time", str(timeout_seconds * 1000), title, message],
                    capture_output=True,
                    timeout=5,
                )

            elif self._working_method == "plyer":
                from plyer import notification

                notification.notify(title=title, message=message, timeout=timeout_seconds)

            return True

        except Exception as e:
            logger.error(f"Notification failed: {e}")
            return False


class SoundPlayer:
    """Plays the configured sound file, or the terminal bell when none is set."""

    def __init__(self) -> None:
        self.system = platform.system()
        self._processes: List[subprocess.Popen] = []

    def play(self, sound_path: str = "", volume: float = 1.0) -> bool:
        volume = clamp(volume, 0.0, 1.0)
        path = Path(sound_path).expanduser() if sound_path.strip() else None

        if path is None or not path.is_file():
            if path is not None:
                logger.warning(f"Alert sound not found: {path}")
            return self._beep()

        self._reap()
        try:
            if self.system == "Darwin":
                self._processes.append(subprocess.Popen(["afplay", "-v", f"{volume:.2f}", str(path)]))
            elif self.system == "Linux":
                self._processes.append(subprocess.Popen(["paplay", f"--volume={int(volume * 65536)}", str(path)]))
            elif self.system == "Windows":
                import winsound

                winsound.PlaySound(str(path), winsound.SND_FILENAME | winsound.SND_ASYNC)
            else:
                return self._beep()
            return True
        except (OSError, RuntimeError) as e:
            logger.error(f"Could not play alert sound {path}: {e}")
            return self._beep()

    def _reap(self) -> None:
        """Drop player processes that have exited, collecting their status."""
        self._processes = [p for p in self._processes if p.poll() is None]

    @staticmethod
    def _beep() -> bool:
        sys.stdout.write("\a")
        sys.stdout.flush()
        return True


class AlertCoordinator:
    """Fires sound and screen alerts together, at most once per cooldown."""

    def __init__(
        self,
        config: Optional[AlertConfig] = None,
        notifier: Optional[DesktopNotifier] = None,
        sound_player: Optional[SoundPlayer] = None,
    ):
        self.config = config or AlertConfig()
        self.notifier = notifier or DesktopNotifier()
        self.sound_player = sound_player or SoundPlayer()
        self._last_trigger_time: Optional[float] = None

    def reset_cooldown(self) -> None:
        self._last_trigger_time = None

    def is_in_cooldown(self, now: Optional[float] = None) -> bool:
        if self._last_trigger_time is None:
            return False
        now = time.monotonic() if now is None else now
        return (now - self._last_trigger_time) < max(0.0, self.config.cooldown_seconds)

    def cooldown_remaining(self, now: Optional[float] = None) -> float:
        if self._last_trigger_time is None:
            return 0.0
        now = time.monotonic() if now is None else now
        return max(0.0, self.config.cooldown_seconds - (now - self._last_trigger_time))

    def trigger_if_allowed(self, ignore_cooldown: bool = False, now: Optional[float] = None) -> bool:
        """Returns ``True`` if an alert was triggered."""
        now = time.monotonic() if now is None else now
        if not ignore_cooldown and self.is_in_cooldown(now):
            return False
        self._last_trigger_time = now

        mode = self.config.mode
        # Sound first, it lags more than the notification.
        if mode.enables_sound:
            self.sound_player.play(self.config.sound_path, self.config.sound_volume)

        if mode.enables_screen:
            self.notifier.notify(self.config.title, self.config.message, self.config.notification_timeout_seconds)

        logger.info(f"Alert triggered ({mode.display_name})")
        return True
