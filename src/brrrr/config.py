"""Configuration management for Brrrr."""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from platformdirs import user_config_dir
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

APP_NAME = "brrrr"


class ClassifierConfig(BaseModel):
    """Touch classifier tunables. Distances are normalized by face size."""

    model_config = ConfigDict(frozen=True)

    # EMA weight for the newest sample, clamped to [0, 1] when applied.
    smoothing_alpha: float = 0.25
    maybe_distance_normalized: float = Field(default=0.16, ge=0.0)
    touch_distance_normalized: float = Field(default=0.09, ge=0.0)
    # Fingertip inside the face box is partial evidence, not a definite touch.
    inside_face_raw_confidence: float = Field(default=0.70, ge=0.0, le=1.0)
    maybe_enter_threshold: float = Field(default=0.30, ge=0.0, le=1.0)
    maybe_exit_threshold: float = Field(default=0.18, ge=0.0, le=1.0)
    touch_enter_threshold: float = Field(default=0.78, ge=0.0, le=1.0)
    touch_exit_threshold: float = Field(default=0.58, ge=0.0, le=1.0)
    face_box_margin_normalized: float = Field(default=0.06, ge=0.0)


class VisionConfig(BaseModel):
    """Landmark extraction settings."""

    max_fps: float = Field(default=12.0, ge=0.0, le=120.0)
    min_hand_confidence: float = Field(default=0.30, ge=0.0, le=1.0)
    min_detection_confidence: float = Field(default=0.5, ge=0.1, le=1.0)
    max_num_hands: int = Field(default=2, ge=1, le=4)
    mirror_video: bool = True


class CameraConfig(BaseModel):
    """Camera settings."""

    device_id: Optional[int] = Field(default=None, ge=0)
    width: int = Field(default=1280, ge=320, le=3840)
    height: int = Field(default=720, ge=240, le=2160)


class AlertMode(str, Enum):
    SOUND_AND_SCREEN = "sound_and_screen"
    SOUND_ONLY = "sound_only"
    SCREEN_ONLY = "screen_only"

    @property
    def display_name(self) -> str:
        return {
            AlertMode.SOUND_AND_SCREEN: "Sound & Screen",
            AlertMode.SOUND_ONLY: "Sound only",
            AlertMode.SCREEN_ONLY: "Screen only",
        }[self]

    @property
    def enables_sound(self) -> bool:
        return self in (AlertMode.SOUND_AND_SCREEN, AlertMode.SOUND_ONLY)

    @property
    def enables_screen(self) -> bool:
        return self in (AlertMode.SOUND_AND_SCREEN, AlertMode.SCREEN_ONLY)


class AlertConfig(BaseModel):
    """Alert delivery settings. Sound and screen share one cooldown."""

    # Sound only by default, on-screen alerts can be distracting.
    mode: AlertMode = AlertMode.SOUND_ONLY
    cooldown_seconds: float = Field(default=3.0, ge=0.0, le=600.0)
    sound_path: str = ""
    sound_volume: float = Field(default=1.0, ge=0.0, le=1.0)
    title: str = "Brrrr"
    message: str = "Hands off your face"
    notification_timeout_seconds: int = Field(default=3, ge=1, le=30)


class ServerConfig(BaseModel):
    """Status websocket settings."""

    enabled: bool = True
    host: str = "localhost"
    port: int = Field(default=8765, ge=1024, le=65535)


class AppConfig(BaseModel):
    """Main configuration."""

    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    vision: VisionConfig = Field(default_factory=VisionConfig)
    camera: CameraConfig = Field(default_factory=CameraConfig)
    alerts: AlertConfig = Field(default_factory=AlertConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


def default_config_dir() -> Path:
    return Path(user_config_dir(APP_NAME))


class ConfigManager:
    """Manages application configuration."""

    def __init__(self, config_dir: Optional[Union[str, Path]] = None) -> None:
        self._config_dir = Path(config_dir) if config_dir else default_config_dir()
        self._config_file = self._config_dir / "settings.json"
        self._config: Optional[AppConfig] = None

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    @property
    def config_file(self) -> Path:
        return self._config_file

    def load_config(self) -> AppConfig:
        """Load configuration from file or create default."""
        if self._config:
            return self._config

        if self._config_file.exists():
            try:
                with open(self._config_file) as f:
                    self._config = AppConfig(**json.load(f))
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Ignoring unreadable settings file {self._config_file}: {e}")
                self._config = AppConfig()
        else:
            self._config = AppConfig()

        return self._config

    def save_config(self, config: Optional[AppConfig] = None) -> None:
        """Save configuration to file."""
        if not config:
            config = self._config
        if not config:
            return

        self._config_dir.mkdir(parents=True, exist_ok=True)
        with open(self._config_file, "w") as f:
            json.dump(config.model_dump(mode="json"), f, indent=2)
        self._config = config
        logger.debug(f"Settings saved to {self._config_file}")

    def update_config(self, **kwargs: Any) -> AppConfig:
        """Update specific configuration values.

        Section dicts are merged into the existing section; raises
        ``pydantic.ValidationError`` when the result is invalid.
        """
        config = self.load_config()
        config_dict = config.model_dump()

        for key, value in kwargs.items():
            if key in config_dict and isinstance(value, dict):
                config_dict[key].update(value)
            else:
                config_dict[key] = value

        updated_config = AppConfig(**config_dict)
        self.save_config(updated_config)
        return updated_config

    def reset_config(self) -> AppConfig:
        """Restore and persist defaults."""
        config = AppConfig()
        self.save_config(config)
        return config


_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> AppConfig:
    """Get current configuration."""
    return get_config_manager().load_config()
