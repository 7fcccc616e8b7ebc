"""Daily touch counter persisted next to the settings file."""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field, ValidationError

from .config import default_config_dir

logger = logging.getLogger(__name__)


class TouchStats(BaseModel):
    day: date
    count: int = Field(default=0, ge=0)


class TouchStatsStore:
    """Loads, rolls over and persists the touches-today counter."""

    def __init__(self, config_dir: Optional[Union[str, Path]] = None) -> None:
        self._stats_file = (Path(config_dir) if config_dir else default_config_dir()) / "stats.json"
        self.stats: Optional[TouchStats] = None

    @property
    def stats_file(self) -> Path:
        return self._stats_file

    def load(self, now: Optional[datetime] = None) -> TouchStats:
        """Return today's counter; a stored counter from another day starts over at zero."""
        today = (now or datetime.now()).date()
        stored = self._read()

        if stored is not None and stored.day == today:
            self.stats = stored
        else:
            self.stats = TouchStats(day=today)
            self.persist()
        return self.stats

    def current(self, now: Optional[datetime] = None) -> TouchStats:
        """Today's counter, reloading only once the day has changed."""
        today = (now or datetime.now()).date()
        if self.stats is None or self.stats.day != today:
            return self.load(now)
        return self.stats

    def increment(self, now: Optional[datetime] = None) -> int:
        stats = self.load(now)
        stats.count += 1
        self.persist()
        return stats.count

    def persist(self) -> None:
        if self.stats is None:
            return
        self._stats_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self._stats_file, "w") as f:
            json.dump(self.stats.model_dump(mode="json"), f, indent=2)

    def _read(self) -> Optional[TouchStats]:
        if not self._stats_file.exists():
            return None
        try:
            with open(self._stats_file) as f:
                return TouchStats(**json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning(f"Ignoring unreadable stats file {self._stats_file}: {e}")
            return None
