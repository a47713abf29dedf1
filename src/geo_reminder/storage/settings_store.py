"""JSON file persistence of the reminder configuration."""

import logging
import os
import tempfile
from pathlib import Path

import pydantic

from geo_reminder.models import FavoriteLocation, SearchResult, SessionConfig

logger = logging.getLogger(__name__)

MAX_HISTORY = 10


class JsonSettingsStore:
    """Key-value store of one ``SessionConfig`` in a JSON file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> SessionConfig | None:
        """Saved configuration, or None if absent or unreadable."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Failed to read settings from {self.path}: {e}")
            return None

        try:
            return SessionConfig.model_validate_json(raw)
        except pydantic.ValidationError as e:
            logger.warning(f"Ignoring corrupt settings file {self.path}: {e.error_count()} error(s)")
            return None

    def save(self, config: SessionConfig) -> None:
        """Write ``config`` atomically: readers see the old or the new file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".settings-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(config.model_dump_json(indent=2))
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _load_or_default(self) -> SessionConfig:
        return self.load() or SessionConfig()

    def add_favorite(self, favorite: FavoriteLocation) -> SessionConfig:
        """Insert or replace (by id) a favourite."""
        config = self._load_or_default()
        favorites = [f for f in config.favorites if f.id != favorite.id]
        favorites.append(favorite)
        config = config.model_copy(update={"favorites": favorites})
        self.save(config)
        return config

    def remove_favorite(self, favorite_id: str) -> SessionConfig:
        config = self._load_or_default()
        config = config.model_copy(
            update={"favorites": [f for f in config.favorites if f.id != favorite_id]}
        )
        self.save(config)
        return config

    def record_search(self, result: SearchResult) -> SessionConfig:
        """Put ``result`` first in the history, most recent first, no duplicates."""
        config = self._load_or_default()
        history = [result] + [
            h for h in config.history if h.display_name != result.display_name
        ]
        config = config.model_copy(update={"history": history[:MAX_HISTORY]})
        self.save(config)
        return config
