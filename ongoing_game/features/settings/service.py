"""Settings service: validated, persisted, observable engine settings."""

from typing import Any, Dict, Optional
import structlog

from ...core.enums import TagPreference
from ...core.reactive import Observable
from ...models import OngoingGameSettings
from ...protocols import SettingsStore

logger = structlog.get_logger(__name__)

MAX_MATCH_HISTORY_LOAD_COUNT = 200


class InMemorySettingsStore:
    """Settings store that keeps the last saved value in memory."""

    def __init__(self, initial: Optional[OngoingGameSettings] = None):
        self._settings = initial

    async def load(self) -> Optional[OngoingGameSettings]:
        return self._settings

    async def save(self, settings: OngoingGameSettings) -> None:
        self._settings = settings


class SettingsService(Observable):
    """Owns the current ``OngoingGameSettings``.

    Every change goes through ``set`` so that per-field rules and the
    ``game_timeline_load_count <= match_history_load_count`` clamp are applied
    no matter which field changed.
    """

    def __init__(self, store: SettingsStore):
        super().__init__()
        self._store = store
        self._settings = OngoingGameSettings()

    @property
    def settings(self) -> OngoingGameSettings:
        return self._settings

    async def load(self) -> OngoingGameSettings:
        """Apply persisted settings, keeping defaults when none are stored."""
        stored = await self._store.load()
        if stored is not None:
            self._settings = stored
            self.notify("loaded")
        logger.info("Settings loaded", **self._settings.model_dump(mode="json"))
        return self._settings

    async def set(self, key: str, value: Any) -> bool:
        """
        Change one setting.

        :param key: Field name of ``OngoingGameSettings``
        :param value: New value
        :returns: Whether anything changed
        :raises ValueError: If ``key`` is not a setting
        """
        if key not in OngoingGameSettings.model_fields:
            raise ValueError(f"Unknown setting: {key}")

        changes = self._resolve_changes(key, value)
        if not changes:
            logger.warning("Rejected setting value", key=key, value=value)
            return False

        updated = OngoingGameSettings.model_validate({**self._settings.model_dump(), **changes})
        if updated == self._settings:
            return False

        self._settings = updated
        await self._store.save(updated)
        logger.info("Setting changed", key=key, changes=changes)
        self.notify(key)
        return True

    def _resolve_changes(self, key: str, value: Any) -> Dict[str, Any]:
        current = self._settings

        if key == "concurrency":
            if isinstance(value, int) and value >= 1:
                return {"concurrency": value}
            return {}

        if key == "premade_team_threshold":
            if isinstance(value, int) and value >= 2:
                return {"premade_team_threshold": value}
            return {}

        if key == "match_history_load_count":
            if not isinstance(value, int) or not 1 <= value <= MAX_MATCH_HISTORY_LOAD_COUNT:
                return {}
            return {
                "match_history_load_count": value,
                "game_timeline_load_count": min(value, current.game_timeline_load_count),
            }

        if key == "game_timeline_load_count":
            if isinstance(value, int) and 0 <= value <= current.match_history_load_count:
                return {"game_timeline_load_count": value}
            return {"game_timeline_load_count": current.match_history_load_count}

        if key == "tag_preference":
            try:
                return {"tag_preference": TagPreference(value)}
            except ValueError:
                return {}

        # enabled, use_remote_api
        return {key: bool(value)}
