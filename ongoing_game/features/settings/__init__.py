"""User-facing engine settings."""

from .service import InMemorySettingsStore, SettingsService, MAX_MATCH_HISTORY_LOAD_COUNT

__all__ = ["InMemorySettingsStore", "SettingsService", "MAX_MATCH_HISTORY_LOAD_COUNT"]
