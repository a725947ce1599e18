"""
Ongoing-game data engine.

Tracks the live session of the local client and, for every participant,
loads match history, profile, ranked, mastery and encounter data from the
local client API or the remote aggregation API.
"""

from .bootstrap import ongoing_game_session
from .features.session import LeagueClientData, OngoingGameState
from .features.session.service import OngoingGameService
from .features.settings import InMemorySettingsStore, SettingsService

__version__ = "0.1.0"

__all__ = [
    "ongoing_game_session",
    "LeagueClientData",
    "OngoingGameService",
    "OngoingGameState",
    "InMemorySettingsStore",
    "SettingsService",
]
