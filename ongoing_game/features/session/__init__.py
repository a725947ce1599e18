"""
Session tracking: the client mirror and the per-generation state.

The loaders and the orchestrator live in ``.loaders`` and ``.service``; they
depend on the analysis and reaction packages, which in turn build on the
modules exported here.
"""

from .client_data import END_OF_GAME_PHASES, IN_GAME_PHASES, LeagueClientData
from .state import OngoingGameState

__all__ = ["END_OF_GAME_PHASES", "IN_GAME_PHASES", "LeagueClientData", "OngoingGameState"]
