"""
Backend adapters for the ongoing-game engine.

Two alternative backends serve the same data: the API exposed by the locally
running client, and the remote aggregation API which returns already-detailed
games.
"""

from .base import BaseHttpClient
from .lcu import LeagueClientHttpApi
from .sgp import SgpHttpApi, to_lcu_game, to_lcu_timeline

__all__ = [
    "BaseHttpClient",
    "LeagueClientHttpApi",
    "SgpHttpApi",
    "to_lcu_game",
    "to_lcu_timeline",
]
