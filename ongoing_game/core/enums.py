"""Shared enums used across features.

This module provides a single source of truth for enums used in both the
engine state and the models broadcast to subscribers.
"""

import math
from enum import Enum


class DataSource(str, Enum):
    """Backend a stored record was loaded from."""

    LCU = "lcu"  # Local client API
    SGP = "sgp"  # Remote aggregation API


class LoadingState(str, Enum):
    """Match-history loading lifecycle per player."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ABORTED = "aborted"
    ERROR = "error"


class QueryPhase(str, Enum):
    """Phase of the tracked session."""

    UNAVAILABLE = "unavailable"
    CHAMP_SELECT = "champ-select"
    IN_GAME = "in-game"


class TagPreference(str, Enum):
    """Which queue tag match history is filtered by."""

    ALL = "all"
    CURRENT = "current"


class DataCategory(str, Enum):
    """Entity categories, used for events, logs and remote support lookups."""

    SUMMONER = "summoner"
    MATCH_HISTORY = "match-history"
    SAVED_INFO = "saved-info"
    RANKED_STATS = "ranked-stats"
    CHAMPION_MASTERY = "champion-mastery"
    ADDITIONAL_GAME = "additional-game"
    GAME_TIMELINE = "game-timeline"

    @property
    def loaded_event(self) -> str:
        """Name of the broadcast event emitted when a record is committed."""
        return f"{self.value}-loaded"


class LoadingPriority:
    """Queue priorities, higher runs first."""

    ADDITIONAL_SUMMONER = -1
    SUMMONER = 6
    MATCH_HISTORY = 5
    SAVED_INFO = 4
    RANKED_STATS = 3
    CHAMPION_MASTERY = 2
    ADDITIONAL_GAME = 2
    GAME_TIMELINE = 1
    # Per-game detail lookups on the local path jump every other queued item
    GAME_DETAIL = math.inf


# Queues known to return results on the remote API; anything else is queried as "all"
SAFE_TAGS = frozenset(
    {
        "q_420",
        "q_430",
        "q_440",
        "q_450",  # ARAM
        "q_480",  # Swiftplay
        "q_490",
        "q_900",  # URF
        "q_1400",  # Ultimate Spellbook
        "q_1700",
        "q_1900",
        "q_2300",  # Brawl
    }
)

ALL_TAG = "all"

EMPTY_PUUID = "00000000-0000-0000-0000-000000000000"
