"""Per-generation state of the ongoing-game engine.

Every map is replaced on write rather than mutated in place, so a reaction
watching one map sees a new object exactly when that map changed.
"""

from typing import Any, Dict, Optional

from ...core.enums import ALL_TAG, DataCategory, LoadingState
from ...core.reactive import Observable
from ...models import MatchHistoryRecord, SavedPlayerInfo, Sourced

# Category -> attribute holding its map
_CATEGORY_ATTRS = {
    DataCategory.SUMMONER: "summoner",
    DataCategory.MATCH_HISTORY: "match_history",
    DataCategory.SAVED_INFO: "saved_info",
    DataCategory.RANKED_STATS: "ranked_stats",
    DataCategory.CHAMPION_MASTERY: "champion_mastery",
    DataCategory.ADDITIONAL_GAME: "additional_game",
    DataCategory.GAME_TIMELINE: "game_timeline",
}


class OngoingGameState(Observable):
    """Loaded records keyed by player id (or game id for per-game maps)."""

    def __init__(self) -> None:
        super().__init__()
        self.summoner: Dict[str, Sourced[Dict[str, Any]]] = {}
        self.match_history: Dict[str, MatchHistoryRecord] = {}
        self.saved_info: Dict[str, SavedPlayerInfo] = {}
        self.ranked_stats: Dict[str, Sourced[Dict[str, Any]]] = {}
        self.champion_mastery: Dict[str, Sourced[Dict[int, Dict[str, Any]]]] = {}
        self.additional_game: Dict[int, Sourced[Dict[str, Any]]] = {}
        self.game_timeline: Dict[int, Sourced[Dict[str, Any]]] = {}

        self.match_history_loading_state: Dict[str, LoadingState] = {}
        self.match_history_tag: str = ALL_TAG

        self.inferred_premade_teams: Optional[Dict[str, Any]] = None
        self.player_stats: Optional[Dict[str, Any]] = None

    def get(self, category: DataCategory, key: Any) -> Any:
        return getattr(self, _CATEGORY_ATTRS[category]).get(key)

    def has(self, category: DataCategory, key: Any) -> bool:
        return key in getattr(self, _CATEGORY_ATTRS[category])

    def put(self, category: DataCategory, key: Any, record: Any) -> None:
        """Store ``record`` under ``key`` in the map of ``category``."""
        attr = _CATEGORY_ATTRS[category]
        setattr(self, attr, {**getattr(self, attr), key: record})
        self.notify(category.value)

    def set_loading_state(self, puuid: str, loading_state: LoadingState) -> None:
        if self.match_history_loading_state.get(puuid) is loading_state:
            return
        self.match_history_loading_state = {
            **self.match_history_loading_state,
            puuid: loading_state,
        }
        self.notify("match-history-loading-state")

    def set_match_history_tag(self, tag: str) -> None:
        if tag != self.match_history_tag:
            self.match_history_tag = tag
            self.notify("match-history-tag")

    def set_inferred_premade_teams(self, teams: Optional[Dict[str, Any]]) -> None:
        self.inferred_premade_teams = teams
        self.notify("inferred-premade-teams")

    def set_player_stats(self, stats: Optional[Dict[str, Any]]) -> None:
        self.player_stats = stats
        self.notify("player-stats")

    def clear(self) -> None:
        """Drop everything loaded by the current generation."""
        for attr in _CATEGORY_ATTRS.values():
            setattr(self, attr, {})
        self.match_history_loading_state = {}
        self.inferred_premade_teams = None
        self.player_stats = None
        self.notify("clear")

    def snapshot(self) -> Dict[str, Any]:
        """Everything currently loaded, keyed the way subscribers expect."""
        return {
            "matchHistory": dict(self.match_history),
            "summoner": dict(self.summoner),
            "rankedStats": dict(self.ranked_stats),
            "savedInfo": dict(self.saved_info),
            "championMastery": dict(self.champion_mastery),
            "gameTimeline": dict(self.game_timeline),
            "additionalGames": dict(self.additional_game),
        }
