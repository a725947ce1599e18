"""Pydantic models for session data, loaded records and settings.

Game, timeline, summoner, ranked and mastery payloads are kept as the raw
dictionaries returned by the backends; only the envelopes the engine reasons
about (stage, sources, load descriptors, saved-player data) are typed.
"""

from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .core.enums import ALL_TAG, SAFE_TAGS, DataSource, QueryPhase, TagPreference

T = TypeVar("T")

Game = Dict[str, Any]
GameTimeline = Dict[str, Any]


class GameInfo(BaseModel):
    """Identity of the game being tracked."""

    game_id: int = Field(..., alias="gameId")
    queue_id: int = Field(..., alias="queueId")
    queue_type: str = Field(default="", alias="queueType")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def queue_tag(self) -> str:
        return f"q_{self.queue_id}"


class QueryStage(BaseModel):
    """Current phase of the tracked session."""

    phase: QueryPhase
    game_info: Optional[GameInfo] = Field(default=None, alias="gameInfo")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def unavailable(cls) -> "QueryStage":
        return cls(phase=QueryPhase.UNAVAILABLE)

    @classmethod
    def champ_select(cls, game_info: Optional[GameInfo] = None) -> "QueryStage":
        return cls(phase=QueryPhase.CHAMP_SELECT, game_info=game_info)

    @classmethod
    def in_game(cls, game_info: GameInfo) -> "QueryStage":
        return cls(phase=QueryPhase.IN_GAME, game_info=game_info)

    @property
    def is_active(self) -> bool:
        return self.phase is not QueryPhase.UNAVAILABLE


class Sourced(BaseModel, Generic[T]):
    """A payload stamped with the backend it came from.

    Build with ``Sourced.lcu(...)`` or ``Sourced.sgp(...)``; instances are
    immutable so they can be shared between the state maps and the caches.
    """

    source: DataSource
    data: T

    model_config = ConfigDict(frozen=True)

    @classmethod
    def lcu(cls, data: T) -> "Sourced[T]":
        return cls(source=DataSource.LCU, data=data)

    @classmethod
    def sgp(cls, data: T) -> "Sourced[T]":
        return cls(source=DataSource.SGP, data=data)


class MatchHistoryRecord(BaseModel):
    """Loaded match history for one player plus the query that produced it."""

    games: List[Game] = Field(..., alias="data")
    target_count: int = Field(..., alias="targetCount")
    source: DataSource
    tag: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def matches_query(self, count: int, source: DataSource, tag: Optional[str]) -> bool:
        """Whether a new load with these parameters would return the same thing.

        The tag only matters for remote loads; the local API ignores it.
        """
        if self.target_count != count or self.source != source:
            return False
        if source is DataSource.SGP:
            return self.tag == tag
        return True


class PlayerTag(BaseModel):
    """A note one of the local user's accounts left on a player."""

    puuid: str = ""
    self_puuid: str = Field(default="", alias="selfPuuid")
    tag: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class EncounteredGame(BaseModel):
    """A past game in which the local user met a player."""

    game_id: int = Field(..., alias="gameId")
    puuid: str = ""
    self_puuid: str = Field(default="", alias="selfPuuid")
    queue_type: Optional[str] = Field(default=None, alias="queueType")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class EncounteredGamesPage(BaseModel):
    data: List[EncounteredGame] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = Field(default=40, alias="pageSize")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class SavedPlayerInfo(BaseModel):
    """Stored knowledge about a player, as returned by the player-history store."""

    puuid: str
    self_puuid: str = Field(default="", alias="selfPuuid")
    tag: Optional[str] = None
    tags: List[PlayerTag] = Field(default_factory=list)
    encountered_games: EncounteredGamesPage = Field(
        default_factory=EncounteredGamesPage, alias="encounteredGames"
    )

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class SavedPlayerQuery(BaseModel):
    puuid: str
    self_puuid: str = Field(..., alias="selfPuuid")
    region: str
    rso_platform_id: str = Field(..., alias="rsoPlatformId")

    model_config = ConfigDict(populate_by_name=True)


class EncounteredGameRecord(BaseModel):
    """Row persisted after a game for every other participant."""

    game_id: int = Field(..., alias="gameId")
    puuid: str
    self_puuid: str = Field(..., alias="selfPuuid")
    region: str
    rso_platform_id: str = Field(..., alias="rsoPlatformId")
    queue_type: str = Field(default="", alias="queueType")

    model_config = ConfigDict(populate_by_name=True)


class SavedPlayerRecord(BaseModel):
    """Upsert payload marking a player as encountered."""

    puuid: str
    self_puuid: str = Field(..., alias="selfPuuid")
    region: str
    rso_platform_id: str = Field(..., alias="rsoPlatformId")
    encountered: bool = True

    model_config = ConfigDict(populate_by_name=True)


class OngoingGameSettings(BaseModel):
    """User-facing settings of the engine."""

    concurrency: int = Field(default=10, ge=1)
    enabled: bool = True
    match_history_load_count: int = Field(default=20, ge=1, le=200)
    premade_team_threshold: int = Field(default=3, ge=2)
    use_remote_api: bool = True
    tag_preference: TagPreference = TagPreference.CURRENT
    game_timeline_load_count: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_timeline_count(self) -> "OngoingGameSettings":
        if self.game_timeline_load_count > self.match_history_load_count:
            raise ValueError(
                "game_timeline_load_count must not exceed match_history_load_count"
            )
        return self


class RemoteServerSupport(BaseModel):
    """Per-server feature flags of the remote aggregation API."""

    match_history: bool = Field(default=False, alias="matchHistory")
    common: bool = False

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class AuthInfo(BaseModel):
    region: str
    rso_platform_id: str = Field(..., alias="rsoPlatformId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SessionPlayer(BaseModel):
    puuid: str = ""

    model_config = ConfigDict(extra="allow")


class ChampSelectSession(BaseModel):
    my_team: List[SessionPlayer] = Field(default_factory=list, alias="myTeam")
    their_team: List[SessionPlayer] = Field(default_factory=list, alias="theirTeam")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class GameflowQueue(BaseModel):
    id: int = 0
    type: str = ""
    game_mode: str = Field(default="", alias="gameMode")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class GameflowGameData(BaseModel):
    game_id: int = Field(default=0, alias="gameId")
    queue: GameflowQueue = Field(default_factory=GameflowQueue)
    team_one: List[SessionPlayer] = Field(default_factory=list, alias="teamOne")
    team_two: List[SessionPlayer] = Field(default_factory=list, alias="teamTwo")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class GameflowSession(BaseModel):
    phase: str = "None"
    game_data: GameflowGameData = Field(default_factory=GameflowGameData, alias="gameData")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @property
    def game_info(self) -> Optional[GameInfo]:
        if not self.game_data.game_id and not self.game_data.queue.id:
            return None
        return GameInfo(
            game_id=self.game_data.game_id,
            queue_id=self.game_data.queue.id,
            queue_type=self.game_data.queue.type,
        )


def normalize_tag(tag: Optional[str], safe_tags: "frozenset[str]" = SAFE_TAGS) -> str:
    """Map any tag the remote API is not known to support onto "all"."""
    if tag and tag in safe_tags:
        return tag
    return ALL_TAG
