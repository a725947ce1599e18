"""Protocol definitions for the collaborators the engine is built with."""

from typing import Protocol, Any, Callable, Dict, List, Optional
from abc import abstractmethod

from .core.enums import DataCategory
from .models import (
    EncounteredGameRecord,
    Game,
    GameTimeline,
    OngoingGameSettings,
    SavedPlayerInfo,
    SavedPlayerQuery,
    SavedPlayerRecord,
)


class LeagueClientApi(Protocol):
    """Request/response API of the locally running client.

    Raises ``NotFoundError`` for absent resources and other
    ``ClientAPIError`` subclasses for failures.
    """

    @abstractmethod
    async def get_summoner_by_puuid(self, puuid: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def get_match_history(self, puuid: str, beg_index: int, end_index: int) -> List[Game]:
        """Lightweight game entries, newest first, indices inclusive."""
        ...

    @abstractmethod
    async def get_game(self, game_id: int) -> Game:
        ...

    @abstractmethod
    async def get_timeline(self, game_id: int) -> GameTimeline:
        ...

    @abstractmethod
    async def get_ranked_stats(self, puuid: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def get_champion_mastery(self, puuid: str) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def chat_send(self, conversation_id: str, message: str, message_type: str = "chat") -> Any:
        ...


class RemoteMatchApi(Protocol):
    """Remote aggregation API returning already-detailed games."""

    @abstractmethod
    def subscribe(self, handler: Callable[[str], None]) -> Callable[[], None]:
        """Be told when token readiness or server support changes."""
        ...

    @property
    @abstractmethod
    def is_token_ready(self) -> bool:
        ...

    @abstractmethod
    def supports(self, category: DataCategory) -> bool:
        """Whether the current server offers ``category`` remotely."""
        ...

    @abstractmethod
    async def get_match_history(
        self, puuid: str, start: int, count: int, tag: Optional[str] = None
    ) -> List[Game]:
        ...

    @abstractmethod
    async def get_game_summary(self, game_id: int) -> Game:
        ...

    @abstractmethod
    async def get_timeline(self, game_id: int) -> GameTimeline:
        ...


class SettingsStore(Protocol):
    """Persistence for the engine's user-facing settings."""

    @abstractmethod
    async def load(self) -> Optional[OngoingGameSettings]:
        ...

    @abstractmethod
    async def save(self, settings: OngoingGameSettings) -> None:
        ...


class StateBroadcaster(Protocol):
    """Pushes state events to whoever renders them."""

    @abstractmethod
    def send_event(self, event: str, *args: Any) -> None:
        ...


class SavedPlayerStore(Protocol):
    """Player-history persistence."""

    @abstractmethod
    async def save_encountered_game(self, record: EncounteredGameRecord) -> None:
        ...

    @abstractmethod
    async def save_saved_player(self, record: SavedPlayerRecord) -> None:
        ...

    @abstractmethod
    async def query_saved_player_with_games(self, query: SavedPlayerQuery) -> Optional[SavedPlayerInfo]:
        ...

