"""
Shared fixtures for the ongoing-game tests.

Backends are AsyncMock-based fakes; games are built with ``make_game`` in the
local client's layout.
"""

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from ongoing_game.core.config import AppConfig
from ongoing_game.core.enums import DataCategory
from ongoing_game.core.reactive import Observable
from ongoing_game.features.session import LeagueClientData
from ongoing_game.features.session.service import OngoingGameService
from ongoing_game.features.settings import InMemorySettingsStore, SettingsService
from ongoing_game.models import (
    AuthInfo,
    ChampSelectSession,
    GameflowSession,
    OngoingGameSettings,
)


def make_game(
    game_id: int,
    sides: Dict[Any, List[str]],
    game_mode: str = "CLASSIC",
    duration: int = 1800,
    winners: Any = 100,
) -> Dict[str, Any]:
    """Build a detailed game; ``sides`` maps team id (or arena placement) to players."""
    participants = []
    identities = []
    participant_id = 1
    for side, players in sides.items():
        for puuid in players:
            stats = {
                "kills": 5,
                "deaths": 2,
                "assists": 7,
                "win": side == winners,
                "goldEarned": 12000,
                "totalMinionsKilled": 180,
                "neutralMinionsKilled": 20,
                "totalDamageDealtToChampions": 20000,
            }
            team_id = side
            if game_mode == "CHERRY":
                stats["subteamPlacement"] = side
                team_id = 0
            participants.append(
                {"participantId": participant_id, "teamId": team_id, "stats": stats}
            )
            identities.append(
                {"participantId": participant_id, "player": {"puuid": puuid}}
            )
            participant_id += 1

    return {
        "gameId": game_id,
        "gameMode": game_mode,
        "queueId": 420,
        "gameDuration": duration,
        "participants": participants,
        "participantIdentities": identities,
    }


def champ_select_session(our: List[str], their: List[str]) -> ChampSelectSession:
    return ChampSelectSession.model_validate(
        {
            "myTeam": [{"puuid": p} for p in our],
            "theirTeam": [{"puuid": p} for p in their],
        }
    )


def gameflow_session(
    game_id: int, queue_id: int, team_one: List[str], team_two: List[str]
) -> GameflowSession:
    return GameflowSession.model_validate(
        {
            "phase": "InProgress",
            "gameData": {
                "gameId": game_id,
                "queue": {"id": queue_id, "type": "RANKED_SOLO_5x5"},
                "teamOne": [{"puuid": p} for p in team_one],
                "teamTwo": [{"puuid": p} for p in team_two],
            },
        }
    )


class FakeRemoteApi(Observable):
    """Remote API double with a switchable token and support flags."""

    def __init__(self, token_ready: bool = False, match_history: bool = True):
        super().__init__()
        self._token_ready = token_ready
        self.match_history_supported = match_history
        self.get_match_history = AsyncMock(
            side_effect=lambda puuid, start, count, tag=None: [
                make_game(9000 + i, {100: [puuid]}) for i in range(count)
            ]
        )
        self.get_game_summary = AsyncMock(side_effect=lambda game_id: make_game(game_id, {}))
        self.get_timeline = AsyncMock(side_effect=lambda game_id: {"frames": [], "remote": True})

    @property
    def is_token_ready(self) -> bool:
        return self._token_ready

    def set_token_ready(self, ready: bool) -> None:
        self._token_ready = ready
        self.notify("token")

    def supports(self, category: DataCategory) -> bool:
        return self.match_history_supported and category in (
            DataCategory.MATCH_HISTORY,
            DataCategory.ADDITIONAL_GAME,
            DataCategory.GAME_TIMELINE,
        )


class RecordingBroadcaster:
    """Collects every event sent by the engine."""

    def __init__(self):
        self.events: List[tuple] = []

    def send_event(self, event: str, *args: Any) -> None:
        self.events.append((event, *args))

    def names(self) -> List[str]:
        return [event[0] for event in self.events]

    def reset(self) -> None:
        self.events.clear()


@pytest.fixture
def config():
    """Engine configuration with short debounce windows."""
    return AppConfig(
        analysis_debounce_seconds=0.05,
        match_history_refresh_debounce_seconds=0.05,
        game_cache_capacity=400,
    )


@pytest.fixture
def lc_api():
    """Local client API double."""
    api = MagicMock()
    api.get_summoner_by_puuid = AsyncMock(
        side_effect=lambda puuid: {"puuid": puuid, "gameName": f"name-{puuid}", "tagLine": "EUW"}
    )
    api.get_match_history = AsyncMock(
        side_effect=lambda puuid, beg, end: [{"gameId": 1000 + i} for i in range(beg, end + 1)]
    )
    api.get_game = AsyncMock(side_effect=lambda game_id: make_game(game_id, {100: ["a"], 200: ["b"]}))
    api.get_timeline = AsyncMock(side_effect=lambda game_id: {"frames": [], "gameId": game_id})
    api.get_ranked_stats = AsyncMock(side_effect=lambda puuid: {"queueMap": {}, "puuid": puuid})
    api.get_champion_mastery = AsyncMock(
        return_value=[
            {
                "championId": 157,
                "championLevel": 7,
                "championPoints": 123456,
                "milestoneGrades": ["S", "A"],
                "lastPlayTime": 1700000000000,
            }
        ]
    )
    api.chat_send = AsyncMock(return_value=None)
    return api


@pytest.fixture
def remote_api():
    return FakeRemoteApi()


@pytest.fixture
def saved_players():
    """Player-history store double that knows nobody."""
    store = MagicMock()
    store.save_encountered_game = AsyncMock(return_value=None)
    store.save_saved_player = AsyncMock(return_value=None)
    store.query_saved_player_with_games = AsyncMock(return_value=None)
    return store


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def client_data():
    data = LeagueClientData()
    data.set_self("self", AuthInfo(region="EUW", rso_platform_id="EUW1"))
    return data


@pytest.fixture
def settings_values():
    """Settings the settings service starts from; override per test module."""
    return OngoingGameSettings(use_remote_api=False, concurrency=4)


@pytest.fixture
async def settings(settings_values):
    service = SettingsService(InMemorySettingsStore(settings_values))
    await service.load()
    return service


@pytest.fixture
async def service(lc_api, remote_api, client_data, settings, saved_players, broadcaster, config):
    """Orchestrator built from the doubles; not initialized."""
    service = OngoingGameService(
        lc_api=lc_api,
        remote_api=remote_api,
        client_data=client_data,
        settings=settings,
        saved_players=saved_players,
        broadcaster=broadcaster,
        config=config,
    )
    yield service
    await service.dispose()


def enter_champ_select(
    client_data: LeagueClientData, our: List[str], their: List[str], queue_id: Optional[int] = 420
) -> None:
    if queue_id is not None:
        client_data.set_gameflow_session(gameflow_session(1, queue_id, [], []))
    client_data.set_champ_select_session(champ_select_session(our, their))
    client_data.set_gameflow_phase("ChampSelect")
