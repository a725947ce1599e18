"""Observable mirror of the local client's session data.

Whatever watches the client (websocket events, polling) pushes updates through
the setters here; the engine derives the query stage and the roster from it.
"""

from typing import Dict, List, Optional

from ...core.enums import EMPTY_PUUID, QueryPhase
from ...core.reactive import Observable
from ...models import AuthInfo, ChampSelectSession, GameflowSession, QueryStage, SessionPlayer

# Gameflow phases during which the game being played is the one tracked
IN_GAME_PHASES = frozenset(
    {"GameStart", "InProgress", "Reconnect", "WaitingForStats", "PreEndOfGame", "EndOfGame"}
)
END_OF_GAME_PHASES = frozenset({"PreEndOfGame", "EndOfGame"})


def _valid_puuids(players: List[SessionPlayer]) -> List[str]:
    return [p.puuid for p in players if p.puuid and p.puuid != EMPTY_PUUID]


class LeagueClientData(Observable):
    """Session data pushed from the local client."""

    def __init__(self) -> None:
        super().__init__()
        self.gameflow_phase: str = "None"
        self.gameflow_session: Optional[GameflowSession] = None
        self.champ_select_session: Optional[ChampSelectSession] = None
        self.self_puuid: Optional[str] = None
        self.auth: Optional[AuthInfo] = None
        self.champ_select_conversation_id: Optional[str] = None

    def set_gameflow_phase(self, phase: str) -> None:
        self.gameflow_phase = phase
        self.notify("gameflow-phase")

    def set_gameflow_session(self, session: Optional[GameflowSession]) -> None:
        self.gameflow_session = session
        self.notify("gameflow-session")

    def set_champ_select_session(self, session: Optional[ChampSelectSession]) -> None:
        self.champ_select_session = session
        self.notify("champ-select-session")

    def set_self(self, puuid: Optional[str], auth: Optional[AuthInfo]) -> None:
        self.self_puuid = puuid
        self.auth = auth
        self.notify("self")

    def set_champ_select_conversation(self, conversation_id: Optional[str]) -> None:
        self.champ_select_conversation_id = conversation_id
        self.notify("chat")

    @property
    def query_stage(self) -> QueryStage:
        """Derive the tracked stage from the gameflow phase and sessions."""
        game_info = self.gameflow_session.game_info if self.gameflow_session else None

        if self.gameflow_phase == "ChampSelect" and self.champ_select_session is not None:
            return QueryStage.champ_select(game_info)

        if self.gameflow_phase in IN_GAME_PHASES and game_info is not None:
            return QueryStage.in_game(game_info)

        return QueryStage.unavailable()

    @property
    def teams(self) -> Optional[Dict[str, List[str]]]:
        """Logical sides of the current session mapped to player ids."""
        phase = self.query_stage.phase

        if phase is QueryPhase.CHAMP_SELECT and self.champ_select_session is not None:
            return {
                "our": _valid_puuids(self.champ_select_session.my_team),
                "their": _valid_puuids(self.champ_select_session.their_team),
            }

        if phase is QueryPhase.IN_GAME and self.gameflow_session is not None:
            game_data = self.gameflow_session.game_data
            return {
                "100": _valid_puuids(game_data.team_one),
                "200": _valid_puuids(game_data.team_two),
            }

        return None

    @property
    def roster(self) -> List[str]:
        """Every player to load, in side order."""
        teams = self.teams
        if not teams:
            return []
        return [puuid for players in teams.values() for puuid in players]

    @property
    def is_end_of_game(self) -> bool:
        return self.gameflow_phase in END_OF_GAME_PHASES
