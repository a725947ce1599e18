"""Debounced recomputation of the derived analytics."""

from collections import defaultdict
from typing import Any, Dict, List, Optional
import structlog

from ...core.reactive import Reaction
from ..session.client_data import LeagueClientData
from ..session.state import OngoingGameState
from ..settings import SettingsService
from .match_history import analyze_match_history, analyze_team_match_history
from .team_up import infer_premade_teams

logger = structlog.get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.2


class AnalyticsEngine:
    """Keeps ``player_stats`` and ``inferred_premade_teams`` in sync with loaded state.

    Bursts of loader commits inside one quiet window coalesce into a single
    recomputation per analytic.
    """

    def __init__(
        self,
        state: OngoingGameState,
        client_data: LeagueClientData,
        settings: SettingsService,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self._state = state
        self._client_data = client_data
        self._settings = settings
        self._delay = delay
        self._reactions: List[Reaction[Any]] = []
        self.stats: Dict[str, int] = defaultdict(int)

    def start(self) -> None:
        state = self._state
        self._reactions = [
            Reaction(
                [state],
                lambda: [
                    *state.match_history.values(),
                    *state.additional_game.values(),
                    *state.game_timeline.values(),
                ],
                lambda _: self._update_player_stats(),
                delay=self._delay,
                name="player-stats",
            ).start(),
            Reaction(
                [state, self._settings],
                lambda: (
                    *state.match_history.values(),
                    self._settings.settings.premade_team_threshold,
                ),
                lambda _: self._update_premade_teams(),
                delay=self._delay,
                name="premade-teams",
            ).start(),
        ]

    def dispose(self) -> None:
        for reaction in self._reactions:
            reaction.dispose()
        self._reactions = []

    def _update_player_stats(self) -> None:
        self.stats["player_stats_runs"] += 1
        self._state.set_player_stats(self.compute_player_stats())

    def _update_premade_teams(self) -> None:
        self.stats["premade_team_runs"] += 1
        self._state.set_inferred_premade_teams(self.compute_premade_teams())

    def compute_premade_teams(self) -> Optional[Dict[str, List[List[str]]]]:
        """Premade groups per side; empty without a session or history, None when inference fails."""
        teams = self._client_data.teams
        if not teams:
            return {}

        games = [game for record in self._state.match_history.values() for game in record.games]
        if not games:
            return {}

        try:
            return infer_premade_teams(games, teams, self._settings.settings.premade_team_threshold)
        except Exception as e:
            logger.warning("Premade team inference failed", error=str(e), exc_info=True)
            return None

    def compute_player_stats(self) -> Optional[Dict[str, Any]]:
        """Per-player and per-side summaries; None when they cannot be computed."""
        teams = self._client_data.teams
        if not teams:
            return None

        try:
            timelines = {game_id: entry.data for game_id, entry in self._state.game_timeline.items()}

            players: Dict[str, Dict[str, Any]] = {}
            for puuid, record in self._state.match_history.items():
                analysis = analyze_match_history(record.games, puuid, timelines)
                if analysis:
                    players[puuid] = analysis

            sides: Dict[str, Dict[str, Any]] = {}
            for side, puuids in teams.items():
                team_analysis = analyze_team_match_history(
                    [players[p] for p in puuids if p in players]
                )
                if team_analysis:
                    sides[side] = team_analysis

            return {"players": players, "teams": sides}
        except Exception as e:
            logger.warning("Match history analysis failed", error=str(e), exc_info=True)
            return None
