"""Record every player met in a game once it ends."""

from typing import List, Optional
import structlog

from ...core.reactive import BackgroundTasks, Reaction
from ...models import AuthInfo, EncounteredGameRecord, GameInfo, SavedPlayerRecord
from ...protocols import SavedPlayerStore
from ..session.client_data import LeagueClientData

logger = structlog.get_logger(__name__)


class EndOfGameRecorder:
    """Persists encountered-game and saved-player rows on the edge into end of game.

    The roster and game identity are captured when the edge is seen, since the
    session may move on while the rows are being written.
    """

    def __init__(self, client_data: LeagueClientData, saved_players: SavedPlayerStore):
        self._client_data = client_data
        self._saved_players = saved_players
        self._tasks = BackgroundTasks("end-of-game")
        self._reaction: Optional[Reaction[bool]] = None

    def start(self) -> None:
        self._reaction = Reaction(
            [self._client_data],
            lambda: self._client_data.is_end_of_game,
            self._on_end_of_game_changed,
            name="end-of-game",
        ).start()

    async def dispose(self) -> None:
        if self._reaction is not None:
            self._reaction.dispose()
            self._reaction = None
        await self._tasks.cancel_all()

    async def drain(self) -> None:
        await self._tasks.drain()

    def _on_end_of_game_changed(self, ended: bool) -> None:
        if not ended:
            return

        data = self._client_data
        game_info = data.query_stage.game_info
        if data.auth is None or not data.self_puuid or game_info is None:
            return

        players = data.roster
        if data.self_puuid not in players:
            logger.info("Local player not in this game, skip recording", game_id=game_info.game_id)
            return

        others = [p for p in players if p != data.self_puuid]
        self._tasks.spawn(
            self.record(game_info, others, data.self_puuid, data.auth),
            label=f"record:{game_info.game_id}",
        )

    async def record(
        self, game_info: GameInfo, players: List[str], self_puuid: str, auth: AuthInfo
    ) -> int:
        """
        Persist one encountered game and one saved player per other participant.

        :returns: Number of players fully recorded
        """
        recorded = 0
        for puuid in players:
            try:
                await self._saved_players.save_encountered_game(
                    EncounteredGameRecord(
                        game_id=game_info.game_id,
                        puuid=puuid,
                        self_puuid=self_puuid,
                        region=auth.region,
                        rso_platform_id=auth.rso_platform_id,
                        queue_type=game_info.queue_type,
                    )
                )
                await self._saved_players.save_saved_player(
                    SavedPlayerRecord(
                        puuid=puuid,
                        self_puuid=self_puuid,
                        region=auth.region,
                        rso_platform_id=auth.rso_platform_id,
                        encountered=True,
                    )
                )
            except Exception as e:
                logger.warning(
                    "Failed to record encountered player",
                    game_id=game_info.game_id,
                    puuid=puuid,
                    error=str(e),
                )
                continue

            recorded += 1

        logger.info("Encountered players recorded", game_id=game_info.game_id, count=recorded)
        return recorded
