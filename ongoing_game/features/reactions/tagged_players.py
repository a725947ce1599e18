"""Remind the local user about tagged players once champ-select chat opens."""

from typing import List, Optional, Set, Tuple
import structlog

from ...core.reactive import BackgroundTasks, Reaction
from ...protocols import LeagueClientApi
from ..session.client_data import LeagueClientData
from ..session.state import OngoingGameState

logger = structlog.get_logger(__name__)

REMINDER_MESSAGE_TYPE = "celebration"


def format_reminder(name: str, tag: str) -> str:
    return f"[Tagged player: {name}]: \n{tag}"


class TaggedPlayerReminder:
    """Sends one chat message per tagged player per champ-select conversation."""

    def __init__(
        self,
        client_data: LeagueClientData,
        state: OngoingGameState,
        lc_api: LeagueClientApi,
    ):
        self._client_data = client_data
        self._state = state
        self._lc = lc_api
        self._reminded: Set[str] = set()
        self._tasks = BackgroundTasks("tagged-player-reminder")
        self._reactions: List[Reaction] = []

    @property
    def reminded(self) -> Set[str]:
        return set(self._reminded)

    def start(self) -> None:
        self._reactions = [
            Reaction(
                [self._client_data],
                lambda: self._client_data.champ_select_conversation_id,
                self._on_conversation_changed,
                name="reminder-channel",
            ).start(),
            Reaction(
                [self._client_data, self._state],
                self._reminder_key,
                lambda _: self._send_reminders(),
                fire_immediately=True,
                name="reminder-send",
            ).start(),
        ]

    async def dispose(self) -> None:
        for reaction in self._reactions:
            reaction.dispose()
        self._reactions = []
        await self._tasks.cancel_all()

    async def drain(self) -> None:
        await self._tasks.drain()

    def players_to_remind(self) -> List[Tuple[str, str, str]]:
        """(puuid, riot id, tag) for every tagged player whose summoner is loaded."""
        players = []
        for puuid, info in self._state.saved_info.items():
            if not info.tag:
                continue
            summoner = self._state.summoner.get(puuid)
            if summoner is None:
                continue
            name = f"{summoner.data.get('gameName', '')}#{summoner.data.get('tagLine', '')}"
            players.append((puuid, name, info.tag))
        return players

    def _reminder_key(self) -> Tuple[Tuple[str, ...], Optional[str]]:
        puuids = tuple(puuid for puuid, _, _ in self.players_to_remind())
        return puuids, self._client_data.champ_select_conversation_id

    def _on_conversation_changed(self, conversation_id: Optional[str]) -> None:
        if not conversation_id:
            self._reminded.clear()

    def _send_reminders(self) -> None:
        conversation_id = self._client_data.champ_select_conversation_id
        if not conversation_id:
            return

        for puuid, name, tag in self.players_to_remind():
            if puuid in self._reminded:
                continue
            self._reminded.add(puuid)
            self._tasks.spawn(self._send(conversation_id, puuid, name, tag), label=f"remind:{puuid}")

    async def _send(self, conversation_id: str, puuid: str, name: str, tag: str) -> None:
        try:
            await self._lc.chat_send(conversation_id, format_reminder(name, tag), REMINDER_MESSAGE_TYPE)
        except Exception as e:
            logger.warning("Failed to send tagged player reminder", puuid=puuid, error=str(e))
            return
        logger.info("Tagged player reminder sent", puuid=puuid)
