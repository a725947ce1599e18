"""HTTP adapter for the locally running client API."""

from typing import Any, Dict, List, Optional
import httpx
import structlog

from ..models import Game, GameTimeline
from .base import BaseHttpClient

logger = structlog.get_logger(__name__)


class LeagueClientHttpApi(BaseHttpClient):
    """Local client API over HTTPS with the lockfile's basic-auth password."""

    client_name = "League client"

    def __init__(
        self,
        base_url: str,
        password: str,
        verify: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url,
            auth=httpx.BasicAuth("riot", password),
            verify=verify,
            transport=transport,
        )

    async def get_summoner_by_puuid(self, puuid: str) -> Dict[str, Any]:
        return await self._request("GET", f"/lol-summoner/v2/summoners/puuid/{puuid}")

    async def get_match_history(self, puuid: str, beg_index: int, end_index: int) -> List[Game]:
        """Get lightweight match history entries (indices inclusive)."""
        response = await self._request(
            "GET",
            f"/lol-match-history/v1/products/lol/{puuid}/matches",
            params={"begIndex": beg_index, "endIndex": end_index},
        )
        return (response or {}).get("games", {}).get("games", [])

    async def get_game(self, game_id: int) -> Game:
        return await self._request("GET", f"/lol-match-history/v1/games/{game_id}")

    async def get_timeline(self, game_id: int) -> GameTimeline:
        return await self._request("GET", f"/lol-match-history/v1/game-timelines/{game_id}")

    async def get_ranked_stats(self, puuid: str) -> Dict[str, Any]:
        return await self._request("GET", f"/lol-ranked/v1/ranked-stats/{puuid}")

    async def get_champion_mastery(self, puuid: str) -> List[Dict[str, Any]]:
        response = await self._request("GET", f"/lol-champion-mastery/v1/{puuid}/champion-mastery")
        return response or []

    async def chat_send(self, conversation_id: str, message: str, message_type: str = "chat") -> Any:
        logger.debug("Sending chat message", conversation_id=conversation_id, type=message_type)
        return await self._request(
            "POST",
            f"/lol-chat/v1/conversations/{conversation_id}/messages",
            json={"body": message, "type": message_type},
        )
