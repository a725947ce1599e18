"""HTTP adapter for the remote aggregation (SGP) API.

Remote games come back in the server's own format; they are reshaped into the
local client's game layout so that every consumer sees one shape.
"""

from typing import Any, Dict, List, Optional
import httpx
import structlog

from ..core.enums import DataCategory
from ..core.reactive import Observable
from ..models import Game, GameTimeline, RemoteServerSupport
from .base import BaseHttpClient

logger = structlog.get_logger(__name__)

# Categories served by the match-history service; everything else is local-only
_MATCH_HISTORY_CATEGORIES = frozenset(
    {
        DataCategory.MATCH_HISTORY,
        DataCategory.ADDITIONAL_GAME,
        DataCategory.GAME_TIMELINE,
    }
)

_STAT_FIELDS = (
    "kills",
    "deaths",
    "assists",
    "win",
    "champLevel",
    "goldEarned",
    "totalMinionsKilled",
    "neutralMinionsKilled",
    "totalDamageDealtToChampions",
    "totalDamageTaken",
    "visionScore",
    "subteamPlacement",
)


def to_lcu_game(game: Dict[str, Any]) -> Game:
    """Reshape a remote game summary into the local client's layout."""
    participants: List[Dict[str, Any]] = []
    identities: List[Dict[str, Any]] = []

    for index, p in enumerate(game.get("participants", []), start=1):
        participant_id = p.get("participantId", index)
        participants.append(
            {
                "participantId": participant_id,
                "teamId": p.get("teamId"),
                "championId": p.get("championId"),
                "stats": {field: p[field] for field in _STAT_FIELDS if field in p},
            }
        )
        identities.append(
            {
                "participantId": participant_id,
                "player": {
                    "puuid": p.get("puuid"),
                    "gameName": p.get("riotIdGameName", ""),
                    "tagLine": p.get("riotIdTagline", ""),
                },
            }
        )

    return {
        "gameId": game.get("gameId"),
        "gameMode": game.get("gameMode"),
        "queueId": game.get("queueId"),
        "gameCreation": game.get("gameCreation"),
        "gameDuration": game.get("gameDuration"),
        "participants": participants,
        "participantIdentities": identities,
    }


def to_lcu_timeline(timeline: Dict[str, Any]) -> GameTimeline:
    """Reshape a remote game timeline into the local client's frame layout.

    Remote frames may nest under ``info`` and list participant frames instead of
    keying them; locally they are keyed by the participant id as a string.
    """
    info = timeline.get("info", timeline)
    frames: List[Dict[str, Any]] = []

    for frame in info.get("frames") or []:
        participant_frames = frame.get("participantFrames") or {}
        if isinstance(participant_frames, dict):
            participant_frames = [
                {"participantId": int(key), **value} for key, value in participant_frames.items()
            ]

        frames.append(
            {
                "timestamp": frame.get("timestamp", 0),
                "participantFrames": {
                    str(p["participantId"]): p for p in participant_frames if "participantId" in p
                },
                "events": frame.get("events") or [],
            }
        )

    return {"frames": frames}


class SgpHttpApi(BaseHttpClient, Observable):
    """Remote match-history API gated on an entitlement token."""

    client_name = "SGP"

    def __init__(
        self,
        base_url: str,
        rso_platform_id: str,
        timeout: float = 25.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        BaseHttpClient.__init__(self, base_url, timeout=timeout, transport=transport)
        Observable.__init__(self)
        self.rso_platform_id = rso_platform_id
        self._token: Optional[str] = None
        self._support = RemoteServerSupport()

    @property
    def is_token_ready(self) -> bool:
        return self._token is not None

    @property
    def server_support(self) -> RemoteServerSupport:
        return self._support

    def set_token(self, token: Optional[str]) -> None:
        """Install or clear the bearer token; notifies subscribers on change."""
        was_ready = self.is_token_ready
        self._token = token or None
        if self.session is not None:
            if self._token:
                self.session.headers["Authorization"] = f"Bearer {self._token}"
            else:
                self.session.headers.pop("Authorization", None)
        if was_ready != self.is_token_ready:
            logger.info("SGP token readiness changed", ready=self.is_token_ready)
            self.notify("token")

    def set_server_support(self, support: RemoteServerSupport) -> None:
        if support != self._support:
            self._support = support
            self.notify("availability")

    def supports(self, category: DataCategory) -> bool:
        if category in _MATCH_HISTORY_CATEGORIES:
            return self._support.match_history
        return False

    async def start_session(self) -> None:
        await super().start_session()
        if self.session is not None and self._token:
            self.session.headers["Authorization"] = f"Bearer {self._token}"

    async def get_match_history(
        self, puuid: str, start: int, count: int, tag: Optional[str] = None
    ) -> List[Game]:
        params: Dict[str, Any] = {"startIndex": start, "count": count}
        if tag:
            params["tag"] = tag

        response = await self._request(
            "GET",
            f"/match-history-query/v1/products/lol/player/{puuid}/SUMMARY",
            params=params,
        )
        return [to_lcu_game(g.get("json", {})) for g in (response or {}).get("games", [])]

    async def get_game_summary(self, game_id: int) -> Game:
        response = await self._request(
            "GET",
            f"/match-history-query/v1/products/lol/{self.rso_platform_id.upper()}_{game_id}/SUMMARY",
        )
        return to_lcu_game(response.get("json", {}))

    async def get_timeline(self, game_id: int) -> GameTimeline:
        response = await self._request(
            "GET",
            f"/match-history-query/v1/products/lol/{self.rso_platform_id.upper()}_{game_id}/DETAILS",
        )
        return to_lcu_timeline(response.get("json", response))
