"""
Entity loaders for the ongoing-game engine.

Each loader follows the same steps: skip when the stored record already answers
the request, resolve the backend, fetch through a priority queue bound to the
current generation's token, cache per-game payloads, and commit only if that
token is still live.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional
import structlog

from ...core.cache import SourcedCache
from ...core.cancellation import CancellationToken, GenerationController
from ...core.enums import DataCategory, DataSource, LoadingPriority, LoadingState
from ...core.exceptions import TaskAbortedError, is_not_found
from ...core.queue import PriorityTaskQueue
from ...models import Game, MatchHistoryRecord, SavedPlayerQuery, Sourced, normalize_tag
from ...protocols import LeagueClientApi, RemoteMatchApi, SavedPlayerStore, StateBroadcaster
from ..settings import SettingsService
from .client_data import LeagueClientData
from .state import OngoingGameState

logger = structlog.get_logger(__name__)

_MASTERY_FIELDS = ("championId", "championLevel", "championPoints", "milestoneGrades")


def simplify_champion_mastery(entries: Iterable[Dict[str, Any]]) -> Dict[int, Dict[str, Any]]:
    """Keep only the mastery fields that are displayed, keyed by champion id."""
    simplified = {}
    for entry in entries:
        champion_id = entry.get("championId")
        if champion_id is None:
            continue
        simplified[champion_id] = {
            "championId": champion_id,
            "championLevel": entry.get("championLevel", 0),
            "championPoints": entry.get("championPoints", 0),
            "milestoneGrades": list(entry.get("milestoneGrades") or []),
        }
    return simplified


class EntityLoaders:
    """The seven per-entity loaders.

    Match-history, ranked-stats and champion-mastery requests go through the
    match-history queue; everything else goes through the general queue.
    """

    def __init__(
        self,
        state: OngoingGameState,
        client_data: LeagueClientData,
        settings: SettingsService,
        lc_api: LeagueClientApi,
        remote_api: RemoteMatchApi,
        saved_players: SavedPlayerStore,
        broadcaster: StateBroadcaster,
        controller: GenerationController,
        general_queue: PriorityTaskQueue,
        match_history_queue: PriorityTaskQueue,
        game_cache: SourcedCache,
        timeline_cache: SourcedCache,
    ):
        self._state = state
        self._client_data = client_data
        self._settings = settings
        self._lc = lc_api
        self._remote = remote_api
        self._saved_players = saved_players
        self._broadcaster = broadcaster
        self._controller = controller
        self._general_queue = general_queue
        self._mh_queue = match_history_queue
        self._game_cache = game_cache
        self._timeline_cache = timeline_cache

    def resolve_source(self, category: DataCategory) -> DataSource:
        """Remote only when enabled in settings, the token is ready and the server offers it."""
        if (
            self._settings.settings.use_remote_api
            and self._remote.is_token_ready
            and self._remote.supports(category)
        ):
            return DataSource.SGP
        return DataSource.LCU

    def _bound(self, token: Optional[CancellationToken]) -> Optional[CancellationToken]:
        """The token a load runs under: the dispatching generation's, else the current one."""
        return token if token is not None else self._controller.token

    # ------------------------------------------------------------------
    # Player-keyed loaders
    # ------------------------------------------------------------------

    async def load_summoner(
        self,
        puuid: str,
        *,
        priority: float = LoadingPriority.SUMMONER,
        force: bool = False,
        token: Optional[CancellationToken] = None,
    ) -> None:
        category = DataCategory.SUMMONER
        if not force and self._state.has(category, puuid):
            return

        token = self._bound(token)
        if token is None or token.cancelled:
            return

        try:
            summoner = await self._general_queue.add(
                lambda: self._lc.get_summoner_by_puuid(puuid),
                priority=priority,
                token=token,
                label=f"{category.value}:{puuid}",
            )
        except Exception as e:
            self._handle_error(e, category, puuid)
            return

        if token.cancelled:
            return
        self._commit(category, puuid, Sourced.lcu(summoner))

    async def load_ranked_stats(
        self, puuid: str, *, force: bool = False, token: Optional[CancellationToken] = None
    ) -> None:
        category = DataCategory.RANKED_STATS
        if not force and self._state.has(category, puuid):
            return

        token = self._bound(token)
        if token is None or token.cancelled:
            return

        try:
            ranked = await self._mh_queue.add(
                lambda: self._lc.get_ranked_stats(puuid),
                priority=LoadingPriority.RANKED_STATS,
                token=token,
                label=f"{category.value}:{puuid}",
            )
        except Exception as e:
            self._handle_error(e, category, puuid)
            return

        if token.cancelled:
            return
        self._commit(category, puuid, Sourced.lcu(ranked))

    async def load_champion_mastery(
        self, puuid: str, *, force: bool = False, token: Optional[CancellationToken] = None
    ) -> None:
        category = DataCategory.CHAMPION_MASTERY
        if not force and self._state.has(category, puuid):
            return

        token = self._bound(token)
        if token is None or token.cancelled:
            return

        try:
            mastery = await self._mh_queue.add(
                lambda: self._lc.get_champion_mastery(puuid),
                priority=LoadingPriority.CHAMPION_MASTERY,
                token=token,
                label=f"{category.value}:{puuid}",
            )
        except Exception as e:
            self._handle_error(e, category, puuid)
            return

        if token.cancelled:
            return
        self._commit(category, puuid, Sourced.lcu(simplify_champion_mastery(mastery or [])))

    async def load_saved_info(
        self, puuid: str, *, force: bool = False, token: Optional[CancellationToken] = None
    ) -> None:
        """
        Load what the player-history store knows about a player.

        Also loads every game the local user shared with the player, and the
        summoners of the local accounts that tagged the player.
        """
        category = DataCategory.SAVED_INFO
        if not force and self._state.has(category, puuid):
            return

        self_puuid = self._client_data.self_puuid
        auth = self._client_data.auth
        if not self_puuid or auth is None:
            logger.debug("Self summoner unknown, skipping saved info", puuid=puuid)
            return

        token = self._bound(token)
        if token is None or token.cancelled:
            return

        query = SavedPlayerQuery(
            puuid=puuid,
            self_puuid=self_puuid,
            region=auth.region,
            rso_platform_id=auth.rso_platform_id,
        )
        try:
            info = await self._general_queue.add(
                lambda: self._saved_players.query_saved_player_with_games(query),
                priority=LoadingPriority.SAVED_INFO,
                token=token,
                label=f"{category.value}:{puuid}",
            )
        except Exception as e:
            self._handle_error(e, category, puuid)
            return

        if token.cancelled or info is None:
            return
        self._commit(category, puuid, info)

        game_ids = [game.game_id for game in info.encountered_games.data]
        related = {tag.self_puuid for tag in info.tags if tag.self_puuid}
        await asyncio.gather(
            self.load_additional_games(game_ids, token=token),
            *(
                self.load_summoner(
                    related_puuid, priority=LoadingPriority.ADDITIONAL_SUMMONER, token=token
                )
                for related_puuid in related
            ),
        )

    async def load_match_history(
        self,
        puuid: str,
        *,
        tag: Optional[str] = None,
        force: bool = False,
        token: Optional[CancellationToken] = None,
        mh_token: Optional[CancellationToken] = None,
    ) -> None:
        """
        Load the recent games of one player.

        :param puuid: Player id
        :param tag: Queue tag for remote loads; defaults to the current match-history tag
        :param force: Refetch even when the stored record answers the request
        :param token: General token of the dispatching generation; the current one when omitted
        :param mh_token: Match-history token of the dispatching generation
        """
        category = DataCategory.MATCH_HISTORY
        token = self._bound(token)
        mh_token = mh_token if mh_token is not None else self._controller.match_history_token
        if mh_token is None or mh_token.cancelled or token is None or token.cancelled:
            return

        settings = self._settings.settings
        count = settings.match_history_load_count
        source = self.resolve_source(category)
        effective_tag = (
            normalize_tag(tag if tag is not None else self._state.match_history_tag)
            if source is DataSource.SGP
            else None
        )

        existing: Optional[MatchHistoryRecord] = self._state.get(category, puuid)
        if not force and existing is not None and existing.matches_query(count, source, effective_tag):
            logger.debug("Match history unchanged, skipping", puuid=puuid, source=source.value)
            self._state.set_loading_state(puuid, LoadingState.LOADED)
            return

        def mark_aborted(_: CancellationToken) -> None:
            if self._state.match_history_loading_state.get(puuid) is LoadingState.LOADING:
                self._state.set_loading_state(puuid, LoadingState.ABORTED)

        self._state.set_loading_state(puuid, LoadingState.LOADING)
        mh_token.add_callback(mark_aborted)
        try:
            if source is DataSource.SGP:
                games = await self._mh_queue.add(
                    lambda: self._remote.get_match_history(puuid, 0, count, effective_tag),
                    priority=LoadingPriority.MATCH_HISTORY,
                    token=mh_token,
                    label=f"{category.value}:{puuid}",
                )
            else:
                games = await self._load_local_games(puuid, count, mh_token)
        except Exception as e:
            self._handle_match_history_error(e, puuid, mh_token)
            return
        finally:
            mh_token.remove_callback(mark_aborted)

        if mh_token.cancelled:
            return

        record = MatchHistoryRecord(
            games=games, target_count=count, source=source, tag=effective_tag
        )
        self._commit(category, puuid, record)
        self._state.set_loading_state(puuid, LoadingState.LOADED)

        timeline_ids = [
            game["gameId"]
            for game in record.games[: settings.game_timeline_load_count]
            if game.get("gameId") is not None
        ]
        if timeline_ids:
            await self.load_game_timelines(timeline_ids, token=token)

    async def _load_local_games(
        self, puuid: str, count: int, mh_token: CancellationToken
    ) -> List[Game]:
        entries = await self._mh_queue.add(
            lambda: self._lc.get_match_history(puuid, 0, count - 1),
            priority=LoadingPriority.MATCH_HISTORY,
            token=mh_token,
            label=f"{DataCategory.MATCH_HISTORY.value}:{puuid}",
        )

        results = await asyncio.gather(
            *(self._resolve_local_game(entry["gameId"], mh_token) for entry in entries),
            return_exceptions=True,
        )

        games: List[Game] = []
        for entry, result in zip(entries, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                if not isinstance(result, TaskAbortedError):
                    logger.debug(
                        "Game detail unavailable, keeping summary entry",
                        game_id=entry.get("gameId"),
                        error=str(result),
                    )
                games.append(entry)
            else:
                games.append(result)
        return games

    async def _resolve_local_game(self, game_id: int, token: CancellationToken) -> Game:
        cached = self._game_cache.get_for_source(game_id, DataSource.LCU)
        if cached is not None:
            return cached.data

        game = await self._general_queue.add(
            lambda: self._lc.get_game(game_id),
            priority=LoadingPriority.GAME_DETAIL,
            token=token,
            label=f"game:{game_id}",
        )
        self._game_cache.set(game_id, Sourced.lcu(game))
        return game

    # ------------------------------------------------------------------
    # Game-keyed loaders
    # ------------------------------------------------------------------

    async def load_additional_games(
        self,
        game_ids: Iterable[int],
        *,
        force: bool = False,
        token: Optional[CancellationToken] = None,
    ) -> None:
        """Load full records for games met outside the current match histories."""
        await self._load_game_batch(
            DataCategory.ADDITIONAL_GAME,
            game_ids,
            cache=self._game_cache,
            priority=LoadingPriority.ADDITIONAL_GAME,
            local_fetch=self._lc.get_game,
            remote_fetch=self._remote.get_game_summary,
            force=force,
            token=token,
        )

    async def load_game_timelines(
        self,
        game_ids: Iterable[int],
        *,
        force: bool = False,
        token: Optional[CancellationToken] = None,
    ) -> None:
        await self._load_game_batch(
            DataCategory.GAME_TIMELINE,
            game_ids,
            cache=self._timeline_cache,
            priority=LoadingPriority.GAME_TIMELINE,
            local_fetch=self._lc.get_timeline,
            remote_fetch=self._remote.get_timeline,
            force=force,
            token=token,
        )

    async def _load_game_batch(
        self,
        category: DataCategory,
        game_ids: Iterable[int],
        *,
        cache: SourcedCache,
        priority: float,
        local_fetch: Callable[[int], Awaitable[Dict[str, Any]]],
        remote_fetch: Callable[[int], Awaitable[Dict[str, Any]]],
        force: bool,
        token: Optional[CancellationToken],
    ) -> None:
        token = self._bound(token)
        if token is None or token.cancelled:
            return

        source = self.resolve_source(category)
        fetch = remote_fetch if source is DataSource.SGP else local_fetch

        async def load_one(game_id: int) -> None:
            existing: Optional[Sourced[Any]] = self._state.get(category, game_id)
            if not force and existing is not None and existing.source == source:
                return

            entry = cache.get_for_source(game_id, source)
            if entry is None:
                try:
                    payload = await self._general_queue.add(
                        lambda: fetch(game_id),
                        priority=priority,
                        token=token,
                        label=f"{category.value}:{game_id}",
                    )
                except Exception as e:
                    self._handle_error(e, category, game_id)
                    return
                entry = Sourced(source=source, data=payload)
                cache.set(game_id, entry)

            if token.cancelled:
                return
            self._commit(category, game_id, entry)

        # One game's failure is handled inside load_one and never cancels its siblings
        await asyncio.gather(*(load_one(game_id) for game_id in dict.fromkeys(game_ids)))

    # ------------------------------------------------------------------
    # Commit and error classification
    # ------------------------------------------------------------------

    def _commit(self, category: DataCategory, key: Any, record: Any) -> None:
        self._state.put(category, key, record)
        self._broadcaster.send_event(category.loaded_event, key, record)
        logger.debug("Record committed", category=category.value, key=key)

    def _handle_error(self, error: Exception, category: DataCategory, key: Any) -> None:
        if isinstance(error, TaskAbortedError):
            logger.info("Load aborted", category=category.value, key=key, reason=error.reason)
        elif is_not_found(error):
            logger.info("Resource not found", category=category.value, key=key)
        else:
            logger.warning(
                "Load failed",
                category=category.value,
                key=key,
                error=str(error),
                error_type=type(error).__name__,
            )

    def _handle_match_history_error(
        self, error: Exception, puuid: str, mh_token: CancellationToken
    ) -> None:
        if isinstance(error, TaskAbortedError):
            # The loading state was already moved to aborted when the token fired
            logger.info("Match history load aborted", puuid=puuid, reason=error.reason)
            return

        logger.warning(
            "Match history load failed",
            puuid=puuid,
            error=str(error),
            error_type=type(error).__name__,
        )
        if not mh_token.cancelled:
            self._state.set_loading_state(puuid, LoadingState.ERROR)
