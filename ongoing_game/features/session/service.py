"""Ongoing-game orchestrator.

Watches the session stage, the feature settings and the remote token. Every
change of those conditions ends the current generation; when loading is
possible a new generation starts and every rostered player is loaded.
"""

import asyncio
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Set, Tuple
import structlog

from ...core.cache import SourcedCache
from ...core.cancellation import CancellationToken, GenerationController
from ...core.config import AppConfig, get_global_config
from ...core.enums import ALL_TAG, SAFE_TAGS, LoadingState, TagPreference
from ...core.logging import bind_generation
from ...core.queue import PriorityTaskQueue
from ...core.reactive import BackgroundTasks, Debouncer, Reaction
from ...models import QueryStage, normalize_tag
from ...protocols import LeagueClientApi, RemoteMatchApi, SavedPlayerStore, StateBroadcaster
from ..analysis import AnalyticsEngine
from ..reactions import EndOfGameRecorder, TaggedPlayerReminder
from ..settings import SettingsService
from .client_data import LeagueClientData
from .loaders import EntityLoaders
from .state import OngoingGameState

logger = structlog.get_logger(__name__)

LoadConditions = Tuple[QueryStage, bool, bool, bool]


class Dispatch(NamedTuple):
    """Parameters captured when a player load is dispatched."""

    token: Optional[CancellationToken]
    mh_token: Optional[CancellationToken]
    tag: str
    force: bool


class OngoingGameService:
    """Drives the entity loaders from the session stage.

    Lifecycle: construct with the collaborators, ``await init()`` once from the
    event loop, ``await dispose()`` when shutting down.
    """

    def __init__(
        self,
        lc_api: LeagueClientApi,
        remote_api: RemoteMatchApi,
        client_data: LeagueClientData,
        settings: SettingsService,
        saved_players: SavedPlayerStore,
        broadcaster: StateBroadcaster,
        config: Optional[AppConfig] = None,
    ):
        config = config or get_global_config()
        self._lc = lc_api
        self._remote = remote_api
        self._client_data = client_data
        self._settings = settings
        self._broadcaster = broadcaster

        concurrency = settings.settings.concurrency
        self.state = OngoingGameState()
        self.controller = GenerationController()
        self.general_queue = PriorityTaskQueue("general", concurrency)
        self.match_history_queue = PriorityTaskQueue("match-history", concurrency)
        self.game_cache = SourcedCache(config.game_cache_capacity, name="games")
        self.timeline_cache = SourcedCache(config.game_cache_capacity, name="timelines")

        self.loaders = EntityLoaders(
            state=self.state,
            client_data=client_data,
            settings=settings,
            lc_api=lc_api,
            remote_api=remote_api,
            saved_players=saved_players,
            broadcaster=broadcaster,
            controller=self.controller,
            general_queue=self.general_queue,
            match_history_queue=self.match_history_queue,
            game_cache=self.game_cache,
            timeline_cache=self.timeline_cache,
        )
        self.analytics = AnalyticsEngine(
            self.state, client_data, settings, delay=config.analysis_debounce_seconds
        )
        self.end_of_game = EndOfGameRecorder(client_data, saved_players)
        self.reminder = TaggedPlayerReminder(client_data, self.state, lc_api)

        self._tasks = BackgroundTasks("ongoing-game")
        self._match_history_refresh = Debouncer(
            config.match_history_refresh_debounce_seconds,
            self._refresh_match_history,
            name="match-history-refresh",
        )
        self._reactions: List[Reaction[Any]] = []
        self._dispatched: Set[str] = set()
        self._initialized = False

    @property
    def query_stage(self) -> QueryStage:
        return self._client_data.query_stage

    async def init(self) -> None:
        """Load settings and start watching the session."""
        if self._initialized:
            return

        await self._settings.load()
        settings = self._settings

        self._reactions = [
            Reaction(
                [settings],
                lambda: settings.settings.concurrency,
                self._apply_concurrency,
                fire_immediately=True,
                name="queue-concurrency",
            ).start(),
            Reaction(
                [self._client_data, settings, self._remote],
                self._load_conditions,
                self._on_load_conditions_changed,
                fire_immediately=True,
                name="load",
            ).start(),
            Reaction(
                [self._client_data],
                lambda: tuple(self._client_data.roster),
                self._on_roster_changed,
                name="roster",
            ).start(),
            Reaction(
                [settings],
                lambda: settings.settings.match_history_load_count,
                lambda _: self._match_history_refresh.trigger(),
                name="match-history-count",
            ).start(),
        ]
        self.analytics.start()
        self.end_of_game.start()
        self.reminder.start()

        self._initialized = True
        logger.info("Ongoing game service initialized", **settings.settings.model_dump(mode="json"))

    async def dispose(self) -> None:
        """Stop every reaction, cancel all work and close the queues."""
        for reaction in self._reactions:
            reaction.dispose()
        self._reactions = []
        self._match_history_refresh.cancel()
        self.controller.cancel_all("disposed")

        self.analytics.dispose()
        await self.end_of_game.dispose()
        await self.reminder.dispose()
        await self._tasks.cancel_all()
        await self.general_queue.close()
        await self.match_history_queue.close()

        self._initialized = False
        logger.info("Ongoing game service disposed")

    async def wait_until_idle(self) -> None:
        """Wait for every dispatched load, including loads they trigger."""
        await self._tasks.drain()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def reload(self) -> None:
        """Drop everything and load the current roster again, bypassing skip checks."""
        self.controller.cancel_all("reload")
        self._match_history_refresh.cancel()
        self._clear(reset_tag=False)

        if self._can_load(self._load_conditions()):
            logger.info("Reloading ongoing game", phase=self.query_stage.phase.value)
            self._start_generation(force=True)

    def get_all(self) -> Dict[str, Any]:
        return self.state.snapshot()

    def set_match_history_tag(self, tag: str) -> bool:
        """
        Filter match history by another queue tag.

        :param tag: "all" or one of the known-safe queue tags
        :returns: Whether the tag was accepted
        """
        if tag != ALL_TAG and tag not in SAFE_TAGS:
            logger.warning("Unsupported match history tag", tag=tag)
            return False

        self.state.set_match_history_tag(tag)
        self._match_history_refresh.trigger()
        return True

    # ------------------------------------------------------------------
    # Reactions
    # ------------------------------------------------------------------

    def _apply_concurrency(self, concurrency: int) -> None:
        self.general_queue.concurrency = concurrency
        self.match_history_queue.concurrency = concurrency

    def _load_conditions(self) -> LoadConditions:
        settings = self._settings.settings
        return (
            self._client_data.query_stage,
            settings.enabled,
            self._remote.is_token_ready,
            settings.use_remote_api,
        )

    @staticmethod
    def _can_load(conditions: LoadConditions) -> bool:
        stage, enabled, token_ready, use_remote = conditions
        return stage.is_active and enabled and (token_ready or not use_remote)

    def _on_load_conditions_changed(self, conditions: LoadConditions) -> None:
        stage, enabled, token_ready, use_remote = conditions
        logger.info(
            "Load conditions changed",
            phase=stage.phase.value,
            game_id=stage.game_info.game_id if stage.game_info else None,
            enabled=enabled,
            token_ready=token_ready,
            use_remote_api=use_remote,
        )

        self.controller.cancel_all("load conditions changed")
        self._match_history_refresh.cancel()

        if not self._can_load(conditions):
            self._clear(reset_tag=True)
            return

        self._start_generation(force=False)

    def _on_roster_changed(self, roster: Tuple[str, ...]) -> None:
        if not self.controller.active:
            return

        joined = [puuid for puuid in roster if puuid not in self._dispatched]
        if joined:
            logger.debug("Players joined the session", count=len(joined))
            self._dispatch(joined, force=False)

    def _refresh_match_history(self) -> None:
        """Reload only match history, e.g. after the load count or tag changed."""
        if not self._settings.settings.enabled or not self.controller.active:
            return

        mh_token = self.controller.renew_match_history()
        token = self.controller.token
        tag = self.state.match_history_tag
        for puuid in self._client_data.roster:
            self._tasks.spawn(
                self.loaders.load_match_history(puuid, tag=tag, token=token, mh_token=mh_token),
                label=f"match-history:{puuid}",
            )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _clear(self, reset_tag: bool) -> None:
        self.state.clear()
        if reset_tag:
            self.state.set_match_history_tag(ALL_TAG)
        self._dispatched = set()
        self._broadcaster.send_event("clear")

    def _start_generation(self, force: bool) -> None:
        generation = self.controller.renew()
        bind_generation(generation)
        self._dispatched = set()
        self.state.set_match_history_tag(self._preferred_tag())
        self._dispatch(self._client_data.roster, force=force)

    def _preferred_tag(self) -> str:
        if self._settings.settings.tag_preference is TagPreference.ALL:
            return ALL_TAG

        game_info = self.query_stage.game_info
        return normalize_tag(game_info.queue_tag if game_info else None)

    def _dispatch(self, puuids: Iterable[str], force: bool) -> None:
        """Spawn the player loads bound to the generation current right now."""
        dispatch = Dispatch(
            token=self.controller.token,
            mh_token=self.controller.match_history_token,
            tag=self.state.match_history_tag,
            force=force,
        )
        for puuid in puuids:
            self._dispatched.add(puuid)
            self.state.set_loading_state(puuid, LoadingState.IDLE)
            self._tasks.spawn(self._load_player(puuid, dispatch), label=f"player:{puuid}")

    async def _load_player(self, puuid: str, dispatch: Dispatch) -> None:
        token, mh_token, force = dispatch.token, dispatch.mh_token, dispatch.force
        if not self.controller.is_current(token):
            logger.debug("Generation superseded before loading", puuid=puuid)
            return

        loaders = self.loaders
        await asyncio.gather(
            loaders.load_match_history(
                puuid, tag=dispatch.tag, force=force, token=token, mh_token=mh_token
            ),
            loaders.load_summoner(puuid, force=force, token=token),
            loaders.load_ranked_stats(puuid, force=force, token=token),
            loaders.load_saved_info(puuid, force=force, token=token),
            loaders.load_champion_mastery(puuid, force=force, token=token),
        )
