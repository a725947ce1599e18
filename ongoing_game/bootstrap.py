"""Wiring of the engine with its HTTP backends."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
import structlog

from .clients import LeagueClientHttpApi, SgpHttpApi
from .core.config import AppConfig, get_global_config
from .core.logging import setup_logging
from .features.session import LeagueClientData
from .features.session.service import OngoingGameService
from .features.settings import InMemorySettingsStore, SettingsService
from .protocols import SavedPlayerStore, SettingsStore, StateBroadcaster

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def ongoing_game_session(
    saved_players: SavedPlayerStore,
    broadcaster: StateBroadcaster,
    settings_store: Optional[SettingsStore] = None,
    client_data: Optional[LeagueClientData] = None,
    config: Optional[AppConfig] = None,
) -> AsyncIterator[OngoingGameService]:
    """
    Build, initialize and finally dispose an ``OngoingGameService``.

    The local and remote HTTP clients are opened for the lifetime of the
    context and closed after the service has been disposed.

    :param saved_players: Player-history persistence
    :param broadcaster: Receiver of ``clear`` and ``*-loaded`` events
    :param settings_store: Settings persistence, in-memory when omitted
    :param client_data: Session mirror fed by the client watcher
    :param config: Process configuration, read from the environment when omitted
    """
    config = config or get_global_config()
    setup_logging(config.log_level, config.json_logs)

    lc_api = LeagueClientHttpApi(
        config.lcu_base_url, config.lcu_password, verify=config.lcu_verify_tls
    )
    remote_api = SgpHttpApi(
        config.sgp_base_url, config.sgp_platform_id, timeout=config.sgp_timeout_seconds
    )
    await lc_api.start_session()
    await remote_api.start_session()

    service = OngoingGameService(
        lc_api=lc_api,
        remote_api=remote_api,
        client_data=client_data or LeagueClientData(),
        settings=SettingsService(settings_store or InMemorySettingsStore()),
        saved_players=saved_players,
        broadcaster=broadcaster,
        config=config,
    )
    try:
        await service.init()
        yield service
    finally:
        await service.dispose()
        await lc_api.close()
        await remote_api.close()
        logger.info("Ongoing game session closed")
