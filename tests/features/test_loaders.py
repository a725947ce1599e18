"""
Tests for the entity loaders.
"""

import asyncio

import pytest

from ongoing_game.core.enums import DataSource, LoadingState
from ongoing_game.core.exceptions import NotFoundError, ServiceUnavailableError
from ongoing_game.features.session.loaders import simplify_champion_mastery
from ongoing_game.models import SavedPlayerInfo, SavedPlayerQuery


@pytest.fixture
def loaders(service):
    """Loaders of a service with an active generation."""
    service.controller.renew()
    return service.loaders


@pytest.fixture
async def use_remote(settings, remote_api):
    """Switch the engine to the remote backend."""
    await settings.set("use_remote_api", True)
    remote_api.set_token_ready(True)


class TestMatchHistoryLoader:
    """Test cases for the match-history loader."""

    @pytest.mark.asyncio
    async def test_local_load(self, service, loaders, lc_api, broadcaster):
        """Test a local load resolves every entry to a detailed game."""
        await loaders.load_match_history("p1")

        record = service.state.match_history["p1"]
        assert record.source is DataSource.LCU
        assert record.tag is None
        assert record.target_count == 20
        assert len(record.games) == 20
        assert all("participants" in game for game in record.games)
        lc_api.get_match_history.assert_awaited_once_with("p1", 0, 19)
        assert lc_api.get_game.await_count == 20
        assert service.state.match_history_loading_state["p1"] is LoadingState.LOADED
        assert broadcaster.names() == ["match-history-loaded"]

    @pytest.mark.asyncio
    async def test_unchanged_query_is_skipped(self, loaders, lc_api):
        """Test that an identical request performs exactly one network call."""
        await loaders.load_match_history("p1")
        await loaders.load_match_history("p1")

        assert lc_api.get_match_history.await_count == 1

    @pytest.mark.asyncio
    async def test_force_refetches(self, loaders, lc_api):
        """Test that force bypasses the skip check."""
        await loaders.load_match_history("p1")
        await loaders.load_match_history("p1", force=True)

        assert lc_api.get_match_history.await_count == 2

    @pytest.mark.asyncio
    async def test_count_change_refetches(self, loaders, lc_api, settings):
        """Test that the target count is part of the comparison."""
        await loaders.load_match_history("p1")
        await settings.set("match_history_load_count", 10)
        await loaders.load_match_history("p1")

        assert lc_api.get_match_history.await_count == 2
        lc_api.get_match_history.assert_awaited_with("p1", 0, 9)

    @pytest.mark.asyncio
    async def test_source_toggle_refetches(self, service, loaders, lc_api, remote_api, settings, use_remote):
        """Test that switching backends always refetches once."""
        await loaders.load_match_history("p1", tag="q_420")
        assert service.state.match_history["p1"].source is DataSource.SGP
        assert remote_api.get_match_history.await_count == 1

        await settings.set("use_remote_api", False)
        await loaders.load_match_history("p1", tag="q_420")
        await loaders.load_match_history("p1", tag="q_420")

        assert service.state.match_history["p1"].source is DataSource.LCU
        assert lc_api.get_match_history.await_count == 1
        assert remote_api.get_match_history.await_count == 1

    @pytest.mark.asyncio
    async def test_remote_tag_normalized(self, service, loaders, remote_api, use_remote):
        """Test that unsupported tags are queried and stored as "all"."""
        await loaders.load_match_history("p1", tag="q_999")

        assert service.state.match_history["p1"].tag == "all"
        remote_api.get_match_history.assert_awaited_once_with("p1", 0, 20, "all")

    @pytest.mark.asyncio
    async def test_remote_tag_change_refetches(self, loaders, remote_api, use_remote):
        """Test that the tag is part of the comparison on the remote path."""
        await loaders.load_match_history("p1", tag="q_420")
        await loaders.load_match_history("p1", tag="q_420")
        await loaders.load_match_history("p1", tag="q_450")

        assert remote_api.get_match_history.await_count == 2

    @pytest.mark.asyncio
    async def test_local_ignores_tag(self, service, loaders, lc_api):
        """Test that tag changes never refetch on the local path."""
        await loaders.load_match_history("p1", tag="q_420")
        await loaders.load_match_history("p1", tag="q_450")

        assert lc_api.get_match_history.await_count == 1
        assert service.state.match_history["p1"].tag is None

    @pytest.mark.asyncio
    async def test_remote_ignored_without_token(self, service, loaders, lc_api, remote_api, settings):
        """Test that remote is only used when the token is ready."""
        await settings.set("use_remote_api", True)
        await loaders.load_match_history("p1")

        assert service.state.match_history["p1"].source is DataSource.LCU
        remote_api.get_match_history.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remote_ignored_when_server_lacks_support(self, service, loaders, remote_api, use_remote):
        """Test that the per-server support flag gates the remote backend."""
        remote_api.match_history_supported = False
        await loaders.load_match_history("p1")

        assert service.state.match_history["p1"].source is DataSource.LCU

    @pytest.mark.asyncio
    async def test_game_details_shared_through_cache(self, service, loaders, lc_api):
        """Test that games already cached are not fetched again."""
        await loaders.load_match_history("p1")
        await loaders.load_match_history("p2")

        assert lc_api.get_game.await_count == 20
        assert len(service.game_cache) == 20

    @pytest.mark.asyncio
    async def test_failed_detail_falls_back_to_summary(self, service, loaders, lc_api):
        """Test that one unresolved game does not fail the whole history."""
        original = lc_api.get_game.side_effect

        def get_game(game_id):
            if game_id == 1003:
                raise ServiceUnavailableError("down", status_code=503)
            return original(game_id)

        lc_api.get_game.side_effect = get_game
        await loaders.load_match_history("p1")

        games = service.state.match_history["p1"].games
        assert games[3] == {"gameId": 1003}
        assert "participants" in games[4]
        assert service.state.match_history_loading_state["p1"] is LoadingState.LOADED

    @pytest.mark.asyncio
    async def test_timelines_for_first_games(self, service, loaders, lc_api, settings):
        """Test that timelines load for the first configured games."""
        await settings.set("game_timeline_load_count", 3)
        await loaders.load_match_history("p1")

        assert sorted(service.state.game_timeline) == [1000, 1001, 1002]
        assert lc_api.get_timeline.await_count == 3

    @pytest.mark.asyncio
    async def test_failure_sets_error_state(self, service, loaders, lc_api, broadcaster):
        """Test that a failed list request is recorded as an error."""
        lc_api.get_match_history.side_effect = ServiceUnavailableError("down", status_code=503)

        await loaders.load_match_history("p1")

        assert service.state.match_history_loading_state["p1"] is LoadingState.ERROR
        assert "p1" not in service.state.match_history
        assert broadcaster.names() == []

    @pytest.mark.asyncio
    async def test_superseded_generation_never_commits(self, service, loaders, lc_api, broadcaster):
        """Test that a result from an older generation is discarded."""
        gate = asyncio.Event()

        async def slow_history(puuid, beg, end):
            await gate.wait()
            return [{"gameId": 1}]

        lc_api.get_match_history.side_effect = slow_history

        stale = asyncio.create_task(loaders.load_match_history("p1"))
        await asyncio.sleep(0.01)
        assert service.state.match_history_loading_state["p1"] is LoadingState.LOADING

        service.controller.renew()
        assert service.state.match_history_loading_state["p1"] is LoadingState.ABORTED

        gate.set()
        await stale
        assert "p1" not in service.state.match_history
        assert broadcaster.names() == []

        await loaders.load_match_history("p1")
        assert len(service.state.match_history["p1"].games) == 1
        assert broadcaster.names() == ["match-history-loaded"]

    @pytest.mark.asyncio
    async def test_final_record_matches_newest_generation(
        self, service, loaders, remote_api, settings, use_remote
    ):
        """Test that a slow remote load from G1 cannot overwrite G2's local result."""
        gate = asyncio.Event()

        async def slow_remote(puuid, start, count, tag=None):
            await gate.wait()
            return []

        remote_api.get_match_history.side_effect = slow_remote
        stale = asyncio.create_task(loaders.load_match_history("p1", tag="q_420"))
        await asyncio.sleep(0.01)

        await settings.set("use_remote_api", False)
        service.controller.renew()
        await loaders.load_match_history("p1")

        gate.set()
        await stale

        record = service.state.match_history["p1"]
        assert record.source is DataSource.LCU
        assert record.tag is None
        assert len(record.games) == 20

    @pytest.mark.asyncio
    async def test_no_generation_is_noop(self, service, lc_api):
        """Test that loaders do nothing before a generation starts."""
        await service.loaders.load_match_history("p1")
        await service.loaders.load_summoner("p1")

        lc_api.get_match_history.assert_not_awaited()
        lc_api.get_summoner_by_puuid.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dispatch_tokens_outlive_renewal(self, service, loaders, lc_api, saved_players):
        """Test that loads bound to a superseded generation do nothing under the new one."""
        token = service.controller.token
        mh_token = service.controller.match_history_token
        service.controller.renew()

        await loaders.load_match_history("p1", token=token, mh_token=mh_token)
        await loaders.load_summoner("p1", token=token)
        await loaders.load_ranked_stats("p1", token=token)
        await loaders.load_champion_mastery("p1", token=token)
        await loaders.load_saved_info("p1", token=token)
        await loaders.load_additional_games([1], token=token)

        lc_api.get_match_history.assert_not_awaited()
        lc_api.get_summoner_by_puuid.assert_not_awaited()
        lc_api.get_ranked_stats.assert_not_awaited()
        lc_api.get_champion_mastery.assert_not_awaited()
        lc_api.get_game.assert_not_awaited()
        saved_players.query_saved_player_with_games.assert_not_awaited()
        assert service.state.snapshot()["matchHistory"] == {}


class TestPlayerLoaders:
    """Test cases for the summoner, ranked, mastery and saved-info loaders."""

    @pytest.mark.asyncio
    async def test_summoner_loaded_once(self, service, loaders, lc_api, broadcaster):
        """Test that a present summoner is not fetched again."""
        await loaders.load_summoner("p1")
        await loaders.load_summoner("p1")

        assert lc_api.get_summoner_by_puuid.await_count == 1
        record = service.state.summoner["p1"]
        assert record.source is DataSource.LCU
        assert record.data["gameName"] == "name-p1"
        assert broadcaster.events[0][:2] == ("summoner-loaded", "p1")

    @pytest.mark.asyncio
    async def test_summoner_force(self, loaders, lc_api):
        """Test that force refetches a present summoner."""
        await loaders.load_summoner("p1")
        await loaders.load_summoner("p1", force=True)

        assert lc_api.get_summoner_by_puuid.await_count == 2

    @pytest.mark.asyncio
    async def test_not_found_is_benign(self, service, loaders, lc_api):
        """Test that a missing summoner leaves no record and raises nothing."""
        lc_api.get_summoner_by_puuid.side_effect = NotFoundError("missing", status_code=404)

        await loaders.load_summoner("p1")

        assert "p1" not in service.state.summoner

    @pytest.mark.asyncio
    async def test_ranked_and_mastery_use_match_history_queue(self, service, loaders):
        """Test queue assignment of ranked stats and mastery."""
        await loaders.load_ranked_stats("p1")
        await loaders.load_champion_mastery("p1")

        assert service.match_history_queue.stats["tasks_added"] == 2
        assert service.general_queue.stats["tasks_added"] == 0
        assert service.state.ranked_stats["p1"].data["puuid"] == "p1"

    @pytest.mark.asyncio
    async def test_mastery_is_simplified(self, service, loaders):
        """Test that only displayed mastery fields are kept."""
        await loaders.load_champion_mastery("p1")

        assert service.state.champion_mastery["p1"].data == {
            157: {
                "championId": 157,
                "championLevel": 7,
                "championPoints": 123456,
                "milestoneGrades": ["S", "A"],
            }
        }

    def test_simplify_skips_entries_without_champion(self):
        """Test mastery simplification of malformed entries."""
        assert simplify_champion_mastery([{"championLevel": 3}]) == {}

    @pytest.mark.asyncio
    async def test_saved_info_loads_related_data(self, service, loaders, lc_api, saved_players):
        """Test that saved info pulls encountered games and tagging accounts."""
        saved_players.query_saved_player_with_games.return_value = SavedPlayerInfo.model_validate(
            {
                "puuid": "p1",
                "selfPuuid": "self",
                "tag": "toxic",
                "tags": [{"puuid": "p1", "selfPuuid": "alt", "tag": "toxic"}],
                "encounteredGames": {"data": [{"gameId": 5}, {"gameId": 6}]},
            }
        )

        await loaders.load_saved_info("p1")

        saved_players.query_saved_player_with_games.assert_awaited_once_with(
            SavedPlayerQuery(puuid="p1", self_puuid="self", region="EUW", rso_platform_id="EUW1")
        )
        assert service.state.saved_info["p1"].tag == "toxic"
        assert sorted(service.state.additional_game) == [5, 6]
        assert "alt" in service.state.summoner

    @pytest.mark.asyncio
    async def test_saved_info_requires_self(self, loaders, client_data, saved_players):
        """Test that saved info waits for the local summoner."""
        client_data.set_self(None, None)

        await loaders.load_saved_info("p1")

        saved_players.query_saved_player_with_games.assert_not_awaited()


class TestGameLoaders:
    """Test cases for the additional-game and timeline loaders."""

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_siblings(self, service, loaders, lc_api):
        """Test independent failure handling inside a batch."""
        original = lc_api.get_game.side_effect

        def get_game(game_id):
            if game_id == 2:
                raise ServiceUnavailableError("down", status_code=503)
            return original(game_id)

        lc_api.get_game.side_effect = get_game
        await loaders.load_additional_games([1, 2, 3])

        assert sorted(service.state.additional_game) == [1, 3]

    @pytest.mark.asyncio
    async def test_cache_hit_skips_fetch(self, service, loaders, lc_api):
        """Test that a cached game with the same source is reused."""
        await loaders.load_additional_games([7])
        service.state.clear()
        await loaders.load_additional_games([7])

        assert lc_api.get_game.await_count == 1
        assert 7 in service.state.additional_game

    @pytest.mark.asyncio
    async def test_remote_source_used_when_available(self, service, loaders, lc_api, remote_api, use_remote):
        """Test dual-source resolution for per-game loads."""
        await loaders.load_game_timelines([11])

        remote_api.get_timeline.assert_awaited_once_with(11)
        lc_api.get_timeline.assert_not_awaited()
        assert service.state.game_timeline[11].source is DataSource.SGP

    @pytest.mark.asyncio
    async def test_duplicate_ids_loaded_once(self, loaders, lc_api):
        """Test that repeated ids in one batch are fetched once."""
        await loaders.load_game_timelines([3, 3, 4])

        assert lc_api.get_timeline.await_count == 2
