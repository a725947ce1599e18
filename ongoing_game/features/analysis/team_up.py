"""
Premade-team inference.

Every side of every loaded historical game becomes one ``TeamSideGroup``
(``"<gameId>|<teamId>"`` mapped to the players on it). Players of the current
session who keep showing up on the same historical side are inferred to have
queued together.
"""

from typing import Dict, FrozenSet, Iterable, List, Mapping, Sequence, Set
import structlog

from ...models import Game

logger = structlog.get_logger(__name__)

# Arena-style mode where all players share one team id and sides are subteams
FREE_FOR_ALL_MODE = "CHERRY"


def build_team_sides(games: Iterable[Game]) -> Dict[str, Set[str]]:
    """Map ``gameId|side`` to the player ids that shared that side.

    A game seen through several players' histories is only counted once.
    Games without participant identities (summary-only entries) are skipped.
    """
    sides: Dict[str, Set[str]] = {}

    for game in games:
        identities = game.get("participantIdentities") or []
        participants = game.get("participants") or []
        if not identities or not participants:
            continue

        puuid_by_participant = {
            identity.get("participantId"): (identity.get("player") or {}).get("puuid")
            for identity in identities
        }
        free_for_all = game.get("gameMode") == FREE_FOR_ALL_MODE

        game_sides: Dict[str, Set[str]] = {}
        for participant in participants:
            puuid = puuid_by_participant.get(participant.get("participantId"))
            if not puuid:
                continue

            if free_for_all:
                side = (participant.get("stats") or {}).get("subteamPlacement")
            else:
                side = participant.get("teamId")
            game_sides.setdefault(f"{game.get('gameId')}|{side}", set()).add(puuid)

        for side_id, players in game_sides.items():
            sides.setdefault(side_id, players)

    return sides


def _candidate_groups(
    sides: Iterable[Set[str]], team_players: Set[str]
) -> Set[FrozenSet[str]]:
    """Every subset of the current team that is the overlap of some historical sides."""
    candidates = {
        frozenset(side & team_players) for side in sides if len(side & team_players) >= 2
    }

    # Close under intersection: two sides sharing {a, b, c} and {a, b, d} both support {a, b}
    frontier = set(candidates)
    while frontier:
        discovered = set()
        for group in frontier:
            for other in candidates:
                overlap = group & other
                if len(overlap) >= 2 and overlap not in candidates:
                    discovered.add(overlap)
        candidates |= discovered
        frontier = discovered

    return candidates


def calculate_together_times(
    sides: Mapping[str, Set[str]], team_players: Sequence[str], threshold: int
) -> List[Dict[str, object]]:
    """
    Count how often each subset of ``team_players`` shared a historical side.

    :param sides: Team sides from ``build_team_sides``
    :param team_players: Players on one side of the current session
    :param threshold: Minimum number of shared sides for a group to qualify
    :returns: Qualifying groups as ``{"players": [...], "times": n}``
    """
    team = set(team_players)
    relevant = [players for players in sides.values() if len(players & team) >= 2]
    order = {puuid: index for index, puuid in enumerate(team_players)}

    groups = []
    for group in _candidate_groups(relevant, team):
        times = sum(1 for players in relevant if group <= players)
        if times >= threshold:
            groups.append(
                {"players": sorted(group, key=lambda p: order[p]), "times": times}
            )

    groups.sort(key=lambda g: (-len(g["players"]), [order[p] for p in g["players"]]))
    return groups


def remove_overlapping_subsets(groups: Sequence[Sequence[str]]) -> List[List[str]]:
    """Drop every group whose players are a strict subset of another group's."""
    as_sets = [frozenset(group) for group in groups]
    kept: List[List[str]] = []
    seen: Set[FrozenSet[str]] = set()

    for group, players in zip(groups, as_sets):
        if players in seen:
            continue
        if any(players < other for other in as_sets):
            continue
        seen.add(players)
        kept.append(list(group))

    return kept


def infer_premade_teams(
    games: Iterable[Game], teams: Mapping[str, Sequence[str]], threshold: int
) -> Dict[str, List[List[str]]]:
    """
    Infer premade groups for every side of the current session.

    :param games: All games from the loaded match histories
    :param teams: Current session sides mapped to their players
    :param threshold: Minimum shared historical sides (``premade_team_threshold``)
    :returns: Side -> maximal premade groups, largest first
    """
    sides = build_team_sides(games)
    if not sides:
        return {}

    inferred = {}
    for team, players in teams.items():
        together = calculate_together_times(sides, players, threshold)
        inferred[team] = remove_overlapping_subsets([g["players"] for g in together])

    logger.debug(
        "Premade teams inferred",
        team_sides=len(sides),
        groups={team: len(groups) for team, groups in inferred.items()},
    )
    return inferred
