"""
Per-player and per-team performance summaries.

Both functions are pure: they read already-loaded games (and timelines when
present) and return plain dictionaries, or ``None`` when there is nothing to
summarize.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from ...models import Game, GameTimeline
from ...utils.statistics import kda_ratio, safe_divide, safe_mean, safe_stdev

# Timeline frame used for the early-game gold figure
EARLY_GAME_MS = 15 * 60 * 1000


def _find_participant(game: Game, puuid: str) -> Optional[Dict[str, Any]]:
    """The participant entry of ``puuid`` in a detailed game, if any."""
    participant_id = None
    for identity in game.get("participantIdentities") or []:
        if (identity.get("player") or {}).get("puuid") == puuid:
            participant_id = identity.get("participantId")
            break

    if participant_id is None:
        return None

    for participant in game.get("participants") or []:
        if participant.get("participantId") == participant_id:
            return participant
    return None


def _team_damage(game: Game, team_id: Any) -> float:
    return sum(
        (p.get("stats") or {}).get("totalDamageDealtToChampions", 0)
        for p in game.get("participants") or []
        if p.get("teamId") == team_id
    )


def _gold_at(timeline: GameTimeline, participant_id: int, timestamp_ms: int) -> Optional[float]:
    frames = timeline.get("frames") or []
    reached = [f for f in frames if f.get("timestamp", 0) >= timestamp_ms]
    if not reached:
        return None

    frame = reached[0].get("participantFrames") or {}
    participant_frame = frame.get(str(participant_id)) or frame.get(participant_id)
    if not participant_frame:
        return None
    return participant_frame.get("totalGold")


def analyze_match_history(
    games: Sequence[Game],
    puuid: str,
    timelines: Optional[Mapping[int, GameTimeline]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Summarize one player's loaded games.

    :param games: Games from the player's match history
    :param puuid: Player whose performance is summarized
    :param timelines: Loaded timelines keyed by game id
    :returns: Aggregates, or None when no detailed game contains the player
    """
    timelines = timelines or {}
    kdas: List[float] = []
    kills: List[float] = []
    deaths: List[float] = []
    assists: List[float] = []
    cs_per_minute: List[float] = []
    gold_per_minute: List[float] = []
    damage_share: List[float] = []
    early_gold: List[float] = []
    wins = 0

    for game in games:
        participant = _find_participant(game, puuid)
        if participant is None:
            continue

        stats = participant.get("stats") or {}
        minutes = safe_divide(game.get("gameDuration", 0), 60)

        k = stats.get("kills", 0)
        d = stats.get("deaths", 0)
        a = stats.get("assists", 0)
        kills.append(k)
        deaths.append(d)
        assists.append(a)
        kdas.append(kda_ratio(k, d, a))

        if stats.get("win"):
            wins += 1

        if minutes > 0:
            cs = stats.get("totalMinionsKilled", 0) + stats.get("neutralMinionsKilled", 0)
            cs_per_minute.append(cs / minutes)
            gold_per_minute.append(stats.get("goldEarned", 0) / minutes)

        team_damage = _team_damage(game, participant.get("teamId"))
        if team_damage > 0:
            damage_share.append(stats.get("totalDamageDealtToChampions", 0) / team_damage)

        timeline = timelines.get(game.get("gameId"))
        if timeline:
            gold = _gold_at(timeline, participant.get("participantId"), EARLY_GAME_MS)
            if gold is not None:
                early_gold.append(gold)

    count = len(kdas)
    if count == 0:
        return None

    return {
        "count": count,
        "wins": wins,
        "losses": count - wins,
        "winRate": safe_divide(wins, count),
        "averageKills": safe_mean(kills),
        "averageDeaths": safe_mean(deaths),
        "averageAssists": safe_mean(assists),
        "averageKda": safe_mean(kdas),
        "kdaStdev": safe_stdev(kdas),
        "averageCsPerMinute": safe_mean(cs_per_minute),
        "averageGoldPerMinute": safe_mean(gold_per_minute),
        "averageDamageShare": safe_mean(damage_share),
        "averageGoldAt15": safe_mean(early_gold) if early_gold else None,
        "timelineCount": len(early_gold),
    }


def analyze_team_match_history(
    player_analyses: Sequence[Dict[str, Any]],
) -> Optional[Dict[str, Any]]:
    """Combine member summaries into one side summary."""
    if not player_analyses:
        return None

    return {
        "players": len(player_analyses),
        "count": sum(a["count"] for a in player_analyses),
        "averageWinRate": safe_mean(a["winRate"] for a in player_analyses),
        "averageKda": safe_mean(a["averageKda"] for a in player_analyses),
        "averageCsPerMinute": safe_mean(a["averageCsPerMinute"] for a in player_analyses),
        "averageDamageShare": safe_mean(a["averageDamageShare"] for a in player_analyses),
    }
