"""Analytics derived from the loaded match histories."""

from .engine import AnalyticsEngine
from .match_history import analyze_match_history, analyze_team_match_history
from .team_up import (
    build_team_sides,
    calculate_together_times,
    infer_premade_teams,
    remove_overlapping_subsets,
)

__all__ = [
    "AnalyticsEngine",
    "analyze_match_history",
    "analyze_team_match_history",
    "build_team_sides",
    "calculate_together_times",
    "infer_premade_teams",
    "remove_overlapping_subsets",
]
