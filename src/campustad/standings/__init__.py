"""
Standings engine.

Pure functions over already-fetched rows: group tables, knockout round
buckets and player leaderboards. No database access, no caching; the
caller fetches a fresh snapshot (see campustad.services.snapshot).
"""

from campustad.standings.knockout import (
    KnockoutRound,
    compute_knockout_groups,
    normalize_round_label,
    round_precedence,
)
from campustad.standings.leaderboards import (
    LEADERBOARD_KINDS,
    LeaderboardEntry,
    compute_leaderboard,
    player_display_name,
)
from campustad.standings.tables import (
    GroupTable,
    TeamStanding,
    compute_group_tables,
    sort_standings,
)

__all__ = [
    "GroupTable",
    "TeamStanding",
    "compute_group_tables",
    "sort_standings",
    "KnockoutRound",
    "compute_knockout_groups",
    "normalize_round_label",
    "round_precedence",
    "LEADERBOARD_KINDS",
    "LeaderboardEntry",
    "compute_leaderboard",
    "player_display_name",
]
