"""Top scorer and top assist leaderboards from player stat snapshots."""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

LEADERBOARD_KINDS: tuple[str, ...] = ("scorers", "assisters")


@dataclass
class LeaderboardEntry:
    rank: int
    player_id: Any
    name: str
    goals: int
    assists: int
    matches_played: int
    motm: int

    def as_dict(self) -> dict:
        return {
            "rank": self.rank,
            "player_id": self.player_id,
            "name": self.name,
            "goals": self.goals,
            "assists": self.assists,
            "matches_played": self.matches_played,
            "motm": self.motm,
        }


def player_display_name(player: Any) -> str:
    """display_name when non-blank, else full_name."""
    display = getattr(player, "display_name", None)
    if display and display.strip():
        return display.strip()
    return (getattr(player, "full_name", None) or "").strip()


def _stat(stats: Optional[Any], name: str) -> int:
    if stats is None:
        return 0
    if isinstance(stats, Mapping):
        value = stats.get(name)
    else:
        value = getattr(stats, name, None)
    return int(value or 0)


def compute_leaderboard(
    players: Iterable[Any],
    stats_by_player: Mapping[Any, Any],
    kind: str,
    limit: int = 10,
) -> list[LeaderboardEntry]:
    """
    Rank players for one leaderboard.

    scorers sorts by goals, then assists; assisters by assists, then goals;
    both descending, then display name ascending. Players without a stats
    row count as all zeros.

    Raises:
        ValueError: if kind is not "scorers" or "assisters"
    """
    if kind not in LEADERBOARD_KINDS:
        raise ValueError(f"Unknown leaderboard kind: {kind!r}")

    entries = []
    for player in players:
        stats = stats_by_player.get(player.id)
        entries.append(
            LeaderboardEntry(
                rank=0,
                player_id=player.id,
                name=player_display_name(player),
                goals=_stat(stats, "goals"),
                assists=_stat(stats, "assists"),
                matches_played=_stat(stats, "matches_played"),
                motm=_stat(stats, "motm"),
            )
        )

    if kind == "scorers":
        entries.sort(key=lambda e: (-e.goals, -e.assists, e.name, e.player_id or 0))
    else:
        entries.sort(key=lambda e: (-e.assists, -e.goals, e.name, e.player_id or 0))

    top = entries[: max(limit, 0)]
    for position, entry in enumerate(top, start=1):
        entry.rank = position
    return top
