"""
Group-stage table computation.

Builds one league table per group from finished group-stage matches.
Everything is recomputed from the rows passed in; nothing is cached or
maintained incrementally.

Rules:
- Win = 3 points, draw = 1 point, loss = 0
- Only matches with status "finished" and both scores recorded count
- Teams assigned to a group always appear, even with zero matches
- A team that played a group match but is not (or no longer) assigned
  to that group is added to the table rather than dropped

Ordering: points, goal difference, goals for (all descending), then
team name ascending. Ties are common early in a tournament, so the
name makes the order total and repeatable.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1


@dataclass
class TeamStanding:
    """One row of a group table."""
    team_id: Any
    team_name: str
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0

    def apply(self, scored: int, conceded: int) -> None:
        """Fold a single result into this row."""
        self.played += 1
        self.goals_for += scored
        self.goals_against += conceded
        if scored > conceded:
            self.won += 1
            self.points += POINTS_FOR_WIN
        elif scored < conceded:
            self.lost += 1
        else:
            self.drawn += 1
            self.points += POINTS_FOR_DRAW
        self.goal_difference = self.goals_for - self.goals_against

    def as_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "team_name": self.team_name,
            "played": self.played,
            "won": self.won,
            "drawn": self.drawn,
            "lost": self.lost,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "goal_difference": self.goal_difference,
            "points": self.points,
        }


@dataclass
class GroupTable:
    """A group and its ordered rows."""
    group_id: Any
    group_name: str
    rows: list[TeamStanding] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "group_id": self.group_id,
            "group_name": self.group_name,
            "rows": [row.as_dict() for row in self.rows],
        }


def standing_sort_key(row: TeamStanding) -> tuple:
    return (-row.points, -row.goal_difference, -row.goals_for, row.team_name, row.team_id or 0)


def sort_standings(rows: Iterable[TeamStanding]) -> list[TeamStanding]:
    """Return rows in table order (see module docstring)."""
    return sorted(rows, key=standing_sort_key)


def counts_towards_table(match: Any) -> bool:
    """True for a finished match with both scores recorded."""
    return (
        getattr(match, "status", None) == "finished"
        and match.home_score is not None
        and match.away_score is not None
    )


def compute_group_tables(
    groups: Iterable[Any],
    team_group_assignments: Iterable[Any],
    group_stage_matches: Iterable[Any],
    team_names: Optional[Mapping[Any, str]] = None,
) -> list[GroupTable]:
    """
    Compute every group's table.

    Args:
        groups: Objects with ``id`` and ``name`` (output keeps this order)
        team_group_assignments: Objects with ``team_id`` and ``group_id``
        group_stage_matches: Objects with ``stage``, ``group_id``,
            ``home_team_id``, ``away_team_id``, ``status``, ``home_score``
            and ``away_score``; non-group-stage rows are skipped
        team_names: team id -> name, used for display and the final tie-break

    Returns:
        One GroupTable per group, rows sorted
    """
    names = dict(team_names or {})
    groups = list(groups)
    tables: dict[Any, dict[Any, TeamStanding]] = {g.id: {} for g in groups}

    def row_for(table: dict[Any, TeamStanding], team_id: Any) -> TeamStanding:
        if team_id not in table:
            table[team_id] = TeamStanding(team_id=team_id, team_name=names.get(team_id, ""))
        return table[team_id]

    for assignment in team_group_assignments:
        table = tables.get(assignment.group_id)
        if table is not None:
            row_for(table, assignment.team_id)

    for match in group_stage_matches:
        if getattr(match, "stage", "group") != "group":
            continue
        table = tables.get(match.group_id)
        if table is None or not counts_towards_table(match):
            continue

        home = row_for(table, match.home_team_id)
        away = row_for(table, match.away_team_id)
        home.apply(match.home_score, match.away_score)
        away.apply(match.away_score, match.home_score)

    return [
        GroupTable(group_id=g.id, group_name=g.name, rows=sort_standings(tables[g.id].values()))
        for g in groups
    ]
