"""
Unit tests for group table computation.

Checks the aggregation rules and table ordering:
- Points are 3 per decisive match and 2 per draw, summed over a group
- Goal difference always equals goals for minus goals against
- Ordering is total and idempotent, ending in the team name
- Assigned teams with no matches still appear, all zero
"""

from types import SimpleNamespace

import pytest

from campustad.standings.tables import (
    TeamStanding,
    compute_group_tables,
    sort_standings,
)


def _group(gid, name):
    return SimpleNamespace(id=gid, name=name)


def _assign(team_id, group_id):
    return SimpleNamespace(team_id=team_id, group_id=group_id)


def _match(home, away, hs, as_, group_id=1, status="finished", stage="group"):
    return SimpleNamespace(
        stage=stage,
        group_id=group_id,
        home_team_id=home,
        away_team_id=away,
        status=status,
        home_score=hs,
        away_score=as_,
    )


NAMES = {"a": "A", "b": "B", "c": "C", "d": "D"}


class TestGroupTables:
    """Tests for compute_group_tables."""

    @pytest.fixture
    def group_abcd(self):
        groups = [_group(1, "Group A")]
        assignments = [_assign(t, 1) for t in ("a", "b", "c", "d")]
        return groups, assignments

    def test_two_results_scenario(self, group_abcd):
        """A 2-1 B and C 0-0 D give A, C, D, B."""
        groups, assignments = group_abcd
        matches = [_match("a", "b", 2, 1), _match("c", "d", 0, 0)]

        (table,) = compute_group_tables(groups, assignments, matches, NAMES)
        rows = {r.team_id: r for r in table.rows}

        assert [r.team_name for r in table.rows] == ["A", "C", "D", "B"]
        a = rows["a"]
        assert (a.played, a.won, a.drawn, a.lost, a.goal_difference, a.points) == (1, 1, 0, 0, 1, 3)
        b = rows["b"]
        assert (b.played, b.lost, b.goal_difference, b.points) == (1, 1, -1, 0)
        for key in ("c", "d"):
            row = rows[key]
            assert (row.played, row.drawn, row.goal_difference, row.points) == (1, 1, 0, 1)

    def test_team_without_matches_is_all_zero(self):
        groups = [_group(1, "Group A")]
        (table,) = compute_group_tables(groups, [_assign("a", 1)], [], NAMES)

        assert len(table.rows) == 1
        row = table.rows[0].as_dict()
        assert row["team_name"] == "A"
        for field in ("played", "won", "drawn", "lost", "goals_for",
                      "goals_against", "goal_difference", "points"):
            assert row[field] == 0

    def test_points_total_matches_results(self, group_abcd):
        """Sum of points = 3 x decisive + 2 x drawn."""
        groups, assignments = group_abcd
        matches = [
            _match("a", "b", 2, 1),
            _match("c", "d", 0, 0),
            _match("a", "c", 3, 3),
            _match("b", "d", 0, 4),
            _match("a", "d", 1, 0),
        ]
        (table,) = compute_group_tables(groups, assignments, matches, NAMES)

        decisive = sum(1 for m in matches if m.home_score != m.away_score)
        drawn = len(matches) - decisive
        assert sum(r.points for r in table.rows) == 3 * decisive + 2 * drawn

    def test_goal_difference_is_consistent(self, group_abcd):
        groups, assignments = group_abcd
        matches = [_match("a", "b", 5, 0), _match("b", "c", 2, 2), _match("d", "a", 1, 3)]
        (table,) = compute_group_tables(groups, assignments, matches, NAMES)

        for row in table.rows:
            assert row.goal_difference == row.goals_for - row.goals_against

    def test_unfinished_and_unscored_matches_ignored(self, group_abcd):
        groups, assignments = group_abcd
        matches = [
            _match("a", "b", 2, 0, status="scheduled"),
            _match("c", "d", None, 1),
            _match("a", "c", 1, 0, stage="knockout"),
        ]
        (table,) = compute_group_tables(groups, assignments, matches, NAMES)

        assert all(r.played == 0 for r in table.rows)

    def test_unassigned_participant_is_added(self):
        """A team that played in the group but is not assigned still shows up."""
        groups = [_group(1, "Group A")]
        (table,) = compute_group_tables(groups, [_assign("a", 1)], [_match("a", "b", 1, 1)], NAMES)

        assert {r.team_id for r in table.rows} == {"a", "b"}

    def test_matches_only_count_in_their_group(self):
        groups = [_group(1, "Group A"), _group(2, "Group B")]
        assignments = [_assign("a", 1), _assign("b", 1), _assign("c", 2), _assign("d", 2)]
        matches = [_match("a", "b", 1, 0, group_id=1), _match("c", "d", 0, 2, group_id=2)]

        tables = compute_group_tables(groups, assignments, matches, NAMES)

        assert [t.group_name for t in tables] == ["Group A", "Group B"]
        assert [r.team_id for r in tables[0].rows] == ["a", "b"]
        assert [r.team_id for r in tables[1].rows] == ["d", "c"]

    def test_match_with_unknown_group_is_skipped(self, group_abcd):
        groups, assignments = group_abcd
        (table,) = compute_group_tables(groups, assignments, [_match("a", "b", 1, 0, group_id=99)], NAMES)
        assert all(r.played == 0 for r in table.rows)


class TestStandingSort:
    """Tests for the table ordering."""

    def _row(self, name, points=0, gf=0, ga=0):
        row = TeamStanding(team_id=name.lower(), team_name=name)
        row.points = points
        row.goals_for = gf
        row.goals_against = ga
        row.goal_difference = gf - ga
        return row

    def test_points_then_goal_difference_then_goals_for(self):
        rows = [
            self._row("Low", points=1),
            self._row("MoreGoals", points=4, gf=5, ga=3),
            self._row("BetterGD", points=4, gf=3, ga=0),
            self._row("FewerGoals", points=4, gf=4, ga=2),
        ]
        ordered = [r.team_name for r in sort_standings(rows)]
        assert ordered == ["BetterGD", "MoreGoals", "FewerGoals", "Low"]

    def test_full_tie_breaks_on_name(self):
        rows = [self._row("Zoology", 3, 2, 1), self._row("Architecture", 3, 2, 1)]
        assert [r.team_name for r in sort_standings(rows)] == ["Architecture", "Zoology"]

    def test_sort_is_idempotent(self):
        rows = [
            self._row("D", 3, 1, 0),
            self._row("C", 3, 1, 0),
            self._row("B", 1, 2, 2),
            self._row("A", 1, 2, 2),
        ]
        once = sort_standings(rows)
        twice = sort_standings(once)
        assert [r.team_name for r in once] == [r.team_name for r in twice]
        assert [r.team_name for r in once] == ["C", "D", "A", "B"]

    def test_same_name_ties_break_on_numeric_id(self):
        rows = [TeamStanding(team_id=10, team_name="Law"), TeamStanding(team_id=9, team_name="Law")]
        assert [r.team_id for r in sort_standings(rows)] == [9, 10]

    def test_apply_keeps_goal_difference_in_step(self):
        row = TeamStanding(team_id=1, team_name="A")
        for scored, conceded in ((2, 1), (0, 3), (4, 4)):
            row.apply(scored, conceded)
            assert row.goal_difference == row.goals_for - row.goals_against
        assert (row.won, row.drawn, row.lost, row.points) == (1, 1, 1, 4)
