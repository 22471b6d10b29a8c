"""Unit tests for the match and goal ledger."""

from datetime import datetime

import pytest

from campustad.db.models import GoalEvent, Match
from campustad.services import ledger


def _group_match(db_session, tournament, **overrides):
    teams = tournament["teams"]
    fields = {
        "stage": "group",
        "group_id": tournament["groups"]["A"].id,
        "home_team_id": teams["Engineering"].id,
        "away_team_id": teams["Medicine"].id,
    }
    fields.update(overrides)
    return ledger.create_match(db_session, fields)


class TestCreateMatch:
    """Validation on match creation."""

    def test_defaults(self, db_session, tournament):
        match = _group_match(db_session, tournament)
        assert match.status == "scheduled"
        assert (match.home_score, match.away_score) == (0, 0)
        assert match.knockout_order is None

    def test_home_and_away_must_differ(self, db_session, tournament):
        eng = tournament["teams"]["Engineering"].id
        with pytest.raises(ValueError, match="must differ"):
            _group_match(db_session, tournament, away_team_id=eng)

    def test_both_teams_required(self, db_session, tournament):
        with pytest.raises(ValueError, match="Select both"):
            _group_match(db_session, tournament, away_team_id=None)

    def test_group_stage_needs_group(self, db_session, tournament):
        with pytest.raises(ValueError, match="need a group"):
            _group_match(db_session, tournament, group_id=None)

    def test_unknown_fields_rejected(self, db_session, tournament):
        with pytest.raises(ValueError, match="Unknown match fields"):
            _group_match(db_session, tournament, venue="Main pitch")

    def test_negative_score_rejected(self, db_session, tournament):
        with pytest.raises(ValueError, match="cannot be negative"):
            _group_match(db_session, tournament, home_score=-1)

    @pytest.mark.parametrize("raw,expected", [(None, 1), ("", 1), ("abc", 1), (0, 1), (-3, 1), ("4", 4), (2.0, 2)])
    def test_knockout_order_coerced(self, db_session, tournament, raw, expected):
        match = _group_match(
            db_session,
            tournament,
            stage="knockout",
            group_id=None,
            knockout_round="QF",
            knockout_order=raw,
        )
        assert match.group_id is None
        assert match.knockout_order == expected

    def test_start_time_parsed_to_naive_utc(self, db_session, tournament):
        match = _group_match(db_session, tournament, start_time="2026-03-01T17:00:00+02:00")
        assert match.start_time == datetime(2026, 3, 1, 15, 0)

    def test_motm_must_play_in_match(self, db_session, tournament):
        lee = tournament["players"]["Lee Winger"]
        with pytest.raises(ValueError, match="Man of the match"):
            _group_match(db_session, tournament, motm_player_id=lee.id)


class TestUpdateMatch:

    def test_switching_to_group_clears_knockout_fields(self, db_session, tournament):
        match = _group_match(
            db_session, tournament, stage="knockout", group_id=None, knockout_round="SF"
        )
        ledger.update_match(db_session, match.id, {
            "stage": "group",
            "group_id": tournament["groups"]["A"].id,
        })
        assert match.knockout_round is None
        assert match.knockout_order is None

    def test_record_result(self, db_session, tournament):
        match = _group_match(db_session, tournament)
        ledger.update_match(db_session, match.id, {"status": "finished", "home_score": 3, "away_score": "1"})
        assert match.has_result
        assert (match.home_score, match.away_score) == (3, 1)

    def test_missing_match(self, db_session):
        with pytest.raises(ValueError, match="Match not found"):
            ledger.update_match(db_session, 404, {"status": "finished"})

    def test_unknown_team_rejected(self, db_session, tournament):
        match = _group_match(db_session, tournament)
        with pytest.raises(ValueError, match="Team 999 not found"):
            ledger.update_match(db_session, match.id, {"away_team_id": 999})
        assert match.away_team_id == tournament["teams"]["Medicine"].id

    def test_team_change_rechecks_man_of_the_match(self, db_session, tournament):
        kai = tournament["players"]["Kai Keeper"]
        match = _group_match(db_session, tournament, motm_player_id=kai.id)

        with pytest.raises(ValueError, match="Man of the match"):
            ledger.update_match(db_session, match.id, {"away_team_id": tournament["teams"]["Law"].id})
        assert match.away_team_id == tournament["teams"]["Medicine"].id

        lee = tournament["players"]["Lee Winger"]
        ledger.update_match(db_session, match.id, {
            "away_team_id": tournament["teams"]["Law"].id,
            "motm_player_id": lee.id,
        })
        assert match.motm_player_id == lee.id


class TestGoals:

    def test_scorer_required(self, db_session, tournament):
        match = _group_match(db_session, tournament)
        with pytest.raises(ValueError, match="Scorer is required"):
            ledger.add_goal(db_session, {
                "match_id": match.id,
                "scoring_team_id": tournament["teams"]["Engineering"].id,
            })

    def test_scoring_team_must_be_in_match(self, db_session, tournament):
        match = _group_match(db_session, tournament)
        with pytest.raises(ValueError, match="Scoring team"):
            ledger.add_goal(db_session, {
                "match_id": match.id,
                "scoring_team_id": tournament["teams"]["Law"].id,
                "scorer_player_id": tournament["players"]["Sam Striker"].id,
            })

    def test_assist_cannot_be_scorer(self, db_session, tournament):
        match = _group_match(db_session, tournament)
        sam = tournament["players"]["Sam Striker"]
        with pytest.raises(ValueError, match="Assist cannot be the scorer"):
            ledger.add_goal(db_session, {
                "match_id": match.id,
                "scoring_team_id": tournament["teams"]["Engineering"].id,
                "scorer_player_id": sam.id,
                "assist_player_id": sam.id,
            })

    def test_goal_order(self, db_session, tournament):
        match = _group_match(db_session, tournament)
        sam = tournament["players"]["Sam Striker"]
        eng = tournament["teams"]["Engineering"].id
        late = ledger.add_goal(db_session, {"match_id": match.id, "scoring_team_id": eng,
                                            "scorer_player_id": sam.id, "minute": 80})
        unknown = ledger.add_goal(db_session, {"match_id": match.id, "scoring_team_id": eng,
                                               "scorer_player_id": sam.id})
        early = ledger.add_goal(db_session, {"match_id": match.id, "scoring_team_id": eng,
                                             "scorer_player_id": sam.id, "minute": "5"})

        ordered = ledger.goals_for_match(db_session, match.id)
        assert [g.id for g in ordered] == [early.id, late.id, unknown.id]
        assert [g.id for g in ledger.order_goals(list(reversed(ordered)))] == [early.id, late.id, unknown.id]

    def test_delete_goal(self, db_session, tournament):
        match = _group_match(db_session, tournament)
        goal = ledger.add_goal(db_session, {
            "match_id": match.id,
            "scoring_team_id": tournament["teams"]["Engineering"].id,
            "scorer_player_id": tournament["players"]["Sam Striker"].id,
        })
        assert ledger.delete_goal(db_session, goal.id) is True
        assert ledger.delete_goal(db_session, goal.id) is False


def test_delete_match_removes_its_goals(db_session, tournament):
    match = _group_match(db_session, tournament, status="finished", home_score=2)
    for _ in range(2):
        ledger.add_goal(db_session, {
            "match_id": match.id,
            "scoring_team_id": tournament["teams"]["Engineering"].id,
            "scorer_player_id": tournament["players"]["Sam Striker"].id,
        })
    db_session.commit()
    match_id = match.id

    assert ledger.delete_match(db_session, match_id) == 2
    db_session.commit()

    assert db_session.get(Match, match_id) is None
    assert db_session.query(GoalEvent).filter(GoalEvent.match_id == match_id).count() == 0


def test_list_matches_filters(db_session, tournament):
    scheduled = _group_match(db_session, tournament, start_time="2026-03-02T10:00:00")
    finished = _group_match(db_session, tournament, status="finished", start_time="2026-03-01T10:00:00")
    unscheduled = _group_match(db_session, tournament)
    knockout = _group_match(db_session, tournament, stage="knockout", group_id=None)

    everything = ledger.list_matches(db_session)
    assert [m.id for m in everything][-2:] == [unscheduled.id, knockout.id]
    assert [m.id for m in everything][:2] == [finished.id, scheduled.id]

    assert [m.id for m in ledger.list_matches(db_session, statuses=["finished"])] == [finished.id]
    assert [m.id for m in ledger.list_matches(db_session, stage="knockout")] == [knockout.id]
