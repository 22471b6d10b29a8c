"""Unit tests for the fan prediction game."""

import pytest

from campustad.services import ledger, predictions
from campustad.web.auth import register_profile


@pytest.fixture
def fixture_match(db_session, tournament):
    teams = tournament["teams"]
    return ledger.create_match(db_session, {
        "stage": "group",
        "group_id": tournament["groups"]["A"].id,
        "home_team_id": teams["Engineering"].id,
        "away_team_id": teams["Medicine"].id,
    })


@pytest.mark.parametrize(
    "pred,actual,points",
    [
        ((2, 1), (2, 1), 3),
        ((1, 0), (3, 1), 1),
        ((0, 0), (2, 2), 1),
        ((0, 2), (1, 3), 1),
        ((2, 0), (0, 1), 0),
        ((1, 1), (1, 0), 0),
    ],
)
def test_score_prediction(pred, actual, points):
    assert predictions.score_prediction(*pred, *actual) == points


def test_second_prediction_rejected(db_session, fan, fixture_match):
    predictions.submit_prediction(db_session, fan, fixture_match.id, 2, 1)
    db_session.commit()

    with pytest.raises(ValueError, match="already submitted"):
        predictions.submit_prediction(db_session, fan, fixture_match.id, 0, 0)


def test_only_active_fans_predict(db_session, fixture_match):
    player = register_profile(db_session, "pl@campus.test", "pw", "Pl", role="player")
    with pytest.raises(PermissionError):
        predictions.submit_prediction(db_session, player, fixture_match.id, 1, 0)


def test_finished_match_closed(db_session, fan, fixture_match):
    ledger.update_match(db_session, fixture_match.id, {"status": "finished"})
    with pytest.raises(ValueError, match="closed"):
        predictions.submit_prediction(db_session, fan, fixture_match.id, 1, 0)


def test_negative_guess_rejected(db_session, fan, fixture_match):
    with pytest.raises(ValueError, match="cannot be negative"):
        predictions.submit_prediction(db_session, fan, fixture_match.id, -1, 0)


def test_leaderboard_and_my_predictions(db_session, fan, fixture_match, tournament):
    other = register_profile(db_session, "zz@campus.test", "pw", "Another Fan")
    teams = tournament["teams"]
    second = ledger.create_match(db_session, {
        "stage": "group",
        "group_id": tournament["groups"]["B"].id,
        "home_team_id": teams["Law"].id,
        "away_team_id": teams["Arts"].id,
    })

    predictions.submit_prediction(db_session, fan, fixture_match.id, 2, 1)
    predictions.submit_prediction(db_session, other, fixture_match.id, 1, 0)
    predictions.submit_prediction(db_session, other, second.id, 0, 0)
    ledger.update_match(db_session, fixture_match.id, {"status": "finished", "home_score": 2, "away_score": 1})
    db_session.commit()

    board = predictions.prediction_leaderboard(db_session)
    assert [(row.name, row.total_points, row.predictions_count) for row in board] == [
        ("Fan One", 3, 1),
        ("Another Fan", 1, 2),
    ]

    mine = predictions.my_predictions(db_session, other.id)
    assert [(p["match_id"], p["points"]) for p in mine] == [
        (fixture_match.id, 1),
        (second.id, None),
    ]


def test_leaderboard_full_tie_breaks_on_name(db_session, fan, fixture_match):
    other = register_profile(db_session, "aa@campus.test", "pw", "Aaron")
    predictions.submit_prediction(db_session, fan, fixture_match.id, 0, 0)
    predictions.submit_prediction(db_session, other, fixture_match.id, 5, 5)
    db_session.commit()

    board = predictions.prediction_leaderboard(db_session, limit=1)
    assert [row.name for row in board] == ["Aaron"]
