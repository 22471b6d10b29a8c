"""
Fan prediction game.

Fans guess the score of a match before it is finished. A guess is
submitted once and never changed. Points per guess:

- 3 for the exact score
- 1 for the right outcome (home win / draw / away win)
- 0 otherwise

Only finished matches score. The leaderboard is a read-only view built
from predictions joined to finished results on every call.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campustad.db.models import Match, Prediction, Profile
from campustad.web.auth import is_allowed

logger = logging.getLogger(__name__)

EXACT_SCORE_POINTS = 3
CORRECT_OUTCOME_POINTS = 1


def _outcome(home: int, away: int) -> int:
    return (home > away) - (home < away)


def score_prediction(pred_home: int, pred_away: int, actual_home: int, actual_away: int) -> int:
    """Points earned by a single guess against a final score."""
    if pred_home == actual_home and pred_away == actual_away:
        return EXACT_SCORE_POINTS
    if _outcome(pred_home, pred_away) == _outcome(actual_home, actual_away):
        return CORRECT_OUTCOME_POINTS
    return 0


def _goals(raw: Any, side: str) -> int:
    if isinstance(raw, bool):
        raise ValueError(f"{side} prediction must be a whole number")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{side} prediction must be a whole number") from None
    if value < 0:
        raise ValueError(f"{side} prediction cannot be negative")
    return value


def submit_prediction(
    db: Session,
    profile: Profile,
    match_id: int,
    home_pred: Any,
    away_pred: Any,
) -> Prediction:
    """
    Store a fan's one-time guess for a match that is not finished yet.

    Raises:
        PermissionError: caller is not an active fan
        ValueError: unknown/finished match, bad numbers, or a repeat guess
    """
    if not is_allowed(profile.role, profile.status, "predict"):
        raise PermissionError("Only fans can submit predictions.")

    match = db.get(Match, match_id)
    if match is None:
        raise ValueError("Match not found")
    if match.is_finished:
        raise ValueError("Predictions are closed for finished matches")

    home = _goals(home_pred, "Home")
    away = _goals(away_pred, "Away")

    already = (
        db.query(Prediction.id)
        .filter(Prediction.match_id == match.id, Prediction.user_id == profile.id)
        .first()
    )
    if already is not None:
        raise ValueError("Prediction already submitted")

    prediction = Prediction(match_id=match.id, user_id=profile.id, home_pred=home, away_pred=away)
    db.add(prediction)
    try:
        db.flush()
    except IntegrityError:
        # Concurrent duplicate from another tab/device; caller rolls back.
        raise ValueError("Prediction already submitted") from None
    logger.info("Prediction %s-%s by profile id=%s for match id=%s", home, away, profile.id, match.id)
    return prediction


def my_predictions(db: Session, user_id: int) -> list[dict]:
    """A fan's guesses, with points once the match is finished."""
    rows = (
        db.query(Prediction, Match)
        .join(Match, Prediction.match_id == Match.id)
        .filter(Prediction.user_id == user_id)
        .order_by(Match.start_time.is_(None), Match.start_time.asc(), Match.id.asc())
        .all()
    )
    out = []
    for pred, match in rows:
        points: Optional[int] = None
        if match.has_result:
            points = score_prediction(pred.home_pred, pred.away_pred, match.home_score, match.away_score)
        out.append({
            "match_id": match.id,
            "home_pred": pred.home_pred,
            "away_pred": pred.away_pred,
            "match_status": match.status,
            "points": points,
        })
    return out


@dataclass
class PredictionStanding:
    user_id: int
    name: str
    university: Optional[str]
    total_points: int = 0
    predictions_count: int = 0

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "university": self.university,
            "total_points": self.total_points,
            "predictions_count": self.predictions_count,
        }


def prediction_leaderboard(db: Session, limit: int = 50) -> list[PredictionStanding]:
    """
    Read-only leaderboard of every fan who has predicted.

    Sorted by total points, then number of predictions (both descending),
    then name.
    """
    rows = (
        db.query(Prediction, Match, Profile)
        .join(Match, Prediction.match_id == Match.id)
        .join(Profile, Prediction.user_id == Profile.id)
        .all()
    )
    table: dict[int, PredictionStanding] = {}
    for pred, match, profile in rows:
        entry = table.get(profile.id)
        if entry is None:
            entry = table[profile.id] = PredictionStanding(
                user_id=profile.id, name=profile.name, university=profile.university
            )
        entry.predictions_count += 1
        if match.has_result:
            entry.total_points += score_prediction(
                pred.home_pred, pred.away_pred, match.home_score, match.away_score
            )

    ranked = sorted(
        table.values(),
        key=lambda e: (-e.total_points, -e.predictions_count, e.name.lower(), e.user_id),
    )
    return ranked[: max(limit, 0)]
