"""
Match and goal ledger.

Creates, updates and deletes fixtures and their goal events. Input is
checked here, before anything is written, so the admin UI and the
dispatch endpoint share one set of rules:

- home and away teams are required and must differ
- group-stage matches need a group; knockout fields are cleared for them
- knockout_order is always >= 1 (missing or non-numeric -> 1)
- scores are non-negative; the man of the match plays for one of the sides
- a goal needs a scorer and is credited to one of the two sides; the
  assist (if any) is someone else

Deleting a match removes its goal events in the same flush (ORM cascade
plus ON DELETE CASCADE), so either both disappear or neither does.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session, selectinload

from campustad.db.models import GoalEvent, Group, Match, Player, Team, TeamPlayerAssignment
from campustad.match_statuses import ALL_MATCH_STAGES, ALL_MATCH_STATUSES

logger = logging.getLogger(__name__)

MATCH_CREATE_FIELDS: tuple[str, ...] = (
    "stage",
    "group_id",
    "home_team_id",
    "away_team_id",
    "start_time",
    "status",
    "home_score",
    "away_score",
    "knockout_round",
    "knockout_order",
    "knockout_label",
    "motm_player_id",
)
MATCH_UPDATE_FIELDS: tuple[str, ...] = MATCH_CREATE_FIELDS

KNOCKOUT_FIELDS: tuple[str, ...] = ("knockout_round", "knockout_order", "knockout_label")
DEFAULT_KNOCKOUT_ORDER = 1


def coerce_knockout_order(raw: Any) -> int:
    """Knockout order as a positive int; anything unusable becomes 1."""
    if raw is None or isinstance(raw, bool):
        return DEFAULT_KNOCKOUT_ORDER
    try:
        value = int(float(raw))
    except (TypeError, ValueError):
        return DEFAULT_KNOCKOUT_ORDER
    return max(DEFAULT_KNOCKOUT_ORDER, value)


def parse_start_time(raw: Any) -> Optional[datetime]:
    """Accept a datetime, an ISO-8601 string or blank (unscheduled)."""
    if raw is None or isinstance(raw, datetime):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Invalid start time: {text}") from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _score(raw: Any, side: str) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{side} score must be a whole number") from None
    if value < 0:
        raise ValueError(f"{side} score cannot be negative")
    return value


def _optional_text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def _check_motm(db: Session, team_ids: tuple[int, int], motm_player_id: Optional[int]) -> None:
    if motm_player_id is None:
        return
    team_id = (
        db.query(TeamPlayerAssignment.team_id)
        .filter(TeamPlayerAssignment.player_id == motm_player_id)
        .scalar()
    )
    if team_id is None or team_id not in team_ids:
        raise ValueError("Man of the match must play for one of the two teams")


# =============================================================================
# Matches
# =============================================================================

def get_match(db: Session, match_id: int) -> Optional[Match]:
    return db.get(Match, match_id)


def list_matches(
    db: Session,
    stage: Optional[str] = None,
    statuses: Optional[list[str]] = None,
) -> list[Match]:
    """Matches by kickoff (unscheduled last), goals eager-loaded."""
    query = db.query(Match).options(selectinload(Match.goals))
    if stage:
        query = query.filter(Match.stage == stage)
    if statuses:
        query = query.filter(Match.status.in_(statuses))
    return query.order_by(
        Match.start_time.is_(None),
        Match.start_time.asc(),
        Match.id.asc(),
    ).all()


def create_match(db: Session, fields: Mapping[str, Any]) -> Match:
    """Validate and insert a fixture. Nothing is written when validation fails."""
    unknown = set(fields) - set(MATCH_CREATE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown match fields: {', '.join(sorted(unknown))}")

    stage = fields.get("stage") or "group"
    if stage not in ALL_MATCH_STAGES:
        raise ValueError("Stage must be 'group' or 'knockout'")
    status = fields.get("status") or "scheduled"
    if status not in ALL_MATCH_STATUSES:
        raise ValueError("Status must be 'scheduled' or 'finished'")

    home_team_id = fields.get("home_team_id")
    away_team_id = fields.get("away_team_id")
    if not home_team_id or not away_team_id:
        raise ValueError("Select both home and away teams")
    if home_team_id == away_team_id:
        raise ValueError("Home and away teams must differ")
    for team_id in (home_team_id, away_team_id):
        if db.get(Team, team_id) is None:
            raise ValueError(f"Team {team_id} not found")

    group_id = fields.get("group_id") or None
    if stage == "group":
        if not group_id:
            raise ValueError("Group stage matches need a group")
        if db.get(Group, group_id) is None:
            raise ValueError("Group not found")

    home_score = _score(fields.get("home_score", 0), "Home")
    away_score = _score(fields.get("away_score", 0), "Away")

    match = Match(
        stage=stage,
        group_id=group_id if stage == "group" else None,
        home_team_id=home_team_id,
        away_team_id=away_team_id,
        start_time=parse_start_time(fields.get("start_time")),
        status=status,
        home_score=0 if home_score is None else home_score,
        away_score=0 if away_score is None else away_score,
    )
    if stage == "knockout":
        match.knockout_round = _optional_text(fields.get("knockout_round"))
        match.knockout_label = _optional_text(fields.get("knockout_label"))
        match.knockout_order = coerce_knockout_order(fields.get("knockout_order"))

    motm = fields.get("motm_player_id") or None
    _check_motm(db, (home_team_id, away_team_id), motm)
    match.motm_player_id = motm

    db.add(match)
    db.flush()
    logger.info("Created %s match id=%s (%s vs %s)", stage, match.id, home_team_id, away_team_id)
    return match


def update_match(db: Session, match_id: int, patch: Mapping[str, Any]) -> Match:
    """Partial update; last write wins."""
    match = db.get(Match, match_id)
    if match is None:
        raise ValueError("Match not found")
    unknown = set(patch) - set(MATCH_UPDATE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update match fields: {', '.join(sorted(unknown))}")

    stage = patch.get("stage", match.stage)
    if stage not in ALL_MATCH_STAGES:
        raise ValueError("Stage must be 'group' or 'knockout'")
    status = patch.get("status", match.status)
    if status not in ALL_MATCH_STATUSES:
        raise ValueError("Status must be 'scheduled' or 'finished'")

    home_team_id = patch.get("home_team_id", match.home_team_id)
    away_team_id = patch.get("away_team_id", match.away_team_id)
    if not home_team_id or not away_team_id:
        raise ValueError("Select both home and away teams")
    if home_team_id == away_team_id:
        raise ValueError("Home and away teams must differ")
    for team_id in (home_team_id, away_team_id):
        if team_id not in (match.home_team_id, match.away_team_id) and db.get(Team, team_id) is None:
            raise ValueError(f"Team {team_id} not found")

    group_id = patch.get("group_id", match.group_id) or None
    if stage == "group" and not group_id:
        raise ValueError("Group stage matches need a group")
    if group_id and group_id != match.group_id and db.get(Group, group_id) is None:
        raise ValueError("Group not found")

    # A team change can strand the current man of the match
    motm = (patch["motm_player_id"] or None) if "motm_player_id" in patch else match.motm_player_id
    _check_motm(db, (home_team_id, away_team_id), motm)

    match.stage = stage
    match.status = status
    match.home_team_id = home_team_id
    match.away_team_id = away_team_id
    match.group_id = group_id if stage == "group" else None

    if "start_time" in patch:
        match.start_time = parse_start_time(patch["start_time"])
    if "home_score" in patch:
        match.home_score = _score(patch["home_score"], "Home")
    if "away_score" in patch:
        match.away_score = _score(patch["away_score"], "Away")

    if stage == "knockout":
        if "knockout_round" in patch:
            match.knockout_round = _optional_text(patch["knockout_round"])
        if "knockout_label" in patch:
            match.knockout_label = _optional_text(patch["knockout_label"])
        if "knockout_order" in patch or match.knockout_order is None:
            match.knockout_order = coerce_knockout_order(patch.get("knockout_order"))
    else:
        for name in KNOCKOUT_FIELDS:
            setattr(match, name, None)

    match.motm_player_id = motm

    db.flush()
    logger.info("Updated match id=%s fields=%s", match.id, sorted(patch))
    return match


def delete_match(db: Session, match_id: int) -> int:
    """
    Delete a match and every goal event referencing it as one unit.

    Returns the number of goal events removed with it.
    """
    match = db.get(Match, match_id)
    if match is None:
        raise ValueError("Match not found")
    goal_count = len(match.goals)
    db.delete(match)
    db.flush()
    logger.info("Deleted match id=%s with %d goal events", match_id, goal_count)
    return goal_count


# =============================================================================
# Goals
# =============================================================================

def order_goals(goals: list[GoalEvent]) -> list[GoalEvent]:
    """Same order as goals_for_match, for already-loaded collections."""
    return sorted(
        goals,
        key=lambda g: (
            g.minute is None,
            g.minute or 0,
            g.created_at or datetime.min,
            g.id or 0,
        ),
    )


def goals_for_match(db: Session, match_id: int) -> list[GoalEvent]:
    """Goal events in match order: minute (unknown last), then entry time."""
    return (
        db.query(GoalEvent)
        .filter(GoalEvent.match_id == match_id)
        .order_by(
            GoalEvent.minute.is_(None),
            GoalEvent.minute.asc(),
            GoalEvent.created_at.asc(),
            GoalEvent.id.asc(),
        )
        .all()
    )


def add_goal(db: Session, payload: Mapping[str, Any]) -> GoalEvent:
    """Record a goal event for a match."""
    scorer_id = payload.get("scorer_player_id")
    if not scorer_id:
        raise ValueError("Scorer is required")

    match = db.get(Match, payload.get("match_id")) if payload.get("match_id") else None
    if match is None:
        raise ValueError("Match not found")

    scoring_team_id = payload.get("scoring_team_id")
    if not scoring_team_id or not match.involves(scoring_team_id):
        raise ValueError("Scoring team must be the home or away team of the match")

    if db.get(Player, scorer_id) is None:
        raise ValueError("Scorer not found")

    assist_id = payload.get("assist_player_id") or None
    if assist_id is not None:
        if assist_id == scorer_id:
            raise ValueError("Assist cannot be the scorer")
        if db.get(Player, assist_id) is None:
            raise ValueError("Assist player not found")

    minute = payload.get("minute")
    if minute is not None and minute != "":
        try:
            minute = int(minute)
        except (TypeError, ValueError):
            raise ValueError("Minute must be a whole number") from None
        if minute < 0:
            raise ValueError("Minute cannot be negative")
    else:
        minute = None

    goal = GoalEvent(
        match_id=match.id,
        scoring_team_id=scoring_team_id,
        scorer_player_id=scorer_id,
        assist_player_id=assist_id,
        minute=minute,
    )
    db.add(goal)
    db.flush()
    logger.info("Added goal id=%s to match id=%s", goal.id, match.id)
    return goal


def delete_goal(db: Session, goal_id: int) -> bool:
    """Delete a goal event. Missing ids are a no-op (returns False)."""
    goal = db.get(GoalEvent, goal_id)
    if goal is None:
        return False
    db.delete(goal)
    db.flush()
    return True
