"""
Fetch layer for the standings engine.

Each loader reads a fresh snapshot from the database and hands it to
the pure functions in campustad.standings. Nothing is cached between
requests.
"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from campustad.config import settings
from campustad.db.models import Group, Match, Player, TeamGroupAssignment
from campustad.services.registry import stats_by_player, team_names
from campustad.standings import (
    GroupTable,
    KnockoutRound,
    LeaderboardEntry,
    compute_group_tables,
    compute_knockout_groups,
    compute_leaderboard,
)


def load_group_tables(db: Session) -> list[GroupTable]:
    groups = db.query(Group).order_by(Group.name.asc()).all()
    assignments = db.query(TeamGroupAssignment).all()
    matches = db.query(Match).filter(Match.stage == "group").all()
    return compute_group_tables(groups, assignments, matches, team_names(db))


def load_knockout(db: Session) -> list[KnockoutRound]:
    matches = (
        db.query(Match)
        .options(joinedload(Match.home_team), joinedload(Match.away_team))
        .filter(Match.stage == "knockout")
        .all()
    )
    return compute_knockout_groups(matches)


def load_leaderboards(db: Session, limit: Optional[int] = None) -> dict[str, list[LeaderboardEntry]]:
    """Both leaderboards from one read of players and stats."""
    limit = settings.leaderboard_limit if limit is None else limit
    players = db.query(Player).all()
    stats = stats_by_player(db)
    return {
        "scorers": compute_leaderboard(players, stats, "scorers", limit),
        "assisters": compute_leaderboard(players, stats, "assisters", limit),
    }


def serialize_match(match: Match) -> dict:
    """JSON shape shared by match lists and knockout buckets."""
    return {
        "id": match.id,
        "stage": match.stage,
        "group_id": match.group_id,
        "home_team_id": match.home_team_id,
        "away_team_id": match.away_team_id,
        "home_team": match.home_team.name if match.home_team else None,
        "away_team": match.away_team.name if match.away_team else None,
        "start_time": match.start_time.isoformat() if match.start_time else None,
        "status": match.status,
        "home_score": match.home_score,
        "away_score": match.away_score,
        "knockout_round": match.knockout_round,
        "knockout_order": match.knockout_order,
        "knockout_label": match.knockout_label,
        "motm_player_id": match.motm_player_id,
    }


def serialize_knockout(rounds: list[KnockoutRound]) -> list[dict]:
    return [
        {
            "label": rnd.label,
            "display_name": rnd.display_name,
            "precedence": rnd.precedence,
            "matches": [serialize_match(m) for m in rnd.matches],
        }
        for rnd in rounds
    ]
