"""
Roster, team and group registry.

CRUD over teams, groups, team-group assignments, roster players,
team-player assignments and per-player stat counters, plus profile
approval and roster-to-profile linking.

Every function takes the caller's Session, flushes but never commits
(the caller owns the transaction) and raises ValueError with a message
fit for an error banner when the input is rejected.

Usage:
    from campustad.services import registry

    with get_session() as session:
        team = registry.create_team(session, "Engineering FC")
        player = registry.create_player_with_stats(session, "Sam Doe", position="MID")
        registry.add_team_player(session, team.id, player.id)
"""

import logging
from collections import Counter
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from campustad.db.models import (
    PROFILE_ROLES,
    PROFILE_STATUSES,
    GoalEvent,
    Group,
    Match,
    Player,
    PlayerStats,
    Profile,
    Team,
    TeamGroupAssignment,
    TeamPlayerAssignment,
    position_rank,
)
from campustad.standings.leaderboards import player_display_name

logger = logging.getLogger(__name__)

STAT_FIELDS: tuple[str, ...] = ("matches_played", "goals", "assists", "motm")
PLAYER_EDITABLE_FIELDS: tuple[str, ...] = ("full_name", "display_name", "university", "position")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _require_name(value: Optional[str], what: str) -> str:
    name = _clean(value)
    if not name:
        raise ValueError(f"{what} is required")
    return name


# =============================================================================
# Profiles
# =============================================================================

def set_profile_status(db: Session, profile_id: int, status: str) -> Profile:
    """Approve, disable or reject an account."""
    if status not in PROFILE_STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(PROFILE_STATUSES)}")
    profile = db.get(Profile, profile_id)
    if profile is None:
        raise ValueError("Profile not found")
    profile.status = status
    db.flush()
    return profile


def pending_players(db: Session) -> list[Profile]:
    """Player sign-ups awaiting approval, oldest first."""
    return (
        db.query(Profile)
        .filter(Profile.role == "player", Profile.status == "pending")
        .order_by(Profile.created_at.asc(), Profile.id.asc())
        .all()
    )


def list_profiles(db: Session, role: Optional[str] = None) -> list[Profile]:
    """Accounts, newest first, optionally narrowed to one role."""
    query = db.query(Profile)
    if role:
        if role not in PROFILE_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(PROFILE_ROLES)}")
        query = query.filter(Profile.role == role)
    return query.order_by(Profile.created_at.desc(), Profile.id.desc()).all()


# =============================================================================
# Teams and groups
# =============================================================================

def list_teams(db: Session) -> list[Team]:
    return db.query(Team).order_by(Team.name.asc()).all()


def get_team(db: Session, team_id: int) -> Optional[Team]:
    return db.get(Team, team_id)


def team_names(db: Session) -> dict[int, str]:
    return dict(db.query(Team.id, Team.name).all())


def create_team(db: Session, name: str, university: Optional[str] = None) -> Team:
    team = Team(name=_require_name(name, "Team name"), university=_clean(university))
    db.add(team)
    db.flush()
    return team


def delete_team(db: Session, team_id: int) -> None:
    """Delete a team; its group assignment and roster links go with it."""
    team = db.get(Team, team_id)
    if team is None:
        raise ValueError("Team not found")
    db.delete(team)
    db.flush()


def list_groups(db: Session) -> list[Group]:
    return db.query(Group).order_by(Group.name.asc()).all()


def create_group(db: Session, name: str) -> Group:
    group = Group(name=_require_name(name, "Group name"))
    db.add(group)
    db.flush()
    return group


def delete_group(db: Session, group_id: int) -> None:
    """Delete an empty group. Groups with fixtures must be cleared first."""
    group = db.get(Group, group_id)
    if group is None:
        raise ValueError("Group not found")
    has_matches = db.query(Match.id).filter(Match.group_id == group_id).first() is not None
    if has_matches:
        raise ValueError("Group has matches")
    db.delete(group)
    db.flush()


def list_team_groups(db: Session) -> list[TeamGroupAssignment]:
    return db.query(TeamGroupAssignment).all()


def assign_team_group(db: Session, team_id: int, group_id: Optional[int]) -> Optional[TeamGroupAssignment]:
    """
    Put a team in a group (upsert by team). A falsy group_id removes
    the team from whatever group it was in.
    """
    if not team_id or db.get(Team, team_id) is None:
        raise ValueError("Team not found")

    existing = db.get(TeamGroupAssignment, team_id)
    if not group_id:
        if existing is not None:
            db.delete(existing)
            db.flush()
        return None

    if db.get(Group, group_id) is None:
        raise ValueError("Group not found")

    if existing is None:
        existing = TeamGroupAssignment(team_id=team_id, group_id=group_id)
        db.add(existing)
    else:
        existing.group_id = group_id
    db.flush()
    return existing


# =============================================================================
# Players
# =============================================================================

def list_players(db: Session) -> list[Player]:
    return db.query(Player).order_by(Player.created_at.asc(), Player.id.asc()).all()


def create_player_with_stats(
    db: Session,
    full_name: str,
    university: Optional[str] = None,
    position: Optional[str] = None,
    display_name: Optional[str] = None,
) -> Player:
    """Create a roster player together with a zeroed stats row."""
    player = Player(
        full_name=_require_name(full_name, "Full name"),
        display_name=_clean(display_name),
        university=_clean(university),
        position=_clean(position),
    )
    player.stats = PlayerStats(matches_played=0, goals=0, assists=0, motm=0)
    db.add(player)
    db.flush()
    return player


def update_player(db: Session, player_id: int, patch: Mapping[str, Any]) -> Player:
    player = db.get(Player, player_id)
    if player is None:
        raise ValueError("Player not found")
    unknown = set(patch) - set(PLAYER_EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update player fields: {', '.join(sorted(unknown))}")
    for key, value in patch.items():
        if key == "full_name":
            player.full_name = _require_name(value, "Full name")
        else:
            setattr(player, key, _clean(value))
    db.flush()
    return player


def delete_player(db: Session, player_id: int) -> None:
    """Delete a roster player. Players credited with goals cannot be deleted."""
    player = db.get(Player, player_id)
    if player is None:
        raise ValueError("Player not found")
    scored = (
        db.query(GoalEvent.id)
        .filter(GoalEvent.scorer_player_id == player_id)
        .first()
    )
    if scored is not None:
        raise ValueError("Player has recorded goals; delete those goals first")
    db.delete(player)
    db.flush()


def add_team_player(db: Session, team_id: int, player_id: int) -> TeamPlayerAssignment:
    """Put a player on a team. A player already on a team must be removed first."""
    if db.get(Team, team_id) is None:
        raise ValueError("Team not found")
    if db.get(Player, player_id) is None:
        raise ValueError("Player not found")
    existing = (
        db.query(TeamPlayerAssignment)
        .filter(TeamPlayerAssignment.player_id == player_id)
        .first()
    )
    if existing is not None:
        raise ValueError("Player already assigned to a team")

    link = TeamPlayerAssignment(team_id=team_id, player_id=player_id)
    db.add(link)
    db.flush()
    return link


def remove_team_player(db: Session, team_id: int, player_id: int) -> bool:
    """Remove a roster link. Returns False when there was nothing to remove."""
    removed = (
        db.query(TeamPlayerAssignment)
        .filter(
            TeamPlayerAssignment.team_id == team_id,
            TeamPlayerAssignment.player_id == player_id,
        )
        .delete(synchronize_session="fetch")
    )
    db.flush()
    return bool(removed)


def team_player_ids(db: Session, team_id: int) -> set[int]:
    rows = (
        db.query(TeamPlayerAssignment.player_id)
        .filter(TeamPlayerAssignment.team_id == team_id)
        .all()
    )
    return {pid for (pid,) in rows}


def link_player_profile(db: Session, player_id: int, profile_id: int) -> Player:
    """Attach a login account to a roster entry (one roster player per profile)."""
    player = db.get(Player, player_id)
    if player is None:
        raise ValueError("Player not found")
    if db.get(Profile, profile_id) is None:
        raise ValueError("Profile not found")
    other = (
        db.query(Player)
        .filter(Player.linked_profile_id == profile_id, Player.id != player_id)
        .first()
    )
    if other is not None:
        raise ValueError("Profile is already linked to another roster player")
    if player.linked_profile_id not in (None, profile_id):
        raise ValueError("Roster player is already linked to another profile")
    player.linked_profile_id = profile_id
    db.flush()
    return player


def unlink_player_profile(db: Session, player_id: int) -> Player:
    player = db.get(Player, player_id)
    if player is None:
        raise ValueError("Player not found")
    player.linked_profile_id = None
    db.flush()
    return player


# =============================================================================
# Stats
# =============================================================================

def stats_by_player(db: Session) -> dict[int, PlayerStats]:
    return {s.player_id: s for s in db.query(PlayerStats).all()}


def update_player_stats(db: Session, player_id: int, patch: Mapping[str, Any]) -> PlayerStats:
    """Overwrite some of a player's counters; creates the row when missing."""
    if db.get(Player, player_id) is None:
        raise ValueError("Player not found")
    unknown = set(patch) - set(STAT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown stat fields: {', '.join(sorted(unknown))}")

    values: dict[str, int] = {}
    for key, raw in patch.items():
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ValueError(f"{key} must be a whole number") from None
        if value < 0:
            raise ValueError(f"{key} cannot be negative")
        values[key] = value

    stats = db.get(PlayerStats, player_id)
    if stats is None:
        stats = PlayerStats(player_id=player_id, matches_played=0, goals=0, assists=0, motm=0)
        db.add(stats)
    for key, value in values.items():
        setattr(stats, key, value)
    db.flush()
    return stats


def recompute_player_stats(db: Session) -> int:
    """
    Rebuild every player's counters from the match ledger.

    goals/assists come from goal events, motm from finished matches'
    man of the match, matches_played from finished matches involving
    the player's current team. Returns the number of rows written.
    """
    goals = Counter(pid for (pid,) in db.query(GoalEvent.scorer_player_id).all())
    assists = Counter(
        pid for (pid,) in db.query(GoalEvent.assist_player_id).filter(
            GoalEvent.assist_player_id.isnot(None)
        ).all()
    )
    finished = db.query(Match).filter(Match.status == "finished").all()
    motm = Counter(m.motm_player_id for m in finished if m.motm_player_id is not None)
    team_games = Counter()
    for m in finished:
        team_games[m.home_team_id] += 1
        team_games[m.away_team_id] += 1
    team_of = dict(
        db.query(TeamPlayerAssignment.player_id, TeamPlayerAssignment.team_id).all()
    )

    existing = stats_by_player(db)
    written = 0
    for (player_id,) in db.query(Player.id).all():
        stats = existing.get(player_id)
        if stats is None:
            stats = PlayerStats(player_id=player_id)
            db.add(stats)
        stats.goals = goals.get(player_id, 0)
        stats.assists = assists.get(player_id, 0)
        stats.motm = motm.get(player_id, 0)
        team_id = team_of.get(player_id)
        stats.matches_played = team_games.get(team_id, 0) if team_id is not None else 0
        written += 1
    db.flush()
    logger.info("Recomputed stats for %d players", written)
    return written


# =============================================================================
# Read models
# =============================================================================

def team_roster(db: Session, team_id: int) -> list[dict]:
    """
    Roster of one team with stats (missing stats read as zero), ordered
    GK, DEF, MID, FWD, other, then by display name.
    """
    players = (
        db.query(Player)
        .join(TeamPlayerAssignment, TeamPlayerAssignment.player_id == Player.id)
        .filter(TeamPlayerAssignment.team_id == team_id)
        .all()
    )
    players.sort(key=lambda p: (position_rank(p.position), player_display_name(p).lower()))
    stats = stats_by_player(db)
    roster = []
    for p in players:
        s = stats.get(p.id)
        roster.append({
            "id": p.id,
            "name": player_display_name(p),
            "full_name": p.full_name,
            "university": p.university,
            "position": p.position,
            "position_label": p.position_label,
            "stats": s.as_dict() if s else {k: 0 for k in STAT_FIELDS},
        })
    return roster


def player_overview(db: Session) -> list[dict]:
    """Every roster player with team, group, linked account and stats."""
    team_of = dict(db.query(TeamPlayerAssignment.player_id, TeamPlayerAssignment.team_id).all())
    group_of = {a.team_id: a.group_id for a in list_team_groups(db)}
    names = team_names(db)
    stats = stats_by_player(db)

    rows = []
    for p in list_players(db):
        team_id = team_of.get(p.id)
        s = stats.get(p.id)
        rows.append({
            "id": p.id,
            "name": player_display_name(p),
            "full_name": p.full_name,
            "university": p.university,
            "position": p.position,
            "team_id": team_id,
            "team_name": names.get(team_id) if team_id else None,
            "group_id": group_of.get(team_id) if team_id else None,
            "linked_profile_id": p.linked_profile_id,
            "stats": s.as_dict() if s else {k: 0 for k in STAT_FIELDS},
        })
    return rows
