"""
Privileged admin dispatch.

Every admin write goes through run_admin_action(), keyed by an action
type from a fixed table. Payloads are parsed with pydantic models and
handed to the registry/ledger/news services; a handler returns the extra
fields merged into the ``{"ok": true}`` response.

The caller owns the transaction: commit when this returns, roll back
when it raises.

Usage:
    extra = run_admin_action(session, "createTeam", {"name": "Law FC"}, actor=admin)
    session.commit()
"""

import logging
from typing import Any, Callable, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from campustad.db.models import Profile
from campustad.services import ledger, news, registry

logger = logging.getLogger(__name__)


class ActionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class IdPayload(ActionPayload):
    id: int


class NamePayload(ActionPayload):
    name: str


class ProfileStatusPayload(ActionPayload):
    id: int
    status: str


class TeamGroupPayload(ActionPayload):
    team_id: int = Field(validation_alias=AliasChoices("team_id", "teamId"))
    group_id: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("group_id", "groupId")
    )


class TeamPlayerPayload(ActionPayload):
    team_id: int
    player_id: int


class NewPlayerPayload(ActionPayload):
    full_name: str
    display_name: Optional[str] = None
    university: Optional[str] = None
    position: Optional[str] = None


class PatchPayload(ActionPayload):
    id: int
    patch: dict[str, Any]


class PlayerStatsPayload(ActionPayload):
    player_id: int
    patch: dict[str, Any]


class NewMatchPayload(ActionPayload):
    match: dict[str, Any]


class NewGoalPayload(ActionPayload):
    goal: dict[str, Any] = Field(default_factory=dict)


class PlayerProfilePayload(ActionPayload):
    player_id: int
    profile_id: int


class PlayerIdPayload(ActionPayload):
    player_id: int


class NewsPostPayload(ActionPayload):
    title: Optional[str] = None
    body: Optional[str] = None
    media_type: Optional[str] = None
    media_url: Optional[str] = None


# =============================================================================
# Handlers
# =============================================================================

def _set_profile_status(db: Session, p: ProfileStatusPayload, actor: Profile) -> dict:
    registry.set_profile_status(db, p.id, p.status)
    return {}


def _create_team(db: Session, p: NamePayload, actor: Profile) -> dict:
    return {"team_id": registry.create_team(db, p.name).id}


def _delete_team(db: Session, p: IdPayload, actor: Profile) -> dict:
    registry.delete_team(db, p.id)
    return {}


def _create_group(db: Session, p: NamePayload, actor: Profile) -> dict:
    return {"group_id": registry.create_group(db, p.name).id}


def _delete_group(db: Session, p: IdPayload, actor: Profile) -> dict:
    registry.delete_group(db, p.id)
    return {}


def _assign_team_group(db: Session, p: TeamGroupPayload, actor: Profile) -> dict:
    registry.assign_team_group(db, p.team_id, p.group_id)
    return {}


def _add_team_player(db: Session, p: TeamPlayerPayload, actor: Profile) -> dict:
    registry.add_team_player(db, p.team_id, p.player_id)
    return {}


def _remove_team_player(db: Session, p: TeamPlayerPayload, actor: Profile) -> dict:
    return {"removed": registry.remove_team_player(db, p.team_id, p.player_id)}


def _create_player_with_stats(db: Session, p: NewPlayerPayload, actor: Profile) -> dict:
    player = registry.create_player_with_stats(
        db,
        p.full_name,
        university=p.university,
        position=p.position,
        display_name=p.display_name,
    )
    return {"player_id": player.id}


def _update_player(db: Session, p: PatchPayload, actor: Profile) -> dict:
    registry.update_player(db, p.id, p.patch)
    return {}


def _delete_player(db: Session, p: IdPayload, actor: Profile) -> dict:
    registry.delete_player(db, p.id)
    return {}


def _update_player_stats(db: Session, p: PlayerStatsPayload, actor: Profile) -> dict:
    registry.update_player_stats(db, p.player_id, p.patch)
    return {}


def _link_player_profile(db: Session, p: PlayerProfilePayload, actor: Profile) -> dict:
    registry.link_player_profile(db, p.player_id, p.profile_id)
    return {}


def _unlink_player_profile(db: Session, p: PlayerIdPayload, actor: Profile) -> dict:
    registry.unlink_player_profile(db, p.player_id)
    return {}


def _recompute_player_stats(db: Session, p: ActionPayload, actor: Profile) -> dict:
    return {"players_updated": registry.recompute_player_stats(db)}


def _create_match(db: Session, p: NewMatchPayload, actor: Profile) -> dict:
    return {"match_id": ledger.create_match(db, p.match).id}


def _update_match(db: Session, p: PatchPayload, actor: Profile) -> dict:
    ledger.update_match(db, p.id, p.patch)
    return {}


def _delete_match(db: Session, p: IdPayload, actor: Profile) -> dict:
    return {"goals_deleted": ledger.delete_match(db, p.id)}


def _add_goal(db: Session, p: NewGoalPayload, actor: Profile) -> dict:
    return {"goal_id": ledger.add_goal(db, p.goal).id}


def _delete_goal(db: Session, p: IdPayload, actor: Profile) -> dict:
    return {"removed": ledger.delete_goal(db, p.id)}


def _create_news_post(db: Session, p: NewsPostPayload, actor: Profile) -> dict:
    post = news.create_post(
        db,
        title=p.title,
        body=p.body,
        media_type=p.media_type,
        media_url=p.media_url,
        author_id=actor.id,
    )
    return {"post_id": post.id}


def _delete_news_post(db: Session, p: IdPayload, actor: Profile) -> dict:
    news.delete_post(db, p.id)
    return {}


# action type -> (payload model, handler)
ACTIONS: dict[str, tuple[type[ActionPayload], Callable[..., dict]]] = {
    "setProfileStatus": (ProfileStatusPayload, _set_profile_status),
    "createTeam": (NamePayload, _create_team),
    "deleteTeam": (IdPayload, _delete_team),
    "createGroup": (NamePayload, _create_group),
    "deleteGroup": (IdPayload, _delete_group),
    "assignTeamGroup": (TeamGroupPayload, _assign_team_group),
    "addTeamPlayer": (TeamPlayerPayload, _add_team_player),
    "removeTeamPlayer": (TeamPlayerPayload, _remove_team_player),
    "createPlayerWithStats": (NewPlayerPayload, _create_player_with_stats),
    "updatePlayer": (PatchPayload, _update_player),
    "deletePlayer": (IdPayload, _delete_player),
    "updatePlayerStats": (PlayerStatsPayload, _update_player_stats),
    "linkPlayerProfile": (PlayerProfilePayload, _link_player_profile),
    "unlinkPlayerProfile": (PlayerIdPayload, _unlink_player_profile),
    "recomputePlayerStats": (ActionPayload, _recompute_player_stats),
    "createMatch": (NewMatchPayload, _create_match),
    "updateMatch": (PatchPayload, _update_match),
    "deleteMatch": (IdPayload, _delete_match),
    "addGoal": (NewGoalPayload, _add_goal),
    "deleteGoal": (IdPayload, _delete_goal),
    "createNewsPost": (NewsPostPayload, _create_news_post),
    "deleteNewsPost": (IdPayload, _delete_news_post),
}


def run_admin_action(
    db: Session,
    action_type: Optional[str],
    payload: Optional[dict],
    actor: Profile,
) -> dict:
    """
    Run one admin action and return the extra response fields.

    Raises:
        ValueError: unknown action type or rejected input
        pydantic.ValidationError: payload has the wrong shape
    """
    entry = ACTIONS.get(action_type or "")
    if entry is None:
        raise ValueError("Unknown action")
    model, handler = entry

    parsed = model.model_validate(payload or {})
    extra = handler(db, parsed, actor)
    logger.info("Admin action %s by profile id=%s", action_type, actor.id)
    return extra
