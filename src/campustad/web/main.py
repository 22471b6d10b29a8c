from contextlib import asynccontextmanager
from datetime import datetime
import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError, StarletteHTTPException
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel
from starlette.middleware.sessions import SessionMiddleware
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campustad.config import settings
from campustad.db.models import Match, Player, Profile, Team
from campustad.db.session import get_db
from campustad.logs import configure_logging
from campustad.match_statuses import ALL_MATCH_STAGES, MATCH_STATUS_GROUPS, normalize_status_filter
from campustad.services import ledger, news, predictions, registry, snapshot
from campustad.services.admin_actions import run_admin_action
from campustad.web.auth import (
    authenticate_profile,
    is_allowed,
    issue_token,
    mark_login,
    optional_profile,
    register_profile,
    require_capability,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(title="Campustad", lifespan=lifespan)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.admin_session_secret,
    max_age=settings.admin_session_max_age_seconds,
)

# Mount static files
static_path = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=static_path), name="static")

# Uploaded news attachments
if settings.media_base_url.startswith("/"):
    app.mount(
        settings.media_base_url.rstrip("/") or "/media",
        StaticFiles(directory=settings.media_dir, check_dir=False),
        name="media",
    )

# Setup templates
templates_path = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=templates_path)
templates.env.filters["markdown"] = news.render_body

ADMIN_SESSION_KEY = "admin_profile_id"


def _is_api(request: Request) -> bool:
    return request.url.path.startswith("/api/")


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _page_context(request: Request, **extra: Any) -> dict:
    context = {
        "request": request,
        "now": datetime.utcnow(),
        "current_path": request.url.path,
    }
    context.update(extra)
    return context


def _current_admin(request: Request, db: Session) -> Optional[Profile]:
    profile_id = request.session.get(ADMIN_SESSION_KEY)
    if not profile_id:
        return None
    profile = db.get(Profile, profile_id)
    if profile is None or not is_allowed(profile.role, profile.status, "admin"):
        return None
    return profile


def _require_admin(request: Request, db: Session) -> Optional[RedirectResponse]:
    if _current_admin(request, db) is not None:
        return None
    next_path = request.url.path
    return RedirectResponse(
        url=f"/admin/login?next={quote(next_path, safe='/')}",
        status_code=303,
    )


@app.exception_handler(StarletteHTTPException)
async def custom_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """JSON errors under /api, a custom 404 page elsewhere."""
    if _is_api(request):
        return _error(str(exc.detail), exc.status_code)
    if exc.status_code == 404:
        return templates.TemplateResponse(
            "404.html",
            _page_context(request),
            status_code=404,
        )
    return HTMLResponse(content=str(exc.detail), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return _error(message, 400)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """A constraint the service layer did not catch first. get_db has rolled back."""
    logger.warning("Constraint violated on %s %s: %s", request.method, request.url.path, exc.orig)
    if _is_api(request):
        return _error(str(exc.orig), 400)
    return HTMLResponse(content="Bad request", status_code=400)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    if _is_api(request):
        return _error(str(exc), 400)
    return HTMLResponse(content=str(exc), status_code=400)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    if _is_api(request):
        return _error("Server error", 500)
    return HTMLResponse(content="Server error", status_code=500)


# =============================================================================
# Serializers
# =============================================================================

def _serialize_profile(profile: Profile) -> dict:
    return {
        "id": profile.id,
        "email": profile.email,
        "name": profile.name,
        "phone": profile.phone,
        "university": profile.university,
        "role": profile.role,
        "status": profile.status,
    }


def _serialize_team(team: Team, group_names: dict[int, str]) -> dict:
    group_id = team.group_assignment.group_id if team.group_assignment else None
    return {
        "id": team.id,
        "name": team.name,
        "university": team.university,
        "group_id": group_id,
        "group_name": group_names.get(group_id) if group_id else None,
    }


def _serialize_goal(goal) -> dict:
    return {
        "id": goal.id,
        "match_id": goal.match_id,
        "scoring_team_id": goal.scoring_team_id,
        "scorer_player_id": goal.scorer_player_id,
        "assist_player_id": goal.assist_player_id,
        "minute": goal.minute,
    }


def _serialize_post(post, rendered: bool = False) -> dict:
    data = {
        "id": post.id,
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "title": post.title,
        "body": post.body,
        "media_type": post.media_type,
        "media_url": post.media_url,
    }
    if rendered:
        data["body_html"] = news.render_body(post.body)
    return data


# =============================================================================
# Auth API
# =============================================================================

class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str
    role: str = "fan"
    phone: Optional[str] = None
    university: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class PredictionRequest(BaseModel):
    match_id: int
    home_pred: int
    away_pred: int


@app.post("/api/auth/register")
async def api_register(body: RegisterRequest, db: Session = Depends(get_db)):
    try:
        profile = register_profile(
            db,
            body.email,
            body.password,
            body.name,
            role=body.role,
            phone=body.phone,
            university=body.university,
        )
        db.commit()
    except ValueError as exc:
        db.rollback()
        return _error(str(exc))
    except IntegrityError:
        db.rollback()
        return _error("An account with this email already exists")

    return {"ok": True, "profile": _serialize_profile(profile), "token": issue_token(profile)}


@app.post("/api/auth/login")
async def api_login(body: LoginRequest, db: Session = Depends(get_db)):
    profile = authenticate_profile(db, body.email, body.password)
    if profile is None:
        return _error("Invalid email or password", 401)
    mark_login(db, profile)
    db.commit()
    return {"token": issue_token(profile), "profile": _serialize_profile(profile)}


@app.get("/api/me")
async def api_me(
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_capability("view")),
):
    player = profile.linked_player
    player_data = None
    if player is not None:
        team_id = player.team_assignment.team_id if player.team_assignment else None
        player_data = {
            "id": player.id,
            "name": player.name,
            "position": player.position,
            "position_label": player.position_label,
            "team_id": team_id,
            "stats": player.stats.as_dict() if player.stats else {k: 0 for k in registry.STAT_FIELDS},
        }
    return {"profile": _serialize_profile(profile), "player": player_data}


# =============================================================================
# Public read API
# =============================================================================

@app.get("/api/teams")
async def api_teams(db: Session = Depends(get_db)):
    group_names = {g.id: g.name for g in registry.list_groups(db)}
    return {"teams": [_serialize_team(t, group_names) for t in registry.list_teams(db)]}


@app.get("/api/teams/{team_id}")
async def api_team_detail(team_id: int, db: Session = Depends(get_db)):
    team = registry.get_team(db, team_id)
    if team is None:
        raise HTTPException(status_code=404, detail="Team not found")
    group_names = {g.id: g.name for g in registry.list_groups(db)}
    data = _serialize_team(team, group_names)
    data["roster"] = registry.team_roster(db, team.id)
    return data


@app.get("/api/matches")
async def api_matches(
    db: Session = Depends(get_db),
    stage: Optional[str] = Query(None),
    status: Optional[list[str]] = Query(None),
):
    if stage and stage not in ALL_MATCH_STAGES:
        return _error("Stage must be 'group' or 'knockout'")

    # Accept either raw statuses or a named group ("upcoming", "finished", "all")
    raw_statuses: Optional[list[str]] = None
    if status:
        raw_statuses = []
        for value in status:
            raw_statuses.extend(MATCH_STATUS_GROUPS.get(value.strip().lower(), (value,)))
    statuses = normalize_status_filter(raw_statuses)

    matches = ledger.list_matches(db, stage=stage, statuses=statuses)
    items = []
    for match in matches:
        data = snapshot.serialize_match(match)
        data["goals"] = [_serialize_goal(g) for g in ledger.order_goals(match.goals)]
        items.append(data)
    return {"matches": items}


@app.get("/api/matches/{match_id}")
async def api_match_detail(match_id: int, db: Session = Depends(get_db)):
    match = ledger.get_match(db, match_id)
    if match is None:
        raise HTTPException(status_code=404, detail="Match not found")
    data = snapshot.serialize_match(match)
    data["goals"] = [_serialize_goal(g) for g in ledger.order_goals(match.goals)]
    return data


@app.get("/api/standings")
async def api_standings(db: Session = Depends(get_db)):
    return {"groups": [table.as_dict() for table in snapshot.load_group_tables(db)]}


@app.get("/api/knockout")
async def api_knockout(db: Session = Depends(get_db)):
    return {"rounds": snapshot.serialize_knockout(snapshot.load_knockout(db))}


@app.get("/api/leaderboards")
async def api_leaderboards(
    db: Session = Depends(get_db),
    limit: Optional[int] = Query(None, ge=1, le=100),
):
    boards = snapshot.load_leaderboards(db, limit)
    return {kind: [entry.as_dict() for entry in entries] for kind, entries in boards.items()}


# =============================================================================
# News API
# =============================================================================

@app.get("/api/news")
async def api_news(
    db: Session = Depends(get_db),
    profile: Optional[Profile] = Depends(optional_profile),
):
    payload: dict[str, Any] = {"posts": [_serialize_post(p, rendered=True) for p in news.list_posts(db)]}
    if profile is not None:
        payload["unread"] = news.unread_count(db, profile.id)
    return payload


@app.post("/api/news/read")
async def api_news_read(
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_capability("view")),
):
    marker = news.mark_read(db, profile.id)
    db.commit()
    return {"ok": True, "last_seen_at": marker.last_seen_at.isoformat()}


# =============================================================================
# Predictions API
# =============================================================================

@app.post("/api/predictions")
async def api_submit_prediction(
    body: PredictionRequest,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_capability("predict")),
):
    try:
        prediction = predictions.submit_prediction(
            db, profile, body.match_id, body.home_pred, body.away_pred
        )
        db.commit()
    except PermissionError as exc:
        db.rollback()
        return _error(str(exc), 403)
    except ValueError as exc:
        db.rollback()
        return _error(str(exc))
    return {"ok": True, "prediction_id": prediction.id}


@app.get("/api/predictions/mine")
async def api_my_predictions(
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_capability("view")),
):
    return {"predictions": predictions.my_predictions(db, profile.id)}


@app.get("/api/predictions/leaderboard")
async def api_prediction_leaderboard(db: Session = Depends(get_db)):
    rows = predictions.prediction_leaderboard(db, settings.prediction_leaderboard_limit)
    return {"leaderboard": [row.as_dict() for row in rows]}


# =============================================================================
# Admin dispatch
# =============================================================================

@app.post("/api/admin/action")
async def api_admin_action(
    request: Request,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_capability("admin")),
):
    try:
        body = await request.json()
    except ValueError:
        return _error("Request body must be JSON")
    if not isinstance(body, dict):
        return _error("Request body must be an object with type and payload")

    action_type = body.get("type")
    try:
        extra = run_admin_action(db, action_type, body.get("payload"), admin)
        db.commit()
    except ValueError as exc:
        # pydantic.ValidationError is a ValueError too
        db.rollback()
        logger.warning("Rejected admin action %s: %s", action_type, exc)
        return _error(str(exc))
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Admin action %s violated a constraint: %s", action_type, exc.orig)
        return _error(str(exc.orig))
    except Exception:
        db.rollback()
        logger.exception("Admin action %s failed", action_type)
        return _error("Server error", 500)

    return {"ok": True, **extra}


@app.get("/api/admin/profiles")
async def api_admin_profiles(
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_capability("admin")),
    role: Optional[str] = Query(None),
):
    return {"profiles": [_serialize_profile(p) for p in registry.list_profiles(db, role)]}


@app.get("/api/admin/players")
async def api_admin_players(
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_capability("admin")),
):
    return {"players": registry.player_overview(db)}


@app.post("/api/admin/news/media")
async def api_admin_news_media(
    file: UploadFile = File(...),
    admin: Profile = Depends(require_capability("admin")),
):
    data = await file.read()
    try:
        media_url, media_type = news.store_media(file.filename or "", data)
    except ValueError as exc:
        return _error(str(exc))
    except OSError:
        logger.exception("Could not store upload %s", file.filename)
        return _error("Server error", 500)
    return {"ok": True, "media_url": media_url, "media_type": media_type}


# =============================================================================
# HTML pages
# =============================================================================

@app.get("/", response_class=HTMLResponse)
async def home():
    return RedirectResponse(url="/standings", status_code=307)


@app.get("/standings", response_class=HTMLResponse)
async def standings_page(request: Request, db: Session = Depends(get_db)):
    return templates.TemplateResponse(
        "standings.html",
        _page_context(
            request,
            groups=snapshot.load_group_tables(db),
            knockout=snapshot.load_knockout(db),
            leaderboards=snapshot.load_leaderboards(db),
        ),
    )


@app.get("/news", response_class=HTMLResponse)
async def news_page(request: Request, db: Session = Depends(get_db)):
    return templates.TemplateResponse(
        "news.html",
        _page_context(request, posts=news.list_posts(db)),
    )


@app.get("/admin/login", response_class=HTMLResponse)
async def admin_login_page(
    request: Request,
    db: Session = Depends(get_db),
    next: str = Query("/admin"),
):
    if _current_admin(request, db):
        return RedirectResponse(url="/admin", status_code=303)

    return templates.TemplateResponse(
        "admin_login.html",
        _page_context(
            request,
            next=next if next.startswith("/") else "/admin",
            error=None,
        ),
    )


@app.post("/admin/login", response_class=HTMLResponse)
async def admin_login_submit(
    request: Request,
    db: Session = Depends(get_db),
):
    form = await request.form()
    email = str(form.get("email", "")).strip().lower()
    password = str(form.get("password", ""))
    next_path = str(form.get("next", "/admin"))
    if not next_path.startswith("/"):
        next_path = "/admin"

    profile = authenticate_profile(db, email, password)
    if not profile or not is_allowed(profile.role, profile.status, "admin"):
        return templates.TemplateResponse(
            "admin_login.html",
            _page_context(request, next=next_path, error="Invalid email or password."),
            status_code=401,
        )

    request.session[ADMIN_SESSION_KEY] = profile.id
    mark_login(db, profile)
    db.commit()
    return RedirectResponse(url=next_path, status_code=303)


@app.post("/admin/logout")
async def admin_logout(request: Request):
    request.session.pop(ADMIN_SESSION_KEY, None)
    return RedirectResponse(url="/admin/login", status_code=303)


@app.get("/admin", response_class=HTMLResponse)
async def admin_home(
    request: Request,
    db: Session = Depends(get_db),
):
    redirect = _require_admin(request, db)
    if redirect:
        return redirect

    admin = _current_admin(request, db)
    counts = {
        "teams": db.query(func.count(Team.id)).scalar() or 0,
        "players": db.query(func.count(Player.id)).scalar() or 0,
        "matches": db.query(func.count(Match.id)).scalar() or 0,
    }
    return templates.TemplateResponse(
        "admin_home.html",
        _page_context(
            request,
            admin=admin,
            counts=counts,
            pending_players=registry.pending_players(db),
            profiles=registry.list_profiles(db),
            players=registry.player_overview(db),
            matches=ledger.list_matches(db),
            api_token=issue_token(admin),
        ),
    )


# Only for debugging
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "campustad.web.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
