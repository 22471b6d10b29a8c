"""
Admin news feed.

Posts are short markdown bodies with an optional image or video
attachment. Viewers have a single "last seen" marker; everything newer
than it counts as unread.
"""

import logging
import secrets
from datetime import datetime
from pathlib import Path
from typing import Optional

import markdown
from sqlalchemy import func
from sqlalchemy.orm import Session

from campustad.config import settings
from campustad.db.models import MEDIA_TYPES, NewsPost, NewsRead

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
VIDEO_EXTENSIONS = {"mp4", "webm", "mov", "m4v"}


def render_body(body: Optional[str]) -> str:
    """Markdown body to HTML for the public news page."""
    return markdown.markdown(body or "", extensions=["tables"])


def create_post(
    db: Session,
    title: Optional[str] = None,
    body: Optional[str] = None,
    media_type: Optional[str] = None,
    media_url: Optional[str] = None,
    author_id: Optional[int] = None,
) -> NewsPost:
    media_type = (media_type or "none").strip().lower()
    if media_type not in MEDIA_TYPES:
        raise ValueError(f"Media type must be one of: {', '.join(MEDIA_TYPES)}")
    media_url = (media_url or "").strip() or None
    if media_type != "none" and not media_url:
        raise ValueError("Upload a file for image/video posts")
    if media_type == "none":
        media_url = None

    title = (title or "").strip() or None
    body = (body or "").strip()
    if not body and not title and media_url is None:
        raise ValueError("Post needs text, a title or media")

    post = NewsPost(
        title=title,
        body=body,
        media_type=media_type,
        media_url=media_url,
        author_id=author_id,
    )
    db.add(post)
    db.flush()
    logger.info("Created news post id=%s (%s)", post.id, media_type)
    return post


def delete_post(db: Session, post_id: int) -> None:
    post = db.get(NewsPost, post_id)
    if post is None:
        raise ValueError("Post not found")
    db.delete(post)
    db.flush()


def list_posts(db: Session, limit: Optional[int] = None) -> list[NewsPost]:
    query = db.query(NewsPost).order_by(NewsPost.created_at.desc(), NewsPost.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def media_type_for(filename: str) -> str:
    """'image' or 'video' from the file extension."""
    ext = Path(filename or "").suffix.lower().lstrip(".")
    if ext in IMAGE_EXTENSIONS:
        return "image"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    raise ValueError("Only image or video files can be attached")


def store_media(filename: str, data: bytes) -> tuple[str, str]:
    """
    Write an uploaded attachment under media_dir/news/.

    Returns:
        (public URL, media type)
    """
    media_type = media_type_for(filename)
    if not data:
        raise ValueError("Uploaded file is empty")
    if len(data) > settings.media_max_bytes:
        raise ValueError("Uploaded file is too large")

    ext = Path(filename).suffix.lower().lstrip(".")
    stamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
    stored_name = f"{stamp}-{secrets.token_hex(8)}.{ext}"

    target_dir = Path(settings.media_dir) / "news"
    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / stored_name).write_bytes(data)

    url = f"{settings.media_base_url.rstrip('/')}/news/{stored_name}"
    if settings.media_public_host:
        url = settings.media_public_host.rstrip("/") + url
    logger.info("Stored %s attachment %s (%d bytes)", media_type, stored_name, len(data))
    return url, media_type


def mark_read(db: Session, user_id: int, now: Optional[datetime] = None) -> NewsRead:
    """Move the viewer's last-seen marker forward (upsert)."""
    seen_at = now or datetime.utcnow()
    marker = db.get(NewsRead, user_id)
    if marker is None:
        marker = NewsRead(user_id=user_id, last_seen_at=seen_at)
        db.add(marker)
    else:
        marker.last_seen_at = seen_at
    db.flush()
    return marker


def unread_count(db: Session, user_id: int) -> int:
    """Posts newer than the viewer's marker; all posts if never seen."""
    query = db.query(func.count(NewsPost.id))
    marker = db.get(NewsRead, user_id)
    if marker is not None:
        query = query.filter(NewsPost.created_at > marker.last_seen_at)
    return query.scalar() or 0
