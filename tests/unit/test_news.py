"""Unit tests for the news feed."""

from datetime import datetime, timedelta

import pytest

from campustad.config import settings
from campustad.services import news


def test_create_post_rules(db_session):
    with pytest.raises(ValueError, match="needs text"):
        news.create_post(db_session, title=" ", body="")
    with pytest.raises(ValueError, match="Upload a file"):
        news.create_post(db_session, body="Look", media_type="image")
    with pytest.raises(ValueError, match="Media type"):
        news.create_post(db_session, body="Look", media_type="gif")

    post = news.create_post(db_session, body="Kick-off moved", media_url="/ignored.png")
    assert post.media_type == "none"
    assert post.media_url is None


def test_list_posts_newest_first(db_session):
    older = news.create_post(db_session, body="old")
    older.created_at = datetime(2026, 1, 1)
    newer = news.create_post(db_session, body="new")
    newer.created_at = datetime(2026, 1, 2)
    db_session.flush()

    assert [p.id for p in news.list_posts(db_session)] == [newer.id, older.id]


def test_unread_count_follows_marker(db_session, fan):
    base = datetime(2026, 2, 1, 12, 0)
    for offset in range(3):
        post = news.create_post(db_session, body=f"post {offset}")
        post.created_at = base + timedelta(hours=offset)
    db_session.flush()

    assert news.unread_count(db_session, fan.id) == 3

    news.mark_read(db_session, fan.id, now=base + timedelta(minutes=30))
    assert news.unread_count(db_session, fan.id) == 2

    marker = news.mark_read(db_session, fan.id, now=base + timedelta(days=1))
    assert marker.user_id == fan.id
    assert news.unread_count(db_session, fan.id) == 0


def test_render_body_uses_markdown():
    html = news.render_body("**Final** on Friday")
    assert "<strong>Final</strong>" in html


def test_store_media(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "media_dir", str(tmp_path))
    monkeypatch.setattr(settings, "media_base_url", "/media")
    monkeypatch.setattr(settings, "media_public_host", None)

    url, media_type = news.store_media("Team Photo.JPG", b"\xff\xd8fake")

    assert media_type == "image"
    assert url.startswith("/media/news/")
    assert url.endswith(".jpg")
    stored = list((tmp_path / "news").iterdir())
    assert len(stored) == 1
    assert stored[0].read_bytes() == b"\xff\xd8fake"


def test_store_media_rejects_bad_uploads(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "media_dir", str(tmp_path))
    monkeypatch.setattr(settings, "media_max_bytes", 4)

    with pytest.raises(ValueError, match="image or video"):
        news.store_media("notes.pdf", b"%PDF")
    with pytest.raises(ValueError, match="too large"):
        news.store_media("clip.mp4", b"12345")
    with pytest.raises(ValueError, match="empty"):
        news.store_media("clip.mp4", b"")


def test_media_public_host_prefix(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "media_dir", str(tmp_path))
    monkeypatch.setattr(settings, "media_public_host", "https://cdn.campus.test/")

    url, media_type = news.store_media("goal.webm", b"video")

    assert media_type == "video"
    assert url.startswith("https://cdn.campus.test/media/news/")
