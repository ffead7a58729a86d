"""Tests for CommentService: threading, content rules, reply depth, delete permissions."""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from app.access.models import Role, Viewer
from app.models.audit_log import AuditLog
from app.models.comment import Comment
from app.models.user import User
from app.services.comments.service import (
    CommentPermissionError,
    CommentService,
    CommentValueError,
    author_name,
    build_threads,
)

T = datetime(2025, 1, 1, tzinfo=timezone.utc)

AUTHOR = Viewer(user_id="u1", role=Role.USER)
OTHER = Viewer(user_id="u2", role=Role.VIP)
ADMIN = Viewer(user_id="a1", role=Role.ADMIN)


def _make_comment(comment_id="c-1", minutes=0, **overrides):
    data = dict(
        id=comment_id,
        manhwa_id="m-1",
        chapter_id=None,
        parent_comment_id=None,
        user_id="u1",
        content="Чудовий розділ",
        created_at=T + timedelta(minutes=minutes),
        updated_at=T + timedelta(minutes=minutes),
    )
    data.update(overrides)
    return Comment(**data)


class TestAuthorName:
    def test_username_first(self):
        assert author_name(User(id="u1", username="reader", email="r@example.com")) == "reader"

    def test_email_local_part(self):
        assert author_name(User(id="u1", username=" ", email="reader@example.com")) == "reader"

    def test_unknown_user(self):
        assert author_name(None) == "Анонім"
        assert author_name(User(id="u1")) == "Анонім"


class TestBuildThreads:
    def test_roots_newest_first_replies_oldest_first(self):
        user = User(id="u1", username="reader")
        rows = [
            (_make_comment("c-1", 0), user),
            (_make_comment("r-1", 1, parent_comment_id="c-1"), user),
            (_make_comment("c-2", 2), None),
            (_make_comment("r-2", 3, parent_comment_id="c-1"), user),
        ]
        threads = build_threads(rows)
        assert [t.id for t in threads] == ["c-2", "c-1"]
        assert [r.id for r in threads[1].replies] == ["r-1", "r-2"]
        assert threads[0].replies == []
        assert threads[0].author_name == "Анонім"

    def test_wire_shape_is_camel_case(self):
        [thread] = build_threads([(_make_comment(chapter_id="ch-1"), None)])
        dumped = thread.model_dump(by_alias=True)
        assert dumped["chapterId"] == "ch-1"
        assert dumped["authorName"] == "Анонім"
        assert "parentCommentId" in dumped


class TestAdd:
    def _make_db(self, parent=None, user=None):
        db = MagicMock()
        db.query.return_value.filter.return_value.one_or_none.side_effect = [parent, user] if parent else [user]
        return db

    def test_root_comment_is_stored_trimmed(self):
        db = self._make_db(user=User(id="u1", username="reader"))
        out = CommentService(db).add("u1", "m-1", "  Дякую за переклад  ", chapter_id="ch-1")
        stored = db.add.call_args.args[0]
        assert isinstance(stored, Comment)
        assert stored.content == "Дякую за переклад"
        assert stored.chapter_id == "ch-1"
        assert stored.parent_comment_id is None
        assert out.author_name == "reader"
        db.commit.assert_called_once()

    def test_blank_content_rejected(self):
        db = self._make_db()
        with pytest.raises(CommentValueError):
            CommentService(db).add("u1", "m-1", "   ")
        db.add.assert_not_called()

    @patch("app.services.comments.service.settings")
    def test_too_long_rejected(self, mock_settings):
        mock_settings.comment_max_length = 5
        with pytest.raises(CommentValueError):
            CommentService(self._make_db()).add("u1", "m-1", "123456")

    def test_reply_to_root(self):
        parent = _make_comment("c-1")
        db = self._make_db(parent=parent, user=None)
        out = CommentService(db).add("u2", "m-1", "+1", parent_comment_id="c-1")
        assert out.parent_comment_id == "c-1"

    def test_reply_to_reply_rejected(self):
        parent = _make_comment("r-1", parent_comment_id="c-1")
        with pytest.raises(CommentValueError):
            CommentService(self._make_db(parent=parent)).add("u2", "m-1", "+1", parent_comment_id="r-1")

    def test_reply_across_threads_rejected(self):
        parent = _make_comment("c-1", chapter_id="ch-1")
        db = self._make_db(parent=parent)
        with pytest.raises(CommentValueError):
            CommentService(db).add("u2", "m-1", "+1", chapter_id="ch-2", parent_comment_id="c-1")
        db.add.assert_not_called()

    def test_missing_parent_rejected(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.one_or_none.return_value = None
        with pytest.raises(CommentValueError):
            CommentService(db).add("u2", "m-1", "+1", parent_comment_id="nope")


class TestDelete:
    def test_author_deletes_own_without_audit(self):
        db = MagicMock()
        comment = _make_comment()
        CommentService(db).delete(comment, AUTHOR)
        db.delete.assert_called_once_with(comment)
        db.add.assert_not_called()
        db.commit.assert_called_once()

    def test_other_user_cannot_delete(self):
        db = MagicMock()
        with pytest.raises(CommentPermissionError):
            CommentService(db).delete(_make_comment(), OTHER)
        db.delete.assert_not_called()
        db.commit.assert_not_called()

    def test_admin_deletes_any_and_is_audited(self):
        db = MagicMock()
        comment = _make_comment(chapter_id="ch-1")
        CommentService(db).delete(comment, ADMIN)
        db.delete.assert_called_once_with(comment)
        entry = db.add.call_args.args[0]
        assert isinstance(entry, AuditLog)
        assert entry.action == "comment_delete"
        assert entry.actor_id == "a1"
        assert entry.payload["author_id"] == "u1"
