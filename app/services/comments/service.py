"""
CommentService: threads under a title or a chapter, one level of replies.
Access to the thread itself is checked by the caller (same gates as reading);
here only content rules and the delete permission: author or admin.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from uuid import uuid4

from sqlalchemy.orm import Session

from app.access.models import Role, Viewer
from app.core.config import settings
from app.models.comment import Comment
from app.models.user import User
from app.schemas.comments import CommentOut
from app.services.audit.service import AuditService
from app.utils.metrics import comments_total

logger = logging.getLogger(__name__)

ANONYMOUS_AUTHOR = "Анонім"


class CommentValueError(ValueError):
    pass


class CommentPermissionError(Exception):
    pass


def author_name(user: User | None) -> str:
    """username, else the local part of the e-mail, else "Анонім"."""
    if user is None:
        return ANONYMOUS_AUTHOR
    if user.username and user.username.strip():
        return user.username
    if user.email:
        return user.email.split("@", 1)[0]
    return ANONYMOUS_AUTHOR


def to_comment_out(comment: Comment, user: User | None) -> CommentOut:
    return CommentOut(
        id=comment.id,
        manhwa_id=comment.manhwa_id,
        chapter_id=comment.chapter_id,
        parent_comment_id=comment.parent_comment_id,
        user_id=comment.user_id,
        author_name=author_name(user),
        content=comment.content,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )


def build_threads(rows: list[tuple[Comment, User | None]]) -> list[CommentOut]:
    """rows oldest first -> roots newest first, replies oldest first under their root."""
    roots: list[CommentOut] = []
    replies: dict[str, list[CommentOut]] = defaultdict(list)
    for comment, user in rows:
        out = to_comment_out(comment, user)
        if comment.parent_comment_id:
            replies[comment.parent_comment_id].append(out)
        else:
            roots.append(out)
    for root in roots:
        root.replies = replies.get(root.id, [])
    roots.reverse()
    return roots


class CommentService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, comment_id: str) -> Comment | None:
        return self.db.query(Comment).filter(Comment.id == comment_id).one_or_none()

    def list_thread(self, manhwa_id: str, chapter_id: str | None = None) -> list[CommentOut]:
        chapter_filter = Comment.chapter_id == chapter_id if chapter_id else Comment.chapter_id.is_(None)
        rows = (
            self.db.query(Comment, User)
            .outerjoin(User, User.id == Comment.user_id)
            .filter(Comment.manhwa_id == manhwa_id, chapter_filter)
            .order_by(Comment.created_at.asc())
            .all()
        )
        return build_threads(rows)

    def validate_content(self, content: str) -> str:
        content = (content or "").strip()
        if not content:
            raise CommentValueError("Comment is empty")
        if len(content) > settings.comment_max_length:
            raise CommentValueError(f"Comment is longer than {settings.comment_max_length} characters")
        return content

    def add(
        self,
        user_id: str,
        manhwa_id: str,
        content: str,
        chapter_id: str | None = None,
        parent_comment_id: str | None = None,
    ) -> CommentOut:
        content = self.validate_content(content)
        if parent_comment_id:
            parent = self.get(parent_comment_id)
            if parent is None or parent.manhwa_id != manhwa_id or parent.chapter_id != chapter_id:
                raise CommentValueError("Parent comment not found in this thread")
            if parent.parent_comment_id:
                raise CommentValueError("Replies to replies are not supported")

        comment = Comment(
            id=str(uuid4()),
            manhwa_id=manhwa_id,
            chapter_id=chapter_id,
            parent_comment_id=parent_comment_id or None,
            user_id=user_id,
            content=content,
        )
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)

        comments_total.labels(target="chapter" if chapter_id else "manhwa", action="create").inc()
        logger.info(
            "comment_created",
            extra={"comment_id": comment.id, "manhwa_id": manhwa_id, "chapter_id": chapter_id, "user_id": user_id},
        )
        user = self.db.query(User).filter(User.id == user_id).one_or_none()
        return to_comment_out(comment, user)

    def delete(self, comment: Comment, viewer: Viewer) -> None:
        """Author deletes own; admin deletes any (logged to the audit trail)."""
        is_author = comment.user_id == viewer.user_id
        if not is_author and viewer.role is not Role.ADMIN:
            raise CommentPermissionError("Not authorized")

        comment_id = comment.id
        self.db.delete(comment)
        if not is_author:
            AuditService(self.db).log(
                viewer.user_id,
                "comment_delete",
                "comment",
                comment_id,
                {"author_id": comment.user_id, "manhwa_id": comment.manhwa_id, "chapter_id": comment.chapter_id},
                commit=False,
            )
        self.db.commit()

        comments_total.labels(target="chapter" if comment.chapter_id else "manhwa", action="delete").inc()
        logger.info("comment_deleted", extra={"comment_id": comment_id, "user_id": viewer.user_id})
