from app.models.audit_log import AuditLog
from app.models.chapter import Chapter, ChapterPage
from app.models.comment import Comment
from app.models.library_entry import LibraryEntry
from app.models.manhwa import Manhwa
from app.models.rating import ManhwaRating
from app.models.reading_progress import ReadingProgress
from app.models.user import User

__all__ = [
    "AuditLog",
    "Chapter",
    "ChapterPage",
    "Comment",
    "LibraryEntry",
    "Manhwa",
    "ManhwaRating",
    "ReadingProgress",
    "User",
]
