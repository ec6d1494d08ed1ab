# readmaster/models/__init__.py
"""
Models package
SQLAlchemy models and engine/session factories
"""

from .base import Base, create_engine, create_session_factory, init_db, new_id
from .user import User
from .book import Book, ReadingProgress
from .flashcard import Flashcard, FlashcardReview
from .stats import UserStats
from .achievement import Achievement, UserAchievement
from .similarity import UserSimilarity
from .analytics import AIUsageLog, DailyAnalytics

__all__ = [
    "Base",
    "create_engine",
    "create_session_factory",
    "init_db",
    "new_id",
    "User",
    "Book",
    "ReadingProgress",
    "Flashcard",
    "FlashcardReview",
    "UserStats",
    "Achievement",
    "UserAchievement",
    "UserSimilarity",
    "AIUsageLog",
    "DailyAnalytics",
]
