# readmaster/models/analytics.py
"""
Platform analytics and AI usage logging
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from readmaster.utils.dates import utcnow
from .base import Base, new_id


class DailyAnalytics(Base):
    __tablename__ = "daily_analytics"

    id = Column(String(36), primary_key=True, default=new_id)
    date = Column(DateTime, unique=True, nullable=False)

    total_users = Column(Integer, default=0, nullable=False)
    active_users = Column(Integer, default=0, nullable=False)
    new_users = Column(Integer, default=0, nullable=False)
    churned = Column(Integer, default=0, nullable=False)
    free_users = Column(Integer, default=0, nullable=False)
    pro_users = Column(Integer, default=0, nullable=False)
    scholar_users = Column(Integer, default=0, nullable=False)

    books_added = Column(Integer, default=0, nullable=False)
    books_completed = Column(Integer, default=0, nullable=False)
    total_reading_time_min = Column(Integer, default=0, nullable=False)
    flashcards_created = Column(Integer, default=0, nullable=False)
    flashcards_reviewed = Column(Integer, default=0, nullable=False)

    ai_requests_count = Column(Integer, default=0, nullable=False)
    ai_tokens_used = Column(Integer, default=0, nullable=False)
    flashcards_gen = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class AIUsageLog(Base):
    __tablename__ = "ai_usage_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    operation = Column(String(50), nullable=False)
    model = Column(String(100), nullable=False)
    prompt_tokens = Column(Integer, default=0, nullable=False)
    completion_tokens = Column(Integer, default=0, nullable=False)
    total_tokens = Column(Integer, default=0, nullable=False)
    duration_ms = Column(Integer, default=0, nullable=False)
    success = Column(Boolean, default=True, nullable=False)
    error_message = Column(Text)
    book_id = Column(String(36), ForeignKey("books.id"))
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
