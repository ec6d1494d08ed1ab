# readmaster/models/stats.py
"""
Per-user gamification stats, created lazily on the first qualifying event
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from readmaster.utils.dates import utcnow
from .base import Base, new_id


class UserStats(Base):
    __tablename__ = "user_stats"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    last_activity_date = Column(DateTime)
    total_xp = Column(Integer, default=0, nullable=False)
    total_cards_reviewed = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
