# readmaster/models/user.py
"""
User model
"""

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy import Enum as SQLEnum

from readmaster.utils.dates import utcnow
from .base import Base, new_id

USER_TIERS = ("FREE", "PRO", "SCHOLAR")


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    clerk_id = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    username = Column(String(50), unique=True)
    first_name = Column(String(100))
    tier = Column(SQLEnum(*USER_TIERS, name="user_tier"), default="FREE", nullable=False)
    is_profile_public = Column(Boolean, default=True, nullable=False)
    ai_enabled = Column(Boolean, default=True, nullable=False)
    reading_level = Column(String(50))
    preferred_lang = Column(String(2), default="en")
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime)
