# readmaster/models/achievement.py
"""
Achievement catalog and earned achievements
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from readmaster.utils.dates import utcnow
from .base import Base, new_id


class Achievement(Base):
    __tablename__ = "achievements"

    id = Column(String(36), primary_key=True, default=new_id)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(String(255))
    category = Column(String(20), nullable=False, index=True)
    tier = Column(String(20), nullable=False)
    xp_reward = Column(Integer, default=0, nullable=False)
    criteria = Column(JSON, default=list, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class UserAchievement(Base):
    __tablename__ = "user_achievements"
    __table_args__ = (UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),)

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    achievement_id = Column(String(36), ForeignKey("achievements.id"), nullable=False)
    earned_at = Column(DateTime, default=utcnow, nullable=False)
    notified = Column(Boolean, default=False, nullable=False)
