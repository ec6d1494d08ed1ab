# readmaster/models/similarity.py
"""
Similar-reader cache, fully replaced for each user on every nightly run
"""

from sqlalchemy import Column, DateTime, Float, ForeignKey, String

from readmaster.utils.dates import utcnow
from .base import Base, new_id


class UserSimilarity(Base):
    __tablename__ = "user_similarities"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    similar_user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    score = Column(Float, nullable=False)
    genre_overlap = Column(Float, nullable=False)
    author_overlap = Column(Float, nullable=False)
    tag_overlap = Column(Float, nullable=False)
    behavior_similarity = Column(Float, nullable=False)
    computed_at = Column(DateTime, default=utcnow, nullable=False)
