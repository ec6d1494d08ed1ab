# readmaster/models/flashcard.py
"""
Flashcard and review log models
"""

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as SQLEnum

from readmaster.utils.dates import utcnow
from .base import Base, new_id

FLASHCARD_TYPES = ("VOCABULARY", "CONCEPT", "COMPREHENSION", "QUOTE", "CUSTOM")
FLASHCARD_STATUSES = ("NEW", "LEARNING", "REVIEW", "SUSPENDED")


class Flashcard(Base):
    __tablename__ = "flashcards"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    book_id = Column(String(36), ForeignKey("books.id"), index=True)
    source_chapter_id = Column(String(36))
    source_offset = Column(Integer)
    front = Column(Text, nullable=False)
    back = Column(Text, nullable=False)
    type = Column(SQLEnum(*FLASHCARD_TYPES, name="flashcard_type"), default="CUSTOM", nullable=False)
    status = Column(SQLEnum(*FLASHCARD_STATUSES, name="flashcard_status"), default="NEW", nullable=False)
    tags = Column(JSON, default=list, nullable=False)

    ease_factor = Column(Float, default=2.5, nullable=False)
    interval = Column(Integer, default=0, nullable=False)  # days
    repetitions = Column(Integer, default=0, nullable=False)
    due_date = Column(DateTime, default=utcnow, nullable=False, index=True)
    total_reviews = Column(Integer, default=0, nullable=False)
    correct_reviews = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime)


class FlashcardReview(Base):
    __tablename__ = "flashcard_reviews"

    id = Column(String(36), primary_key=True, default=new_id)
    flashcard_id = Column(String(36), ForeignKey("flashcards.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)  # 1..4
    reviewed_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    previous_interval = Column(Integer)
    new_interval = Column(Integer)
    previous_ease = Column(Float)
    new_ease = Column(Float)
