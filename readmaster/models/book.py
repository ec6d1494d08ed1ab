# readmaster/models/book.py
"""
Book and reading progress models
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as SQLEnum

from readmaster.utils.dates import utcnow
from .base import Base, new_id

BOOK_SOURCES = ("UPLOAD", "URL", "PASTE", "LIBRARY")
BOOK_STATUSES = ("WANT_TO_READ", "READING", "COMPLETED", "ABANDONED")


class Book(Base):
    __tablename__ = "books"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    author = Column(String(200))
    description = Column(Text)
    genre = Column(String(100))
    tags = Column(JSON, default=list, nullable=False)
    source = Column(SQLEnum(*BOOK_SOURCES, name="book_source"), nullable=False)
    source_url = Column(Text)
    file_type = Column(String(10))
    word_count = Column(Integer)
    estimated_read_time = Column(Integer)
    language = Column(String(2), default="en", nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    status = Column(SQLEnum(*BOOK_STATUSES, name="book_status"), default="WANT_TO_READ", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime)


class ReadingProgress(Base):
    __tablename__ = "reading_progress"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    book_id = Column(String(36), ForeignKey("books.id"), nullable=False)
    percentage = Column(Float, default=0.0, nullable=False)
    total_read_time = Column(Integer, default=0, nullable=False)  # seconds
    last_read_at = Column(DateTime, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
