# readmaster/schemas/book_schemas.py

from datetime import datetime
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


# URL import request (user-provided metadata wins over extracted)
class ImportUrlRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    author: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=50000)
    genre: Optional[str] = Field(None, max_length=100)
    tags: Optional[List[str]] = Field(None, max_length=20)
    language: Optional[str] = Field(None, min_length=2, max_length=2)
    is_public: bool = False

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https"):
            raise ValueError("URL must use http or https protocol")
        if not parsed.netloc:
            raise ValueError("Invalid URL format")
        return value

    @field_validator("title", "author", "description", "genre")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if isinstance(value, str) else value

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        if any(len(tag) > 50 for tag in value):
            raise ValueError("Tags must be at most 50 characters")
        return value


class BookOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    author: Optional[str] = None
    description: Optional[str] = None
    source: str
    source_url: Optional[str] = None
    file_type: Optional[str] = None
    word_count: Optional[int] = None
    estimated_read_time: Optional[int] = None
    genre: Optional[str] = None
    tags: List[str] = []
    language: str
    is_public: bool
    status: str
    created_at: datetime


class ExtractedData(BaseModel):
    site_name: Optional[str] = None
    published_date: Optional[str] = None
    original_url: str
    final_url: str


class ImportUrlResponse(BaseModel):
    book: BookOut
    extracted_data: ExtractedData
