# readmaster/schemas/flashcard_schemas.py

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CardType = Literal["vocabulary", "concept", "comprehension", "quote"]


# generation request
class GenerateFlashcardsRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    book_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=50, max_length=50000)
    card_types: List[CardType] = Field(default_factory=lambda: ["vocabulary", "concept"], min_length=1)
    card_count: int = Field(10, ge=1, le=30)
    chapter_id: Optional[str] = None
    source_offset: Optional[int] = Field(None, ge=0)


class FlashcardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    book_id: Optional[str] = None
    front: str
    back: str
    type: str
    status: str
    tags: List[str] = []
    ease_factor: float
    interval: int
    repetitions: int
    due_date: datetime


class GenerationSummary(BaseModel):
    total_cards: int
    by_type: Dict[str, int]
    average_difficulty: float
    duplicates_removed: int
    requested_count: int
    generated_count: int
    saved_count: int


class TokenUsage(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class GenerateFlashcardsResponse(BaseModel):
    flashcards: List[FlashcardOut]
    summary: GenerationSummary
    book_id: str
    usage: TokenUsage
    duration_ms: int


# review request
class ReviewRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=4)


class ReviewDetail(BaseModel):
    rating: int
    is_correct: bool
    is_lapse: bool
    previous_interval: int
    new_interval: int
    previous_ease: float
    new_ease: float


class ReviewResponse(BaseModel):
    flashcard: FlashcardOut
    review: ReviewDetail
    xp_awarded: int
    achievements_awarded: int
    total_cards_reviewed: int


class DueFlashcardsResponse(BaseModel):
    flashcards: List[FlashcardOut]
    total_due: int
    overdue_count: int
