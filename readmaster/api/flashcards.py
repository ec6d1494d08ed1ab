# readmaster/api/flashcards.py

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from readmaster.api.deps import get_flashcard_chain, get_session
from readmaster.chains.flashcard_chain import FlashcardChain
from readmaster.schemas.commons_schemas import ErrorResponse, SuccessResponse
from readmaster.schemas.flashcard_schemas import (
    DueFlashcardsResponse,
    FlashcardOut,
    GenerateFlashcardsRequest,
    GenerateFlashcardsResponse,
    ReviewRequest,
    ReviewResponse,
)
from readmaster.services.flashcard_service import generate_flashcards
from readmaster.services.review_service import DEFAULT_DUE_LIMIT, MAX_DUE_LIMIT, get_due_flashcards, review_flashcard

router = APIRouter(
    tags=["flashcards"],
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


@router.post("/ai/generate-flashcards", response_model=SuccessResponse[GenerateFlashcardsResponse])
async def generate(
    request: GenerateFlashcardsRequest,
    session: AsyncSession = Depends(get_session),
    chain: Optional[FlashcardChain] = Depends(get_flashcard_chain),
):
    """Generate study cards from a book passage, skipping near-duplicates"""
    result = await generate_flashcards(
        session,
        chain,
        user_id=request.user_id,
        book_id=request.book_id,
        content=request.content,
        card_types=list(request.card_types),
        card_count=request.card_count,
        chapter_id=request.chapter_id,
        source_offset=request.source_offset,
    )
    result["flashcards"] = [FlashcardOut.model_validate(card) for card in result["flashcards"]]
    return SuccessResponse[GenerateFlashcardsResponse](data=GenerateFlashcardsResponse(**result))


@router.post("/flashcards/{flashcard_id}/review", response_model=SuccessResponse[ReviewResponse])
async def review(
    flashcard_id: str,
    request: ReviewRequest,
    session: AsyncSession = Depends(get_session),
):
    """Record a 1-4 rating and reschedule the card"""
    result = await review_flashcard(session, request.user_id, flashcard_id, request.rating)
    result["flashcard"] = FlashcardOut.model_validate(result["flashcard"])
    return SuccessResponse[ReviewResponse](data=ReviewResponse(**result))


@router.get("/flashcards/due", response_model=SuccessResponse[DueFlashcardsResponse])
async def due(
    user_id: str = Query(..., min_length=1),
    limit: int = Query(DEFAULT_DUE_LIMIT, ge=1, le=MAX_DUE_LIMIT),
    book_id: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    result = await get_due_flashcards(session, user_id, limit=limit, book_id=book_id)
    result["flashcards"] = [FlashcardOut.model_validate(card) for card in result["flashcards"]]
    return SuccessResponse[DueFlashcardsResponse](data=DueFlashcardsResponse(**result))
