# readmaster/services/flashcard_service.py
"""
AI flashcard generation with near-duplicate suppression.

Duplicate detection compares card fronts as word sets (Jaccard index).
A candidate is dropped when it is at least ``DUPLICATE_SIMILARITY_THRESHOLD``
similar to an existing front or to a candidate kept earlier in the same batch.
"""

import re
import string
from typing import Dict, List, Optional, Sequence, Set, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from readmaster.chains.flashcard_chain import FlashcardChain, GeneratedFlashcard, parse_flashcards_response
from readmaster.errors import ApiError, ErrorCodes
from readmaster.models import AIUsageLog, Book, Flashcard, User
from readmaster.services.srs_service import create_default_state
from readmaster.utils.dates import utcnow
from readmaster.utils.logger import logger

DUPLICATE_SIMILARITY_THRESHOLD = 0.8
MAX_EXISTING_CARDS_CHECK = 100
OPERATION_GENERATE_FLASHCARDS = "generate_flashcards"

_TYPE_TO_DB = {
    "vocabulary": "VOCABULARY",
    "concept": "CONCEPT",
    "comprehension": "COMPREHENSION",
    "quote": "QUOTE",
}

_LEXILE_RE = re.compile(r"(\d+)L?", re.IGNORECASE)


def tokenize(text: str) -> Set[str]:
    """Lower-cased whitespace tokens with surrounding punctuation removed."""
    words = set()
    for token in (text or "").lower().split():
        token = token.strip(string.punctuation)
        if token:
            words.add(token)
    return words


def jaccard(first: Set, second: Set) -> float:
    if not first and not second:
        return 1.0
    if not first or not second:
        return 0.0
    return len(first & second) / len(first | second)


def calculate_similarity(text1: str, text2: str) -> float:
    return jaccard(tokenize(text1), tokenize(text2))


def is_duplicate_card(front: str, existing_fronts: Sequence[str]) -> bool:
    return any(
        calculate_similarity(front, existing) >= DUPLICATE_SIMILARITY_THRESHOLD
        for existing in existing_fronts
    )


def filter_duplicates(
    cards: Sequence[GeneratedFlashcard], existing_fronts: Sequence[str]
) -> Tuple[List[GeneratedFlashcard], int]:
    """Keep cards in order, dropping near-duplicates. Earlier cards win."""
    unique = []
    seen = list(existing_fronts)
    removed = 0

    for card in cards:
        if is_duplicate_card(card.front, seen):
            removed += 1
        else:
            unique.append(card)
            seen.append(card.front)

    return unique, removed


def map_reading_level(level: Optional[str]) -> str:
    if not level:
        return "middle_school"

    lowered = level.lower()
    if "beginner" in lowered or "k-2" in lowered:
        return "beginner"
    if "elementary" in lowered or "3-5" in lowered:
        return "elementary"
    if "middle" in lowered or "6-8" in lowered:
        return "middle_school"
    if "high" in lowered or "9-12" in lowered:
        return "high_school"
    if "college" in lowered or "undergraduate" in lowered:
        return "college"
    if "advanced" in lowered or "graduate" in lowered:
        return "advanced"

    match = _LEXILE_RE.search(level)
    if match:
        lexile = int(match.group(1))
        if lexile < 400:
            return "beginner"
        if lexile < 700:
            return "elementary"
        if lexile < 1000:
            return "middle_school"
        if lexile < 1200:
            return "high_school"
        if lexile < 1400:
            return "college"
        return "advanced"

    return "middle_school"


def build_flashcard(
    card: GeneratedFlashcard,
    user_id: str,
    book_id: str,
    chapter_id: Optional[str] = None,
    source_offset: Optional[int] = None,
) -> Flashcard:
    state = create_default_state()
    back = f"{card.back}\n\n{card.context}" if card.context else card.back
    return Flashcard(
        user_id=user_id,
        book_id=book_id,
        source_chapter_id=chapter_id,
        source_offset=source_offset,
        front=card.front,
        back=back,
        type=_TYPE_TO_DB.get(card.type, "CUSTOM"),
        status="NEW",
        tags=list(card.tags),
        ease_factor=state.ease_factor,
        interval=state.interval,
        repetitions=state.repetitions,
        due_date=utcnow(),
        total_reviews=0,
        correct_reviews=0,
    )


def calculate_card_summary(cards: Sequence[GeneratedFlashcard]) -> Dict:
    if not cards:
        return {"total_cards": 0, "by_type": {}, "average_difficulty": 0}

    by_type: Dict[str, int] = {}
    total_difficulty = 0
    for card in cards:
        by_type[card.type] = by_type.get(card.type, 0) + 1
        total_difficulty += card.difficulty

    return {
        "total_cards": len(cards),
        "by_type": by_type,
        "average_difficulty": round(total_difficulty / len(cards), 1),
    }


async def get_existing_card_fronts(session: AsyncSession, user_id: str, book_id: str) -> List[str]:
    result = await session.execute(
        select(Flashcard.front)
        .where(
            Flashcard.user_id == user_id,
            Flashcard.book_id == book_id,
            Flashcard.deleted_at.is_(None),
        )
        .order_by(Flashcard.created_at.desc())
        .limit(MAX_EXISTING_CARDS_CHECK)
    )
    return list(result.scalars().all())


async def _log_usage(session: AsyncSession, **fields) -> None:
    session.add(AIUsageLog(operation=OPERATION_GENERATE_FLASHCARDS, **fields))
    await session.commit()


async def generate_flashcards(
    session: AsyncSession,
    chain: FlashcardChain,
    user_id: str,
    book_id: str,
    content: str,
    card_types: List[str],
    card_count: int,
    chapter_id: Optional[str] = None,
    source_offset: Optional[int] = None,
) -> Dict:
    if chain is None or not chain.is_available():
        raise ApiError(ErrorCodes.SERVICE_UNAVAILABLE,
                       "AI service is not available. Please try again later.", 503)

    user = await session.get(User, user_id)
    if user is None or user.deleted_at is not None:
        raise ApiError(ErrorCodes.NOT_FOUND, "User not found", 404)
    if not user.ai_enabled:
        raise ApiError(ErrorCodes.FORBIDDEN,
                       "AI features are disabled for your account. Enable them in settings.", 403)

    book = await session.get(Book, book_id)
    if book is None or book.deleted_at is not None:
        raise ApiError(ErrorCodes.NOT_FOUND, "Book not found", 404)
    if book.user_id != user.id:
        raise ApiError(ErrorCodes.FORBIDDEN, "You do not have access to this book", 403)

    existing_fronts = await get_existing_card_fronts(session, user.id, book.id)

    try:
        llm_result = await chain.generate(
            book={
                "title": book.title,
                "author": book.author,
                "genre": book.genre,
                "description": book.description,
            },
            content=content,
            card_types=card_types,
            card_count=card_count,
            existing_fronts=existing_fronts,
            reading_level=map_reading_level(user.reading_level),
            language=user.preferred_lang or "en",
            user_name=user.first_name,
        )
    except Exception as e:
        logger.error(f" Flashcard generation failed: user={user.id} book={book.id} error={e}")
        await _log_usage(session, user_id=user.id, model=chain.model, success=False,
                         error_message=str(e)[:1000], book_id=book.id)
        raise ApiError(ErrorCodes.INTERNAL_ERROR, "Failed to generate flashcards. Please try again.", 500)

    try:
        generated = parse_flashcards_response(llm_result.text)
    except ValueError as e:
        logger.error(f" Flashcard response unparseable: user={user.id} error={e} raw={llm_result.text[:500]!r}")
        generated = []

    if not generated:
        raise ApiError(ErrorCodes.INTERNAL_ERROR, "Failed to generate flashcards. Please try again.", 500)

    unique, duplicates_removed = filter_duplicates(generated, existing_fronts)

    created = [build_flashcard(card, user.id, book.id, chapter_id, source_offset) for card in unique]
    session.add_all(created)
    session.add(AIUsageLog(
        user_id=user.id,
        operation=OPERATION_GENERATE_FLASHCARDS,
        model=llm_result.model,
        prompt_tokens=llm_result.prompt_tokens,
        completion_tokens=llm_result.completion_tokens,
        total_tokens=llm_result.total_tokens,
        duration_ms=llm_result.duration_ms,
        success=True,
        book_id=book.id,
    ))
    await session.commit()

    summary = calculate_card_summary(unique)
    summary.update({
        "duplicates_removed": duplicates_removed,
        "requested_count": card_count,
        "generated_count": len(generated),
        "saved_count": len(created),
    })

    logger.info(
        f" Flashcards generated: user={user.id} book={book.id} requested={card_count} "
        f"generated={len(generated)} saved={len(created)} duplicates={duplicates_removed}"
    )

    return {
        "flashcards": created,
        "summary": summary,
        "book_id": book.id,
        "usage": {
            "prompt_tokens": llm_result.prompt_tokens,
            "completion_tokens": llm_result.completion_tokens,
            "total_tokens": llm_result.total_tokens,
        },
        "duration_ms": llm_result.duration_ms,
    }
