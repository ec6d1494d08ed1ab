# readmaster/services/review_service.py
"""
Flashcard review recording and due-card listing
"""

from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from readmaster.errors import ApiError, ErrorCodes
from readmaster.models import Flashcard, FlashcardReview, User, UserStats
from readmaster.services.achievement_service import CATEGORY_LEARNING, award_unlocked
from readmaster.services.srs_service import RATING_LABELS, Rating, SrsCardState, calculate_next_review
from readmaster.utils.dates import start_of_day_utc, to_naive_utc, utcnow
from readmaster.utils.logger import logger

FLASHCARD_CORRECT_XP = 5
XP_BY_RATING = {
    Rating.AGAIN: 0,
    Rating.HARD: FLASHCARD_CORRECT_XP // 2,
    Rating.GOOD: FLASHCARD_CORRECT_XP,
    Rating.EASY: int(FLASHCARD_CORRECT_XP * 1.5),
}

DEFAULT_DUE_LIMIT = 50
MAX_DUE_LIMIT = 200


def determine_new_status(current_status: str, new_repetitions: int, new_interval: int, is_lapse: bool) -> str:
    if is_lapse:
        return "LEARNING"
    if current_status == "NEW":
        return "LEARNING"
    if current_status == "LEARNING" and new_repetitions >= 2 and new_interval >= 1:
        return "REVIEW"
    return current_status


async def get_or_create_user_stats(session: AsyncSession, user_id: str) -> UserStats:
    stats = (await session.execute(
        select(UserStats).where(UserStats.user_id == user_id)
    )).scalar_one_or_none()
    if stats is None:
        stats = UserStats(
            user_id=user_id,
            current_streak=0,
            longest_streak=0,
            total_xp=0,
            total_cards_reviewed=0,
        )
        session.add(stats)
        await session.flush()
    return stats


async def _get_owned_flashcard(session: AsyncSession, user_id: str, flashcard_id: str) -> Flashcard:
    card = await session.get(Flashcard, flashcard_id)
    if card is None or card.deleted_at is not None:
        raise ApiError(ErrorCodes.NOT_FOUND, "Flashcard not found", 404)
    if card.user_id != user_id:
        raise ApiError(ErrorCodes.FORBIDDEN, "You do not have access to this flashcard", 403)
    return card


async def review_flashcard(
    session: AsyncSession,
    user_id: str,
    flashcard_id: str,
    rating: int,
    review_date: Optional[datetime] = None,
) -> Dict:
    """
    Apply one SM-2 review to a card and record it.

    The user's stats row is created on the first review. Streak fields are
    left to the nightly streak check, which owns ``last_activity_date``.
    """
    user = await session.get(User, user_id)
    if user is None or user.deleted_at is not None:
        raise ApiError(ErrorCodes.NOT_FOUND, "User not found", 404)

    card = await _get_owned_flashcard(session, user.id, flashcard_id)
    if card.status == "SUSPENDED":
        raise ApiError(ErrorCodes.VALIDATION_ERROR, "Cannot review a suspended flashcard", 400)

    review_date = to_naive_utc(review_date or utcnow())
    previous = SrsCardState(ease_factor=card.ease_factor, interval=card.interval, repetitions=card.repetitions)
    outcome = calculate_next_review(previous, rating, review_date)
    new_status = determine_new_status(card.status, outcome.new_repetitions, outcome.new_interval, outcome.is_lapse)
    is_correct = rating >= Rating.GOOD
    xp = XP_BY_RATING[Rating(rating)]

    card.ease_factor = outcome.new_ease_factor
    card.interval = outcome.new_interval
    card.repetitions = outcome.new_repetitions
    card.due_date = outcome.next_due_date
    card.status = new_status
    card.total_reviews = (card.total_reviews or 0) + 1
    if is_correct:
        card.correct_reviews = (card.correct_reviews or 0) + 1

    session.add(FlashcardReview(
        flashcard_id=card.id,
        rating=rating,
        reviewed_at=review_date,
        previous_interval=previous.interval,
        new_interval=outcome.new_interval,
        previous_ease=previous.ease_factor,
        new_ease=outcome.new_ease_factor,
    ))

    stats = await get_or_create_user_stats(session, user.id)
    stats.total_xp = (stats.total_xp or 0) + xp
    stats.total_cards_reviewed = (stats.total_cards_reviewed or 0) + 1

    awarded = await award_unlocked(
        session, user.id, CATEGORY_LEARNING, {"cardsReviewed": stats.total_cards_reviewed}
    )
    await session.commit()

    logger.info(
        f" Flashcard reviewed: user={user.id} card={card.id} rating={RATING_LABELS[Rating(rating)]} "
        f"interval={previous.interval}->{outcome.new_interval} status={new_status}"
    )

    return {
        "flashcard": card,
        "review": {
            "rating": rating,
            "is_correct": is_correct,
            "is_lapse": outcome.is_lapse,
            "previous_interval": previous.interval,
            "new_interval": outcome.new_interval,
            "previous_ease": previous.ease_factor,
            "new_ease": outcome.new_ease_factor,
        },
        "xp_awarded": xp + awarded["total_xp"],
        "achievements_awarded": awarded["awarded"],
        "total_cards_reviewed": stats.total_cards_reviewed,
    }


async def get_due_flashcards(
    session: AsyncSession,
    user_id: str,
    limit: int = DEFAULT_DUE_LIMIT,
    book_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict:
    """Due cards, most overdue first."""
    now = to_naive_utc(now or utcnow())
    conditions = [
        Flashcard.user_id == user_id,
        Flashcard.deleted_at.is_(None),
        Flashcard.status != "SUSPENDED",
        Flashcard.due_date <= now,
    ]
    if book_id:
        conditions.append(Flashcard.book_id == book_id)

    total_due = (await session.execute(
        select(func.count(Flashcard.id)).where(*conditions)
    )).scalar_one()

    result = await session.execute(
        select(Flashcard).where(*conditions).order_by(Flashcard.due_date.asc(), Flashcard.id.asc()).limit(limit)
    )
    cards: List[Flashcard] = list(result.scalars().all())

    today = start_of_day_utc(now)
    return {
        "flashcards": cards,
        "total_due": total_due,
        "overdue_count": sum(1 for c in cards if c.due_date < today),
    }
