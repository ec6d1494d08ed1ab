from datetime import datetime

import pytest
from sqlalchemy.future import select

from readmaster.errors import ApiError
from readmaster.models import FlashcardReview, UserStats
from readmaster.services.review_service import determine_new_status, get_due_flashcards, review_flashcard

REVIEWED_AT = datetime(2026, 5, 1, 15, 30)


@pytest.mark.parametrize("status,reps,interval,lapse,expected", [
    ("NEW", 1, 1, False, "LEARNING"),
    ("LEARNING", 1, 1, False, "LEARNING"),
    ("LEARNING", 2, 6, False, "REVIEW"),
    ("REVIEW", 3, 15, False, "REVIEW"),
    ("REVIEW", 0, 1, True, "LEARNING"),
])
def test_status_transitions(status, reps, interval, lapse, expected):
    assert determine_new_status(status, reps, interval, lapse) == expected


@pytest.mark.asyncio
async def test_first_review_updates_card_stats_and_awards_first_review(session, factory):
    user = await factory.user()
    card = await factory.flashcard(user)

    result = await review_flashcard(session, user.id, card.id, 3, REVIEWED_AT)

    updated = result["flashcard"]
    assert updated.status == "LEARNING"
    assert updated.interval == 1
    assert updated.repetitions == 1
    assert updated.due_date == datetime(2026, 5, 2)
    assert updated.total_reviews == 1
    assert updated.correct_reviews == 1

    assert result["review"]["is_correct"] is True
    assert result["review"]["previous_interval"] == 0
    assert result["achievements_awarded"] == 1
    # 5 for the review, 25 for the first_review achievement
    assert result["xp_awarded"] == 30

    stats = (await session.execute(select(UserStats).where(UserStats.user_id == user.id))).scalar_one()
    assert stats.total_xp == 30
    assert stats.total_cards_reviewed == 1
    assert stats.last_activity_date is None

    logged = (await session.execute(select(FlashcardReview))).scalars().all()
    assert len(logged) == 1
    assert logged[0].reviewed_at == REVIEWED_AT


@pytest.mark.asyncio
async def test_lapse_sends_card_back_to_learning(session, factory):
    user = await factory.user()
    await factory.stats(user, total_cards_reviewed=5, total_xp=0)
    card = await factory.flashcard(user, status="REVIEW", interval=15, repetitions=3)

    result = await review_flashcard(session, user.id, card.id, 1, REVIEWED_AT)

    assert result["flashcard"].status == "LEARNING"
    assert result["flashcard"].correct_reviews == 0
    assert result["review"]["is_lapse"] is True
    # nothing for an Again rating; first_review still unlocks on this user's first recorded review
    assert result["xp_awarded"] == 25
    assert result["total_cards_reviewed"] == 6


@pytest.mark.asyncio
async def test_review_guards(session, factory):
    owner = await factory.user()
    other = await factory.user()
    card = await factory.flashcard(owner)
    suspended = await factory.flashcard(owner, status="SUSPENDED")

    with pytest.raises(ApiError) as exc:
        await review_flashcard(session, other.id, card.id, 3)
    assert exc.value.status_code == 403

    with pytest.raises(ApiError) as exc:
        await review_flashcard(session, owner.id, "missing", 3)
    assert exc.value.status_code == 404

    with pytest.raises(ApiError) as exc:
        await review_flashcard(session, owner.id, suspended.id, 3)
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_invalid_rating_raises(session, factory):
    user = await factory.user()
    card = await factory.flashcard(user)

    with pytest.raises(ValueError):
        await review_flashcard(session, user.id, card.id, 7)


@pytest.mark.asyncio
async def test_due_cards_are_ordered_and_filtered(session, factory):
    user = await factory.user()
    book = await factory.book(user)
    now = datetime(2026, 5, 10, 12, 0)

    oldest = await factory.flashcard(user, book, due_date=datetime(2026, 5, 1))
    today = await factory.flashcard(user, due_date=datetime(2026, 5, 10))
    await factory.flashcard(user, due_date=datetime(2026, 5, 11))
    await factory.flashcard(user, due_date=datetime(2026, 5, 1), status="SUSPENDED")
    await factory.flashcard(user, due_date=datetime(2026, 5, 1), deleted_at=datetime(2026, 5, 2))

    due = await get_due_flashcards(session, user.id, now=now)
    assert [c.id for c in due["flashcards"]] == [oldest.id, today.id]
    assert due["total_due"] == 2
    assert due["overdue_count"] == 1

    limited = await get_due_flashcards(session, user.id, limit=1, now=now)
    assert len(limited["flashcards"]) == 1
    assert limited["total_due"] == 2

    by_book = await get_due_flashcards(session, user.id, book_id=book.id, now=now)
    assert [c.id for c in by_book["flashcards"]] == [oldest.id]
