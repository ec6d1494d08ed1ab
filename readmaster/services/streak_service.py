# readmaster/services/streak_service.py
"""
Daily streak continuity processor.

Runs once per UTC day. For every user with a stats row it looks at
yesterday's activity (flashcard reviews or reading progress updates) and
either advances, resets, or leaves the streak alone, then awards any newly
reached streak milestones.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from readmaster.models import Flashcard, FlashcardReview, ReadingProgress, UserStats
from readmaster.services.achievement_service import CATEGORY_STREAK, award_unlocked
from readmaster.utils.dates import day_range_utc, is_same_day_utc, start_of_day_utc, to_naive_utc, utcnow
from readmaster.utils.logger import logger

BATCH_SIZE = 100


@dataclass
class UserStreakData:
    user_id: str
    stats_id: str
    current_streak: int
    longest_streak: int
    last_activity_date: Optional[datetime]


@dataclass
class StreakOutcome:
    maintained: bool = False
    reset: bool = False
    incremented: bool = False
    achievements_awarded: int = 0
    xp_awarded: int = 0


@dataclass
class StreakCheckResult:
    users_processed: int = 0
    streaks_checked: int = 0
    streaks_maintained: int = 0
    streaks_reset: int = 0
    streaks_incremented: int = 0
    achievements_awarded: int = 0
    total_xp_awarded: int = 0
    errors: int = 0

    def to_dict(self):
        return asdict(self)


class StreakService:
    def __init__(self, session_factory: async_sessionmaker, batch_size: int = BATCH_SIZE):
        self.session_factory = session_factory
        self.batch_size = batch_size

    async def had_activity_on_day(self, session: AsyncSession, user_id: str, day: datetime) -> bool:
        start, end = day_range_utc(day)

        review_count = (await session.execute(
            select(func.count(FlashcardReview.id))
            .join(Flashcard, Flashcard.id == FlashcardReview.flashcard_id)
            .where(
                Flashcard.user_id == user_id,
                FlashcardReview.reviewed_at >= start,
                FlashcardReview.reviewed_at < end,
            )
        )).scalar_one()
        if review_count > 0:
            return True

        reading_count = (await session.execute(
            select(func.count(ReadingProgress.id)).where(
                ReadingProgress.user_id == user_id,
                ReadingProgress.last_read_at >= start,
                ReadingProgress.last_read_at < end,
            )
        )).scalar_one()
        return reading_count > 0

    async def get_users_with_stats(self, session: AsyncSession, limit: int, offset: int) -> List[UserStreakData]:
        result = await session.execute(
            select(UserStats)
            .order_by(UserStats.created_at.asc(), UserStats.id.asc())
            .limit(limit)
            .offset(offset)
        )
        return [
            UserStreakData(
                user_id=s.user_id,
                stats_id=s.id,
                current_streak=s.current_streak,
                longest_streak=s.longest_streak,
                last_activity_date=s.last_activity_date,
            )
            for s in result.scalars().all()
        ]

    async def process_user_streak(
        self, session: AsyncSession, user: UserStreakData, reference: Optional[datetime] = None
    ) -> StreakOutcome:
        """Apply one day of streak logic for a single user and commit it."""
        outcome = StreakOutcome()
        yesterday = to_naive_utc(reference or utcnow()) - timedelta(days=1)

        if not await self.had_activity_on_day(session, user.user_id, yesterday):
            if user.current_streak > 0:
                stats = await session.get(UserStats, user.stats_id)
                stats.current_streak = 0
                await session.commit()
                outcome.reset = True
                logger.info(f" Streak reset: user={user.user_id} previous={user.current_streak}")
            return outcome

        # already advanced for this day by an earlier run
        if is_same_day_utc(user.last_activity_date, yesterday):
            outcome.maintained = True
            return outcome

        new_streak = user.current_streak + 1
        new_longest = max(user.longest_streak, new_streak)

        stats = await session.get(UserStats, user.stats_id)
        stats.current_streak = new_streak
        stats.longest_streak = new_longest
        stats.last_activity_date = start_of_day_utc(yesterday)

        awarded = await award_unlocked(session, user.user_id, CATEGORY_STREAK, {"currentStreak": new_streak})
        await session.commit()

        outcome.maintained = True
        outcome.incremented = True
        outcome.achievements_awarded = awarded["awarded"]
        outcome.xp_awarded = awarded["total_xp"]

        logger.info(
            f" Streak updated: user={user.user_id} {user.current_streak} -> {new_streak} "
            f"(longest={new_longest}, achievements={outcome.achievements_awarded})"
        )
        return outcome

    async def process_streak_check(self, reference: Optional[datetime] = None) -> StreakCheckResult:
        result = StreakCheckResult()
        reference = reference or utcnow()
        offset = 0

        while True:
            async with self.session_factory() as session:
                users = await self.get_users_with_stats(session, self.batch_size, offset)

            if not users:
                break

            for user in users:
                result.users_processed += 1
                result.streaks_checked += 1

                async with self.session_factory() as session:
                    try:
                        outcome = await self.process_user_streak(session, user, reference)
                    except Exception as e:
                        await session.rollback()
                        logger.error(f" Failed to process user streak: user={user.user_id} error={e}")
                        result.errors += 1
                        continue

                if outcome.maintained:
                    result.streaks_maintained += 1
                if outcome.reset:
                    result.streaks_reset += 1
                if outcome.incremented:
                    result.streaks_incremented += 1
                result.achievements_awarded += outcome.achievements_awarded
                result.total_xp_awarded += outcome.xp_awarded

            if len(users) < self.batch_size:
                break
            offset += self.batch_size

        return result
