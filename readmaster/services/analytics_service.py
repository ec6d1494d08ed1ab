# readmaster/services/analytics_service.py
"""
Daily platform metrics, aggregated for the previous UTC day.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from readmaster.models import AIUsageLog, Book, DailyAnalytics, Flashcard, FlashcardReview, ReadingProgress, User
from readmaster.services.flashcard_service import OPERATION_GENERATE_FLASHCARDS
from readmaster.utils.dates import yesterday_range_utc
from readmaster.utils.logger import logger


@dataclass
class DailyAnalyticsResult:
    date: datetime
    metrics_calculated: int
    record_created: bool
    execution_time_ms: int

    def to_dict(self):
        return {
            "date": self.date.date().isoformat(),
            "metrics_calculated": self.metrics_calculated,
            "record_created": self.record_created,
            "execution_time_ms": self.execution_time_ms,
        }


async def _count(session: AsyncSession, column, *conditions) -> int:
    result = await session.execute(select(func.count(column)).where(*conditions))
    return result.scalar_one() or 0


async def _sum(session: AsyncSession, column, *conditions) -> int:
    result = await session.execute(select(func.coalesce(func.sum(column), 0)).where(*conditions))
    return int(result.scalar_one() or 0)


class DailyAnalyticsService:
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def calculate_user_metrics(self, session: AsyncSession, start: datetime, end: datetime) -> Dict[str, int]:
        alive = User.deleted_at.is_(None)
        return {
            "total_users": await _count(session, User.id, alive),
            "active_users": await _count(session, User.id, alive, User.updated_at >= start, User.updated_at < end),
            "new_users": await _count(session, User.id, alive, User.created_at >= start, User.created_at < end),
            "churned": await _count(session, User.id, User.deleted_at >= start, User.deleted_at < end),
            "free_users": await _count(session, User.id, alive, User.tier == "FREE"),
            "pro_users": await _count(session, User.id, alive, User.tier == "PRO"),
            "scholar_users": await _count(session, User.id, alive, User.tier == "SCHOLAR"),
        }

    async def calculate_engagement_metrics(self, session: AsyncSession, start: datetime, end: datetime) -> Dict[str, int]:
        reading_seconds = await _sum(
            session, ReadingProgress.total_read_time,
            ReadingProgress.updated_at >= start, ReadingProgress.updated_at < end,
        )
        return {
            "books_added": await _count(
                session, Book.id, Book.deleted_at.is_(None), Book.created_at >= start, Book.created_at < end
            ),
            "books_completed": await _count(
                session, Book.id, Book.deleted_at.is_(None), Book.status == "COMPLETED",
                Book.updated_at >= start, Book.updated_at < end,
            ),
            "total_reading_time_min": round(reading_seconds / 60),
            "flashcards_created": await _count(
                session, Flashcard.id, Flashcard.deleted_at.is_(None),
                Flashcard.created_at >= start, Flashcard.created_at < end,
            ),
            "flashcards_reviewed": await _count(
                session, FlashcardReview.id, FlashcardReview.reviewed_at >= start, FlashcardReview.reviewed_at < end
            ),
        }

    async def calculate_ai_metrics(self, session: AsyncSession, start: datetime, end: datetime) -> Dict[str, int]:
        in_range = (AIUsageLog.created_at >= start, AIUsageLog.created_at < end)
        return {
            "ai_requests_count": await _count(session, AIUsageLog.id, *in_range),
            "ai_tokens_used": await _sum(session, AIUsageLog.total_tokens, *in_range),
            "flashcards_gen": await _count(
                session, AIUsageLog.id, AIUsageLog.operation == OPERATION_GENERATE_FLASHCARDS,
                AIUsageLog.success.is_(True), *in_range,
            ),
        }

    async def upsert_daily_analytics(self, session: AsyncSession, date: datetime, metrics: Dict[str, int]) -> bool:
        """Write one row per date. Returns True when a new row was created."""
        row = (await session.execute(
            select(DailyAnalytics).where(DailyAnalytics.date == date)
        )).scalar_one_or_none()

        created = row is None
        if created:
            row = DailyAnalytics(date=date)
            session.add(row)
        for key, value in metrics.items():
            setattr(row, key, value)

        await session.commit()
        return created

    async def run(self, reference: Optional[datetime] = None) -> DailyAnalyticsResult:
        start_time = time.time()
        start, end = yesterday_range_utc(reference)
        logger.info(f" Daily analytics started for {start.date().isoformat()}")

        async with self.session_factory() as session:
            metrics = {}
            metrics.update(await self.calculate_user_metrics(session, start, end))
            metrics.update(await self.calculate_engagement_metrics(session, start, end))
            metrics.update(await self.calculate_ai_metrics(session, start, end))

            created = await self.upsert_daily_analytics(session, start, metrics)

        result = DailyAnalyticsResult(
            date=start,
            metrics_calculated=len(metrics),
            record_created=created,
            execution_time_ms=int((time.time() - start_time) * 1000),
        )
        logger.info(
            f" Daily analytics stored for {start.date().isoformat()}: "
            f"{result.metrics_calculated} metrics, created={created}, {result.execution_time_ms}ms"
        )
        return result
