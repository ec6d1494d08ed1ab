from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker

from readmaster.services.analytics_service import DailyAnalyticsService
from readmaster.services.similarity_service import UserSimilarityService
from readmaster.services.streak_service import StreakService
from readmaster.utils.logger import logger


class SchedulerService:
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        logger.info(" SchedulerService initialized")

    def start(self):
        try:
            self.scheduler.add_job(
                func=self.streak_check_job,
                trigger=CronTrigger(hour=0, minute=0, timezone="UTC"),
                id="streak_check",
                replace_existing=True,
            )
            self.scheduler.add_job(
                func=self.daily_analytics_job,
                trigger=CronTrigger(hour=0, minute=15, timezone="UTC"),
                id="daily_analytics",
                replace_existing=True,
            )
            self.scheduler.add_job(
                func=self.user_similarity_job,
                trigger=CronTrigger(hour=3, minute=0, timezone="UTC"),
                id="user_similarity",
                replace_existing=True,
            )
            self.scheduler.start()
            logger.info(" Scheduler started - streak check, daily analytics, user similarity registered")
        except Exception as e:
            logger.error(f" Failed to start scheduler: {e}")

    def stop(self):
        try:
            if self.scheduler.running:
                self.scheduler.shutdown()
            logger.info(" Scheduler stopped")
        except Exception as e:
            logger.error(f" Failed to stop scheduler: {e}")

    async def streak_check_job(self):
        try:
            logger.info(" Streak check job started")
            result = await StreakService(self.session_factory).process_streak_check()
            logger.info(f" Streak check job finished: {result.to_dict()}")
        except Exception as e:
            logger.error(f" Streak check job failed: {e}")

    async def daily_analytics_job(self):
        try:
            logger.info(" Daily analytics job started")
            result = await DailyAnalyticsService(self.session_factory).run()
            logger.info(f" Daily analytics job finished: {result.to_dict()}")
        except Exception as e:
            logger.error(f" Daily analytics job failed: {e}")

    async def user_similarity_job(self):
        try:
            logger.info(" User similarity job started")
            result = await UserSimilarityService(self.session_factory).run()
            logger.info(f" User similarity job finished: {result.to_dict()}")
        except Exception as e:
            logger.error(f" User similarity job failed: {e}")
