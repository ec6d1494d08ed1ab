# readmaster/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from readmaster import __version__
from readmaster.api import books, cron, flashcards
from readmaster.chains.flashcard_chain import FlashcardChain
from readmaster.config import settings
from readmaster.errors import register_error_handlers
from readmaster.models import create_engine, create_session_factory, init_db
from readmaster.schemas.commons_schemas import HealthResponse
from readmaster.services.achievement_service import seed_achievements
from readmaster.services.scheduler_service import SchedulerService
from readmaster.utils.logger import setup_logger

logger = setup_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine, seed reference data and start background jobs"""
    logger.info(" Read Master API starting")
    logger.info(f" Debug mode: {settings.debug}")

    engine = create_engine(settings.database_url, echo=settings.debug)
    session_factory = create_session_factory(engine)
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.flashcard_chain = FlashcardChain()
    app.state.cron_secret = settings.cron_secret
    app.state.scheduler = None

    try:
        await init_db(engine)
        async with session_factory() as session:
            await seed_achievements(session)
        logger.info(" Database initialized")
    except Exception as e:
        logger.warning(f" Database initialization failed: {e}")

    if settings.scheduler_enabled:
        app.state.scheduler = SchedulerService(session_factory)
        app.state.scheduler.start()

    if not app.state.flashcard_chain.is_available():
        logger.warning(" OPENAI_API_KEY not set - AI flashcard generation disabled")

    yield

    logger.info(" Read Master API shutting down")
    if app.state.scheduler is not None:
        app.state.scheduler.stop()
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Read Master API",
        description="Reading and learning service: AI flashcards, spaced repetition, streaks and reader matching",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(flashcards.router, prefix="/api")
    app.include_router(books.router, prefix="/api")
    app.include_router(cron.router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "service": "Read Master API",
            "version": __version__,
            "status": "running",
            "features": [
                "AI flashcard generation",
                "SM-2 spaced repetition",
                "Reading streaks and achievements",
                "Similar reader matching",
                "URL article import",
            ],
        }

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        database = "unavailable"
        session_factory = getattr(request.app.state, "session_factory", None)
        if session_factory is not None:
            try:
                async with session_factory() as session:
                    await session.execute(text("SELECT 1"))
                database = "connected"
            except Exception as e:
                logger.error(f" Health check database error: {e}")

        scheduler = getattr(request.app.state, "scheduler", None)
        if scheduler is None:
            scheduler_state = "disabled"
        else:
            scheduler_state = "running" if scheduler.scheduler.running else "stopped"

        chain = getattr(request.app.state, "flashcard_chain", None)
        return HealthResponse(
            status="healthy" if database == "connected" else "degraded",
            database=database,
            scheduler=scheduler_state,
            ai_configured=bool(chain and chain.is_available()),
        )

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "readmaster.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
