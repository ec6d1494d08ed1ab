import uuid
from datetime import datetime

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from readmaster.main import create_app
from readmaster.models import (
    Book,
    Flashcard,
    FlashcardReview,
    ReadingProgress,
    User,
    UserStats,
    create_session_factory,
    init_db,
)
from readmaster.services.achievement_service import seed_achievements


@pytest_asyncio.fixture
async def engine():
    # one shared connection so every session sees the same in-memory database
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    factory = create_session_factory(engine)
    async with factory() as session:
        await seed_achievements(session)
    return factory


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


class Factory:
    """Creates committed rows with sensible defaults."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def _save(self, row):
        async with self.session_factory() as session:
            session.add(row)
            await session.commit()
        return row

    async def user(self, **kwargs) -> User:
        suffix = uuid.uuid4().hex[:8]
        kwargs.setdefault("clerk_id", f"user_{suffix}")
        kwargs.setdefault("email", f"{suffix}@example.com")
        kwargs.setdefault("username", f"reader_{suffix}")
        return await self._save(User(**kwargs))

    async def book(self, user: User, **kwargs) -> Book:
        kwargs.setdefault("title", f"Book {uuid.uuid4().hex[:6]}")
        kwargs.setdefault("source", "UPLOAD")
        return await self._save(Book(user_id=user.id, **kwargs))

    async def stats(self, user: User, **kwargs) -> UserStats:
        return await self._save(UserStats(user_id=user.id, **kwargs))

    async def flashcard(self, user: User, book: Book = None, **kwargs) -> Flashcard:
        kwargs.setdefault("front", f"Question {uuid.uuid4().hex[:6]}")
        kwargs.setdefault("back", "Answer")
        return await self._save(Flashcard(user_id=user.id, book_id=book.id if book else None, **kwargs))

    async def review(self, card: Flashcard, reviewed_at: datetime, rating: int = 3) -> FlashcardReview:
        return await self._save(FlashcardReview(flashcard_id=card.id, rating=rating, reviewed_at=reviewed_at))

    async def progress(self, user: User, book: Book, last_read_at: datetime, **kwargs) -> ReadingProgress:
        return await self._save(ReadingProgress(user_id=user.id, book_id=book.id, last_read_at=last_read_at, **kwargs))


@pytest_asyncio.fixture
async def factory(session_factory):
    return Factory(session_factory)


@pytest_asyncio.fixture
async def app(session_factory):
    # lifespan does not run under ASGITransport; wire state by hand
    app = create_app()
    app.state.session_factory = session_factory
    app.state.flashcard_chain = None
    app.state.cron_secret = None
    app.state.scheduler = None
    return app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
