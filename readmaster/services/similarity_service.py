# readmaster/services/similarity_service.py
"""
Nightly "similar readers" recomputation.

Each eligible user gets a profile built from their library (genres, authors,
tags and how many of their books they finish). Every other eligible user is
scored against it and the best matches replace the user's previous list.
"""

from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from readmaster.models import Book, User, UserSimilarity
from readmaster.utils.dates import utcnow
from readmaster.utils.logger import logger

GENRE_WEIGHT = 0.35
AUTHOR_WEIGHT = 0.30
TAG_WEIGHT = 0.20
BEHAVIOR_WEIGHT = 0.15

MIN_SIMILARITY_SCORE = 0.1
MAX_SIMILAR_USERS = 20
MIN_BOOKS_FOR_SIMILARITY = 3
BATCH_SIZE = 50


@dataclass
class UserProfile:
    user_id: str
    genres: Counter = field(default_factory=Counter)
    authors: Counter = field(default_factory=Counter)
    tags: Set[str] = field(default_factory=set)
    total_books: int = 0
    completed_books: int = 0

    @property
    def completion_ratio(self) -> float:
        if self.total_books == 0:
            return 0.0
        return self.completed_books / self.total_books


@dataclass
class SimilarityScore:
    user_id: str
    similar_user_id: str
    score: float
    genre_overlap: float
    author_overlap: float
    tag_overlap: float
    behavior_similarity: float


@dataclass
class SimilarityJobResult:
    eligible_users: int = 0
    users_processed: int = 0
    similarities_stored: int = 0
    errors: int = 0

    def to_dict(self):
        return asdict(self)


def _normalize(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = value.strip().lower()
    return value or None


def jaccard(first: Iterable, second: Iterable) -> float:
    first, second = set(first), set(second)
    if not first and not second:
        return 1.0
    if not first or not second:
        return 0.0
    return len(first & second) / len(first | second)


def build_profile(user_id: str, books: Iterable) -> UserProfile:
    """Build a profile from objects with genre/author/tags/status attributes."""
    profile = UserProfile(user_id=user_id)
    for book in books:
        profile.total_books += 1
        if book.status == "COMPLETED":
            profile.completed_books += 1

        genre = _normalize(book.genre)
        if genre:
            profile.genres[genre] += 1
        author = _normalize(book.author)
        if author:
            profile.authors[author] += 1
        for tag in book.tags or []:
            tag = _normalize(str(tag))
            if tag:
                profile.tags.add(tag)
    return profile


def compute_similarity(user: UserProfile, other: UserProfile) -> SimilarityScore:
    genre_overlap = jaccard(user.genres.keys(), other.genres.keys())
    author_overlap = jaccard(user.authors.keys(), other.authors.keys())
    tag_overlap = jaccard(user.tags, other.tags)
    behavior = 1 - abs(user.completion_ratio - other.completion_ratio)

    weighted = (
        GENRE_WEIGHT * genre_overlap
        + AUTHOR_WEIGHT * author_overlap
        + TAG_WEIGHT * tag_overlap
        + BEHAVIOR_WEIGHT * behavior
    )
    # float sums drift (identical profiles would land on 0.9999999999999999)
    score = min(1.0, max(0.0, round(weighted, 6)))
    return SimilarityScore(
        user_id=user.user_id,
        similar_user_id=other.user_id,
        score=score,
        genre_overlap=genre_overlap,
        author_overlap=author_overlap,
        tag_overlap=tag_overlap,
        behavior_similarity=behavior,
    )


def rank_similar_users(
    user: UserProfile,
    candidates: Iterable[UserProfile],
    min_score: float = MIN_SIMILARITY_SCORE,
    limit: int = MAX_SIMILAR_USERS,
) -> List[SimilarityScore]:
    scores = [
        compute_similarity(user, other)
        for other in candidates
        if other.user_id != user.user_id
    ]
    scores = [s for s in scores if s.score >= min_score]
    scores.sort(key=lambda s: s.score, reverse=True)
    return scores[:limit]


class UserSimilarityService:
    def __init__(self, session_factory: async_sessionmaker, batch_size: int = BATCH_SIZE):
        self.session_factory = session_factory
        self.batch_size = batch_size

    async def get_eligible_user_ids(self, session: AsyncSession) -> List[str]:
        book_count = func.count(Book.id)
        result = await session.execute(
            select(User.id)
            .join(Book, Book.user_id == User.id)
            .where(
                User.deleted_at.is_(None),
                User.is_profile_public.is_(True),
                Book.deleted_at.is_(None),
            )
            .group_by(User.id)
            .having(book_count >= MIN_BOOKS_FOR_SIMILARITY)
            .order_by(User.id)
        )
        return list(result.scalars().all())

    async def load_profiles(self, session: AsyncSession, user_ids: List[str]) -> Dict[str, UserProfile]:
        if not user_ids:
            return {}

        result = await session.execute(
            select(Book).where(Book.user_id.in_(user_ids), Book.deleted_at.is_(None))
        )
        books_by_user: Dict[str, list] = {uid: [] for uid in user_ids}
        for book in result.scalars().all():
            books_by_user[book.user_id].append(book)

        return {uid: build_profile(uid, books) for uid, books in books_by_user.items()}

    async def store_similarities(
        self, session: AsyncSession, user_id: str, scores: List[SimilarityScore]
    ) -> int:
        """Replace the user's stored list in one transaction."""
        computed_at = utcnow()
        await session.execute(delete(UserSimilarity).where(UserSimilarity.user_id == user_id))
        session.add_all([
            UserSimilarity(
                user_id=s.user_id,
                similar_user_id=s.similar_user_id,
                score=s.score,
                genre_overlap=s.genre_overlap,
                author_overlap=s.author_overlap,
                tag_overlap=s.tag_overlap,
                behavior_similarity=s.behavior_similarity,
                computed_at=computed_at,
            )
            for s in scores
        ])
        await session.commit()
        return len(scores)

    async def run(self) -> SimilarityJobResult:
        result = SimilarityJobResult()

        async with self.session_factory() as session:
            user_ids = await self.get_eligible_user_ids(session)
            profiles = await self.load_profiles(session, user_ids)

        result.eligible_users = len(user_ids)
        logger.info(f" User similarity: {len(user_ids)} eligible users")
        all_profiles = list(profiles.values())

        for offset in range(0, len(user_ids), self.batch_size):
            batch = user_ids[offset:offset + self.batch_size]
            for user_id in batch:
                async with self.session_factory() as session:
                    try:
                        scores = rank_similar_users(profiles[user_id], all_profiles)
                        stored = await self.store_similarities(session, user_id, scores)
                    except Exception as e:
                        await session.rollback()
                        logger.error(f" Failed to compute similarity: user={user_id} error={e}")
                        result.errors += 1
                        continue

                result.users_processed += 1
                result.similarities_stored += stored

            logger.info(f" User similarity batch done: {offset + len(batch)}/{len(user_ids)}")

        return result
