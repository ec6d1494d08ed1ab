from datetime import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy.future import select

from readmaster.models import UserSimilarity
from readmaster.services.similarity_service import (
    UserProfile,
    UserSimilarityService,
    build_profile,
    compute_similarity,
    jaccard,
    rank_similar_users,
)


def book(genre=None, author=None, tags=(), status="READING"):
    return SimpleNamespace(genre=genre, author=author, tags=list(tags), status=status)


def test_jaccard_edge_cases():
    assert jaccard(set(), set()) == 1.0
    assert jaccard({"a"}, set()) == 0.0
    assert jaccard({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)


def test_profile_normalizes_keys_and_counts_completion():
    profile = build_profile("u1", [
        book(" Fantasy ", "Tolkien", ["Epic", "quest"], "COMPLETED"),
        book("fantasy", "tolkien ", ["epic"]),
        book(None, None, []),
    ])

    assert profile.genres == {"fantasy": 2}
    assert profile.authors == {"tolkien": 2}
    assert profile.tags == {"epic", "quest"}
    assert profile.completion_ratio == pytest.approx(1 / 3)


def test_identical_profiles_score_exactly_one():
    books = [
        book("fantasy", "tolkien", ["epic", "quest"], "COMPLETED"),
        book("sci-fi", "asimov", ["robots"]),
        book("history", "beard", [], "COMPLETED"),
    ]
    score = compute_similarity(build_profile("a", books), build_profile("b", books))
    assert score.score == 1.0


def test_weights_are_applied_per_factor():
    a = build_profile("a", [book("fantasy", "tolkien", ["epic"], "COMPLETED")])
    b = build_profile("b", [book("fantasy", "le guin", ["magic"])])

    score = compute_similarity(a, b)

    assert score.genre_overlap == 1.0
    assert score.author_overlap == 0.0
    assert score.tag_overlap == 0.0
    assert score.behavior_similarity == 0.0
    assert score.score == pytest.approx(0.35)


def test_score_is_symmetric():
    a = build_profile("a", [book("sci-fi", "asimov", ["robots"]), book("history", "beard", [], "COMPLETED")])
    b = build_profile("b", [book("sci-fi", "herbert", ["desert", "robots"], "COMPLETED")])
    assert compute_similarity(a, b).score == pytest.approx(compute_similarity(b, a).score)


def test_ranking_filters_sorts_and_truncates():
    me = UserProfile("me", genres={"fantasy": 1}, authors={"tolkien": 1}, tags={"epic"}, total_books=3)
    close = UserProfile("close", genres={"fantasy": 1}, authors={"tolkien": 1}, tags={"epic"}, total_books=3)
    medium = UserProfile("medium", genres={"fantasy": 1}, authors={"x": 1}, tags={"y"}, total_books=3)
    # only behavior matches with nothing else in common: 0.15 stays above the 0.1 floor
    weak = UserProfile("weak", genres={"romance": 1}, authors={"z": 1}, tags={"w"}, total_books=3)
    far = UserProfile("far", genres={"romance": 1}, authors={"z": 1}, tags={"w"}, total_books=3, completed_books=3)

    ranked = rank_similar_users(me, [me, far, weak, medium, close])

    assert [s.similar_user_id for s in ranked] == ["close", "medium", "weak"]
    assert rank_similar_users(me, [close, medium, weak], limit=1)[0].similar_user_id == "close"


async def _add_reader(factory, genre, author, public=True, books=3, deleted=False):
    user = await factory.user(is_profile_public=public, deleted_at=datetime(2026, 1, 1) if deleted else None)
    for _ in range(books):
        await factory.book(user, genre=genre, author=author, tags=[genre])
    return user


@pytest.mark.asyncio
async def test_job_only_considers_eligible_users(session_factory, factory):
    a = await _add_reader(factory, "fantasy", "tolkien")
    b = await _add_reader(factory, "fantasy", "tolkien")
    await _add_reader(factory, "fantasy", "tolkien", public=False)
    await _add_reader(factory, "fantasy", "tolkien", books=2)
    await _add_reader(factory, "fantasy", "tolkien", deleted=True)

    result = await UserSimilarityService(session_factory).run()

    assert result.eligible_users == 2
    assert result.users_processed == 2
    assert result.similarities_stored == 2
    assert result.errors == 0

    async with session_factory() as session:
        rows = (await session.execute(select(UserSimilarity))).scalars().all()
    assert {(r.user_id, r.similar_user_id) for r in rows} == {(a.id, b.id), (b.id, a.id)}


@pytest.mark.asyncio
async def test_rerun_replaces_previous_rows(session_factory, factory):
    await _add_reader(factory, "fantasy", "tolkien")
    await _add_reader(factory, "fantasy", "tolkien")

    service = UserSimilarityService(session_factory)
    await service.run()
    await service.run()

    async with session_factory() as session:
        rows = (await session.execute(select(UserSimilarity))).scalars().all()
    assert len(rows) == 2


@pytest.mark.asyncio
async def test_deleted_books_do_not_count_towards_eligibility(session_factory, factory):
    user = await _add_reader(factory, "fantasy", "tolkien", books=2)
    await factory.book(user, genre="fantasy", deleted_at=datetime(2026, 1, 1))
    await _add_reader(factory, "fantasy", "tolkien")

    result = await UserSimilarityService(session_factory).run()

    assert result.eligible_users == 1
    assert result.similarities_stored == 0
