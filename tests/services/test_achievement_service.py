import pytest
from sqlalchemy import func
from sqlalchemy.future import select

from readmaster.models import Achievement, UserAchievement
from readmaster.services.achievement_service import (
    ACHIEVEMENTS,
    CATEGORY_STREAK,
    STREAK_MILESTONES,
    award_achievement,
    award_unlocked,
    check_achievement_criteria,
    check_criterion,
    get_achievement_by_code,
    get_unlockable_achievements,
    seed_achievements,
)


def test_streak_milestones():
    assert STREAK_MILESTONES == (7, 30, 100, 365)


def test_catalog_codes_are_unique():
    codes = [a.code for a in ACHIEVEMENTS]
    assert len(codes) == len(set(codes))


def test_get_achievement_by_code():
    assert get_achievement_by_code("streak_30").xp_reward == 500
    assert get_achievement_by_code("does_not_exist") is None


@pytest.mark.parametrize("operator,value,expected", [
    (">=", 7, True),
    (">=", 8, False),
    (">", 6, True),
    (">", 7, False),
    ("==", 7, True),
    ("<", 8, True),
    ("<=", 6, False),
    ("!=", 1, False),
])
def test_check_criterion_operators(operator, value, expected):
    criterion = {"type": "currentStreak", "operator": operator, "value": value}
    assert check_criterion(criterion, {"currentStreak": 7}) is expected


def test_unknown_stat_fails():
    assert not check_criterion({"type": "booksCompleted", "operator": ">=", "value": 1}, {"currentStreak": 100})


def test_all_criteria_must_hold():
    criteria = [
        {"type": "currentStreak", "operator": ">=", "value": 7},
        {"type": "booksCompleted", "operator": ">=", "value": 1},
    ]
    assert not check_achievement_criteria(criteria, {"currentStreak": 10, "booksCompleted": 0})
    assert check_achievement_criteria(criteria, {"currentStreak": 10, "booksCompleted": 1})


def test_empty_criteria_never_unlock():
    assert not check_achievement_criteria([], {"currentStreak": 1000})


@pytest.mark.asyncio
async def test_seed_is_idempotent(session):
    await seed_achievements(session)
    count = (await session.execute(select(func.count(Achievement.id)))).scalar_one()
    assert count == len(ACHIEVEMENTS)


@pytest.mark.asyncio
async def test_inactive_achievements_are_skipped(session):
    row = (await session.execute(select(Achievement).where(Achievement.code == "streak_7"))).scalar_one()
    row.is_active = False
    await session.commit()

    unlockable = await get_unlockable_achievements(session, CATEGORY_STREAK, {"currentStreak": 40})
    assert [a.code for a in unlockable] == ["streak_30"]


@pytest.mark.asyncio
async def test_award_is_at_most_once(session, factory):
    user = await factory.user()
    await factory.stats(user, total_xp=0)
    achievement = (await session.execute(select(Achievement).where(Achievement.code == "streak_7"))).scalar_one()

    assert await award_achievement(session, user.id, achievement) == 100
    await session.commit()
    assert await award_achievement(session, user.id, achievement) is None
    await session.commit()

    held = (await session.execute(
        select(func.count(UserAchievement.id)).where(UserAchievement.user_id == user.id)
    )).scalar_one()
    assert held == 1


@pytest.mark.asyncio
async def test_award_unlocked_grants_every_reached_milestone(session, factory):
    user = await factory.user()
    await factory.stats(user, total_xp=0)

    awarded = await award_unlocked(session, user.id, CATEGORY_STREAK, {"currentStreak": 30})
    await session.commit()

    assert awarded == {"awarded": 2, "total_xp": 600}
