# readmaster/services/achievement_service.py
"""
Achievement catalog, criteria evaluation and at-most-once awarding.

The catalog below is the source of truth for seeding; at runtime the
``achievements`` table is what gets evaluated, so XP rewards and activation
flags can be tuned in the database without a deploy.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from readmaster.models import Achievement, UserAchievement, UserStats
from readmaster.utils.dates import utcnow
from readmaster.utils.logger import logger

CATEGORY_READING = "READING"
CATEGORY_STREAK = "STREAK"
CATEGORY_LEARNING = "LEARNING"


@dataclass(frozen=True)
class AchievementCriterion:
    type: str
    operator: str
    value: float


@dataclass(frozen=True)
class AchievementDefinition:
    code: str
    name: str
    description: str
    category: str
    tier: str
    xp_reward: int
    sort_order: int
    criteria: Sequence[AchievementCriterion] = field(default_factory=tuple)
    is_active: bool = True


def _criterion(stat: str, value: float, operator: str = ">=") -> AchievementCriterion:
    return AchievementCriterion(type=stat, operator=operator, value=value)


READING_ACHIEVEMENTS = (
    AchievementDefinition("first_book", "First Chapter", "Complete your first book",
                          CATEGORY_READING, "COMMON", 100, 100, (_criterion("booksCompleted", 1),)),
    AchievementDefinition("bookworm", "Bookworm", "Complete 10 books",
                          CATEGORY_READING, "UNCOMMON", 500, 101, (_criterion("booksCompleted", 10),)),
    AchievementDefinition("bibliophile", "Bibliophile", "Complete 50 books",
                          CATEGORY_READING, "RARE", 2000, 102, (_criterion("booksCompleted", 50),)),
    AchievementDefinition("scholar", "Scholar", "Complete 100 books",
                          CATEGORY_READING, "EPIC", 5000, 103, (_criterion("booksCompleted", 100),)),
)

STREAK_ACHIEVEMENTS = (
    AchievementDefinition("streak_7", "On Fire", "7-day reading streak",
                          CATEGORY_STREAK, "COMMON", 100, 200, (_criterion("currentStreak", 7),)),
    AchievementDefinition("streak_30", "Dedicated", "30-day reading streak",
                          CATEGORY_STREAK, "UNCOMMON", 500, 201, (_criterion("currentStreak", 30),)),
    AchievementDefinition("streak_100", "Unstoppable", "100-day reading streak",
                          CATEGORY_STREAK, "RARE", 2000, 202, (_criterion("currentStreak", 100),)),
    AchievementDefinition("streak_365", "Legendary", "365-day reading streak",
                          CATEGORY_STREAK, "LEGENDARY", 10000, 203, (_criterion("currentStreak", 365),)),
)

LEARNING_ACHIEVEMENTS = (
    AchievementDefinition("first_review", "First Review", "Review your first flashcard",
                          CATEGORY_LEARNING, "COMMON", 25, 300, (_criterion("cardsReviewed", 1),)),
    AchievementDefinition("cards_100", "Card Shark", "Review 100 flashcards",
                          CATEGORY_LEARNING, "COMMON", 200, 301, (_criterion("cardsReviewed", 100),)),
    AchievementDefinition("cards_1000", "Memory Master", "Review 1,000 flashcards",
                          CATEGORY_LEARNING, "RARE", 1000, 302, (_criterion("cardsReviewed", 1000),)),
)

ACHIEVEMENTS = READING_ACHIEVEMENTS + STREAK_ACHIEVEMENTS + LEARNING_ACHIEVEMENTS

STREAK_MILESTONES = tuple(int(a.criteria[0].value) for a in STREAK_ACHIEVEMENTS)


def get_achievement_by_code(code: str) -> Optional[AchievementDefinition]:
    return next((a for a in ACHIEVEMENTS if a.code == code), None)


def check_criterion(criterion: Mapping, stats: Mapping[str, float]) -> bool:
    value = stats.get(criterion.get("type"))
    if value is None:
        return False

    target = criterion.get("value")
    operator = criterion.get("operator")
    if operator == ">=":
        return value >= target
    if operator == ">":
        return value > target
    if operator == "==":
        return value == target
    if operator == "<":
        return value < target
    if operator == "<=":
        return value <= target
    return False


def check_achievement_criteria(criteria: Iterable[Mapping], stats: Mapping[str, float]) -> bool:
    """All criteria must hold; an empty criteria list never unlocks anything."""
    criteria = list(criteria)
    if not criteria:
        return False
    return all(check_criterion(c, stats) for c in criteria)


def serialize_criteria(definition: AchievementDefinition) -> List[Dict]:
    return [{"type": c.type, "operator": c.operator, "value": c.value} for c in definition.criteria]


async def seed_achievements(session: AsyncSession) -> int:
    """Insert or refresh every catalog entry by code. Returns rows touched."""
    result = await session.execute(select(Achievement))
    existing = {a.code: a for a in result.scalars().all()}

    for definition in ACHIEVEMENTS:
        row = existing.get(definition.code)
        if row is None:
            row = Achievement(code=definition.code)
            session.add(row)
        row.name = definition.name
        row.description = definition.description
        row.category = definition.category
        row.tier = definition.tier
        row.xp_reward = definition.xp_reward
        row.criteria = serialize_criteria(definition)
        row.sort_order = definition.sort_order
        row.is_active = definition.is_active

    await session.commit()
    logger.info(f" Achievement catalog seeded ({len(ACHIEVEMENTS)} entries)")
    return len(ACHIEVEMENTS)


async def get_unlockable_achievements(
    session: AsyncSession, category: str, stats: Mapping[str, float]
) -> List[Achievement]:
    result = await session.execute(
        select(Achievement)
        .where(Achievement.category == category, Achievement.is_active.is_(True))
        .order_by(Achievement.sort_order)
    )
    return [a for a in result.scalars().all() if check_achievement_criteria(a.criteria or [], stats)]


async def award_achievement(
    session: AsyncSession, user_id: str, achievement: Achievement
) -> Optional[int]:
    """
    Grant an achievement and its XP if the user does not already hold it.

    Returns the XP awarded, or None when the user already holds it.
    The caller commits.
    """
    existing = await session.execute(
        select(UserAchievement.id).where(
            UserAchievement.user_id == user_id,
            UserAchievement.achievement_id == achievement.id,
        )
    )
    if existing.first() is not None:
        return None

    session.add(UserAchievement(
        user_id=user_id,
        achievement_id=achievement.id,
        earned_at=utcnow(),
        notified=False,
    ))

    stats = (await session.execute(
        select(UserStats).where(UserStats.user_id == user_id)
    )).scalar_one_or_none()
    if stats is not None:
        stats.total_xp = (stats.total_xp or 0) + achievement.xp_reward

    await session.flush()
    return achievement.xp_reward


async def award_unlocked(
    session: AsyncSession, user_id: str, category: str, stats: Mapping[str, float]
) -> Dict[str, int]:
    """Award every unlocked, not-yet-held achievement of a category."""
    awarded = 0
    total_xp = 0
    for achievement in await get_unlockable_achievements(session, category, stats):
        xp = await award_achievement(session, user_id, achievement)
        if xp is not None:
            awarded += 1
            total_xp += xp
            logger.info(f" Achievement awarded: user={user_id} code={achievement.code} xp={xp}")
    return {"awarded": awarded, "total_xp": total_xp}
