"""
Achievement catalog and evaluator

Achievements are derived state: every view evaluates the whole catalog
against the user's current statistics and prediction history. Only the
unlocked subset is persisted on the user profile.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone

EXACT_SCORES = "exact_scores"
TOTAL_POINTS = "total_points"
STREAK = "streak"
PREDICTIONS_COUNT = "predictions_count"
PERFECT_MATCH = "perfect_match"
COMEBACK = "comeback"

CONDITION_KINDS = (
    EXACT_SCORES,
    TOTAL_POINTS,
    STREAK,
    PREDICTIONS_COUNT,
    PERFECT_MATCH,
    COMEBACK,
)

CATEGORIES = ("accuracy", "streak", "participation", "special")
RARITIES = ("common", "rare", "epic", "legendary")

# Misses in a row that must precede a hit for it to count as a comeback
COMEBACK_MISSES = 5


@dataclass(frozen=True)
class AchievementCondition:
    kind: str
    threshold: int
    description: str = ""

    def __post_init__(self):
        if self.kind not in CONDITION_KINDS:
            raise ValueError(f"Unknown achievement condition: {self.kind}")


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    icon: str
    category: str
    rarity: str
    condition: AchievementCondition

    def __post_init__(self):
        if self.category not in CATEGORIES:
            raise ValueError(f"Unknown achievement category: {self.category}")
        if self.rarity not in RARITIES:
            raise ValueError(f"Unknown achievement rarity: {self.rarity}")


@dataclass(frozen=True)
class AchievementProgress:
    achievement: Achievement
    progress: int
    max_progress: int
    unlocked_at: datetime = None

    @property
    def is_unlocked(self):
        return self.unlocked_at is not None

    def to_dict(self):
        a = self.achievement
        return {
            "id": a.id,
            "name": a.name,
            "description": a.description,
            "icon": a.icon,
            "category": a.category,
            "rarity": a.rarity,
            "condition": {
                "type": a.condition.kind,
                "threshold": a.condition.threshold,
                "description": a.condition.description,
            },
            "progress": self.progress,
            "max_progress": self.max_progress,
            "unlocked": self.is_unlocked,
            "unlocked_at": self.unlocked_at.isoformat() if self.unlocked_at else None,
        }


def _achievement(id, name, description, icon, category, rarity, kind, threshold, goal):
    return Achievement(
        id=id,
        name=name,
        description=description,
        icon=icon,
        category=category,
        rarity=rarity,
        condition=AchievementCondition(kind, threshold, goal),
    )


DEFAULT_ACHIEVEMENTS = (
    # Precision
    _achievement(
        "first_exact", "Primer Acierto Exacto", "Acierta tu primer resultado exacto",
        "🎯", "accuracy", "common", EXACT_SCORES, 1, "Acierta 1 resultado exacto",
    ),
    _achievement(
        "exact_master", "Maestro de la Precisión", "Acierta 10 resultados exactos",
        "🏹", "accuracy", "rare", EXACT_SCORES, 10, "Acierta 10 resultados exactos",
    ),
    _achievement(
        "exact_legend", "Leyenda de la Precisión", "Acierta 25 resultados exactos",
        "👑", "accuracy", "legendary", EXACT_SCORES, 25,
        "Acierta 25 resultados exactos",
    ),
    # Streaks
    _achievement(
        "first_streak", "Primera Racha", "Consigue una racha de 3 aciertos seguidos",
        "🔥", "streak", "common", STREAK, 3, "Consigue una racha de 3 aciertos",
    ),
    _achievement(
        "hot_streak", "Racha Ardiente", "Consigue una racha de 7 aciertos seguidos",
        "🌋", "streak", "rare", STREAK, 7, "Consigue una racha de 7 aciertos",
    ),
    _achievement(
        "unstoppable", "Imparable", "Consigue una racha de 15 aciertos seguidos",
        "⚡", "streak", "epic", STREAK, 15, "Consigue una racha de 15 aciertos",
    ),
    _achievement(
        "prophet", "Profeta del Fútbol", "Consigue una racha de 25 aciertos seguidos",
        "🔮", "streak", "legendary", STREAK, 25, "Consigue una racha de 25 aciertos",
    ),
    # Participation
    _achievement(
        "first_prediction", "Primer Pronóstico", "Haz tu primer pronóstico",
        "🎲", "participation", "common", PREDICTIONS_COUNT, 1, "Haz 1 pronóstico",
    ),
    _achievement(
        "dedicated", "Dedicado", "Haz 50 pronósticos",
        "📊", "participation", "rare", PREDICTIONS_COUNT, 50, "Haz 50 pronósticos",
    ),
    _achievement(
        "veteran", "Veterano", "Haz 100 pronósticos",
        "🏆", "participation", "epic", PREDICTIONS_COUNT, 100, "Haz 100 pronósticos",
    ),
    _achievement(
        "legend", "Leyenda", "Haz 250 pronósticos",
        "🌟", "participation", "legendary", PREDICTIONS_COUNT, 250,
        "Haz 250 pronósticos",
    ),
    # Points
    _achievement(
        "first_points", "Primeros Puntos", "Consigue tus primeros 10 puntos",
        "⭐", "special", "common", TOTAL_POINTS, 10, "Consigue 10 puntos",
    ),
    _achievement(
        "point_master", "Maestro de Puntos", "Consigue 100 puntos",
        "💯", "special", "rare", TOTAL_POINTS, 100, "Consigue 100 puntos",
    ),
    _achievement(
        "point_legend", "Leyenda de Puntos", "Consigue 500 puntos",
        "🏅", "special", "epic", TOTAL_POINTS, 500, "Consigue 500 puntos",
    ),
    _achievement(
        "point_god", "Dios de los Puntos", "Consigue 1000 puntos",
        "👑", "special", "legendary", TOTAL_POINTS, 1000, "Consigue 1000 puntos",
    ),
    # Special
    _achievement(
        "comeback_king", "Rey del Remonte",
        "Acierta un resultado después de fallar 5 pronósticos seguidos",
        "🔄", "special", "epic", COMEBACK, 1, "Acierta después de fallar 5 seguidos",
    ),
)


def count_perfect_matches(history):
    """
    Count predictions where the outcome and every tracked aspect scored.

    A breakdown without per-aspect entries never counts as perfect.
    """
    count = 0
    for prediction in history:
        breakdown = prediction.breakdown
        if breakdown is None or not breakdown.aspects:
            continue
        if breakdown.outcome > 0 and all(v > 0 for v in breakdown.aspects.values()):
            count += 1
    return count


def count_comebacks(history, misses_required=COMEBACK_MISSES):
    """Count hits that come right after a run of misses_required or more misses"""
    consecutive_misses = 0
    comebacks = 0

    for prediction in history:
        if prediction.is_hit:
            if consecutive_misses >= misses_required:
                comebacks += 1
            consecutive_misses = 0
        else:
            consecutive_misses += 1

    return comebacks


def _progress_for(condition, stats, history):
    kind = condition.kind
    if kind == EXACT_SCORES:
        return stats.exact_scores
    if kind == TOTAL_POINTS:
        return stats.total_points
    if kind == STREAK:
        return stats.longest_streak
    if kind == PREDICTIONS_COUNT:
        return stats.total_predictions
    if kind == PERFECT_MATCH:
        return count_perfect_matches(history)
    if kind == COMEBACK:
        return count_comebacks(history)
    return 0


def evaluate_achievements(stats, history, catalog=DEFAULT_ACHIEVEMENTS, now=None):
    """
    Annotate every catalog entry with the user's progress.

    Args:
        stats: UserStatistics over the user's whole prediction history
        history: the user's ScoredPrediction list in chronological order
        catalog: achievements to evaluate
        now: timestamp recorded on unlocked entries (defaults to UTC now)

    Returns:
        list of AchievementProgress, one per catalog entry, in catalog order
    """
    now = now or datetime.now(timezone.utc)
    history = list(history)
    evaluated = []

    for achievement in catalog:
        threshold = achievement.condition.threshold
        progress = _progress_for(achievement.condition, stats, history)
        unlocked = progress >= threshold

        evaluated.append(
            AchievementProgress(
                achievement=achievement,
                progress=min(progress, threshold),
                max_progress=threshold,
                unlocked_at=now if unlocked else None,
            )
        )

    return evaluated


def unlocked_subset(evaluated):
    """Reduce evaluated achievements to the unlocked records that get persisted"""
    return [
        {
            "id": item.achievement.id,
            "name": item.achievement.name,
            "description": item.achievement.description,
            "icon": item.achievement.icon,
            "rarity": item.achievement.rarity,
            "unlocked_at": item.unlocked_at.isoformat(),
        }
        for item in evaluated
        if item.is_unlocked
    ]


def merge_unlocked(previous, current):
    """
    Diff a freshly evaluated unlocked subset against the persisted one.

    Entries already persisted keep their original unlocked_at.

    Returns:
        (merged list to persist, list of newly unlocked achievement ids)
    """
    previous_by_id = {item["id"]: item for item in previous or []}
    merged = []
    newly_unlocked = []

    for item in current:
        earlier = previous_by_id.get(item["id"])
        if earlier is not None and earlier.get("unlocked_at"):
            item = dict(item, unlocked_at=earlier["unlocked_at"])
        else:
            newly_unlocked.append(item["id"])
        merged.append(item)

    return merged, newly_unlocked


def with_unlock_times(evaluated, persisted):
    """Replace the unlock time of evaluated entries with the persisted one"""
    stamps = {
        item["id"]: item["unlocked_at"]
        for item in persisted or []
        if item.get("unlocked_at")
    }
    result = []
    for item in evaluated:
        stamp = stamps.get(item.achievement.id)
        if item.is_unlocked and stamp:
            item = replace(item, unlocked_at=datetime.fromisoformat(stamp))
        result.append(item)
    return result


def rarity_color(rarity):
    """CSS classes for an achievement badge by rarity"""
    return {
        "common": "text-gray-600 bg-gray-100",
        "rare": "text-blue-600 bg-blue-100",
        "epic": "text-purple-600 bg-purple-100",
        "legendary": "text-yellow-600 bg-yellow-100",
    }.get(rarity, "text-gray-600 bg-gray-100")


def rarity_border_color(rarity):
    return {
        "common": "border-gray-300",
        "rare": "border-blue-300",
        "epic": "border-purple-300",
        "legendary": "border-yellow-300",
    }.get(rarity, "border-gray-300")


def category_emoji(category):
    return {
        "accuracy": "🎯",
        "streak": "🔥",
        "participation": "📊",
        "special": "⭐",
    }.get(category, "🏆")
