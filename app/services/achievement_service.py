"""
Achievement evaluation for stored users
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from app import db
from app.models import Prediction
from app.utils.achievements import (
    evaluate_achievements,
    merge_unlocked,
    unlocked_subset,
    with_unlock_times,
)
from app.utils.stats import ScoredPrediction, aggregate_statistics
from app.utils.timezone_utils import ensure_utc

logger = logging.getLogger(__name__)


def get_user_history(user_id):
    """A user's scored predictions across every group, oldest match first"""
    predictions = (
        Prediction.query.filter(
            Prediction.user_id == user_id, Prediction.points.isnot(None)
        )
        .options(joinedload(Prediction.match))
        .all()
    )
    finished = [p for p in predictions if p.match is not None and p.match.is_finished]
    finished.sort(key=lambda p: (ensure_utc(p.match.match_date), p.match.id))
    return [ScoredPrediction.from_prediction(p, p.match) for p in finished]


def evaluate_user_achievements(user, now=None):
    """Progress on every achievement in the catalog for one user"""
    history = get_user_history(user.id)
    stats = aggregate_statistics(history)
    return evaluate_achievements(stats, history, now=now)


def update_user_achievements(user, now=None):
    """
    Re-evaluate a user's achievements and persist the unlocked set.

    Achievements unlocked earlier keep their stored unlock time.

    Returns:
        (evaluated achievements, ids unlocked by this call)
    """
    evaluated = evaluate_user_achievements(user, now=now)
    merged, newly_unlocked = merge_unlocked(user.achievements, unlocked_subset(evaluated))

    if merged != (user.achievements or []):
        try:
            user.achievements = merged
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception(f"Failed to store achievements for user {user.id}")
            raise

    evaluated = with_unlock_times(evaluated, merged)
    if newly_unlocked:
        logger.info(f"User {user.id} unlocked achievements: {', '.join(newly_unlocked)}")
    return evaluated, newly_unlocked
