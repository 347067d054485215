"""
User statistics aggregation

Folds a user's scored predictions within a scope (a group's matches or a
jornada's matches) into totals, hit counts and streaks.
"""

from dataclasses import dataclass
from datetime import datetime

from app.utils.scoring import ScoringBreakdown
from app.utils.timezone_utils import ensure_utc


@dataclass(frozen=True)
class ScoredPrediction:
    match_id: int
    match_date: datetime
    points: float = None
    breakdown: ScoringBreakdown = None

    @property
    def is_scored(self):
        return self.points is not None

    @property
    def is_hit(self):
        if self.breakdown is not None:
            return self.breakdown.is_hit
        return bool(self.points and self.points > 0)

    @classmethod
    def from_prediction(cls, prediction, match):
        breakdown = (
            ScoringBreakdown.from_dict(prediction.breakdown)
            if prediction.breakdown is not None
            else None
        )
        return cls(
            match_id=match.id,
            match_date=match.match_date,
            points=prediction.points,
            breakdown=breakdown,
        )


@dataclass(frozen=True)
class UserStatistics:
    total_points: float = 0
    total_predictions: int = 0
    exact_scores: int = 0
    correct_results: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    average_points: float = 0.0

    def to_dict(self):
        return {
            "total_points": self.total_points,
            "total_predictions": self.total_predictions,
            "exact_scores": self.exact_scores,
            "correct_results": self.correct_results,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "average_points": round(self.average_points, 1),
        }


EMPTY_STATISTICS = UserStatistics()


def aggregate_statistics(predictions):
    """
    Fold a user's predictions into a UserStatistics record.

    Args:
        predictions: sequence of ScoredPrediction ordered by match date
            ascending. Streaks follow this order, so the trailing run is
            the current streak.

    Returns:
        UserStatistics; all zeros when nothing has been scored
    """
    total_points = 0
    total_predictions = 0
    hits = 0
    running_streak = 0
    longest_streak = 0

    for prediction in predictions:
        if not prediction.is_scored:
            continue

        total_predictions += 1
        total_points += prediction.points

        if prediction.is_hit:
            hits += 1
            running_streak += 1
            longest_streak = max(longest_streak, running_streak)
        else:
            running_streak = 0

    if total_predictions == 0:
        return EMPTY_STATISTICS

    # Outcome-only scoring: an exact hit and a correct result are the same thing
    return UserStatistics(
        total_points=total_points,
        total_predictions=total_predictions,
        exact_scores=hits,
        correct_results=hits,
        current_streak=running_streak,
        longest_streak=longest_streak,
        average_points=total_points / total_predictions,
    )


def chronological(matches):
    """Finished matches sorted by kickoff, then id"""
    finished = [m for m in matches if m.is_finished]
    return sorted(finished, key=lambda m: (ensure_utc(m.match_date), m.id))


def collect_user_predictions(user_id, matches):
    """
    Extract a user's scored predictions from a set of matches.

    Only finished matches are considered, in chronological order.
    """
    collected = []
    for match in chronological(matches):
        prediction = match.prediction_for(user_id)
        if prediction is not None and prediction.points is not None:
            collected.append(ScoredPrediction.from_prediction(prediction, match))
    return collected


def statistics_for_matches(user_id, matches):
    """Calculate a user's statistics over a scope of matches"""
    return aggregate_statistics(collect_user_predictions(user_id, matches))
