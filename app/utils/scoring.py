"""
Scoring Engine for the Prode application

This module handles scoring calculations for individual predictions.
For aggregated statistics and leaderboards, see app/utils/stats.py
and app/utils/ranking.py
"""

from dataclasses import dataclass, field
from enum import Enum

from app.errors import OutcomeRequiredError


class Outcome(str, Enum):
    HOME_WIN = "home-win"
    DRAW = "draw"
    AWAY_WIN = "away-win"

    @classmethod
    def parse(cls, value):
        """Return the Outcome for a raw value, raising ValueError if unknown"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid outcome '{value}'. Expected one of: "
                + ", ".join(o.value for o in cls)
            )


def outcome_from_score(home_score, away_score):
    """Derive the match outcome from a final score"""
    if home_score > away_score:
        return Outcome.HOME_WIN
    if away_score > home_score:
        return Outcome.AWAY_WIN
    return Outcome.DRAW


@dataclass(frozen=True)
class ScoringConfig:
    """Point schedule used by the scoring engine"""

    outcome_points: int = 1

    @classmethod
    def from_mapping(cls, mapping):
        """Build a config from a Flask config (or any mapping)"""
        return cls(outcome_points=int(mapping.get("SCORING_OUTCOME_POINTS", 1)))


DEFAULT_SCORING_CONFIG = ScoringConfig()


@dataclass(frozen=True)
class ScoringBreakdown:
    """
    Points awarded to one prediction, split by contributing factor.

    `aspects` is reserved for per-aspect stat predictions (corners, cards...).
    It is always empty under outcome-only scoring.
    """

    outcome: int = 0
    aspects: dict = field(default_factory=dict)

    @property
    def total(self):
        return self.outcome + sum(self.aspects.values())

    @property
    def is_hit(self):
        return self.total > 0

    def to_dict(self):
        return {
            "outcome": self.outcome,
            "aspects": dict(self.aspects),
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, data):
        """
        Rebuild a breakdown from its stored JSON form.

        Missing fields count as zero. Breakdowns written before the
        outcome-only schema stored `result` and `exactScore` instead of
        `outcome`; those are folded into the outcome points.
        """
        if not data:
            return cls()

        if "outcome" in data:
            outcome = data.get("outcome") or 0
        else:
            outcome = (data.get("exactScore") or 0) + (data.get("result") or 0)

        aspects = {
            name: value or 0 for name, value in (data.get("aspects") or {}).items()
        }
        return cls(outcome=outcome, aspects=aspects)


def score_prediction(predicted, actual, config=DEFAULT_SCORING_CONFIG):
    """
    Calculate the breakdown for a single prediction.

    Returns:
        A ScoringBreakdown whose total is config.outcome_points when the
        predicted outcome matches the declared one, else zero.

    Args:
        predicted: predicted Outcome (or its string value)
        actual: declared Outcome of the finished match
        config: ScoringConfig with the point schedule

    Raises:
        OutcomeRequiredError: if the match has no declared outcome yet
    """
    if actual is None:
        raise OutcomeRequiredError()

    if Outcome.parse(predicted) == Outcome.parse(actual):
        return ScoringBreakdown(outcome=config.outcome_points)
    return ScoringBreakdown()


def score_match_predictions(predictions, actual, config=DEFAULT_SCORING_CONFIG):
    """
    Score every prediction submitted for one match.

    Args:
        predictions: iterable of objects with `user_id` and `outcome`
        actual: declared Outcome of the match

    Returns:
        dict mapping user_id to its ScoringBreakdown
    """
    if actual is None:
        raise OutcomeRequiredError()

    return {
        prediction.user_id: score_prediction(prediction.outcome, actual, config)
        for prediction in predictions
    }
