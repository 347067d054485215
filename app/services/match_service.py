"""
Match and prediction lifecycle

Creating matches, accepting predictions until the cutoff, and declaring
results. Declaring a result scores every prediction on the match inside one
transaction with the match row locked, so two concurrent declarations cannot
drop each other's scoring.
"""

import logging
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.errors import (
    MatchAlreadyFinishedError,
    MatchNotFoundError,
    NotGroupMemberError,
    PredictionClosedError,
)
from app.models import AdminAction, Match, Prediction
from app.models.admin_action import CREATE_MATCH, DELETE_MATCH
from app.models.match import DEFAULT_CUTOFF_MINUTES
from app.utils.cache_utils import invalidate_group_rankings
from app.utils.logging_config import ContextualLogger
from app.utils.scoring import (
    Outcome,
    ScoringConfig,
    outcome_from_score,
    score_match_predictions,
)
from app.utils.timezone_utils import ensure_utc

logger = logging.getLogger(__name__)


def scoring_config():
    """ScoringConfig for the running application"""
    return ScoringConfig.from_mapping(current_app.config)


def cutoff_minutes():
    return current_app.config.get("PREDICTION_CUTOFF_MINUTES", DEFAULT_CUTOFF_MINUTES)


def can_predict(match, now=None):
    return match.can_predict(now, cutoff_minutes())


def match_status(match, now=None):
    """'scheduled', 'closed' or 'finished' under the configured cutoff"""
    return match.status(now, cutoff_minutes())


def get_match_or_404(match_id, for_update=False):
    query = Match.query.filter_by(id=match_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    match = query.first()
    if match is None:
        raise MatchNotFoundError()
    return match


def create_match(
    group,
    home_team,
    away_team,
    match_date,
    actor,
    jornada=None,
    home_team_logo=None,
    away_team_logo=None,
):
    """Create a match in a group (admin only)"""
    home_team = (home_team or "").strip()
    away_team = (away_team or "").strip()
    if not home_team or not away_team:
        raise ValueError("Both teams are required")
    if home_team.lower() == away_team.lower():
        raise ValueError("A team cannot play against itself")
    if jornada is not None and jornada.group_id != group.id:
        raise ValueError("Jornada belongs to a different group")
    if jornada is not None and not jornada.contains_date(ensure_utc(match_date)):
        logger.warning(
            f"Kickoff {match_date} of {home_team} vs {away_team} is outside "
            f"jornada {jornada.id} ({jornada.start_date} - {jornada.end_date})"
        )

    match = Match(
        group_id=group.id,
        jornada_id=jornada.id if jornada else None,
        home_team=home_team,
        away_team=away_team,
        home_team_logo=home_team_logo,
        away_team_logo=away_team_logo,
        match_date=ensure_utc(match_date),
    )

    try:
        db.session.add(match)
        db.session.flush()
        AdminAction.log_match_change(actor, match, CREATE_MATCH)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(f"Failed to create match {home_team} vs {away_team}")
        raise

    logger.info(f"Created match {match.id}: {home_team} vs {away_team} in group {group.id}")
    return match


def submit_prediction(match_id, user, outcome, now=None):
    """
    Create or update a user's prediction for a match.

    Predictions can change until the cutoff before kickoff, and never once
    the match is finished.

    Returns:
        (prediction, created) tuple
    """
    outcome = Outcome.parse(outcome)
    match = get_match_or_404(match_id)

    if not match.group.is_user_member(user.id):
        raise NotGroupMemberError()

    if match.is_finished:
        raise PredictionClosedError("This match has already finished")

    if not can_predict(match, now):
        raise PredictionClosedError(
            "Predictions for this match are no longer accepted"
        )

    prediction = match.prediction_for(user.id)
    created = prediction is None

    try:
        if created:
            prediction = Prediction(user_id=user.id, outcome=outcome.value)
            match.predictions.append(prediction)
        else:
            prediction.change_outcome(outcome)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(f"Failed to save prediction for match {match_id}")
        raise

    logger.info(
        f"{'Created' if created else 'Updated'} prediction {prediction.id} "
        f"user={user.id} match={match.id} outcome={outcome.value}"
    )
    return prediction, created


def rescore_match(match, config=None):
    """
    Recompute every prediction's breakdown from the match's declared outcome.

    Safe to run any number of times: the result only depends on the declared
    outcome and the config. Does not commit.

    Returns:
        number of predictions scored
    """
    config = config or scoring_config()
    breakdowns = score_match_predictions(
        match.predictions, match.declared_outcome, config
    )
    for prediction in match.predictions:
        prediction.apply_score(breakdowns[prediction.user_id])
    return len(breakdowns)


def finalize_match(
    match_id, actor, outcome=None, home_score=None, away_score=None, correction=False
):
    """
    Declare a match result and score all its predictions atomically.

    Either an outcome or both scores must be given; scores imply the outcome
    and must agree with it when both are given. A finished match can only be
    finalized again as a correction.
    """
    if (home_score is None) != (away_score is None):
        raise ValueError("Provide both scores or neither")
    if outcome is None:
        if home_score is None:
            raise ValueError("Provide an outcome or both scores")
        outcome = outcome_from_score(home_score, away_score)
    outcome = Outcome.parse(outcome)
    if home_score is not None and outcome_from_score(home_score, away_score) != outcome:
        raise ValueError(
            f"Score {home_score}-{away_score} does not match outcome {outcome.value}"
        )

    log = ContextualLogger(__name__, {"match": match_id, "actor": actor.id})

    try:
        match = get_match_or_404(match_id, for_update=True)

        if match.is_finished and not correction:
            raise MatchAlreadyFinishedError()

        previous = match.outcome
        match.outcome = outcome.value
        match.home_score = home_score
        match.away_score = away_score
        match.is_finished = True
        match.finished_at = datetime.now(timezone.utc)

        scored = rescore_match(match)
        AdminAction.log_result(actor, match, scored, correction=correction)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        log.exception("Failed to finalize match")
        raise
    except Exception:
        db.session.rollback()
        raise

    invalidate_group_rankings(match.group_id)

    if correction:
        log.info(f"Result corrected {previous} -> {outcome.value}, rescored {scored}")
    else:
        log.info(f"Result declared {outcome.value}, scored {scored} predictions")
    return match


def delete_match(match_id, actor):
    """Delete a match and its predictions (admin only)"""
    match = get_match_or_404(match_id)
    group_id = match.group_id

    try:
        AdminAction.log_match_change(actor, match, DELETE_MATCH)
        db.session.delete(match)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(f"Failed to delete match {match_id}")
        raise

    invalidate_group_rankings(group_id)
    logger.info(f"Deleted match {match_id} from group {group_id}")


def get_group_matches(group_id):
    """All matches of a group, by kickoff"""
    return (
        Match.query.filter_by(group_id=group_id)
        .order_by(Match.match_date.asc(), Match.id.asc())
        .all()
    )
