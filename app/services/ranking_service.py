"""
Leaderboards read from storage

Loads a group's roster and matches, then hands them to the pure ranking
builder in app/utils/ranking.py.
"""

import logging

from sqlalchemy.orm import selectinload

from app import db
from app.models import Match, User
from app.services.group_service import get_group_or_404
from app.services.jornada_service import get_jornada_or_404, get_jornadas_by_group
from app.utils.cache_utils import cached_group_ranking
from app.utils.ranking import build_jornada_ranking, build_ranking

logger = logging.getLogger(__name__)


def _finished_matches(group_id):
    return (
        Match.query.filter_by(group_id=group_id, is_finished=True)
        .options(selectinload(Match.predictions))
        .order_by(Match.match_date.asc(), Match.id.asc())
        .all()
    )


@cached_group_ranking("group_ranking")
def get_group_ranking(group_id):
    """Ranking over every finished match of a group"""
    group = get_group_or_404(group_id)
    ranking = build_ranking(group.participant_names, _finished_matches(group_id))
    logger.debug(f"Built group ranking for {group_id}: {len(ranking)} entries")
    return ranking


@cached_group_ranking("jornada_ranking")
def get_jornada_ranking(group_id, jornada_id):
    """Ranking over the finished matches of one jornada"""
    group = get_group_or_404(group_id)
    get_jornada_or_404(jornada_id, group_id=group_id)
    return build_jornada_ranking(
        group.participant_names, _finished_matches(group_id), jornada_id
    )


def get_all_jornada_rankings(group_id):
    """Rankings of every jornada in a group, in jornada order"""
    get_group_or_404(group_id)
    return [
        {
            "jornada_id": jornada.id,
            "jornada_name": jornada.name,
            "rankings": get_jornada_ranking(group_id, jornada.id),
        }
        for jornada in get_jornadas_by_group(group_id)
    ]


def get_user_groups_ranking(user_id):
    """The user's groups, each with its ranking"""
    user = db.session.get(User, user_id)
    if user is None:
        return []
    return [
        {"group": group, "ranking": get_group_ranking(group.id)}
        for group in user.get_groups()
    ]
