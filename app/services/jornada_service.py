"""
Jornadas (rounds) of a group
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.errors import JornadaNotFoundError
from app.models import AdminAction, Jornada
from app.models.admin_action import CREATE_JORNADA, DELETE_JORNADA
from app.utils.cache_utils import invalidate_group_rankings

logger = logging.getLogger(__name__)


def get_jornada_or_404(jornada_id, group_id=None):
    jornada = db.session.get(Jornada, jornada_id)
    if jornada is None or (group_id is not None and jornada.group_id != group_id):
        raise JornadaNotFoundError()
    return jornada


def create_jornada(group, name, start_date, end_date, actor, description=None):
    """Create a jornada for a group (admin only)"""
    name = (name or "").strip()
    if not name:
        raise ValueError("Jornada name is required")
    if start_date > end_date:
        raise ValueError("Jornada start date must not be after its end date")

    jornada = Jornada(
        group_id=group.id,
        name=name,
        description=(description or "").strip() or None,
        start_date=start_date,
        end_date=end_date,
        created_by=actor.id,
    )

    try:
        db.session.add(jornada)
        db.session.flush()
        AdminAction.log_jornada_change(actor, jornada, CREATE_JORNADA)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(f"Failed to create jornada '{name}' in group {group.id}")
        raise

    logger.info(f"Created jornada {jornada.id} '{name}' in group {group.id}")
    return jornada


def get_jornadas_by_group(group_id):
    """Jornadas of a group ordered by start date"""
    return (
        Jornada.query.filter_by(group_id=group_id)
        .order_by(Jornada.start_date.asc(), Jornada.id.asc())
        .all()
    )


def delete_jornada(jornada_id, actor):
    """Delete a jornada; its matches stay in the group without a jornada"""
    jornada = get_jornada_or_404(jornada_id)
    group_id = jornada.group_id

    try:
        for match in jornada.matches.all():
            match.jornada_id = None
        AdminAction.log_jornada_change(actor, jornada, DELETE_JORNADA)
        db.session.delete(jornada)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(f"Failed to delete jornada {jornada_id}")
        raise

    invalidate_group_rankings(group_id)
    logger.info(f"Deleted jornada {jornada_id} from group {group_id}")
