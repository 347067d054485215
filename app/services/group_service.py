"""
Group creation and membership
"""

import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.errors import GroupFullError, GroupNotFoundError, NotGroupMemberError
from app.models import Group
from app.utils.cache_utils import invalidate_group_rankings

logger = logging.getLogger(__name__)


def get_group_or_404(group_id):
    group = db.session.get(Group, group_id)
    if group is None:
        raise GroupNotFoundError()
    return group


def get_member_group(group_id, user):
    """Return the group if the user is an active member (or a super admin)"""
    group = get_group_or_404(group_id)
    if not user.is_super_admin and not user.is_member_of_group(group.id):
        raise NotGroupMemberError()
    return group


def create_group(name, creator, description=None, max_participants=None):
    """Create a group; the creator joins as its admin"""
    name = (name or "").strip()
    if not name:
        raise ValueError("Group name is required")

    group = Group(
        name=name,
        description=(description or "").strip() or None,
        creator_id=creator.id,
        max_participants=max_participants
        or current_app.config.get("DEFAULT_MAX_PARTICIPANTS", 50),
    )

    try:
        db.session.add(group)
        db.session.flush()
        group.add_member(creator, is_admin=True)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(f"Failed to create group '{name}'")
        raise

    invalidate_group_rankings(group.id)
    logger.info(f"Group {group.id} '{name}' created by user {creator.id}")
    return group


def join_group(join_code, user, display_name=None):
    """Join a group by its code"""
    code = (join_code or "").strip().upper()
    group = Group.query.filter_by(join_code=code, is_active=True).first()
    if group is None:
        raise GroupNotFoundError("No active group with that code")

    added, message = group.add_member(user, display_name=display_name)
    if not added:
        if group.is_full():
            raise GroupFullError()
        raise ValueError(message)

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(f"Failed to add user {user.id} to group {group.id}")
        raise

    invalidate_group_rankings(group.id)
    logger.info(f"User {user.id} joined group {group.id}: {message}")
    return group


def remove_group_member(group, user):
    """Deactivate a user's membership; raises NotGroupMemberError if absent"""
    removed, message = group.remove_member(user.id)
    if not removed:
        raise NotGroupMemberError(message)

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(f"Failed to remove user {user.id} from group {group.id}")
        raise

    invalidate_group_rankings(group.id)
    logger.info(f"User {user.id} removed from group {group.id}")
