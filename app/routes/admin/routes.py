from datetime import date, datetime

from flask import jsonify, request
from flask_login import current_user, login_required

from app import limiter
from app.errors import PermissionDeniedError
from app.models import AdminAction
from app.models.user import ROLE_USER
from app.routes.admin import bp
from app.services.group_service import create_group, get_group_or_404
from app.services.jornada_service import (
    create_jornada,
    delete_jornada,
    get_jornada_or_404,
)
from app.services.match_service import (
    create_match,
    cutoff_minutes,
    delete_match,
    finalize_match,
    get_match_or_404,
)
from app.utils.timezone_utils import convert_to_utc


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object body")
    return data


def _managed_group(group_id):
    """Load a group the current user is allowed to administer"""
    group = get_group_or_404(group_id)
    if not current_user.can_manage_group(group):
        raise PermissionDeniedError("Only group admins can do this")
    return group


def _parse_datetime(value, field):
    if not value:
        raise ValueError(f"Missing '{field}'")
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid '{field}', expected an ISO 8601 datetime")
    # Naive kickoffs are given in the application timezone
    return convert_to_utc(parsed)


def _parse_date(value, field):
    if not value:
        raise ValueError(f"Missing '{field}'")
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid '{field}', expected YYYY-MM-DD")


def _flag(data, field):
    value = data.get(field, False)
    if not isinstance(value, bool):
        raise ValueError(f"'{field}' must be true or false")
    return value


def _optional_int(data, field):
    value = data.get(field)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"'{field}' must be a non-negative integer")
    return value


@bp.route("/groups", methods=["POST"])
@login_required
@limiter.limit("10 per hour")
def new_group():
    """Create a group with the caller as its admin"""
    if current_user.role == ROLE_USER:
        raise PermissionDeniedError("Only admins can create groups")

    data = _json_body()
    group = create_group(
        data.get("name"),
        current_user,
        description=data.get("description"),
        max_participants=_optional_int(data, "max_participants"),
    )
    return jsonify({"success": True, "group": group.to_dict()}), 201


@bp.route("/groups/<int:group_id>/matches", methods=["POST"])
@login_required
def new_match(group_id):
    group = _managed_group(group_id)
    data = _json_body()

    jornada = None
    if data.get("jornada_id") is not None:
        jornada = get_jornada_or_404(data["jornada_id"], group_id=group.id)

    match = create_match(
        group,
        data.get("home_team"),
        data.get("away_team"),
        _parse_datetime(data.get("match_date"), "match_date"),
        current_user,
        jornada=jornada,
        home_team_logo=data.get("home_team_logo"),
        away_team_logo=data.get("away_team_logo"),
    )
    return jsonify({"success": True, "match": match.to_dict()}), 201


@bp.route("/matches/<int:match_id>", methods=["DELETE"])
@login_required
def remove_match(match_id):
    match = get_match_or_404(match_id)
    _managed_group(match.group_id)
    delete_match(match_id, current_user)
    return jsonify({"success": True})


@bp.route("/matches/<int:match_id>/result", methods=["POST"])
@login_required
def declare_result(match_id):
    """Declare (or correct) a match result and score its predictions"""
    match = get_match_or_404(match_id)
    _managed_group(match.group_id)
    data = _json_body()

    match = finalize_match(
        match_id,
        current_user,
        outcome=data.get("outcome"),
        home_score=_optional_int(data, "home_score"),
        away_score=_optional_int(data, "away_score"),
        correction=_flag(data, "correction"),
    )
    return jsonify(
        {
            "success": True,
            "match": match.to_dict(include_predictions=True, cutoff_minutes=cutoff_minutes()),
        }
    )


@bp.route("/groups/<int:group_id>/jornadas", methods=["POST"])
@login_required
def new_jornada(group_id):
    group = _managed_group(group_id)
    data = _json_body()

    jornada = create_jornada(
        group,
        data.get("name"),
        _parse_date(data.get("start_date"), "start_date"),
        _parse_date(data.get("end_date"), "end_date"),
        current_user,
        description=data.get("description"),
    )
    return jsonify({"success": True, "jornada": jornada.to_dict()}), 201


@bp.route("/jornadas/<int:jornada_id>", methods=["DELETE"])
@login_required
def remove_jornada(jornada_id):
    jornada = get_jornada_or_404(jornada_id)
    _managed_group(jornada.group_id)
    delete_jornada(jornada_id, current_user)
    return jsonify({"success": True})


@bp.route("/groups/<int:group_id>/actions")
@login_required
def group_actions(group_id):
    """Audit log of a group, newest first"""
    _managed_group(group_id)
    limit = min(request.args.get("limit", 50, type=int), 200)

    actions = (
        AdminAction.query.filter_by(group_id=group_id)
        .order_by(AdminAction.created_at.desc(), AdminAction.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify([action.to_dict() for action in actions])
