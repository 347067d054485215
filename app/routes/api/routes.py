from functools import wraps

from flask import jsonify, request
from flask_login import current_user, login_required

from app import limiter
from app.routes.api import bp
from app.services.achievement_service import update_user_achievements
from app.services.group_service import get_member_group, join_group
from app.services.match_service import (
    cutoff_minutes,
    get_group_matches,
    get_match_or_404,
    submit_prediction,
)
from app.services.ranking_service import (
    get_all_jornada_rankings,
    get_group_ranking,
    get_jornada_ranking,
    get_user_groups_ranking,
)
from app.utils.ranking import find_position


def add_security_headers(f):
    """Add no-store headers to per-user API responses"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = f(*args, **kwargs)
        if hasattr(response, "headers"):
            response.headers["Cache-Control"] = (
                "no-store, no-cache, must-revalidate, max-age=0"
            )
        return response

    return decorated_function


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object body")
    return data


def _ranking_payload(ranking):
    return {
        "rankings": [entry.to_dict() for entry in ranking],
        "user_position": find_position(current_user.id, ranking),
    }


@bp.route("/groups")
@login_required
@add_security_headers
def groups():
    """Get user's groups"""
    return jsonify([group.to_dict() for group in current_user.get_groups()])


@bp.route("/groups/join", methods=["POST"])
@login_required
@limiter.limit("20 per hour")
def join():
    """Join a group with its join code"""
    data = _json_body()
    group = join_group(data.get("join_code"), current_user, data.get("display_name"))
    return jsonify({"success": True, "group": group.to_dict()})


@bp.route("/groups/<int:group_id>/matches")
@login_required
@add_security_headers
def group_matches(group_id):
    """Matches of a group with the caller's own prediction on each"""
    get_member_group(group_id, current_user)
    cutoff = cutoff_minutes()

    matches = []
    for match in get_group_matches(group_id):
        data = match.to_dict(cutoff_minutes=cutoff)
        prediction = match.prediction_for(current_user.id)
        data["my_prediction"] = prediction.to_dict() if prediction else None
        matches.append(data)

    return jsonify({"group_id": group_id, "matches": matches})


@bp.route("/matches/<int:match_id>/prediction", methods=["POST", "PUT"])
@login_required
@limiter.limit("60 per minute")
def predict(match_id):
    """Create or change the caller's prediction for a match"""
    data = _json_body()
    if "outcome" not in data:
        raise ValueError("Missing 'outcome'")

    prediction, created = submit_prediction(match_id, current_user, data["outcome"])
    match = get_match_or_404(match_id)

    return (
        jsonify(
            {
                "success": True,
                "created": created,
                "prediction": prediction.to_dict(),
                "match": match.to_dict(cutoff_minutes=cutoff_minutes()),
            }
        ),
        201 if created else 200,
    )


@bp.route("/groups/<int:group_id>/ranking")
@login_required
def group_ranking(group_id):
    """Group leaderboard over every finished match"""
    group = get_member_group(group_id, current_user)
    payload = _ranking_payload(get_group_ranking(group_id))
    payload["group"] = group.to_dict()
    return jsonify(payload)


@bp.route("/groups/<int:group_id>/jornadas/<int:jornada_id>/ranking")
@login_required
def jornada_ranking(group_id, jornada_id):
    """Group leaderboard restricted to one jornada"""
    get_member_group(group_id, current_user)
    payload = _ranking_payload(get_jornada_ranking(group_id, jornada_id))
    payload["jornada_id"] = jornada_id
    return jsonify(payload)


@bp.route("/groups/<int:group_id>/jornadas/ranking")
@login_required
def all_jornada_rankings(group_id):
    """Leaderboards of every jornada in a group"""
    get_member_group(group_id, current_user)
    return jsonify(
        [
            {
                "jornada_id": item["jornada_id"],
                "jornada_name": item["jornada_name"],
                **_ranking_payload(item["rankings"]),
            }
            for item in get_all_jornada_rankings(group_id)
        ]
    )


@bp.route("/rankings")
@login_required
@add_security_headers
def user_rankings():
    """Every group the caller belongs to, with its leaderboard"""
    return jsonify(
        [
            {"group": item["group"].to_dict(), **_ranking_payload(item["ranking"])}
            for item in get_user_groups_ranking(current_user.id)
        ]
    )


@bp.route("/achievements")
@login_required
@add_security_headers
def achievements():
    """Full achievement catalog annotated with the caller's progress"""
    evaluated, newly_unlocked = update_user_achievements(current_user)
    return jsonify(
        {
            "achievements": [item.to_dict() for item in evaluated],
            "unlocked_count": sum(1 for item in evaluated if item.is_unlocked),
            "total_count": len(evaluated),
            "newly_unlocked": newly_unlocked,
        }
    )
