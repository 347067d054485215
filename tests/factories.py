"""Helpers that create stored objects inside an application context."""
from datetime import date, datetime, timedelta, timezone

from app import db
from app.models import Group, Jornada, Match, Prediction, User
from app.utils.scoring import Outcome


def make_user(username, role="user", display_name=None):
    user = User(username=username, role=role, display_name=display_name)
    db.session.add(user)
    db.session.commit()
    return user


def make_group(admin, *members, name="Amigos"):
    group = Group(name=name, creator_id=admin.id)
    db.session.add(group)
    db.session.flush()
    group.add_member(admin, is_admin=True)
    for member in members:
        group.add_member(member)
    db.session.commit()
    return group


def make_match(group, home="River", away="Boca", kickoff=None, jornada=None):
    match = Match(
        group_id=group.id,
        jornada_id=jornada.id if jornada else None,
        home_team=home,
        away_team=away,
        match_date=kickoff or datetime.now(timezone.utc) + timedelta(days=1),
    )
    db.session.add(match)
    db.session.commit()
    return match


def make_jornada(group, name="Fecha 1", start=None, end=None):
    jornada = Jornada(
        group_id=group.id,
        name=name,
        start_date=start or date(2024, 8, 1),
        end_date=end or date(2024, 8, 7),
    )
    db.session.add(jornada)
    db.session.commit()
    return jornada


def make_prediction(match, user, outcome):
    prediction = Prediction(user_id=user.id, outcome=Outcome.parse(outcome).value)
    match.predictions.append(prediction)
    db.session.commit()
    return prediction


def auth(token):
    return {"Authorization": f"Bearer {token}"}
