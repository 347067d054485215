from datetime import datetime, timedelta, timezone

from app import db
from app.utils.scoring import Outcome
from app.utils.timezone_utils import ensure_utc, format_match_time

DEFAULT_CUTOFF_MINUTES = 30


class Match(db.Model):
    __tablename__ = "matches"

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey("groups.id"), nullable=False)
    jornada_id = db.Column(db.Integer, db.ForeignKey("jornadas.id"), nullable=True)

    # Teams
    home_team = db.Column(db.String(100), nullable=False)
    away_team = db.Column(db.String(100), nullable=False)
    home_team_logo = db.Column(db.String(500))
    away_team_logo = db.Column(db.String(500))

    # Kickoff
    match_date = db.Column(db.DateTime, nullable=False)

    # Result
    is_finished = db.Column(db.Boolean, default=False, nullable=False)
    outcome = db.Column(db.String(10), nullable=True)
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)
    finished_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    predictions = db.relationship(
        "Prediction", backref="match", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_match_group_date", "group_id", "match_date"),
        db.Index("idx_match_jornada", "jornada_id"),
        db.CheckConstraint("home_team != away_team", name="different_teams"),
    )

    def __repr__(self):
        return f"<Match {self.home_team} vs {self.away_team} {self.match_date}>"

    @property
    def declared_outcome(self):
        return Outcome(self.outcome) if self.outcome else None

    def prediction_for(self, user_id):
        """Get the prediction a user submitted for this match"""
        return next((p for p in self.predictions if p.user_id == user_id), None)

    def prediction_deadline(self, cutoff_minutes=DEFAULT_CUTOFF_MINUTES):
        return ensure_utc(self.match_date) - timedelta(minutes=cutoff_minutes)

    def can_predict(self, now=None, cutoff_minutes=DEFAULT_CUTOFF_MINUTES):
        """Predictions are open until the cutoff before kickoff, while unfinished"""
        if self.is_finished:
            return False
        now = ensure_utc(now or datetime.now(timezone.utc))
        return now < self.prediction_deadline(cutoff_minutes)

    def status(self, now=None, cutoff_minutes=DEFAULT_CUTOFF_MINUTES):
        """Get match status as string"""
        if self.is_finished:
            return "finished"
        if self.can_predict(now, cutoff_minutes):
            return "scheduled"
        return "closed"

    def to_dict(
        self, include_predictions=False, now=None, cutoff_minutes=DEFAULT_CUTOFF_MINUTES
    ):
        data = {
            "id": self.id,
            "group_id": self.group_id,
            "jornada_id": self.jornada_id,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "home_team_logo": self.home_team_logo,
            "away_team_logo": self.away_team_logo,
            "match_date": ensure_utc(self.match_date).isoformat(),
            "local_match_time": format_match_time(self.match_date),
            "is_finished": self.is_finished,
            "outcome": self.outcome,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "status": self.status(now, cutoff_minutes),
            "prediction_count": len(self.predictions),
        }

        if include_predictions:
            data["predictions"] = [p.to_dict() for p in self.predictions]

        return data
