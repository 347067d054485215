from datetime import datetime, timezone

from app import db
from app.utils.scoring import Outcome


class Prediction(db.Model):
    __tablename__ = "predictions"

    id = db.Column(db.Integer, primary_key=True)

    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # Predicted outcome: home-win | draw | away-win
    outcome = db.Column(db.String(10), nullable=False)

    # Results (set when the match is finalized)
    points = db.Column(db.Integer, nullable=True)
    breakdown = db.Column(db.JSON, nullable=True)
    scored_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime)

    __table_args__ = (
        db.UniqueConstraint("match_id", "user_id", name="unique_match_user_prediction"),
        db.Index("idx_prediction_user", "user_id"),
        db.Index("idx_prediction_match", "match_id"),
    )

    def __repr__(self):
        return f"<Prediction user_id={self.user_id} match_id={self.match_id} {self.outcome}>"

    @property
    def is_scored(self):
        return self.points is not None

    def change_outcome(self, outcome):
        """Replace the predicted outcome before the cutoff"""
        outcome = Outcome.parse(outcome).value
        if outcome != self.outcome:
            self.outcome = outcome
            self.updated_at = datetime.now(timezone.utc)

    def apply_score(self, breakdown):
        """Store a ScoringBreakdown computed for this prediction"""
        self.points = breakdown.total
        self.breakdown = breakdown.to_dict()
        self.scored_at = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "id": self.id,
            "match_id": self.match_id,
            "user_id": self.user_id,
            "outcome": self.outcome,
            "points": self.points,
            "is_scored": self.is_scored,
            "breakdown": self.breakdown,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
