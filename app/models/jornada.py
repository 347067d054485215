from datetime import datetime, timezone

from app import db


class Jornada(db.Model):
    """A named round grouping a subset of a group's matches"""

    __tablename__ = "jornadas"

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey("groups.id"), nullable=False)

    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    is_active = db.Column(db.Boolean, default=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    matches = db.relationship("Match", backref="jornada", lazy="dynamic")

    __table_args__ = (
        db.Index("idx_jornada_group_start", "group_id", "start_date"),
        db.CheckConstraint("start_date <= end_date", name="jornada_dates_ordered"),
    )

    def __repr__(self):
        return f"<Jornada {self.name} group_id={self.group_id}>"

    def contains_date(self, when):
        """Check if a kickoff falls within this jornada's window"""
        day = when.date() if isinstance(when, datetime) else when
        return self.start_date <= day <= self.end_date

    def to_dict(self):
        return {
            "id": self.id,
            "group_id": self.group_id,
            "name": self.name,
            "description": self.description,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "is_active": self.is_active,
            "match_count": self.matches.count(),
        }
