from datetime import datetime, timezone

from app import db


class GroupMember(db.Model):
    __tablename__ = "group_members"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    group_id = db.Column(db.Integer, db.ForeignKey("groups.id"), nullable=False)

    # Name shown on this group's leaderboard (falls back to the user's name)
    display_name = db.Column(db.String(100))

    is_active = db.Column(db.Boolean, default=True)
    is_admin = db.Column(db.Boolean, default=False)

    joined_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    left_at = db.Column(db.DateTime)

    __table_args__ = (
        db.UniqueConstraint("user_id", "group_id", name="unique_user_group"),
        db.Index("idx_group_members_active", "group_id", "is_active"),
        db.Index("idx_user_memberships", "user_id", "is_active"),
    )

    def __repr__(self):
        return f"<GroupMember user_id={self.user_id} group_id={self.group_id}>"

    @property
    def name(self):
        if self.display_name:
            return self.display_name
        return self.user.full_name if self.user else None

    def deactivate(self):
        self.is_active = False
        self.left_at = datetime.now(timezone.utc)

    def reactivate(self):
        self.is_active = True
        self.left_at = None
        self.joined_at = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "group_id": self.group_id,
            "name": self.name,
            "is_admin": bool(self.is_admin),
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }
