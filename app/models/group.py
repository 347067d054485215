import secrets
from datetime import datetime, timezone

from app import db


class Group(db.Model):
    __tablename__ = "groups"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)

    # Group settings
    is_active = db.Column(db.Boolean, default=True)
    max_participants = db.Column(db.Integer, default=50)

    # Code for easy joining
    join_code = db.Column(db.String(8), unique=True, nullable=False, index=True)

    # Creator and timestamps
    creator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    members = db.relationship(
        "GroupMember", backref="group", lazy="dynamic", cascade="all, delete-orphan"
    )
    matches = db.relationship(
        "Match", backref="group", lazy="dynamic", cascade="all, delete-orphan"
    )
    jornadas = db.relationship(
        "Jornada", backref="group", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_group_creator", "creator_id"),
        db.Index("idx_group_active", "is_active"),
    )

    def __repr__(self):
        return f"<Group {self.name}>"

    def __init__(self, **kwargs):
        super(Group, self).__init__(**kwargs)
        if not self.join_code:
            self.join_code = self.generate_join_code()

    @staticmethod
    def generate_join_code():
        """Generate a unique 8-character join code"""
        while True:
            code = secrets.token_urlsafe(6)[:8].upper()
            if not Group.query.filter_by(join_code=code).first():
                return code

    def get_active_members(self):
        """Get all active members of the group, oldest first"""
        from sqlalchemy.orm import joinedload

        from .group_member import GroupMember

        return (
            self.members.filter_by(is_active=True)
            .options(joinedload(GroupMember.user))
            .order_by(GroupMember.joined_at, GroupMember.id)
            .all()
        )

    def get_member_count(self):
        """Get count of active members"""
        return self.members.filter_by(is_active=True).count()

    def is_full(self):
        """Check if group has reached maximum capacity"""
        if not self.max_participants:
            return False
        return self.get_member_count() >= self.max_participants

    def is_user_member(self, user_id):
        """Check if user is an active member"""
        return (
            self.members.filter_by(user_id=user_id, is_active=True).first() is not None
        )

    def is_user_admin(self, user_id):
        """Check if user is an admin of this group"""
        member = self.members.filter_by(user_id=user_id, is_active=True).first()
        return member and member.is_admin

    def add_member(self, user, is_admin=False, display_name=None):
        """Add a user to the group"""
        from .group_member import GroupMember

        existing = self.members.filter_by(user_id=user.id).first()
        if existing:
            if existing.is_active:
                return False, "User is already a member"
            if self.is_full():
                return False, "Group is full"
            existing.reactivate()
            return True, "Membership reactivated"

        if self.is_full():
            return False, "Group is full"

        membership = GroupMember(
            user_id=user.id,
            group_id=self.id,
            is_admin=is_admin,
            display_name=display_name,
        )
        db.session.add(membership)
        return True, "User added successfully"

    def remove_member(self, user_id):
        """Remove a user from the group"""
        member = self.members.filter_by(user_id=user_id, is_active=True).first()
        if member:
            member.deactivate()
            return True, "User removed successfully"
        return False, "User is not a member"

    @property
    def participant_names(self):
        """Ordered mapping of user_id -> display name for the active roster"""
        return {m.user_id: m.name for m in self.get_active_members()}

    def to_dict(self, include_members=False):
        """Convert group to dictionary for API responses"""
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "join_code": self.join_code,
            "member_count": self.get_member_count(),
            "max_participants": self.max_participants,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "creator": self.creator.username if self.creator else None,
        }

        if include_members:
            data["members"] = [member.to_dict() for member in self.get_active_members()]

        return data
