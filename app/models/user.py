import secrets
from datetime import datetime, timezone

from flask_login import UserMixin

from app import db

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"
ROLES = (ROLE_USER, ROLE_ADMIN, ROLE_SUPER_ADMIN)


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=True, index=True)
    display_name = db.Column(db.String(100))

    # Bearer token issued by the identity provider
    api_token = db.Column(db.String(100), unique=True, nullable=False, index=True)

    # Account status
    is_active = db.Column(db.Boolean, default=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_USER)

    # Unlocked achievements: [{id, name, description, icon, rarity, unlocked_at}]
    achievements = db.Column(db.JSON, nullable=False, default=list)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    predictions = db.relationship(
        "Prediction", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    group_memberships = db.relationship(
        "GroupMember", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    created_groups = db.relationship("Group", backref="creator", lazy="dynamic")

    __table_args__ = (
        db.Index("idx_user_created_at", "created_at"),
        db.Index("idx_user_active_status", "is_active"),
    )

    def __init__(self, **kwargs):
        super(User, self).__init__(**kwargs)
        if not self.api_token:
            self.api_token = self.generate_api_token()
        if self.achievements is None:
            self.achievements = []
        if not self.role:
            self.role = ROLE_USER

    def __repr__(self):
        return f"<User {self.username}>"

    @staticmethod
    def generate_api_token():
        return secrets.token_urlsafe(32)

    @staticmethod
    def find_by_token(token):
        if not token:
            return None
        return User.query.filter_by(api_token=token, is_active=True).first()

    @property
    def full_name(self):
        """Return display name or username"""
        return self.display_name or self.username

    @property
    def is_super_admin(self):
        return self.role == ROLE_SUPER_ADMIN

    def set_role(self, role):
        if role not in ROLES:
            raise ValueError(f"Unknown role '{role}'")
        self.role = role

    def get_groups(self):
        """Get all active groups this user is an active member of"""
        from .group_member import GroupMember

        memberships = (
            db.session.query(GroupMember)
            .filter_by(user_id=self.id, is_active=True)
            .all()
        )
        return [m.group for m in memberships if m.group.is_active]

    def is_member_of_group(self, group_id):
        """Check if user is a member of a specific group"""
        from .group_member import GroupMember

        return (
            GroupMember.query.filter_by(
                user_id=self.id, group_id=group_id, is_active=True
            ).first()
            is not None
        )

    def can_manage_group(self, group):
        """Group admins and super admins can manage matches and jornadas"""
        if self.is_super_admin:
            return True
        return bool(group.is_user_admin(self.id))

    def to_dict(self):
        """Convert user to dictionary for API responses"""
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.full_name,
            "role": self.role,
            "is_active": self.is_active,
            "achievements": self.achievements or [],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
