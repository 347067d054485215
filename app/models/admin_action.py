from datetime import datetime, timezone

from app import db

CREATE_MATCH = "create_match"
DECLARE_RESULT = "declare_result"
CORRECT_RESULT = "correct_result"
DELETE_MATCH = "delete_match"
CREATE_JORNADA = "create_jornada"
DELETE_JORNADA = "delete_jornada"


class AdminAction(db.Model):
    __tablename__ = "admin_actions"

    id = db.Column(db.Integer, primary_key=True)

    admin_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    group_id = db.Column(db.Integer, db.ForeignKey("groups.id"), nullable=False)

    action_type = db.Column(db.String(50), nullable=False)
    action_description = db.Column(db.String(500), nullable=False)

    # Plain ids: the audited match or jornada may since have been deleted
    match_id = db.Column(db.Integer, nullable=True)
    jornada_id = db.Column(db.Integer, nullable=True)

    action_metadata = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    admin_user = db.relationship("User", backref="admin_actions_performed")
    group = db.relationship(
        "Group", backref=db.backref("admin_actions", cascade="all, delete-orphan")
    )

    __table_args__ = (
        db.Index("idx_admin_action_group", "group_id"),
        db.Index("idx_admin_action_admin", "admin_user_id"),
        db.Index("idx_admin_action_type", "action_type"),
        db.Index("idx_admin_action_created", "created_at"),
    )

    def __repr__(self):
        return f"<AdminAction {self.action_type} group_id={self.group_id}>"

    @staticmethod
    def log_action(
        admin_user_id,
        group_id,
        action_type,
        description,
        match_id=None,
        jornada_id=None,
        action_metadata=None,
    ):
        """Log an admin action"""
        action = AdminAction(
            admin_user_id=admin_user_id,
            group_id=group_id,
            action_type=action_type,
            action_description=description,
            match_id=match_id,
            jornada_id=jornada_id,
            action_metadata=action_metadata or {},
        )

        db.session.add(action)
        return action

    @staticmethod
    def log_result(admin_user, match, scored_count, correction=False):
        """Log a declared (or corrected) match result"""
        verb = "Corrected" if correction else "Declared"
        return AdminAction.log_action(
            admin_user_id=admin_user.id,
            group_id=match.group_id,
            action_type=CORRECT_RESULT if correction else DECLARE_RESULT,
            description=(
                f"{verb} result {match.outcome} for {match.home_team} vs "
                f"{match.away_team} ({scored_count} predictions scored)"
            ),
            match_id=match.id,
            action_metadata={
                "outcome": match.outcome,
                "home_score": match.home_score,
                "away_score": match.away_score,
                "scored_predictions": scored_count,
            },
        )

    @staticmethod
    def log_match_change(admin_user, match, action_type):
        """Log creation or deletion of a match"""
        verb = "Created" if action_type == CREATE_MATCH else "Deleted"
        return AdminAction.log_action(
            admin_user_id=admin_user.id,
            group_id=match.group_id,
            action_type=action_type,
            description=f"{verb} match {match.home_team} vs {match.away_team}",
            match_id=match.id,
            jornada_id=match.jornada_id,
            action_metadata={"match_date": match.match_date.isoformat()},
        )

    @staticmethod
    def log_jornada_change(admin_user, jornada, action_type):
        """Log creation or deletion of a jornada"""
        verb = "Created" if action_type == CREATE_JORNADA else "Deleted"
        return AdminAction.log_action(
            admin_user_id=admin_user.id,
            group_id=jornada.group_id,
            action_type=action_type,
            description=f"{verb} jornada {jornada.name}",
            jornada_id=jornada.id,
        )

    def to_dict(self):
        """Convert action to dictionary for API responses"""
        return {
            "id": self.id,
            "admin_user": self.admin_user.username if self.admin_user else None,
            "group_id": self.group_id,
            "action_type": self.action_type,
            "action_description": self.action_description,
            "match_id": self.match_id,
            "jornada_id": self.jornada_id,
            "action_metadata": self.action_metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
