from app import db  # noqa: F401 - imported for model imports

from .admin_action import AdminAction
from .group import Group
from .group_member import GroupMember
from .jornada import Jornada
from .match import Match
from .prediction import Prediction
from .user import User

__all__ = [
    "User",
    "Group",
    "GroupMember",
    "Jornada",
    "Match",
    "Prediction",
    "AdminAction",
]
