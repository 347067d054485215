"""
Domain errors for the Prode application

Each error carries the HTTP status the API blueprints answer with.
"""


class ProdeError(Exception):
    status_code = 400
    message = "Request could not be processed"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self):
        return {"error": self.message}


class OutcomeRequiredError(ProdeError):
    """Scoring was requested for a match without a declared outcome"""

    status_code = 400
    message = "A declared outcome is required to score predictions"


class GroupNotFoundError(ProdeError):
    status_code = 404
    message = "Group not found"


class MatchNotFoundError(ProdeError):
    status_code = 404
    message = "Match not found"


class JornadaNotFoundError(ProdeError):
    status_code = 404
    message = "Jornada not found"


class NotGroupMemberError(ProdeError):
    status_code = 403
    message = "Not a member of this group"


class PermissionDeniedError(ProdeError):
    status_code = 403
    message = "Access forbidden"


class PredictionClosedError(ProdeError):
    status_code = 409
    message = "Predictions are closed for this match"


class MatchAlreadyFinishedError(ProdeError):
    status_code = 409
    message = "Match already has a declared result"


class GroupFullError(ProdeError):
    status_code = 409
    message = "Group is full"
