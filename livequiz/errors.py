"""
Error Types
Exception hierarchy shared by services and the HTTP/socket layers
"""


class LiveQuizError(Exception):
    """Base class for all application errors"""


class PersistenceError(LiveQuizError):
    """A write or read against the database failed (transient)"""


class NotFoundError(LiveQuizError):
    """A requested entity does not exist"""

    entity = "Entity"

    def __init__(self, identifier=None):
        self.identifier = identifier
        if identifier is None:
            message = f"{self.entity} not found"
        else:
            message = f"{self.entity} {identifier} not found"
        super().__init__(message)


class QuizNotFoundError(NotFoundError):
    entity = "Quiz"


class SessionNotFoundError(NotFoundError):
    entity = "Session"


class ParticipantNotFoundError(NotFoundError):
    entity = "Participant"


class InvalidSelectionError(LiveQuizError, ValueError):
    """The selected option does not belong to the question"""


class PayloadError(LiveQuizError, ValueError):
    """Request body failed validation"""
