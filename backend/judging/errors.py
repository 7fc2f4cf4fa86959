"""Failure taxonomy shared by the services, the dispatcher and the transport.

Every error carries a short wire ``code`` so it can travel back to the peer
inside an error response. None of these are fatal to the process.
"""

from typing import List, Optional, Tuple


class JudgingError(Exception):
    code = 'INTERNAL_ERROR'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'message': self.message, 'code': self.code}


class SchemaViolation(JudgingError):
    """A payload did not match its declared shape or range."""

    code = 'SCHEMA_VIOLATION'

    def __init__(self, path: str, constraint: str, issues: Optional[List[Tuple[str, str]]] = None):
        self.path = path
        self.constraint = constraint
        self.issues = issues or [(path, constraint)]
        super().__init__(f"{path or 'payload'}: {constraint}")


class NotFound(JudgingError):
    code = 'NOT_FOUND'


class DeviceNotFound(NotFound):
    code = 'DEVICE_NOT_FOUND'

    def __init__(self, device_id: str, reason: str = 'is not a known online device'):
        self.device_id = device_id
        super().__init__(f"Device {device_id} {reason}")


class SessionNotFound(NotFound):
    code = 'SESSION_NOT_FOUND'

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class RecordNotFound(NotFound):
    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class UnknownProcedure(JudgingError):
    code = 'UNKNOWN_PROCEDURE'

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"No procedure found at path: {path}")


class HandlerFailure(JudgingError):
    """A handler raised, or returned something its output schema rejects."""

    code = 'HANDLER_FAILURE'

    def __init__(self, path: str, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"Procedure {path} failed: {cause}")


class ChannelClosed(JudgingError):
    code = 'CHANNEL_CLOSED'


class CallTimeout(JudgingError):
    code = 'TIMEOUT'


class RemoteError(JudgingError):
    """Error the peer reported in its response to one of our calls."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code:
            self.code = code
