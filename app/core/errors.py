"""
Procedure Errors

Every business-rule failure is raised as a single exception type carrying a
tag from ErrorCode. The FastAPI exception handlers in app.main translate the
tag into an HTTP status and the standard ErrorResponse body.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Tagged error kinds surfaced to callers."""
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    BAD_REQUEST = "BAD_REQUEST"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.BAD_REQUEST: 400,
    ErrorCode.CONFLICT: 409,
    ErrorCode.INTERNAL: 500,
}


class ProcedureError(Exception):
    """
    A failure with a tag and a human-readable message.

    Example:
        >>> raise ProcedureError.not_found("Restaurant not found")
    """

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"<ProcedureError {self.code.value}: {self.message}>"

    @classmethod
    def not_found(cls, message: str) -> "ProcedureError":
        return cls(ErrorCode.NOT_FOUND, message)

    @classmethod
    def unauthorized(cls, message: str) -> "ProcedureError":
        return cls(ErrorCode.UNAUTHORIZED, message)

    @classmethod
    def forbidden(cls, message: str) -> "ProcedureError":
        return cls(ErrorCode.FORBIDDEN, message)

    @classmethod
    def bad_request(cls, message: str) -> "ProcedureError":
        return cls(ErrorCode.BAD_REQUEST, message)

    @classmethod
    def conflict(cls, message: str) -> "ProcedureError":
        return cls(ErrorCode.CONFLICT, message)

    @classmethod
    def internal(cls, message: str) -> "ProcedureError":
        return cls(ErrorCode.INTERNAL, message)
