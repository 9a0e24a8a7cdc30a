"""Error taxonomy shared by the service layer and the HTTP handlers."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    NO_QUESTIONS = "NO_QUESTIONS"
    INTERNAL = "INTERNAL"


HTTP_STATUS = {
    ErrorCode.BAD_REQUEST: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.CONFLICT: 409,
    ErrorCode.NO_QUESTIONS: 503,
    ErrorCode.INTERNAL: 500,
}


class ServiceError(Exception):
    """Expected failure of a service operation, reported to the caller."""

    code = ErrorCode.INTERNAL

    def __init__(self, message: str, code: ErrorCode | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.code]


class BadRequest(ServiceError):
    code = ErrorCode.BAD_REQUEST


class NotFound(ServiceError):
    code = ErrorCode.NOT_FOUND


class Forbidden(ServiceError):
    code = ErrorCode.FORBIDDEN


class Conflict(ServiceError):
    code = ErrorCode.CONFLICT


class NoQuestions(ServiceError):
    code = ErrorCode.NO_QUESTIONS


__all__ = [
    "BadRequest",
    "Conflict",
    "ErrorCode",
    "Forbidden",
    "HTTP_STATUS",
    "NoQuestions",
    "NotFound",
    "ServiceError",
]
