"""Typed failures raised by the services and mapped to HTTP by the app."""

from enum import Enum

from fastapi import status
from pydantic import BaseModel


class ErrorCode(str, Enum):
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    ALREADY_FUNDED = "ALREADY_FUNDED"
    EXCEEDS_REMAINING = "EXCEEDS_REMAINING"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"


class ErrorResponse(BaseModel):
    detail: str
    code: ErrorCode


class DomainError(Exception):
    code: ErrorCode = ErrorCode.INVALID_ARGUMENT
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(detail=self.message, code=self.code)


class InvalidArgument(DomainError):
    pass


class Unauthorized(DomainError):
    code = ErrorCode.UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class Forbidden(DomainError):
    code = ErrorCode.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class AlreadyFunded(Forbidden):
    code = ErrorCode.ALREADY_FUNDED
    default_message = "This wish is already fully funded"


class ExceedsRemaining(Forbidden):
    code = ErrorCode.EXCEEDS_REMAINING
    default_message = "Contribution exceeds remaining amount"


class NotFound(DomainError):
    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(DomainError):
    code = ErrorCode.CONFLICT
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already exists"
