"""Error taxonomy shared by the engine services and the HTTP layer."""

from __future__ import annotations

from fastapi import status


class EngineError(Exception):
    """Base engine error with HTTP semantics."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "engine_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class UnauthorizedError(EngineError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"


class NotFoundError(EngineError):
    """Entity is absent or belongs to another org; the two are not distinguished."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ValidationError(EngineError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class ConflictError(EngineError):
    """Requested transition is not allowed from the entity's current state."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "conflict"


class InternalError(EngineError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
