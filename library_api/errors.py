"""
Typed errors raised by the services.

The controllers never build error responses by hand: every guard failure
raises one of these and the handlers registered in ``create_app`` turn it
into ``{"success": False, "message": ...}`` with ``status_code``.
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message}


class ValidationError(AppError):
    status_code = 400


class ConflictError(AppError):
    status_code = 400


class InvalidTransitionError(ConflictError):
    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot change status from {current} to {requested}")
        self.current = current
        self.requested = requested


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class InternalError(AppError):
    status_code = 500
