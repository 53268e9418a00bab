"""Service-layer errors.

Each error carries the HTTP status the API layer answers with, so service
functions stay independent of FastAPI.
"""


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(ServiceError):
    status_code = 404


class ForbiddenError(ServiceError):
    status_code = 403


class InvalidInputError(ServiceError):
    status_code = 400


class ConflictError(ServiceError):
    """Resource is not in a state that allows the change."""

    status_code = 400


class StaleWriteError(ConflictError):
    """The row changed between read and write."""

    status_code = 409
