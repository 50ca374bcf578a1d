"""Errors raised by the content lifecycle layer.

Each class maps to one caller-visible signal; the HTTP layer translates them
in ``main.py``.
"""


class QuipError(Exception):
    """Base class for every error the lifecycle managers raise."""

    status_code = 500
    code = "error"


class NotFoundError(QuipError):
    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id


class ExpiredError(QuipError):
    status_code = 410
    code = "expired"

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} {resource_id} has expired")
        self.resource = resource
        self.resource_id = resource_id


class LimitExceededError(QuipError):
    status_code = 429
    code = "limit_exceeded"

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} {resource_id} has reached its usage limit")
        self.resource = resource
        self.resource_id = resource_id


class InvalidInputError(QuipError):
    status_code = 400
    code = "bad_request"


class StorageFailureError(QuipError):
    """A blob or metadata store failed. The driver error is chained as ``__cause__``."""

    status_code = 500
    code = "storage_failure"

    def __init__(self, operation: str, resource_id: str | None, message: str = ""):
        detail = f"{operation} failed"
        if resource_id:
            detail += f" for {resource_id}"
        if message:
            detail += f": {message}"
        super().__init__(detail)
        self.operation = operation
        self.resource_id = resource_id
