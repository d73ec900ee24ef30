"""Domain errors raised by the service layer.

Routers let these propagate; ``healthsync.main`` turns them into JSON
responses of the form ``{"detail": ..., "error": ...}``.
"""

from fastapi import status


class CareError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(CareError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Forbidden(CareError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class Conflict(CareError):
    # 400 keeps the wire shape existing clients expect
    status_code = status.HTTP_400_BAD_REQUEST
    code = "conflict"


class ValidationFailed(CareError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation"
