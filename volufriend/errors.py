"""
Service error taxonomy.
Routes and services raise these; main.py maps them to JSON responses.
"""
from typing import List, Optional


class ServiceError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = 400
    code = "validation_error"


class ForbiddenError(ServiceError):
    status_code = 403
    code = "forbidden"


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"


class PartialFailureError(ServiceError):
    """
    A multi-step write failed partway. Operations listed in `applied`
    were committed before the failure and are not rolled back.
    """
    status_code = 500
    code = "partial_failure"

    def __init__(self, message: str, applied: Optional[List[str]] = None):
        super().__init__(message)
        self.applied = list(applied or [])


class UpstreamError(ServiceError):
    status_code = 502
    code = "upstream_error"
