"""
Domain errors raised by the services and mapped to HTTP responses by the
handlers registered in ``lendfi.main``.
"""
from typing import List, Optional


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class BadRequestError(ServiceError):
    """Well-formed input that breaks a business rule."""
    status_code = 400


class UnauthorizedError(ServiceError):
    status_code = 401


class ForbiddenError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    """Missing, or not visible to the caller. Both look the same from outside."""
    status_code = 404
