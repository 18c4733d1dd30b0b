"""
Domain errors raised by the service layer.

Each error carries the HTTP status the API reports it with; main.py turns
them into the standard response envelope.
"""
from typing import List, Optional


class PersonelimError(Exception):
    """Base class for all domain errors"""
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or [message]


class ValidationError(PersonelimError):
    status_code = 400


class InvalidCredentialsError(PersonelimError):
    status_code = 401


class AuthorizationError(PersonelimError):
    status_code = 403


class NotFoundError(PersonelimError):
    status_code = 404


class ConflictError(PersonelimError):
    status_code = 409


class ExpiredOrInvalidTokenError(PersonelimError):
    """Invitation or password reset code that cannot be redeemed"""
    status_code = 400


class StorageInconsistencyError(PersonelimError):
    """A document row exists but its file is gone from storage"""
    status_code = 410


class UnhandledStoreError(PersonelimError):
    status_code = 500
