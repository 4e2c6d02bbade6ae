"""
Custom exceptions for SmartDocs API
"""

from typing import Any, Optional
from fastapi import HTTPException, status


class SmartDocsException(Exception):
    """Base exception for SmartDocs"""
    pass


class AuthenticationError(SmartDocsException):
    """Authentication failed"""
    pass


class PermissionDeniedError(SmartDocsException):
    """Insufficient permissions"""
    pass


class NotFoundError(SmartDocsException):
    """Resource not found"""
    pass


class DuplicateError(SmartDocsException):
    """Duplicate resource"""
    pass


class QuotaExceededError(SmartDocsException):
    """Token quota would be exceeded by the requested operation"""

    def __init__(self, message: str, needed: int = 0, remaining: int = 0):
        super().__init__(message)
        self.needed = needed
        self.remaining = remaining


class AIProviderError(SmartDocsException):
    """Every configured LLM provider failed"""
    pass


class PaymentProviderError(SmartDocsException):
    """Stripe or Moyasar rejected a request"""

    def __init__(self, message: str, provider: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class WebhookVerificationError(SmartDocsException):
    """Webhook signature missing or invalid"""
    pass


# HTTP exception helpers
def http_401_unauthorized(detail: str = "Invalid authentication credentials"):
    """Raise 401 Unauthorized"""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def http_403_forbidden(detail: Any = "Not enough permissions"):
    """Raise 403 Forbidden"""
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=detail,
    )


def http_404_not_found(detail: str = "Resource not found"):
    """Raise 404 Not Found"""
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )


def http_400_bad_request(detail: str = "Bad request"):
    """Raise 400 Bad Request"""
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )


def http_409_conflict(detail: str = "Resource conflict"):
    """Raise 409 Conflict"""
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    )


def http_429_too_many_requests(detail: Any = "Too many requests"):
    """Raise 429 Too Many Requests (quota or rate limit)"""
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=detail,
    )
