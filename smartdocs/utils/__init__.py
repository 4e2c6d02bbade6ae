"""
Utility Functions and Classes

Provides retry logic, error handling, token accounting and other helpers.
"""

from smartdocs.utils.retry import (
    retry_on_api_error,
    retry_on_payment_provider_error,
    retry_on_database_error,
)
from smartdocs.utils.error_handlers import (
    ErrorHandler,
    setup_error_handlers
)

__all__ = [
    "retry_on_api_error",
    "retry_on_payment_provider_error",
    "retry_on_database_error",
    "ErrorHandler",
    "setup_error_handlers"
]
