"""
Centralized Error Handling

Consistent JSON error payloads for LLM provider failures, payment provider
failures, database errors and anything unexpected.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from openai import APIError, RateLimitError, APITimeoutError
from sqlalchemy.exc import IntegrityError, OperationalError, DBAPIError
from stripe import StripeError
from typing import Any, Dict, Tuple
import logging
import traceback

from smartdocs.core.exceptions import (
    AIProviderError,
    AuthenticationError,
    DuplicateError,
    NotFoundError,
    PaymentProviderError,
    PermissionDeniedError,
    QuotaExceededError,
    SmartDocsException,
    WebhookVerificationError,
)
from smartdocs.utils.sanitize import sanitize_string

logger = logging.getLogger(__name__)

# Status codes for domain exceptions raised outside an HTTPException
DOMAIN_ERROR_STATUS = {
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateError: status.HTTP_409_CONFLICT,
    QuotaExceededError: status.HTTP_429_TOO_MANY_REQUESTS,
    WebhookVerificationError: status.HTTP_400_BAD_REQUEST,
}


class ErrorHandler:
    """Centralized error handling"""

    @staticmethod
    def handle_llm_error(error: Exception) -> Dict[str, Any]:
        """
        Handle LLM provider errors

        Args:
            error: OpenAI-compatible exception raised by litellm

        Returns:
            Error dictionary with message and details
        """
        if isinstance(error, RateLimitError):
            logger.warning(f"LLM rate limit exceeded: {sanitize_string(str(error))}")
            return {
                "error": "rate_limit",
                "message": "AI provider rate limit exceeded. Please try again in a moment.",
                "retry_after": 60,
            }

        elif isinstance(error, APITimeoutError):
            logger.warning(f"LLM API timeout: {sanitize_string(str(error))}")
            return {
                "error": "timeout",
                "message": "AI provider request timed out. Please try again.",
            }

        logger.error(f"LLM API error: {sanitize_string(str(error))}")
        return {
            "error": "api_error",
            "message": "AI provider error occurred. Please try again.",
        }

    @staticmethod
    def handle_payment_error(error: Exception) -> Dict[str, Any]:
        """
        Handle Stripe and Moyasar errors

        Args:
            error: StripeError or PaymentProviderError

        Returns:
            Error dictionary
        """
        provider = getattr(error, "provider", "stripe")
        message = getattr(error, "user_message", None) or str(error)
        logger.error(f"Payment provider error ({provider}): {sanitize_string(message)}")
        return {
            "error": "payment_provider_error",
            "message": "Payment provider request failed.",
            "provider": provider,
            "details": sanitize_string(message),
        }

    @staticmethod
    def handle_database_error(error: Exception) -> Dict[str, Any]:
        """
        Handle database errors

        Args:
            error: Database exception

        Returns:
            Error dictionary with message and details
        """
        details = str(error.orig) if hasattr(error, 'orig') else str(error)

        if isinstance(error, IntegrityError):
            logger.warning(f"Database integrity error: {error}")
            return {
                "error": "integrity_error",
                "message": "Data integrity violation. Duplicate entry or constraint failed.",
                "details": details
            }

        elif isinstance(error, (OperationalError, DBAPIError)):
            logger.error(f"Database error: {error}")
            return {
                "error": "database_error",
                "message": "Database error occurred.",
                "details": details
            }

        logger.error(f"Unknown database error: {error}")
        return {
            "error": "unknown",
            "message": "An unexpected database error occurred."
        }

    @staticmethod
    def handle_domain_error(error: SmartDocsException) -> Tuple[int, Dict[str, Any]]:
        """
        Map a domain exception to a status code and a {"detail": ...} body

        The body matches HTTPException responses so clients parse one shape.
        """
        status_code = next(
            (code for exc_type, code in DOMAIN_ERROR_STATUS.items() if isinstance(error, exc_type)),
            status.HTTP_400_BAD_REQUEST,
        )
        content: Dict[str, Any] = {"detail": str(error)}
        if isinstance(error, QuotaExceededError):
            content["tokens_needed"] = error.needed
            content["tokens_remaining"] = error.remaining

        logger.info(f"{type(error).__name__}: {sanitize_string(str(error))}")
        return status_code, content

    @staticmethod
    def handle_generic_error(error: Exception) -> Dict[str, Any]:
        """Handle generic/unknown errors"""
        logger.error(f"Unexpected error: {sanitize_string(str(error))}\n{traceback.format_exc()}")
        return {
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again.",
            "type": type(error).__name__
        }


# Global exception handlers for FastAPI

async def llm_error_handler(request: Request, exc: APIError):
    """FastAPI exception handler for LLM provider errors"""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=ErrorHandler.handle_llm_error(exc)
    )


async def payment_error_handler(request: Request, exc: Exception):
    """FastAPI exception handler for Stripe/Moyasar errors"""
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content=ErrorHandler.handle_payment_error(exc)
    )


async def database_error_handler(request: Request, exc: IntegrityError):
    """FastAPI exception handler for database errors"""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorHandler.handle_database_error(exc)
    )


async def domain_error_handler(request: Request, exc: SmartDocsException):
    """FastAPI exception handler for SmartDocs domain errors"""
    status_code, content = ErrorHandler.handle_domain_error(exc)
    return JSONResponse(status_code=status_code, content=content)


async def generic_error_handler(request: Request, exc: Exception):
    """FastAPI exception handler for generic errors"""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorHandler.handle_generic_error(exc)
    )


def setup_error_handlers(app):
    """
    Setup global error handlers for FastAPI app

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(APIError, llm_error_handler)
    app.add_exception_handler(AIProviderError, llm_error_handler)
    app.add_exception_handler(StripeError, payment_error_handler)
    app.add_exception_handler(PaymentProviderError, payment_error_handler)
    app.add_exception_handler(IntegrityError, database_error_handler)
    app.add_exception_handler(SmartDocsException, domain_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    logger.info("Error handlers registered")
