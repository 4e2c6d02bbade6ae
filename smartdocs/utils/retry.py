"""
Retry Logic Utilities

Automatic retry with exponential backoff for LLM provider calls, Moyasar
HTTP calls and database operations.
"""

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
    after_log
)
from openai import APIError, RateLimitError, APITimeoutError
import httpx
from smartdocs.config import settings
import logging

logger = logging.getLogger(__name__)


def _no_retry(func):
    return func


def retry_on_api_error(max_attempts: int = None):
    """
    Decorator for retrying LLM calls

    Retries on:
    - OpenAI-compatible APIError (raised by litellm for every provider)
    - Rate limit errors
    - Timeout and connection errors

    Args:
        max_attempts: Maximum retry attempts (default: settings.RETRY_MAX_ATTEMPTS)

    Returns:
        Tenacity retry decorator
    """
    if not settings.RETRY_ENABLED:
        return _no_retry

    max_attempts = max_attempts or settings.RETRY_MAX_ATTEMPTS

    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=2,
            max=30,
            exp_base=settings.RETRY_EXPONENTIAL_BASE
        ),
        retry=retry_if_exception_type((
            APIError,
            RateLimitError,
            APITimeoutError,
            ConnectionError,
            TimeoutError
        )),
        reraise=True,
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG)
    )


def retry_on_payment_provider_error(max_attempts: int = None):
    """
    Decorator for retrying Moyasar HTTP calls on transport failures

    Only network level errors are retried. A non-2xx answer from the
    provider is a business error and is raised immediately.
    """
    if not settings.RETRY_ENABLED:
        return _no_retry

    max_attempts = max_attempts or settings.RETRY_MAX_ATTEMPTS

    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=1,
            max=10,
            exp_base=settings.RETRY_EXPONENTIAL_BASE
        ),
        retry=retry_if_exception_type((
            httpx.TransportError,
            ConnectionError,
            TimeoutError
        )),
        reraise=True,
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG)
    )


def retry_on_database_error(max_attempts: int = 3):
    """
    Decorator for retrying on database errors

    Retries on connection errors and deadlocks

    Args:
        max_attempts: Maximum retry attempts (default: 3)

    Returns:
        Tenacity retry decorator
    """
    from sqlalchemy.exc import OperationalError, DBAPIError

    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=1,
            max=10,
            exp_base=2
        ),
        retry=retry_if_exception_type((
            OperationalError,
            DBAPIError,
            ConnectionError
        )),
        reraise=True,
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG)
    )
