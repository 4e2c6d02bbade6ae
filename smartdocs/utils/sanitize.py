"""
Security utility for sanitizing sensitive data in logs and errors
Prevents API keys, payment keys and credentials from being exposed in logs
or in the admin activity trail
"""

from typing import Dict, Any
import re
import logging

logger = logging.getLogger(__name__)

# Headers that contain sensitive information
SENSITIVE_HEADERS = {
    "authorization",
    "x-api-key",
    "cookie",
    "stripe-signature",
    "x-moyasar-signature",
    "signature",
}

SENSITIVE_KEYS = {
    "api_key",
    "apikey",
    "password",
    "hashed_password",
    "new_password",
    "secret",
    "token",
    "authorization",
}

# Patterns to detect and redact sensitive data
SENSITIVE_PATTERNS = [
    (re.compile(r'(sd_[a-zA-Z0-9_\-]{32,})'), 'sd_***REDACTED***'),  # SmartDocs API keys
    (re.compile(r'(sk-[a-zA-Z0-9_\-]{32,})'), 'sk-***REDACTED***'),  # OpenAI keys
    (re.compile(r'(sk_(live|test)_[a-zA-Z0-9]+)'), 'sk_***REDACTED***'),  # Stripe secret keys
    (re.compile(r'(whsec_[a-zA-Z0-9]+)'), 'whsec_***REDACTED***'),  # Stripe webhook secrets
    (re.compile(r'(Bearer\s+[a-zA-Z0-9_\-\.]+)'), 'Bearer ***REDACTED***'),
]


def sanitize_headers(headers: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove sensitive headers from dict

    Args:
        headers: Dictionary of headers

    Returns:
        Sanitized headers with sensitive values redacted
    """
    if not isinstance(headers, dict):
        return headers

    return {
        key: "***REDACTED***" if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def sanitize_string(text: str) -> str:
    """Remove sensitive patterns from string"""
    if not isinstance(text, str):
        return text

    sanitized = text
    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    return sanitized


def sanitize_dict(data: Dict[str, Any], sensitive_keys: set = None) -> Dict[str, Any]:
    """
    Recursively sanitize dictionary by removing sensitive keys

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Set of keys to redact (defaults to SENSITIVE_KEYS)

    Returns:
        Sanitized dictionary
    """
    if not isinstance(data, dict):
        return data

    if sensitive_keys is None:
        sensitive_keys = SENSITIVE_KEYS

    sanitized = {}
    for key, value in data.items():
        if key.lower() in sensitive_keys:
            sanitized[key] = "***REDACTED***"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, list):
            sanitized[key] = [
                sanitize_dict(item, sensitive_keys) if isinstance(item, dict) else sanitize_string(item)
                for item in value
            ]
        elif isinstance(value, str):
            sanitized[key] = sanitize_string(value)
        else:
            sanitized[key] = value

    return sanitized


def get_safe_api_key_display(api_key: str) -> str:
    """
    Get safe version of API key for logging (only prefix)

    Args:
        api_key: Full API key

    Returns:
        Safe display string (e.g., "sd_abc12345...***")
    """
    if not api_key or not isinstance(api_key, str):
        return "***INVALID***"

    if len(api_key) < 12:
        return "***REDACTED***"

    return f"{api_key[:12]}...***"


def mask_email(email: str) -> str:
    """First two characters of the local part, then *** and the domain"""
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.partition("@")
    return f"{local[:2]}***@{domain}"
