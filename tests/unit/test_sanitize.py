"""
Unit tests for log sanitization and masking
"""

import pytest

from smartdocs.utils.sanitize import (
    get_safe_api_key_display,
    mask_email,
    sanitize_dict,
    sanitize_headers,
    sanitize_string,
)


@pytest.mark.unit
class TestSanitize:

    def test_sanitize_headers(self):
        headers = {"Authorization": "Bearer abc", "Stripe-Signature": "t=1,v1=x", "Accept": "json"}
        result = sanitize_headers(headers)
        assert result["Authorization"] == "***REDACTED***"
        assert result["Stripe-Signature"] == "***REDACTED***"
        assert result["Accept"] == "json"

    def test_sanitize_string_patterns(self):
        text = "key sd_" + "a" * 40 + " and sk_live_abc123 and whsec_xyz"
        result = sanitize_string(text)
        assert "sd_***REDACTED***" in result
        assert "sk_***REDACTED***" in result
        assert "whsec_***REDACTED***" in result
        assert "abc123" not in result

    def test_sanitize_dict_recurses(self):
        data = {
            "email": "a@b.com",
            "password": "hunter22",
            "nested": {"token": "abc", "ok": 1},
            "items": [{"secret": "x"}, "Bearer abc.def"],
        }
        result = sanitize_dict(data)
        assert result["email"] == "a@b.com"
        assert result["password"] == "***REDACTED***"
        assert result["nested"] == {"token": "***REDACTED***", "ok": 1}
        assert result["items"][0] == {"secret": "***REDACTED***"}
        assert result["items"][1] == "Bearer ***REDACTED***"

    def test_safe_api_key_display(self):
        assert get_safe_api_key_display("sd_abcdefghijklmnop") == "sd_abcdefghi...***"
        assert get_safe_api_key_display("short") == "***REDACTED***"
        assert get_safe_api_key_display(None) == "***INVALID***"

    def test_mask_email(self):
        assert mask_email("john.doe@example.com") == "jo***@example.com"
        assert mask_email("invalid") == "***"
