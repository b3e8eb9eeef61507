"""
============================================================================
UPTIME MONITOR - VALIDATORS UTILITY
============================================================================
Address validation applied at the registry boundary. The monitoring core
assumes every address it receives has already passed these checks.
============================================================================
"""

from typing import Optional
from urllib.parse import urlparse

import validators as external_validators

from exceptions import InvalidURLError


MAX_URL_LENGTH = 2048
ALLOWED_SCHEMES = ("http", "https")


class URLValidator:
    """
    URL validation for endpoint addresses.
    """

    @staticmethod
    def is_valid_url(url: Optional[str]) -> bool:
        """
        Check if URL is a probe-able http(s) address.

        Args:
            url: URL to validate

        Returns:
            True if valid, False otherwise
        """
        try:
            URLValidator.validate(url)
            return True
        except InvalidURLError:
            return False

    @staticmethod
    def validate(url: Optional[str]) -> str:
        """
        Validate and return the stripped address.

        Raises:
            InvalidURLError: with a machine-readable ``reason`` detail
        """
        if url is None or not url.strip():
            raise InvalidURLError("URL is required", url=url, reason="empty")

        url = url.strip()

        if len(url) > MAX_URL_LENGTH:
            raise InvalidURLError("URL is too long", url=url, reason="too_long")

        scheme = urlparse(url).scheme.lower()
        if scheme not in ALLOWED_SCHEMES:
            raise InvalidURLError(
                f"Unsupported URL scheme: {scheme or 'none'}",
                url=url,
                reason="no_scheme",
            )

        # simple_host admits single-label hosts such as "localhost"
        if external_validators.url(url, simple_host=True) is not True:
            raise InvalidURLError("Invalid URL format", url=url, reason="malformed")

        return url
