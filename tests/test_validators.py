from __future__ import annotations

import pytest

from exceptions import InvalidURLError
from utils.validators import URLValidator


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com",
        "http://example.com:8080/health?full=1",
        "https://sub.domain.example.org/path",
    ],
)
def test_valid_urls(url: str) -> None:
    assert URLValidator.validate(url) == url
    assert URLValidator.is_valid_url(url) is True


@pytest.mark.parametrize(
    "url, reason",
    [
        (None, "empty"),
        ("   ", "empty"),
        ("example.com", "no_scheme"),
        ("ftp://example.com", "no_scheme"),
        ("https://" + "a" * 2050 + ".com", "too_long"),
        ("http://not a url", "malformed"),
    ],
)
def test_invalid_urls_carry_reason(url, reason: str) -> None:
    with pytest.raises(InvalidURLError) as exc_info:
        URLValidator.validate(url)

    assert exc_info.value.details["reason"] == reason
    assert URLValidator.is_valid_url(url) is False


def test_validate_strips_whitespace() -> None:
    assert URLValidator.validate("  https://example.com  ") == "https://example.com"
