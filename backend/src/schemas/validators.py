"""
Shared validation functions for Pydantic schemas.

Each validator trims its input and raises ValueError with a user-facing
message; pydantic attaches the field name, and the API turns it into a 400.
"""
from pydantic import AnyUrl, TypeAdapter, ValidationError

from core.config import get_settings

_url_adapter = TypeAdapter(AnyUrl)


def validate_bookmark_url(url: str) -> str:
    """
    Trim and validate a bookmark URL.

    The URL must be absolute: it needs both a scheme and a host
    (e.g. 'https://example.com/a'). Strings like 'not-a-url' or
    'mailto:someone@example.com' are rejected.

    Raises:
        ValueError: If the URL is blank, too long, or not an absolute URI.
    """
    normalized = url.strip()
    if not normalized:
        raise ValueError("URL is required")

    max_length = get_settings().max_url_length
    if len(normalized) > max_length:
        raise ValueError(f"URL exceeds maximum length of {max_length:,} characters")

    try:
        parsed = _url_adapter.validate_python(normalized)
    except ValidationError:
        raise ValueError("Invalid URL") from None

    if not parsed.host:
        raise ValueError("Invalid URL")
    # The parsed form is only a check; the URL is stored as entered
    return normalized


def validate_bookmark_title(title: str) -> str:
    """
    Trim and validate a bookmark title.

    Raises:
        ValueError: If the title is blank after trimming or too long.
    """
    normalized = title.strip()
    if not normalized:
        raise ValueError("Title is required")

    max_length = get_settings().max_title_length
    if len(normalized) > max_length:
        raise ValueError(f"Title exceeds maximum length of {max_length:,} characters")
    return normalized
