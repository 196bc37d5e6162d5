"""Input hygiene for free text and user identifiers."""

import re

from dispute_engine.errors import ValidationError


# Characters to escape or remove
DANGEROUS_CHARS = {
    '\x00': '',  # Null byte
    '\x1b': '',  # Escape character
}

USER_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')


def sanitize_text(text: str | None, max_length: int = 5000) -> str:
    """Clean a free-text field supplied by a party or arbitrator.

    Removes control characters, squeezes runs of spaces and truncates
    overly long input.
    """
    if not text:
        return ""

    sanitized = text
    for char, replacement in DANGEROUS_CHARS.items():
        sanitized = sanitized.replace(char, replacement)

    # Normalize excessive whitespace (but preserve intentional formatting)
    sanitized = re.sub(r' {3,}', '  ', sanitized).strip()

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "... [truncated]"

    return sanitized


def validate_user_id(user_id: str, field: str = "user_id") -> str:
    """Reject identifiers that are empty or not alphanumeric with _ or -."""
    if not user_id or not USER_ID_PATTERN.match(user_id):
        raise ValidationError(f"Invalid {field}: {user_id!r}")
    return user_id
