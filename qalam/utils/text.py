"""Text helpers for building notification payloads."""

from typing import Optional

COMMENT_EXCERPT_LENGTH = 180


def excerpt(text: Optional[str], max_length: int = COMMENT_EXCERPT_LENGTH) -> str:
    """Return the leading slice of a text used as a notification excerpt.

    Leading and trailing whitespace is stripped before slicing. No suffix is
    appended, so the result is always a prefix of the stripped text.

    Args:
        text: Source text (comment body, article summary)
        max_length: Maximum number of characters to keep

    Returns:
        Excerpt string (empty string for None or blank input)

    Example:
        >>> excerpt("  مرحبا بالعالم  ", max_length=5)
        'مرحبا'
    """
    if not text:
        return ""

    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got: {max_length}")

    return text.strip()[:max_length]
