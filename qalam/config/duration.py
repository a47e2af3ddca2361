"""Duration parsing for the processing interval setting."""

import re

_ISO8601_PATTERN = re.compile(
    r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$"
)
_HUMAN_PATTERN = re.compile(r"(\d+)\s*([smhd])")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed or is out of range."""

    pass


def parse_duration(duration_str: str) -> int:
    """Parse a duration string to seconds.

    Accepts human-readable values ("30s", "5m", "1h30m", "1d") and ISO-8601
    durations ("PT5M", "PT1H30M", "P1D").

    Args:
        duration_str: Duration string to parse

    Returns:
        Duration in seconds

    Raises:
        DurationParseError: If the duration string is invalid or zero

    Examples:
        >>> parse_duration("5m")
        300
        >>> parse_duration("PT1H")
        3600
    """
    if duration_str is None or not str(duration_str).strip():
        raise DurationParseError("Duration string cannot be empty")

    value = str(duration_str).strip()

    if value.upper().startswith("P"):
        seconds = _parse_iso8601(value)
    else:
        seconds = _parse_human_readable(value)

    if seconds == 0:
        raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")

    return seconds


def _parse_iso8601(value: str) -> int:
    match = _ISO8601_PATTERN.match(value.upper())
    if not match:
        raise DurationParseError(
            f"Invalid ISO-8601 duration: '{value}'. Expected e.g. 'PT5M', 'PT1H30M', 'P1D'"
        )

    days, hours, minutes, seconds = match.groups()
    return (
        int(days or 0) * 86400
        + int(hours or 0) * 3600
        + int(minutes or 0) * 60
        + int(float(seconds or 0))
    )


def _parse_human_readable(value: str) -> int:
    lowered = value.lower()
    matches = _HUMAN_PATTERN.findall(lowered)
    if not matches:
        raise DurationParseError(
            f"Invalid duration: '{value}'. Expected e.g. '30s', '5m', '1h', '1h30m'"
        )

    # Reject leftovers such as "5 minutes" or "5m!"
    consumed = "".join(f"{num}{unit}" for num, unit in matches)
    if consumed != re.sub(r"\s+", "", lowered):
        raise DurationParseError(
            f"Invalid characters in duration: '{value}'. "
            "Use digits followed by s, m, h or d"
        )

    return sum(int(num) * _UNIT_SECONDS[unit] for num, unit in matches)


def validate_duration_range(
    duration_seconds: int,
    min_seconds: int = 60,
    max_seconds: int = 86400,
) -> None:
    """Check that a duration lies within [min_seconds, max_seconds].

    Raises:
        DurationParseError: If the duration is outside the allowed range
    """
    if duration_seconds < min_seconds:
        raise DurationParseError(
            f"Interval too short: {humanize_seconds(duration_seconds)}. "
            f"Minimum is {humanize_seconds(min_seconds)}."
        )

    if duration_seconds > max_seconds:
        raise DurationParseError(
            f"Interval too long: {humanize_seconds(duration_seconds)}. "
            f"Maximum is {humanize_seconds(max_seconds)}."
        )


def humanize_seconds(seconds: int) -> str:
    """Render a second count as "N unit(s)" using the largest whole unit."""
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"
