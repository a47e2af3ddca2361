"""Soft checks on raw configuration that produce warnings, not errors."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration

# Draining more often than this rarely helps and hammers the identity API
_SHORT_INTERVAL_SECONDS = 120


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """Return warning messages for suspicious but valid settings."""
    messages: List[str] = []

    base_url = config_dict.get("app_base_url")
    if isinstance(base_url, str):
        if "example.com" in base_url:
            messages.append(
                f"app_base_url is still the placeholder ({base_url}); email links will not work"
            )
        elif base_url.strip().startswith("http://"):
            messages.append(f"app_base_url uses plain http ({base_url}); links in email will be insecure")

    processing = config_dict.get("processing") or {}
    if isinstance(processing, dict):
        interval = processing.get("interval")
        if isinstance(interval, str):
            try:
                seconds = parse_duration(interval)
            except DurationParseError:
                seconds = None  # reported as a hard error by model validation
            if seconds is not None and seconds < _SHORT_INTERVAL_SECONDS:
                messages.append(
                    f"Short processing.interval ({interval}) will query the identity provider frequently"
                )

    email = config_dict.get("email") or {}
    if isinstance(email, dict) and email.get("use_tls") is False:
        messages.append("email.use_tls is false; mail will be sent unencrypted on non-465 ports")

    return messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit each message through the warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
