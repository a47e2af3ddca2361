"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range

DEFAULT_APP_BASE_URL = "https://example.com"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class ProcessingConfig(BaseModel):
    """Settings for the scheduled notification processor."""

    interval: str = Field("5m", description="How often the scheduler drains pending events")

    # Computed from interval
    interval_seconds: Optional[int] = None

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, v: str) -> str:
        """Validate interval syntax and range (1 minute to 24 hours)."""
        try:
            validate_duration_range(parse_duration(v), min_seconds=60, max_seconds=86400)
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        return v

    @model_validator(mode="after")
    def compute_interval_seconds(self):
        self.interval_seconds = parse_duration(self.interval)
        return self


class EmailConfig(BaseModel):
    """Email delivery settings."""

    use_tls: bool = Field(True, description="Use STARTTLS on non-465 ports")
    send_timeout: int = Field(
        30, ge=1, le=120, description="SMTP socket timeout in seconds"
    )
    sender_name: str = Field("قَلم", min_length=1, description="Display name on outgoing mail")

    @field_validator("sender_name")
    @classmethod
    def strip_sender_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("sender_name cannot be empty")
        return stripped


class IdentityConfig(BaseModel):
    """Identity provider client settings."""

    request_timeout: int = Field(
        10, ge=1, le=60, description="Timeout for identity provider calls in seconds"
    )
    user_agent: str = Field("QalamNotifications/1.0", min_length=1)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the notification pipeline."""

    app_base_url: str = Field(
        DEFAULT_APP_BASE_URL, description="Public site URL used in email links"
    )
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("app_base_url")
    @classmethod
    def normalize_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop trailing slashes."""
        stripped = v.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError(f"app_base_url must start with http:// or https://, got: {v}")
        return stripped
