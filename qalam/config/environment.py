"""Environment variable loading and validation."""

import os
from email.utils import parseaddr
from typing import List, Optional

from email_validator import EmailNotValidError, validate_email

from .exceptions import ConfigurationError

DEFAULT_SMTP_PORT = 465
DEFAULT_DATABASE_URL = "sqlite:///./data/qalam_notifications.db"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EnvironmentConfig:
    """Secrets and deployment-specific settings read from the environment."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int = DEFAULT_SMTP_PORT,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        smtp_from: Optional[str] = None,
        identity_url: Optional[str] = None,
        identity_service_key: Optional[str] = None,
        cron_secret: Optional[str] = None,
        app_base_url: Optional[str] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
        reviewer_emails: Optional[List[str]] = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        # Mirrors the mail transport default: the sender falls back to the login
        self.smtp_from = smtp_from or smtp_user
        self.identity_url = identity_url.rstrip("/") if identity_url else None
        self.identity_service_key = identity_service_key
        self.cron_secret = cron_secret
        self.app_base_url = app_base_url
        self.log_level = log_level
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.reviewer_emails = list(reviewer_emails or [])

    def __repr__(self) -> str:
        return (
            f"EnvironmentConfig(smtp_host={self.smtp_host!r}, smtp_port={self.smtp_port}, "
            f"identity_url={self.identity_url!r}, database_url={self.database_url!r})"
        )


def load_environment_config() -> EnvironmentConfig:
    """Load and validate environment variables.

    Required:
    - SMTP_HOST: SMTP server hostname
    - IDENTITY_URL: Base URL of the identity provider (e.g. https://xyz.supabase.co)
    - IDENTITY_SERVICE_KEY: Service-role key for the identity admin API

    Optional:
    - SMTP_PORT (default 465), SMTP_USER, SMTP_PASS, SMTP_FROM
    - NOTIFICATION_CRON_SECRET: shared secret for the scheduled trigger
    - APP_BASE_URL: overrides app_base_url from config.yaml
    - LOG_LEVEL, DATABASE_URL
    - REVIEWER_EMAILS: comma-separated addresses alerted when an article is
      submitted for review

    Returns:
        EnvironmentConfig with validated values

    Raises:
        ConfigurationError: If required variables are missing or any value is invalid
    """
    errors: List[str] = []

    smtp_host = os.getenv("SMTP_HOST")
    smtp_port_str = os.getenv("SMTP_PORT")
    smtp_user = os.getenv("SMTP_USER") or None
    smtp_pass = os.getenv("SMTP_PASS") or None
    smtp_from = os.getenv("SMTP_FROM") or None
    identity_url = os.getenv("IDENTITY_URL")
    identity_service_key = os.getenv("IDENTITY_SERVICE_KEY")
    cron_secret = os.getenv("NOTIFICATION_CRON_SECRET") or None
    app_base_url = os.getenv("APP_BASE_URL") or None
    log_level = os.getenv("LOG_LEVEL") or None
    database_url = os.getenv("DATABASE_URL") or None
    reviewer_emails = parse_reviewer_emails(os.getenv("REVIEWER_EMAILS"))

    if not smtp_host:
        errors.append("Missing required environment variable: SMTP_HOST")
    if not identity_url:
        errors.append("Missing required environment variable: IDENTITY_URL")
    if not identity_service_key:
        errors.append("Missing required environment variable: IDENTITY_SERVICE_KEY")

    smtp_port = DEFAULT_SMTP_PORT
    if smtp_port_str:
        try:
            smtp_port = int(smtp_port_str)
            if not 1 <= smtp_port <= 65535:
                errors.append(f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535.")
        except ValueError:
            errors.append(f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer.")

    if smtp_user and not smtp_pass:
        errors.append("SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication.")
    elif smtp_pass and not smtp_user:
        errors.append("SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication.")

    sender = smtp_from or smtp_user
    if not sender:
        errors.append("Either SMTP_FROM or SMTP_USER must be set to address outgoing mail")
    elif not _is_valid_sender(sender):
        errors.append(f"Invalid sender address: '{sender}'")

    if identity_url and not identity_url.startswith(("http://", "https://")):
        errors.append(f"Invalid IDENTITY_URL: '{identity_url}'. Must start with http:// or https://")

    if app_base_url and not app_base_url.startswith(("http://", "https://")):
        errors.append(f"Invalid APP_BASE_URL: '{app_base_url}'. Must start with http:// or https://")

    for reviewer in reviewer_emails:
        if not _is_valid_sender(reviewer):
            errors.append(f"Invalid address in REVIEWER_EMAILS: '{reviewer}'")

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Ensure all required environment variables are set",
                "Use the service-role key of the identity provider, not the anon key",
            ],
        )

    return EnvironmentConfig(
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        smtp_from=smtp_from,
        identity_url=identity_url,
        identity_service_key=identity_service_key,
        cron_secret=cron_secret,
        app_base_url=app_base_url,
        log_level=log_level.upper() if log_level else None,
        database_url=database_url,
        reviewer_emails=reviewer_emails,
    )


def parse_reviewer_emails(raw: Optional[str]) -> List[str]:
    """Split a comma-separated list, dropping blanks."""
    if not raw:
        return []
    return [email.strip() for email in raw.split(",") if email.strip()]


def _is_valid_sender(sender: str) -> bool:
    """Accept either a bare address or "Name <address>"."""
    _, address = parseaddr(sender)
    if not address:
        return False
    try:
        validate_email(address, check_deliverability=False)
        return True
    except EmailNotValidError:
        return False
