"""Thin smtplib wrapper with TLS handling and connection cleanup."""

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.headerregistry import Address
from email.message import EmailMessage
from email.utils import parseaddr
from typing import Callable, Optional

from .models import SMTPDeliveryError

logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465


@dataclass(frozen=True)
class SMTPSettings:
    """Connection settings for the outgoing mail server."""

    host: str
    port: int = IMPLICIT_TLS_PORT
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    timeout: int = 30

    @classmethod
    def from_env(cls, env_config, use_tls: bool = True, timeout: int = 30) -> "SMTPSettings":
        return cls(
            host=env_config.smtp_host,
            port=env_config.smtp_port,
            username=env_config.smtp_user,
            password=env_config.smtp_pass,
            use_tls=use_tls,
            timeout=timeout,
        )


class SMTPClient:
    """Sends one EmailMessage per connection.

    Port 465 uses implicit TLS; other ports use STARTTLS when ``use_tls`` is
    set. The smtplib classes are injectable for tests.
    """

    def __init__(
        self,
        settings: SMTPSettings,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        self.settings = settings
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    def send(self, message: EmailMessage) -> None:
        """Deliver ``message``; the connection is closed in every case.

        Raises:
            SMTPDeliveryError: On any SMTP, network or timeout failure
        """
        settings = self.settings
        smtp = None
        try:
            if settings.port == IMPLICIT_TLS_PORT:
                smtp = self.smtp_ssl_factory(
                    settings.host,
                    settings.port,
                    timeout=settings.timeout,
                    context=ssl.create_default_context(),
                )
            else:
                smtp = self.smtp_factory(settings.host, settings.port, timeout=settings.timeout)
                if settings.use_tls:
                    smtp.starttls(context=ssl.create_default_context())

            if settings.username and settings.password:
                smtp.login(settings.username, settings.password)

            smtp.send_message(message)
            logger.debug(f"Message handed to {settings.host}:{settings.port}")

        except smtplib.SMTPException as e:
            raise SMTPDeliveryError(f"SMTP error during message delivery: {e}") from e
        except OSError as e:
            # Includes socket.timeout and connection refused
            raise SMTPDeliveryError(f"Network error during SMTP connection: {e}") from e
        finally:
            if smtp is not None:
                try:
                    smtp.quit()
                except (smtplib.SMTPException, OSError) as e:
                    logger.warning(f"Error closing SMTP connection: {e}")


def build_sender_address(from_address: str, sender_name: Optional[str] = None) -> str:
    """Format the From header.

    ``from_address`` may already carry a display name ("Name <addr>"); in that
    case it is returned unchanged.
    """
    name, address = parseaddr(from_address)
    if name or not sender_name:
        return from_address
    username, _, domain = address.partition("@")
    return str(Address(display_name=sender_name, username=username, domain=domain))
