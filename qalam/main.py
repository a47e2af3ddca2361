"""Command-line entry point for the Qalam notification pipeline."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import json
import os
import signal
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from qalam.config.environment import EnvironmentConfig
from qalam.config.exceptions import ConfigurationError
from qalam.config.loader import load_config
from qalam.config.models import AppConfig
from qalam.identity import HTTPIdentityProvider
from qalam.logging import get_logger
from qalam.logging.config import configure_logging
from qalam.notifications import (
    ContentRenderer,
    EditorialMailer,
    EmailChannel,
    SMTPClient,
    SMTPSettings,
    build_sender_address,
)
from qalam.persistence import close_database, init_database
from qalam.processing import EventFetchError, NotificationEventProcessor
from qalam.scheduler import SchedulerService
from qalam.triggers import AdminTrigger, ScheduledTrigger

logger = get_logger(__name__, component="cli")


@dataclass
class NotificationComponents:
    """Wired-up services shared by the CLI and any web layer."""

    processor: NotificationEventProcessor
    identity_provider: HTTPIdentityProvider
    scheduled_trigger: ScheduledTrigger
    admin_trigger: AdminTrigger
    editorial_mailer: EditorialMailer


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """Load configuration and settle the log level.

    Priority for the log level: CLI flag, then LOG_LEVEL, then config.yaml.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = str(getattr(app_config.logging.level, "value", app_config.logging.level))

    return app_config, env_config


def build_components(app_config: AppConfig, env_config: EnvironmentConfig) -> NotificationComponents:
    """Construct the processor, both triggers and the editorial mailer from configuration."""
    identity_provider = HTTPIdentityProvider(
        base_url=env_config.identity_url,
        service_key=env_config.identity_service_key,
        timeout=app_config.identity.request_timeout,
        user_agent=app_config.identity.user_agent,
    )

    smtp_client = SMTPClient(
        SMTPSettings.from_env(
            env_config,
            use_tls=app_config.email.use_tls,
            timeout=app_config.email.send_timeout,
        )
    )
    channel = EmailChannel(
        smtp_client,
        sender=build_sender_address(env_config.smtp_from, app_config.email.sender_name),
    )

    renderer = ContentRenderer(app_config.app_base_url)
    processor = NotificationEventProcessor(
        identity_provider=identity_provider,
        renderer=renderer,
        channel=channel,
    )

    return NotificationComponents(
        processor=processor,
        identity_provider=identity_provider,
        scheduled_trigger=ScheduledTrigger(processor, env_config.cron_secret),
        admin_trigger=AdminTrigger(processor, identity_provider),
        editorial_mailer=EditorialMailer(
            identity_provider=identity_provider,
            renderer=renderer,
            channel=channel,
            reviewer_emails=env_config.reviewer_emails,
        ),
    )


def run_manual(processor: NotificationEventProcessor) -> int:
    """Process one batch, print the JSON summary and return the exit code."""
    try:
        result = processor.process_pending()
    except EventFetchError as e:
        print(json.dumps({"error": e.code}))
        logger.error(
            "Manual run could not fetch events",
            extra={"event": "service.manual_run.fetch_failed"},
        )
        return 1

    print(json.dumps(result.to_dict(), ensure_ascii=False))
    logger.info(
        f"Manual run completed: {result.processed} sent, "
        f"{len(result.failed)} failed, {result.skipped} skipped",
        extra={
            "event": "service.manual_run.completed",
            "duration_seconds": result.duration_seconds,
            "processed": result.processed,
            "failed": len(result.failed),
            "skipped": result.skipped,
        },
    )
    return 1 if result.had_failures else 0


def run_daemon(processor: NotificationEventProcessor, interval_seconds: int) -> int:
    """Run the scheduler until SIGINT or SIGTERM."""
    shutdown_event = threading.Event()
    scheduler_service = SchedulerService(
        process_callable=processor.process_pending,
        interval_seconds=interval_seconds,
        shutdown_event=shutdown_event,
    )

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        scheduler_service.shutdown(wait=False)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    scheduler_service.start()
    logger.info(
        "Scheduler started. Press Ctrl+C to stop",
        extra={"event": "service.daemon_mode.started"},
    )

    try:
        shutdown_event.wait()
    except KeyboardInterrupt:
        scheduler_service.shutdown(wait=False)
    return 0


def main(argv=None) -> int:
    """Entry point for ``qalam-notify``.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    start_time = time.time()
    parser = argparse.ArgumentParser(
        description="Qalam notifications - deliver pending notification events by email"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: ./config.yaml or ./config/config.yaml)",
    )
    parser.add_argument(
        "--manual-run",
        action="store_true",
        help="Process one batch, print the summary as JSON and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    args = parser.parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        log_format = str(getattr(app_config.logging.format, "value", app_config.logging.format))
        configure_logging(
            level=env_config.log_level,
            format_type=log_format,
            environment=os.environ.get("ENVIRONMENT", "local"),
        )

        logger.info(
            "Qalam notifications starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "manual_run": args.manual_run,
                "interval_seconds": app_config.processing.interval_seconds,
            },
        )

        init_database(env_config.database_url)
        try:
            components = build_components(app_config, env_config)
            if args.manual_run:
                exit_code = run_manual(components.processor)
            else:
                exit_code = run_daemon(
                    components.processor, app_config.processing.interval_seconds
                )
        finally:
            close_database()

        logger.info(
            "Qalam notifications stopped",
            extra={"event": "service.stopping", "uptime_seconds": round(time.time() - start_time, 2)},
        )
        return exit_code

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            exc_info=True,
            extra={"event": "service.startup.failed", "error_type": type(e).__name__},
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
