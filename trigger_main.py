"""
Main entry point for the clock trigger.

Polls the source endpoint on a fixed interval and posts newly added
identifiers to the webhook until interrupted.
"""

import asyncio
import sys

from pydantic import ValidationError

from trigger.exceptions import BaselineError
from trigger.trigger_service import TriggerService
from utilities.config import DEFAULT_INTERVAL_SECONDS, load_config
from utilities.logger import get_logger, redact_url, setup_logging


async def main() -> int:
    """Start the trigger service. Returns the process exit code."""
    try:
        config = load_config()
    except ValidationError as e:
        setup_logging()
        logger = get_logger(__name__)
        for error in e.errors():
            logger.error(
                "Invalid configuration",
                setting=".".join(str(part) for part in error["loc"]),
                error=error["msg"]
            )
        return 1

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger = get_logger(__name__)

    if config.uses_default_interval:
        logger.warning("Falling back to default interval", interval_seconds=DEFAULT_INTERVAL_SECONDS)

    settings = config.to_settings()
    logger.info(
        "Initializing clock trigger",
        interval_seconds=settings.interval_seconds,
        webhook_url=redact_url(settings.webhook_url),
        source_url=settings.source_url
    )

    service = TriggerService(settings)
    try:
        await service.run()
    except BaselineError as e:
        logger.error("Unable to establish baseline", url=e.url, error=e.reason)
        return 1

    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
