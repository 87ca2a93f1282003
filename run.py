"""Main entry point for the Slayer Rewards bot.

Applies database migrations when a DSN is configured, then starts the bot.
"""
from slayer_bot.config import Settings
from slayer_bot.bot import create_bot

import asyncio
import logging
import os

from slayer_bot.utils.logger import get_logger

logger = get_logger("slayer.run")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = Settings()

    # FAST_SYNC skips migrations for quick restarts during development
    fast_sync = os.getenv("FAST_SYNC", "false").lower() in ("1", "true", "yes")
    if settings.DEV_MODE:
        logger.info("Slayer Rewards - dev mode: fast sync=%s", fast_sync)

    if settings.DATABASE_URL and not fast_sync:
        from scripts.run_migrations import apply_migrations

        try:
            asyncio.run(apply_migrations(settings.DATABASE_URL))
            logger.info("Migrations applied (if any).")
        except Exception:
            logger.exception("Migration runner failed; continuing with the existing schema")
    elif fast_sync:
        logger.info("FAST_SYNC enabled: skipping migrations.")

    missing = settings.validate(["TOKEN"])
    if missing:
        logger.error("Missing %s in environment or .env", ", ".join(missing))
        return

    bot = create_bot(settings)
    bot.run(settings.TOKEN, log_handler=None)


if __name__ == "__main__":
    main()
