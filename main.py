"""Entry-point for running the Steward Discord bot."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from steward import create_bot
from steward.health import start_health_server
from steward.models.config import load_settings
from steward.services.giveaways import GiveawayScheduler
from steward.services.store import CounterStore


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


async def async_main() -> None:
    configure_logging()
    logger = logging.getLogger(__name__)
    settings = load_settings()

    store = CounterStore(settings.data_dir)
    store.load()
    giveaways = GiveawayScheduler()

    bot = create_bot(settings, store, giveaways)
    health_server: Optional[asyncio.AbstractServer] = None
    if settings.health_enabled:
        health_server = await start_health_server(
            settings.health_host, settings.health_port, settings, store, giveaways
        )
        logger.info("Health endpoint listening on %s:%d", settings.health_host, settings.health_port)
    try:
        async with bot:
            await bot.start(settings.discord_token)
    finally:
        await giveaways.shutdown()
        if health_server is not None:
            health_server.close()
            await health_server.wait_closed()


def main() -> None:
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
