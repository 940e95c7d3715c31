"""Main entry point for the Telegram to Discord relay."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import logfire
from aiogram import Bot

from telecord.common.retry import BackoffPolicy
from telecord.config import BridgeMap, Settings
from telecord.errors import IdentityInitializationFailure
from telecord.platforms import DiscordDestination, TelegramSource
from telecord.relay import (
    EventRouter,
    FileRelayPipeline,
    IdentityMap,
    ReadinessGate,
    RelayDispatcher,
    UpdatePoller,
)


def configure_logging(settings: Settings) -> None:
    logfire.configure(
        token=settings.logfire_token,
        send_to_logfire="if-token-present",
        service_name=settings.app_name,
        environment=settings.environment,
        console=logfire.ConsoleOptions(
            min_log_level="debug" if settings.debug else "info"
        ),
    )

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.WARNING,
        format="[%(asctime)s][%(name)s][%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logfire.LogfireLoggingHandler(),
        ],
    )


async def main(settings: Settings) -> None:
    bridges = BridgeMap(settings.bridges)
    if not bridges:
        logfire.warning("no_bridges_configured")

    source = TelegramSource(
        Bot(token=settings.telegram_bot_token),
        chunk_size=settings.download_chunk_size,
    )
    destination = DiscordDestination(settings.discord_bot_token)

    gate = ReadinessGate()
    dispatcher = RelayDispatcher(
        source=source,
        destination=destination,
        bridges=bridges,
        identity_map=IdentityMap(max_entries=settings.identity_map_max_entries),
        files=FileRelayPipeline(source, destination, gate),
        gate=gate,
    )
    router = EventRouter(
        dispatcher.handlers(),
        max_in_flight=settings.max_concurrent_handlers,
    )
    poller = UpdatePoller(
        source,
        router,
        timeout=settings.poll_timeout,
        skip_old_messages=settings.skip_old_messages,
        backoff=BackoffPolicy(
            initial_delay=settings.poll_backoff_initial,
            max_delay=settings.poll_backoff_max,
        ),
        debug=settings.debug,
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        await dispatcher.start()
        logfire.info(
            "relay_started",
            bridges=[bridge.name for bridge in bridges],
            environment=settings.environment,
        )
        await poller.run(stop)
        await router.drain()
    finally:
        await source.close()
        await destination.close()


if __name__ == "__main__":
    settings = Settings()
    configure_logging(settings)
    try:
        asyncio.run(main(settings))
    except IdentityInitializationFailure:
        logfire.fatal("Relay could not start", _exc_info=True)
        sys.exit(1)
    except (KeyboardInterrupt, SystemExit):
        logging.info("App stopped! Good bye.")
    except Exception:
        logfire.fatal("App crashed", _exc_info=True)
        raise
