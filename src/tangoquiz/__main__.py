"""Main entry point for the bot."""
import asyncio
import logging
import signal

from tangoquiz.app import TangoBot
from tangoquiz.config import ensure_directories, settings
from tangoquiz.logging_config import setup_logging
from tangoquiz.monitoring import start_monitoring

logger = logging.getLogger("tangoquiz")


def request_stop(sig: signal.Signals, stop: asyncio.Event) -> None:
    """Signal handler: ask ``main`` to stop the bot."""
    logger.info(f"Received exit signal {sig.name}, stopping...")
    stop.set()


def handle_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Log exceptions nobody awaited; a failed task never ends the bot."""
    exception = context.get("exception")
    logger.error(
        f"Unhandled error in event loop: {context['message']}",
        exc_info=(type(exception), exception, exception.__traceback__) if exception else None,
    )


async def main() -> None:
    """Run the bot until SIGINT or SIGTERM."""
    loop = asyncio.get_running_loop()
    loop.set_exception_handler(handle_exception)

    stop = asyncio.Event()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, request_stop, sig, stop)

    bot = TangoBot()
    try:
        logger.info("Starting bot...")
        await bot.start()
        await stop.wait()
    finally:
        logger.info("Cleaning up...")
        await bot.stop()


def run() -> None:
    """Console entry point."""
    ensure_directories()

    setup_logging("Starting tangoquiz ...")
    settings.validate()

    if settings.monitoring.enabled:
        start_monitoring(settings.monitoring.port)
        logger.info(f"Metrics exported on port {settings.monitoring.port}")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        loop.run_until_complete(main())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    finally:
        loop.close()


if __name__ == "__main__":
    run()
