"""
Headless worker: runs the telemetry pipeline loop until SIGINT/SIGTERM
"""

import asyncio
import signal

import structlog

from ciip_engine.core.config import settings
from ciip_engine.core.logging import configure_logging
from ciip_engine.processors.pipeline import PipelineRunner, TelemetryPipeline

logger = structlog.get_logger(__name__)


async def serve(runner: PipelineRunner):
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, runner.request_stop)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(runner.request_stop))

    await runner.start()
    await runner.wait_closed()
    logger.info("Worker exiting")


def run():
    configure_logging(settings.log_level)
    logger.info("Starting CIIP telemetry worker", interval=settings.tick_interval_seconds)
    runner = PipelineRunner(TelemetryPipeline(config=settings), interval=settings.tick_interval_seconds)
    asyncio.run(serve(runner))


if __name__ == "__main__":
    run()
