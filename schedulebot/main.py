"""
ScheduleBot - Main Entry Point
==============================

1. Loads configuration
2. Creates the scheduling agent
3. Creates the Slack app and registers the /schedule command
4. Runs Socket Mode until interrupted

Run with:
    python -m schedulebot.main

Or after installing:
    schedulebot
"""

import asyncio
import signal
import sys

from schedulebot.utils.logger import Logger, set_log_level

main_logger = Logger("Main")


async def main():
    """Initialize all components and run the bot."""
    main_logger.info("Starting ScheduleBot...")

    try:
        main_logger.info("Loading configuration...")
        from schedulebot.utils.config import get_config, is_gateway_configured
        config = get_config()
        set_log_level(config.log_level)

        if not is_gateway_configured():
            main_logger.warning(
                "MCP_SERVER_URL / MCP_API_KEY not set: /schedule requests will "
                "report a configuration error until they are provided"
            )

        main_logger.info("Creating scheduling agent...")
        from schedulebot.agent import SchedulingAgent
        agent = SchedulingAgent.from_config(config)

        main_logger.info("Creating Slack app...")
        from schedulebot.slack import create_slack_app, create_socket_handler, register_handlers
        app = create_slack_app(config.slack)
        register_handlers(app, agent)

        main_logger.info("Starting Socket Mode connection...")
        handler = await create_socket_handler(app, config.slack)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(
                sig,
                lambda: asyncio.create_task(_shutdown(handler))
            )

        main_logger.info("ScheduleBot is running! Press Ctrl+C to stop.")
        await handler.start_async()

    except KeyboardInterrupt:
        main_logger.info("Received interrupt signal")
    except Exception as e:
        main_logger.error("Failed to start bot", e)
        sys.exit(1)


async def _shutdown(handler):
    """Close the Socket Mode connection."""
    main_logger.info("Shutting down...")
    await handler.close_async()
    main_logger.info("Shutdown complete")


def run():
    """Synchronous entry point for the `schedulebot` command."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
