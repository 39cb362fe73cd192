#!/usr/bin/env python3
"""
FlowBot - entry point

Запуск:
    python flowbot_main.py
    # или
    flowbot
"""

import asyncio
import logging

from flowbot.commands import CommandRegistry
from flowbot.commands.order_commands import register_demo_commands
from flowbot.core import get_settings, setup_logging
from telegram_interface import FlowBotController

logger = logging.getLogger(__name__)


def build_registry() -> CommandRegistry:
    registry = CommandRegistry()
    register_demo_commands(registry)

    missing = registry.missing_delegates()
    if missing:
        logger.warning(f"⚠️ Commands delegate to unregistered targets: {missing}")
    return registry


async def main():
    settings = get_settings()
    setup_logging(settings)

    logger.info("=" * 50)
    logger.info(f"🚀 {settings.app_name}")
    logger.info("=" * 50)

    controller = FlowBotController(build_registry(), settings)
    await controller.start()


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("👋 Bot stopped by user")
    except Exception as e:
        logger.error(f"❌ Fatal error: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    run()
