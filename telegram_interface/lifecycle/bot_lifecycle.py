"""
Bot Lifecycle Manager - управление жизненным циклом бота

Отвечает за:
- Запуск polling с graceful shutdown
- Обработку сигналов (SIGINT, SIGTERM)
- Фоновые задачи, стартующие вместе с ботом
- Корректное освобождение ресурсов
"""

import asyncio
import logging
import signal
from typing import Awaitable, Callable, List, Optional, Set

from aiogram import Bot, Dispatcher

logger = logging.getLogger(__name__)

StartupHook = Callable[[], Awaitable[None]]


class BotLifecycle:
    """
    Управление жизненным циклом Telegram бота

    Координирует запуск и остановку polling и фоновых задач.
    """

    def __init__(
        self,
        bot: Bot,
        dispatcher: Dispatcher,
        app_name: str = "FlowBot",
        startup_hooks: Optional[List[StartupHook]] = None
    ):
        """
        Args:
            bot: Aiogram Bot instance
            dispatcher: Aiogram Dispatcher instance
            app_name: Имя для startup banner
            startup_hooks: Корутины, запускаемые фоновыми задачами после старта
        """
        self.bot = bot
        self.dp = dispatcher
        self.app_name = app_name
        self.startup_hooks: List[StartupHook] = list(startup_hooks or [])
        self.background_tasks: Set[asyncio.Task] = set()

        # Shutdown event для graceful shutdown
        self._shutdown_event = asyncio.Event()

    def add_startup_hook(self, hook: StartupHook):
        self.startup_hooks.append(hook)

    async def setup_signal_handlers(self):
        """
        Настроить обработчики сигналов для graceful shutdown
        """
        loop = asyncio.get_running_loop()

        def signal_handler(sig):
            logger.info(f"🛑 Received signal {sig}, initiating graceful shutdown...")
            self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))

        logger.info("📡 Signal handlers configured (SIGINT, SIGTERM)")

    def request_shutdown(self):
        self._shutdown_event.set()

    def _start_background_tasks(self):
        for hook in self.startup_hooks:
            task = asyncio.create_task(self._run_hook(hook))
            self.background_tasks.add(task)
            task.add_done_callback(self.background_tasks.discard)

    async def _run_hook(self, hook: StartupHook):
        name = getattr(hook, '__name__', repr(hook))
        try:
            await hook()
            logger.info(f"✅ Startup task '{name}' finished")
        except Exception as e:
            logger.error(f"❌ Startup task '{name}' failed: {e}", exc_info=True)

    async def start_polling(self):
        """
        Запуск бота с graceful shutdown
        """
        try:
            await self.setup_signal_handlers()

            logger.info(f"🚀 Starting {self.app_name} polling...")

            polling_task = asyncio.create_task(
                self.dp.start_polling(self.bot, handle_signals=False, close_bot_session=False)
            )
            self._start_background_tasks()

            # Ждем сигнала shutdown или падения polling
            shutdown_task = asyncio.create_task(self._shutdown_event.wait())
            done, _ = await asyncio.wait(
                {polling_task, shutdown_task},
                return_when=asyncio.FIRST_COMPLETED
            )

            if polling_task in done:
                shutdown_task.cancel()
                # Пробрасываем исключение polling, если было
                polling_task.result()
                return

            logger.info("🛑 Initiating graceful shutdown...")
            polling_task.cancel()
            try:
                await polling_task
            except asyncio.CancelledError:
                logger.info("✅ Polling task cancelled")

        except Exception as e:
            logger.error(f"Bot error: {e}", exc_info=True)
            raise
        finally:
            # Всегда освобождаем ресурсы
            await self.stop()

    async def stop(self):
        """
        Graceful остановка бота с освобождением всех ресурсов
        """
        logger.info("🛑 Stopping bot gracefully...")

        try:
            # 1. Останавливаем фоновые задачи
            for task in list(self.background_tasks):
                task.cancel()
            if self.background_tasks:
                await asyncio.gather(*self.background_tasks, return_exceptions=True)
                logger.info("✅ Background tasks stopped")

            # 2. Закрываем Telegram bot session
            await self.bot.session.close()
            logger.info("✅ Bot session closed")

            logger.info("🎉 Bot stopped successfully")

        except Exception as e:
            logger.error(f"❌ Error during shutdown: {e}", exc_info=True)
