"""
FlowBot Controller - координатор

Этот controller - только координация и композиция, без бизнес-логики.

Архитектура:
- lifecycle: Управление жизненным циклом бота
- handlers: Текстовые сообщения -> FlowDispatcher
- middleware: Логирование переходов между командами
- utilities: Клавиатуры и разбиение длинных сообщений
"""

import logging
from typing import Optional

from aiogram import Bot, Dispatcher

from flowbot.commands import CommandRegistry
from flowbot.core.config import Settings, get_settings
from flowbot.core.error_handling import CommandStopped, FlowBotException
from flowbot.dispatcher import FlowDispatcher
from flowbot.messages import MessageService

from .handler_registry import HandlerRegistry
from .lifecycle import BotLifecycle
from .transport import AiogramTransport

logger = logging.getLogger(__name__)


class FlowBotController:
    """
    Контроллер бота

    Ответственность:
    - Композиция всех компонентов
    - Инициализация Bot и Dispatcher
    - Регистрация handlers через HandlerRegistry
    - Запуск через BotLifecycle
    """

    def __init__(self, registry: CommandRegistry, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        if not self.settings.telegram_bot_token:
            raise ValueError("TELEGRAM_BOT_TOKEN is not configured")

        logger.info(f"🤖 Initializing {self.settings.app_name} Controller...")

        # 1. Bot and Dispatcher (сессии живут в памяти FlowDispatcher)
        self.bot = Bot(token=self.settings.telegram_bot_token)
        self.dp = Dispatcher()

        # 2. Messages and transport
        self.messages = MessageService()
        self.transport = AiogramTransport(self.bot)

        # 3. Flow engine
        self.flow = FlowDispatcher.from_settings(
            registry, self.transport, self.settings, messages=self.messages
        )
        logger.info(f"✅ FlowDispatcher created with {len(registry)} commands")

        # 4. Handlers
        self.handler_registry = HandlerRegistry(self.dp, self.flow, self.messages)
        self.handler_registry.register_all()

        # 5. Lifecycle
        self.lifecycle = BotLifecycle(self.bot, self.dp, app_name=self.settings.app_name)
        if self.settings.startup_command:
            self.lifecycle.add_startup_hook(self.run_startup_command)

        logger.info("🎉 Controller initialized successfully")

    async def run_startup_command(self):
        """Run the configured command once, programmatically, in the configured chat"""
        name = self.settings.startup_command
        chat_id = self.settings.startup_chat_id
        if chat_id is None:
            logger.warning(f"⚠️ Startup command '{name}' skipped: STARTUP_CHAT_ID is not set")
            return

        logger.info(f"▶️ Executing startup command '{name}' in chat {chat_id}")
        try:
            answers = await self.flow.execute(name, chat_id)
        except CommandStopped:
            logger.info(f"⏹ Startup command '{name}' was stopped by the user")
            return
        except FlowBotException as e:
            logger.error(f"❌ Startup command '{name}' failed: {e.message}")
            return
        logger.info(f"✅ Startup command '{name}' completed with {len(answers)} answers")

    async def start(self):
        logger.info(f"🚀 Starting {self.settings.app_name}...")
        await self.lifecycle.start_polling()

    async def stop(self):
        logger.info(f"🛑 Stopping {self.settings.app_name}...")
        self.lifecycle.request_shutdown()
