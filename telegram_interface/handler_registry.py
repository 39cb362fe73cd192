"""
Handler Registry - регистрация всех обработчиков бота

Отвечает за:
- Регистрацию handlers с dependency injection
- Middleware регистрацию

Команды не регистрируются по отдельности: каждое текстовое сообщение
уходит в FlowDispatcher, который сам решает, команда это или ответ.
"""

import logging
from functools import partial
from aiogram import Dispatcher, F

from flowbot.dispatcher import FlowDispatcher
from flowbot.messages import MessageService

from .handlers import FlowHandlers
from .middleware import FlowStateLoggerMiddleware

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """
    Регистратор всех обработчиков бота

    Использует dependency injection для передачи зависимостей в handlers.
    """

    def __init__(self, dp: Dispatcher, flow: FlowDispatcher, messages: MessageService):
        """
        Args:
            dp: Aiogram Dispatcher
            flow: FlowDispatcher с реестром команд и сессиями
            messages: MessageService
        """
        self.dp = dp
        self.flow = flow
        self.messages = messages

    def register_all(self):
        """Регистрация всех handlers и middleware"""
        logger.info("🔧 Registering all handlers...")

        self._register_middleware()
        self._register_text_handler()
        self._register_fallback_handler()

        logger.info("✅ All handlers registered successfully")

    def _register_middleware(self):
        self.dp.message.middleware(FlowStateLoggerMiddleware(self.flow.sessions))
        logger.info("🔄 Middleware registered: FlowStateLoggerMiddleware")

    def _register_text_handler(self):
        self.dp.message.register(
            partial(FlowHandlers.handle_text, flow=self.flow),
            F.text
        )
        logger.info(f"📝 Text handler registered for {len(self.flow.registry)} commands")

    def _register_fallback_handler(self):
        # Последний - ловит всё, что не текст
        self.dp.message.register(
            partial(FlowHandlers.handle_non_text, messages=self.messages)
        )
        logger.info("🔄 Fallback handler registered")
