"""
Flow Handlers - все текстовые сообщения идут в FlowDispatcher

Обработчики для:
- текстовых сообщений (команды, ответы на промпты, help/stop/cancel)
- нетекстовых сообщений (стикеры, фото и т.п.)
"""

import logging
from aiogram.types import Message

from flowbot.core.error_handling import ErrorCode, handle_errors
from flowbot.dispatcher import FlowDispatcher
from flowbot.messages import MessageService

logger = logging.getLogger(__name__)


class FlowHandlers:
    """
    Обработчики сообщений бота

    Все методы статические - не требуют состояния.
    Получают необходимые зависимости через параметры.
    """

    @staticmethod
    async def handle_text(message: Message, flow: FlowDispatcher):
        """Текстовое сообщение -> FlowDispatcher.on_message"""
        await FlowHandlers._dispatch_text(message, flow)

    @staticmethod
    @handle_errors(ErrorCode.BOT_UPDATE_ERROR, "Could not process your message. Please try again.")
    async def _dispatch_text(message: Message, flow: FlowDispatcher):
        user_id = message.from_user.id if message.from_user else None
        logger.debug(f"💬 Text from user {user_id} in chat {message.chat.id}")
        await flow.on_message(message.chat.id, message.text, user_id)

    @staticmethod
    async def handle_non_text(message: Message, messages: MessageService):
        """Только текст поддерживается"""
        await message.answer(messages.get_message('text_only', 'general'))
