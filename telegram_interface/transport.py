"""
Aiogram transport - отправка сообщений движка в Telegram
"""

import asyncio
import logging
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from flowbot.core.error_handling import ErrorCode, ErrorTracker, error_tracker
from flowbot.prompts.models import Affordance
from flowbot.transport import MessageTransport

from .utilities import MAX_MESSAGE_LENGTH, build_reply_markup, split_message

logger = logging.getLogger(__name__)


class AiogramTransport(MessageTransport):
    """
    MessageTransport backed by an aiogram Bot.

    Long texts go out in several messages; the keyboard rides on the last one.
    Texts are sent without parse_mode so user-entered values are never interpreted.
    Telegram API failures are tracked as BOT_002 and re-raised.
    """

    def __init__(
        self,
        bot: Bot,
        max_length: int = MAX_MESSAGE_LENGTH,
        part_delay: float = 0.3,
        tracker: Optional[ErrorTracker] = None
    ):
        self.bot = bot
        self.max_length = max_length
        self.part_delay = part_delay
        self.tracker = tracker or error_tracker

    async def send(self, chat_id: int, text: str, affordance: Optional[Affordance] = None) -> None:
        parts = split_message(text, self.max_length)
        markup = build_reply_markup(affordance)

        for i, part in enumerate(parts):
            is_last = i == len(parts) - 1
            try:
                await self.bot.send_message(
                    chat_id=chat_id,
                    text=part,
                    reply_markup=markup if is_last else None
                )
            except TelegramAPIError as e:
                self.tracker.track_error(
                    e, ErrorCode.BOT_SEND_ERROR, context={'chat_id': chat_id, 'part': i + 1, 'parts': len(parts)}
                )
                raise
            # Небольшая задержка между сообщениями
            if not is_last and self.part_delay:
                await asyncio.sleep(self.part_delay)

        if len(parts) > 1:
            logger.info(f"📤 Long message sent to chat {chat_id} in {len(parts)} parts")
