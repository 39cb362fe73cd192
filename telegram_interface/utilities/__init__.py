"""
Utilities - вспомогательные функции

Модули:
- message_splitter: Разбиение длинных сообщений для Telegram
- keyboard_builder: Reply клавиатуры для промптов
"""

from .message_splitter import split_message, MAX_MESSAGE_LENGTH
from .keyboard_builder import build_reply_markup

__all__ = [
    "split_message",
    "MAX_MESSAGE_LENGTH",
    "build_reply_markup",
]
