"""
Handlers - обработчики сообщений Telegram бота

Модули:
- flow_handlers: Текстовые сообщения -> FlowDispatcher
"""

from .flow_handlers import FlowHandlers

__all__ = [
    "FlowHandlers",
]
