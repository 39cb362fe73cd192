"""
Telegram Interface - aiogram-обвязка для FlowDispatcher

Компоненты:
- FlowBotController: сборка Bot, Dispatcher и FlowDispatcher
- AiogramTransport: MessageTransport поверх aiogram Bot
"""

from .controller import FlowBotController
from .transport import AiogramTransport

__all__ = ["FlowBotController", "AiogramTransport"]
