"""
FlowBot - conversational command engine for Telegram.

Пошаговые диалоги (команды) с валидацией каждого ответа,
вложенными командами и управляющими токенами help/stop.
"""

from .commands import CommandRegistry, CommandSpec, InvocationMeta
from .dispatcher import FlowDispatcher
from .prompts import PromptKind, PromptSpec, Valid, Invalid
from .session import SessionStore, CooldownTracker

__all__ = [
    "CommandRegistry",
    "CommandSpec",
    "InvocationMeta",
    "FlowDispatcher",
    "PromptKind",
    "PromptSpec",
    "Valid",
    "Invalid",
    "SessionStore",
    "CooldownTracker",
]
