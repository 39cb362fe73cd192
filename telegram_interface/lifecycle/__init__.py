"""
Lifecycle Management - управление жизненным циклом бота

Модули:
- bot_lifecycle: Запуск, фоновые задачи, graceful shutdown
"""

from .bot_lifecycle import BotLifecycle

__all__ = ["BotLifecycle"]
