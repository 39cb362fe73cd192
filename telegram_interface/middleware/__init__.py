"""
Middleware - промежуточные слои обработки

Модули:
- state_logger: Логирование переходов стека сессии
"""

from .state_logger import FlowStateLoggerMiddleware

__all__ = ["FlowStateLoggerMiddleware"]
