"""
State Logger Middleware - логирование переходов стека сессии

Middleware для отслеживания изменений глубины стека команд в чате.
Полезно для отладки и мониторинга пользовательских потоков.
"""

import logging
from typing import Callable, Dict, Any, Awaitable

from aiogram import BaseMiddleware
from aiogram.types import Message

from flowbot.session import SessionStore

logger = logging.getLogger(__name__)


class FlowStateLoggerMiddleware(BaseMiddleware):
    """
    Middleware для логирования переходов между командами

    Логирует:
    - Глубину стека и активную команду до handler
    - Изменение глубины после handler
    """

    def __init__(self, sessions: SessionStore):
        self.sessions = sessions

    def _snapshot(self, chat_id: int):
        stack = self.sessions.peek(chat_id)
        if not stack:
            return 0, None
        return stack.depth, stack.top.command.name

    async def __call__(
        self,
        handler: Callable[[Message, Dict[str, Any]], Awaitable[Any]],
        event: Message,
        data: Dict[str, Any]
    ) -> Any:
        chat = getattr(event, 'chat', None)
        if chat is None:
            return await handler(event, data)

        user_id = event.from_user.id if getattr(event, 'from_user', None) else None
        depth_before, command_before = self._snapshot(chat.id)
        logger.debug(
            f"🔄 Flow [BEFORE]: chat={chat.id}, user={user_id}, "
            f"depth={depth_before}, command={command_before or 'None'}"
        )

        result = await handler(event, data)

        depth_after, command_after = self._snapshot(chat.id)
        if (depth_after, command_after) != (depth_before, command_before):
            logger.info(
                f"✨ Flow [CHANGED]: chat={chat.id}, user={user_id}, "
                f"{command_before or 'None'}({depth_before}) → {command_after or 'None'}({depth_after})"
            )

        return result
