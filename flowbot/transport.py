"""
Messaging transport protocol - the only way the engine talks to a chat
"""

from abc import ABC, abstractmethod
from typing import Optional

from .prompts.models import Affordance


class MessageTransport(ABC):
    """Outbound side of the chat network"""

    @abstractmethod
    async def send(self, chat_id: int, text: str, affordance: Optional[Affordance] = None) -> None:
        """Send text with an optional reply keyboard"""
        pass
