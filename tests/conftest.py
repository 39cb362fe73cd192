"""
Shared fixtures: in-memory transport, fresh registry and dispatcher per test
"""

import asyncio
from typing import List, Optional, Tuple

import pytest

from flowbot.commands import AccessPolicy, CommandRegistry
from flowbot.commands.order_commands import register_demo_commands
from flowbot.core.config import ControlTokens
from flowbot.core.error_handling import ErrorTracker
from flowbot.dispatcher import FlowDispatcher
from flowbot.messages import MessageService
from flowbot.prompts.models import Affordance
from flowbot.session import CooldownTracker
from flowbot.transport import MessageTransport

CHAT_ID = 100
USER_ID = 1
ADMIN_ID = 999


class FakeTransport(MessageTransport):
    """Records every outbound message"""

    def __init__(self):
        self.sent: List[Tuple[int, str, Optional[Affordance]]] = []

    async def send(self, chat_id: int, text: str, affordance: Optional[Affordance] = None) -> None:
        self.sent.append((chat_id, text, affordance))

    def texts(self, chat_id: Optional[int] = None) -> List[str]:
        return [text for cid, text, _ in self.sent if chat_id is None or cid == chat_id]

    @property
    def last_text(self) -> str:
        return self.sent[-1][1]

    @property
    def last_affordance(self) -> Optional[Affordance]:
        return self.sent[-1][2]

    def clear(self):
        self.sent.clear()


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


async def wait_for_depth(dispatcher: FlowDispatcher, chat_id: int, depth: int = 1, attempts: int = 100):
    """Yield to the loop until a background start has pushed its frame"""
    for _ in range(attempts):
        if dispatcher.depth(chat_id) >= depth:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"Chat {chat_id} never reached depth {depth}")


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def messages():
    return MessageService()


@pytest.fixture
def tokens():
    return ControlTokens()


@pytest.fixture
def tracker():
    return ErrorTracker()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    registry = CommandRegistry()
    register_demo_commands(registry)
    return registry


@pytest.fixture
def dispatcher(registry, transport, messages, tokens, tracker):
    """Dispatcher without cooldown; ADMIN_ID is privileged"""
    return FlowDispatcher(
        registry,
        transport,
        messages=messages,
        cooldowns=CooldownTracker(0),
        access=AccessPolicy([ADMIN_ID]),
        tokens=tokens,
        tracker=tracker
    )
