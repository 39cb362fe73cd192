"""
Session Stack - состояние диалога для каждого чата.

SessionFrame   - one in-progress command invocation
SessionStack   - frames of one chat, last = active
SessionStore   - chat id -> stack, plus one lock per chat
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional

from ..commands.models import CommandSpec, InvocationMeta
from ..prompts.models import PromptSpec


@dataclass
class DelegationState:
    """Parent-side bookkeeping while sub-command runs produce a prompt's value"""
    key: str
    command_name: str
    remaining: int
    repeat: bool = False
    collected: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def value(self) -> Any:
        if self.repeat:
            return list(self.collected)
        return self.collected[0] if self.collected else None


@dataclass
class SessionFrame:
    command: CommandSpec
    meta: InvocationMeta
    cursor: int = 0
    answers: Dict[str, Any] = field(default_factory=dict)
    multi_choice_accumulator: Dict[str, List[str]] = field(default_factory=dict)
    completion: Optional[asyncio.Future] = None
    delegation: Optional[DelegationState] = None

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.command.prompts)

    @property
    def current_prompt(self) -> Optional[PromptSpec]:
        if self.exhausted:
            return None
        return self.command.prompts[self.cursor]

    def selections(self, prompt: PromptSpec) -> List[str]:
        return list(self.multi_choice_accumulator.get(prompt.key, []))

    def add_selection(self, prompt: PromptSpec, value: str) -> None:
        self.multi_choice_accumulator.setdefault(prompt.key, []).append(value)

    def resolve(self, key: str, value: Any) -> None:
        """Store answer for the current prompt and move the cursor"""
        self.answers[key] = value
        self.multi_choice_accumulator.pop(key, None)
        self.cursor += 1


class SessionStack:
    """Frames of one chat; non-empty iff the chat is in a flow"""

    def __init__(self):
        self._frames: List[SessionFrame] = []

    def push(self, frame: SessionFrame) -> None:
        self._frames.append(frame)

    def pop(self) -> SessionFrame:
        return self._frames.pop()

    @property
    def top(self) -> Optional[SessionFrame]:
        return self._frames[-1] if self._frames else None

    @property
    def parent(self) -> Optional[SessionFrame]:
        return self._frames[-2] if len(self._frames) > 1 else None

    @property
    def depth(self) -> int:
        return len(self._frames)

    def clear(self) -> List[SessionFrame]:
        frames, self._frames = self._frames, []
        return frames

    def __len__(self) -> int:
        return len(self._frames)

    def __bool__(self) -> bool:
        return bool(self._frames)

    def __iter__(self) -> Iterator[SessionFrame]:
        return iter(list(self._frames))


class SessionStore:
    """
    Explicit per-chat state owned by the dispatcher.

    A chat's lock lives while someone holds it or waits for it; an idle chat
    with no holders keeps neither a stack nor a lock.
    """

    def __init__(self):
        self._stacks: Dict[int, SessionStack] = {}
        self._locks: Dict[int, asyncio.Lock] = {}
        self._holders: Dict[int, int] = {}

    @asynccontextmanager
    async def locked(self, chat_id: int) -> AsyncIterator[SessionStack]:
        """Hold the chat lock; waiters are served in arrival order"""
        self._holders[chat_id] = self._holders.get(chat_id, 0) + 1
        try:
            async with self.lock(chat_id):
                yield self.get(chat_id)
        finally:
            self._holders[chat_id] -= 1
            if not self._holders[chat_id]:
                del self._holders[chat_id]
            self.release_if_idle(chat_id)

    def lock(self, chat_id: int) -> asyncio.Lock:
        lock = self._locks.get(chat_id)
        if lock is None:
            lock = self._locks[chat_id] = asyncio.Lock()
        return lock

    def get(self, chat_id: int) -> SessionStack:
        stack = self._stacks.get(chat_id)
        if stack is None:
            stack = self._stacks[chat_id] = SessionStack()
        return stack

    def peek(self, chat_id: int) -> Optional[SessionStack]:
        return self._stacks.get(chat_id)

    def depth(self, chat_id: int) -> int:
        stack = self._stacks.get(chat_id)
        return stack.depth if stack else 0

    def is_idle(self, chat_id: int) -> bool:
        return self.depth(chat_id) == 0

    def release_if_idle(self, chat_id: int) -> None:
        """Drop an empty stack, and the lock once nobody holds or awaits it"""
        stack = self._stacks.get(chat_id)
        if stack is not None and not stack:
            del self._stacks[chat_id]

        lock = self._locks.get(chat_id)
        if lock is not None and chat_id not in self._holders and not lock.locked():
            del self._locks[chat_id]

    def has_lock(self, chat_id: int) -> bool:
        return chat_id in self._locks

    def active_chats(self) -> List[int]:
        return [chat_id for chat_id, stack in self._stacks.items() if stack]
