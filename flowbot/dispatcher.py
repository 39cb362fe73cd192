"""
Dispatcher - единая точка входа для всех входящих сообщений.

Idle chat:    help/start -> command list; command name -> start_command
In a flow:    stop -> pop one frame; cancel -> pop all; else -> Prompt Engine

All processing for one chat happens under that chat's lock, so replies are
handled strictly in arrival order. Different chats never share a lock.
"""

import asyncio
import logging
import math
from typing import Any, Dict, Optional

from .commands.access import AccessPolicy
from .commands.models import InvocationMeta, normalize_name
from .commands.registry import CommandRegistry
from .core.config import ControlTokens, Settings
from .core.error_handling import (
    CommandNotFound,
    CommandStopped,
    Cooldown,
    ErrorTracker,
    InternalInconsistency,
    InvalidInput,
    Unauthorized,
    error_tracker,
)
from .core.logging import LoggerMixin
from .messages import MessageService, format_command_list, format_title
from .prompts.engine import PromptEngine, PromptState
from .prompts.models import Affordance, PromptSpec
from .result_sink import ResultSink
from .session.cooldown import CooldownTracker
from .session.frames import DelegationState, SessionFrame, SessionStack, SessionStore
from .transport import MessageTransport

logger = logging.getLogger(__name__)

START_TOKEN = "start"


class FlowDispatcher(LoggerMixin):
    """
    Routes inbound text and owns every chat's session stack.

    Public entry points take the chat lock; underscore methods assume it is held.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        transport: MessageTransport,
        messages: Optional[MessageService] = None,
        sessions: Optional[SessionStore] = None,
        cooldowns: Optional[CooldownTracker] = None,
        access: Optional[AccessPolicy] = None,
        tokens: Optional[ControlTokens] = None,
        max_stack_depth: int = 8,
        tracker: Optional[ErrorTracker] = None
    ):
        self.registry = registry
        self.transport = transport
        self.messages = messages or MessageService()
        self.sessions = sessions or SessionStore()
        self.cooldowns = cooldowns or CooldownTracker()
        self.access = access or AccessPolicy()
        self.tokens = tokens or ControlTokens()
        self.max_stack_depth = max_stack_depth
        self.tracker = tracker or error_tracker

        self.prompts = PromptEngine(transport, self.messages, self.tokens)
        self.result_sink = ResultSink(transport, self.messages, self.tracker)

    @classmethod
    def from_settings(
        cls,
        registry: CommandRegistry,
        transport: MessageTransport,
        settings: Settings,
        **kwargs
    ) -> "FlowDispatcher":
        kwargs.setdefault('cooldowns', CooldownTracker(settings.command_cooldown_seconds))
        kwargs.setdefault('access', AccessPolicy(settings.admin_user_ids))
        kwargs.setdefault('tokens', ControlTokens.from_settings(settings))
        kwargs.setdefault('max_stack_depth', settings.max_stack_depth)
        return cls(registry, transport, **kwargs)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def on_message(self, chat_id: int, text: str, user_id: Optional[int] = None) -> None:
        """Handle one inbound text message"""
        async with self.sessions.locked(chat_id):
            await self._handle_message(chat_id, text, user_id)

    async def start_command(self, name: str, chat_id: int, user_id: Optional[int] = None) -> SessionFrame:
        """
        Start a command interactively.

        Raises:
            CommandNotFound, Unauthorized, Cooldown - nothing is pushed in these cases
        """
        async with self.sessions.locked(chat_id):
            return await self._start_command(name, chat_id, user_id)

    async def execute(self, name: str, chat_id: int, user_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Run a command programmatically and wait for its finalized answers.

        Without user_id the call is trusted and skips access/cooldown gating.

        Raises:
            CommandNotFound, Unauthorized, Cooldown - at start
            CommandStopped - the user stopped the command
            InternalInconsistency - answers did not match the aggregate schema
        """
        async with self.sessions.locked(chat_id):
            frame = await self._start_command(
                name, chat_id, user_id, programmatic=True, gated=user_id is not None
            )
        return await frame.completion

    def depth(self, chat_id: int) -> int:
        return self.sessions.depth(chat_id)

    async def send_command_list(self, chat_id: int, user_id: Optional[int], welcome: bool = False) -> None:
        groups = self.registry.list_visible(self.access.is_privileged(user_id))
        if not groups:
            text = self.messages.get_message('no_commands', 'general')
        else:
            text = self.messages.get_message(
                'command_list', 'general',
                command_list=format_command_list(groups.items()),
                help_token=self.tokens.help,
                stop_token=self.tokens.stop
            )
            if welcome:
                text = self.messages.get_message('welcome', 'general', command_list=text)
        await self.transport.send(chat_id, text, Affordance.removal())

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    async def _handle_message(self, chat_id: int, text: str, user_id: Optional[int]) -> None:
        stack = self.sessions.get(chat_id)
        if not stack:
            await self._handle_idle(chat_id, text, user_id)
            return

        token = text.strip().lower()
        if token == self.tokens.stop_all:
            await self._stop_all(chat_id, stack)
        elif token == self.tokens.stop:
            await self._stop(chat_id, stack)
        else:
            await self._forward(chat_id, stack, text)

    async def _handle_idle(self, chat_id: int, text: str, user_id: Optional[int]) -> None:
        name = normalize_name(text)

        if name in (self.tokens.help, START_TOKEN):
            await self.send_command_list(chat_id, user_id, welcome=name == START_TOKEN)
            return

        try:
            await self._start_command(name, chat_id, user_id)
        except CommandNotFound:
            if text.strip().startswith("/"):
                reply = self.messages.get_message(
                    'command_not_found', 'errors', name=name, help_token=self.tokens.help
                )
            else:
                reply = self.messages.get_message('unrecognized', 'general', help_token=self.tokens.help)
            await self.transport.send(chat_id, reply)
        except Unauthorized:
            await self.transport.send(chat_id, self.messages.get_message(
                'unauthorized', 'errors', name=name, help_token=self.tokens.help
            ))
        except Cooldown as e:
            await self.transport.send(chat_id, self.messages.get_message(
                'cooldown', 'errors', name=name, seconds=math.ceil(e.retry_after)
            ))

    async def _start_command(
        self,
        name: str,
        chat_id: int,
        user_id: Optional[int],
        programmatic: bool = False,
        gated: bool = True
    ) -> SessionFrame:
        command = self.registry.lookup(name)

        if gated:
            if not command.is_public and not self.access.is_privileged(user_id):
                self.log_user_action(f"unauthorized:{command.name}", user_id, chat_id)
                raise Unauthorized(
                    f"User {user_id} may not run '{command.name}'",
                    user_id=user_id,
                    context={'command': command.name}
                )

        stack = self.sessions.get(chat_id)
        if stack.depth >= self.max_stack_depth:
            raise InternalInconsistency(
                f"Session stack of chat {chat_id} is full ({stack.depth} frames)",
                user_id=user_id,
                context={'command': command.name}
            )

        if gated:
            self.cooldowns.check_and_record(user_id, command.name)

        frame = SessionFrame(
            command=command,
            meta=InvocationMeta(chat_id, user_id, command.name, programmatic=programmatic)
        )
        if programmatic:
            frame.completion = asyncio.get_running_loop().create_future()

        stack.push(frame)
        self.log_user_action(f"command_started:{command.name}", user_id, chat_id, programmatic=programmatic)
        logger.info(f"▶️ /{command.name} started in chat {chat_id} (depth {stack.depth})")

        await self._advance(chat_id, stack)
        return frame

    async def _forward(self, chat_id: int, stack: SessionStack, text: str) -> None:
        frame = stack.top
        prompt = frame.current_prompt
        if prompt is None:
            # Frames are finalized as soon as they run out of prompts
            logger.warning(f"⚠️ Chat {chat_id} has a frame without pending prompt, ignoring message")
            return

        outcome = await self.prompts.on_reply(
            chat_id, prompt, text, frame.answers, frame.selections(prompt)
        )

        if outcome.error:
            rejected = InvalidInput(
                outcome.error,
                user_id=frame.meta.user_id,
                context={"command": frame.command.name, "prompt": prompt.key}
            )
            self.tracker.track_error(
                rejected, rejected.error_code, rejected.user_id, rejected.context, severity="WARNING"
            )

        if outcome.state is PromptState.ACCUMULATING and outcome.value is not None:
            frame.add_selection(prompt, outcome.value)
        elif outcome.resolved:
            await self._resolve(chat_id, stack, frame, prompt, outcome.value)

    async def _resolve(
        self,
        chat_id: int,
        stack: SessionStack,
        frame: SessionFrame,
        prompt: PromptSpec,
        value: Any
    ) -> None:
        if prompt.delegate is None:
            frame.resolve(prompt.key, value)
            await self._advance(chat_id, stack)
            return

        runs = 1
        if prompt.repeat:
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                await self.prompts.reject(chat_id, prompt, "Please send a whole number (0 or more).")
                return
            runs = value

        frame.delegation = DelegationState(
            key=prompt.key,
            command_name=normalize_name(prompt.delegate),
            remaining=runs,
            repeat=prompt.repeat
        )
        logger.info(
            f"↪️ '{prompt.key}' of /{frame.command.name} delegates to /{frame.delegation.command_name} x{runs}"
        )

        if runs == 0:
            frame.delegation = None
            frame.resolve(prompt.key, [])
        elif not await self._push_delegate(chat_id, stack, frame):
            return

        await self._advance(chat_id, stack)

    async def _push_delegate(self, chat_id: int, stack: SessionStack, parent: SessionFrame) -> bool:
        """Push the next sub-command frame; on failure re-ask the delegating prompt"""
        delegation = parent.delegation
        try:
            command = self.registry.lookup(delegation.command_name)
            if stack.depth >= self.max_stack_depth:
                raise InternalInconsistency(
                    f"Delegation to '{command.name}' exceeds max stack depth {self.max_stack_depth}",
                    user_id=parent.meta.user_id,
                    context={'command': parent.command.name}
                )
        except (CommandNotFound, InternalInconsistency) as e:
            self.tracker.track_error(e, e.error_code, parent.meta.user_id, e.context)
            parent.delegation = None
            await self.transport.send(
                chat_id, self.messages.get_message('delegate_failed', 'errors', stop_token=self.tokens.stop)
            )
            await self.prompts.begin(chat_id, parent.current_prompt)
            return False

        stack.push(SessionFrame(
            command=command,
            meta=InvocationMeta(chat_id, parent.meta.user_id, command.name, delegated=True)
        ))
        return True

    async def _advance(self, chat_id: int, stack: SessionStack) -> None:
        """
        Render the pending prompt of the top frame, finalizing exhausted
        frames and feeding their answers to delegating parents on the way.
        """
        while stack:
            frame = stack.top
            prompt = frame.current_prompt
            if prompt is not None:
                await self.prompts.begin(chat_id, prompt, frame.selections(prompt))
                return

            outcome = await self.result_sink.finalize(chat_id, stack)
            logger.info(
                f"🏁 /{frame.command.name} finalized in chat {chat_id} "
                f"({'ok' if outcome.ok else 'failed'}, depth {stack.depth})"
            )

            parent = stack.top
            if parent is None or parent.delegation is None:
                continue

            if not outcome.ok:
                # Delegating prompt is asked again
                parent.delegation = None
                continue

            delegation = parent.delegation
            delegation.collected.append(outcome.answers)
            delegation.remaining -= 1
            if delegation.remaining > 0:
                if not await self._push_delegate(chat_id, stack, parent):
                    return
                continue

            parent.delegation = None
            parent.resolve(delegation.key, delegation.value)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    async def _stop(self, chat_id: int, stack: SessionStack) -> None:
        frame = stack.pop()
        self._abandon(frame)

        parent = stack.top
        title = format_title(frame.command.name)
        if parent is None:
            await self.transport.send(
                chat_id,
                self.messages.get_message('stopped_idle', 'flow', title=title),
                Affordance.removal()
            )
            return

        parent.delegation = None
        await self.transport.send(chat_id, self.messages.get_message(
            'stopped_resume', 'flow', title=title, parent_title=format_title(parent.command.name)
        ))
        await self._advance(chat_id, stack)

    async def _stop_all(self, chat_id: int, stack: SessionStack) -> None:
        frames = stack.clear()
        for frame in reversed(frames):
            self._abandon(frame)
        self.log_bot_event("stack_cleared", chat_id=chat_id, frames=len(frames))
        await self.transport.send(
            chat_id, self.messages.get_message('stopped_all', 'flow'), Affordance.removal()
        )

    def _abandon(self, frame: SessionFrame) -> None:
        """Discard a frame's answers and fail its caller handle, if any"""
        self.log_user_action(f"command_stopped:{frame.command.name}", frame.meta.user_id, frame.meta.chat_id)
        logger.info(f"⏹ /{frame.command.name} stopped in chat {frame.meta.chat_id} at prompt {frame.cursor}")
        if frame.completion is not None and not frame.completion.done():
            frame.completion.set_exception(CommandStopped(
                f"Command '{frame.command.name}' was stopped",
                user_id=frame.meta.user_id,
                context={'command': frame.command.name}
            ))
