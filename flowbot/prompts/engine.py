"""
Prompt Engine - задаёт один вопрос и проверяет ответы на него.

Stateless across prompts: the caller passes the prompt, the partial answers and
the multi-choice selections, and stores whatever the engine resolves.

Pipeline for a reply:
    help token -> terminator (multi choice) -> parser -> schema -> validator
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from pydantic import ValidationError

from .models import Affordance, PromptKind, PromptSpec
from .parsers import default_parse
from .results import Invalid, Valid, ValidationResult
from ..core.config import ControlTokens
from ..core.logging import describe_value
from ..messages import MessageService, format_value
from ..transport import MessageTransport

logger = logging.getLogger(__name__)


class PromptState(Enum):
    AWAITING = "awaiting"
    ACCUMULATING = "accumulating"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class PromptOutcome:
    """Result of feeding one reply to a prompt"""
    state: PromptState
    value: Any = None
    error: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.state is PromptState.RESOLVED


class PromptEngine:
    """
    Issues prompts and turns replies into validated values.

    Invalid replies are reported back into the chat together with the
    prompt, so the flow always has a rendered pending question.
    """

    def __init__(self, transport: MessageTransport, messages: MessageService, tokens: ControlTokens):
        self.transport = transport
        self.messages = messages
        self.tokens = tokens

    async def begin(self, chat_id: int, prompt: PromptSpec, selections: Sequence[str] = ()) -> None:
        """Send prompt text with its choice affordance"""
        text = prompt.text
        if prompt.kind is PromptKind.MULTI_CHOICE:
            selections_line = f"\nSelected so far: {format_value(list(selections))}" if selections else ""
            hint = self.messages.get_message(
                'multi_choice_hint', 'flow',
                done_token=self.tokens.done,
                selections_line=selections_line
            )
            text = f"{text}\n{hint}"

        await self.transport.send(chat_id, text, self.affordance_for(prompt))
        logger.info(f"❓ Prompt '{prompt.key}' ({prompt.kind.value}) sent to chat {chat_id}")

    def affordance_for(self, prompt: PromptSpec) -> Affordance:
        if prompt.kind is PromptKind.CONFIRM:
            return Affordance(buttons=(self.tokens.yes[0].capitalize(), self.tokens.no[0].capitalize()), one_time=True)
        if prompt.kind is PromptKind.SINGLE_CHOICE:
            return Affordance(buttons=prompt.choices, one_time=True)
        if prompt.kind is PromptKind.MULTI_CHOICE:
            return Affordance(buttons=prompt.choices + (self.tokens.done,))
        return Affordance.removal()

    async def on_reply(
        self,
        chat_id: int,
        prompt: PromptSpec,
        raw_text: str,
        answers: Dict[str, Any],
        selections: Sequence[str] = ()
    ) -> PromptOutcome:
        """Feed one reply to the pending prompt"""
        token = raw_text.strip().lower()
        waiting = PromptState.ACCUMULATING if selections else PromptState.AWAITING

        # 1. Inline help never consumes the reply
        if token == self.tokens.help:
            await self._send_help(chat_id, prompt, selections)
            return PromptOutcome(waiting)

        # 2. Terminator closes multi choice accumulation
        if prompt.kind is PromptKind.MULTI_CHOICE and token == self.tokens.done:
            return await self._finish_selection(chat_id, prompt, list(selections))

        # 3-4. Parse and validate
        result = await self.evaluate(prompt, raw_text, answers)
        if isinstance(result, Invalid):
            logger.info(f"🚫 Invalid reply for '{prompt.key}' in chat {chat_id}: {result.reason}")
            await self.reject(chat_id, prompt, result.reason, selections)
            return PromptOutcome(waiting, error=result.reason)

        value = result.value

        # 5. Multi choice keeps accumulating
        if prompt.kind is PromptKind.MULTI_CHOICE:
            if value in selections:
                await self.transport.send(chat_id, self.messages.get_message(
                    'multi_choice_duplicate', 'flow', value=value, done_token=self.tokens.done
                ))
                return PromptOutcome(PromptState.ACCUMULATING)

            await self.transport.send(chat_id, self.messages.get_message(
                'multi_choice_added', 'flow', value=value, done_token=self.tokens.done
            ))
            return PromptOutcome(PromptState.ACCUMULATING, value=value)

        logger.debug(f"✅ Prompt '{prompt.key}' resolved in chat {chat_id}: {describe_value(value)}")
        return PromptOutcome(PromptState.RESOLVED, value=value)

    async def evaluate(self, prompt: PromptSpec, raw_text: str, answers: Dict[str, Any]) -> ValidationResult:
        """parser -> schema -> validator, without touching the chat"""
        parsed = await self._parse(prompt, raw_text)
        if isinstance(parsed, Invalid):
            return parsed

        value = parsed.value
        if prompt.kind is not PromptKind.MULTI_CHOICE:
            checked = self._check_schema(prompt, value)
            if isinstance(checked, Invalid):
                return checked
            value = checked.value

        if prompt.validator is not None:
            verdict = prompt.validator(value, dict(answers))
            if isinstance(verdict, Invalid):
                return verdict
            if not isinstance(verdict, Valid):
                raise TypeError(
                    f"Validator for '{prompt.key}' must return Valid or Invalid, got {type(verdict).__name__}"
                )
            value = verdict.value

        return Valid(value)

    async def _parse(self, prompt: PromptSpec, raw_text: str) -> ValidationResult:
        if prompt.parser is None:
            return default_parse(prompt, raw_text, self.tokens)

        try:
            value = prompt.parser(raw_text)
            if inspect.isawaitable(value):
                value = await value
        except (ValueError, TypeError) as e:
            return Invalid(str(e) or f"Could not understand '{raw_text.strip()}'.")

        if isinstance(value, (Valid, Invalid)):
            return value
        return Valid(value)

    def _check_schema(self, prompt: PromptSpec, value: Any) -> ValidationResult:
        if prompt.adapter is None:
            return Valid(value)
        try:
            return Valid(prompt.adapter.validate_python(value))
        except ValidationError as e:
            return Invalid(first_error_message(e))

    async def _finish_selection(self, chat_id: int, prompt: PromptSpec, selections: list) -> PromptOutcome:
        checked = self._check_schema(prompt, selections)
        if isinstance(checked, Invalid):
            await self.reject(chat_id, prompt, checked.reason, selections)
            waiting = PromptState.ACCUMULATING if selections else PromptState.AWAITING
            return PromptOutcome(waiting, error=checked.reason)

        await self.transport.send(
            chat_id,
            self.messages.get_message('selection_complete', 'flow', selections=format_value(checked.value)),
            Affordance.removal()
        )
        logger.info(f"✅ Multi choice '{prompt.key}' finished in chat {chat_id} with {len(selections)} selections")
        return PromptOutcome(PromptState.RESOLVED, value=checked.value)

    async def _send_help(self, chat_id: int, prompt: PromptSpec, selections: Sequence[str]) -> None:
        logger.info(f"ℹ️ Help requested for '{prompt.key}' in chat {chat_id}")
        if prompt.help:
            await self.transport.send(chat_id, prompt.help)
        else:
            await self.transport.send(
                chat_id, self.messages.get_message('no_help', 'flow', stop_token=self.tokens.stop)
            )
            await self.begin(chat_id, prompt, selections)

    async def reject(self, chat_id: int, prompt: PromptSpec, reason: str, selections: Sequence[str] = ()) -> None:
        """Report a rejected reply and ask the prompt again"""
        await self.transport.send(chat_id, self.messages.get_message(
            'invalid_input', 'flow',
            reason=reason,
            help_token=self.tokens.help,
            stop_token=self.tokens.stop
        ))
        await self.begin(chat_id, prompt, selections)


def first_error_message(error: ValidationError) -> str:
    """Human-readable message of the first pydantic error"""
    errors = error.errors()
    if not errors:
        return str(error)
    message = errors[0].get('msg', str(error))
    # "Value error, Quantity must be positive" -> "Quantity must be positive"
    return message.split(", ", 1)[1] if message.startswith("Value error, ") else message
