"""
Result Sink - завершение фрейма после последнего ответа.

validate aggregate schema -> run action -> resolve caller / report to chat.
The frame is always popped, even when validation or the action fails.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .core.error_handling import (
    ActionFailure,
    ErrorTracker,
    InternalInconsistency,
    error_tracker,
)
from .core.logging import LoggerMixin, log_performance
from .messages import MessageService, format_summary, format_title
from .prompts.models import Affordance
from .session.frames import SessionFrame, SessionStack
from .transport import MessageTransport

logger = logging.getLogger(__name__)


@dataclass
class FinalizeOutcome:
    frame: SessionFrame
    answers: Optional[Dict[str, Any]] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.answers is not None


class ResultSink(LoggerMixin):

    def __init__(
        self,
        transport: MessageTransport,
        messages: MessageService,
        tracker: Optional[ErrorTracker] = None
    ):
        self.transport = transport
        self.messages = messages
        self.tracker = tracker or error_tracker

    async def finalize(self, chat_id: int, stack: SessionStack) -> FinalizeOutcome:
        """Pop the top frame and deliver its answers"""
        frame = stack.pop()
        command = frame.command
        title = format_title(command.name)

        try:
            answers = self.validate(frame)
        except InternalInconsistency as e:
            self.tracker.track_error(e, e.error_code, frame.meta.user_id, e.context)
            await self.transport.send(
                chat_id,
                self.messages.get_message('internal_error', 'errors', title=title),
                Affordance.removal()
            )
            if frame.completion is not None and not frame.completion.done():
                frame.completion.set_exception(e)
            return FinalizeOutcome(frame, error=e)

        self.log_user_action(
            f"command_completed:{command.name}",
            frame.meta.user_id,
            chat_id,
            programmatic=frame.meta.programmatic,
            delegated=frame.meta.delegated
        )

        outcome = None
        action_failed = False
        if command.action is not None:
            try:
                with log_performance(f"action:{command.name}", logger):
                    outcome = command.action(answers, frame.meta)
                    if inspect.isawaitable(outcome):
                        outcome = await outcome
            except Exception as e:
                action_failed = True
                failure = ActionFailure(
                    f"Action of '{command.name}' failed: {e}",
                    user_id=frame.meta.user_id,
                    context={'command': command.name, 'chat_id': chat_id}
                )
                failure.__cause__ = e
                self.log_error(failure.error_code.value, failure.message, frame.meta.user_id, chat_id=chat_id)
                self.tracker.track_error(e, failure.error_code, frame.meta.user_id, failure.context)
                await self.transport.send(
                    chat_id,
                    self.messages.get_message('action_failed', 'errors', title=title),
                    Affordance.removal()
                )

        if frame.completion is not None:
            if not frame.completion.done():
                frame.completion.set_result(answers)
        elif not frame.meta.delegated and not action_failed:
            await self._report(chat_id, title, answers, outcome)

        return FinalizeOutcome(frame, answers=answers)

    def validate(self, frame: SessionFrame) -> Dict[str, Any]:
        """Aggregate schema check; answers keep prompt order"""
        schema = frame.command.aggregate_schema
        answers = dict(frame.answers)
        if schema is None:
            return answers

        try:
            model = schema.model_validate(answers)
        except ValidationError as e:
            logger.error(f"💥 Aggregate schema mismatch for '{frame.command.name}': {e}")
            raise InternalInconsistency(
                f"Answers of '{frame.command.name}' do not match the aggregate schema",
                user_id=frame.meta.user_id,
                context={'command': frame.command.name, 'errors': e.errors(include_url=False)}
            ) from e

        dumped = model.model_dump(by_alias=True)
        ordered = {key: dumped.get(key, value) for key, value in answers.items()}
        for key, value in dumped.items():
            ordered.setdefault(key, value)
        return ordered

    async def _report(self, chat_id: int, title: str, answers: Dict[str, Any], outcome: Any) -> None:
        if isinstance(outcome, str) and outcome:
            text = outcome
        elif answers:
            text = self.messages.get_message('summary', 'general', title=title, summary=format_summary(answers))
        else:
            text = self.messages.get_message('summary_empty', 'general', title=title)
        await self.transport.send(chat_id, text, Affordance.removal())
