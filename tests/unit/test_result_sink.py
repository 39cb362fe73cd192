"""
Unit Tests: Result Sink

- aggregate schema mismatch -> InternalInconsistency, generic message
- action failure -> ActionFailure tracked, answers still delivered
- action outcome string replaces the summary
"""

import asyncio

import pytest
from pydantic import BaseModel

from conftest import CHAT_ID, USER_ID
from flowbot.commands import CommandRegistry, InvocationMeta
from flowbot.core.error_handling import InternalInconsistency
from flowbot.prompts.models import PromptKind, PromptSpec
from flowbot.result_sink import ResultSink
from flowbot.session import SessionFrame, SessionStack


class Age(BaseModel):
    age: int


@pytest.fixture
def sink(transport, messages, tracker):
    return ResultSink(transport, messages, tracker)


def make_stack(command, answers, **meta_kwargs):
    frame = SessionFrame(
        command=command,
        meta=InvocationMeta(CHAT_ID, USER_ID, command.name, **meta_kwargs),
        cursor=len(command.prompts),
        answers=dict(answers)
    )
    stack = SessionStack()
    stack.push(frame)
    return stack, frame


@pytest.mark.asyncio
async def test_summary_keeps_prompt_order(sink, transport):
    command = CommandRegistry().register_command("survey", "S", prompts=[
        PromptSpec(key="name", text="?"),
        PromptSpec(key="happy", text="?", kind=PromptKind.CONFIRM),
        PromptSpec(key="notes", text="?"),
    ])
    stack, _ = make_stack(command, {"name": "Jo", "happy": True, "notes": None})

    outcome = await sink.finalize(CHAT_ID, stack)

    assert outcome.ok
    assert not stack
    assert transport.last_text == "✅ Survey complete.\n\nSummary:\nname: Jo\nhappy: Yes\nnotes: —"


@pytest.mark.asyncio
async def test_aggregate_values_are_coerced(sink):
    command = CommandRegistry().register_command(
        "age", "A", prompts=[PromptSpec(key="age", text="?")], aggregate_schema=Age
    )
    stack, _ = make_stack(command, {"age": "42"})

    outcome = await sink.finalize(CHAT_ID, stack)

    assert outcome.answers == {"age": 42}


@pytest.mark.asyncio
async def test_aggregate_mismatch_is_internal_inconsistency(sink, transport, tracker):
    command = CommandRegistry().register_command(
        "age", "A", prompts=[PromptSpec(key="age", text="?")], aggregate_schema=Age
    )
    stack, _ = make_stack(command, {"age": "old"})

    outcome = await sink.finalize(CHAT_ID, stack)

    assert not outcome.ok
    assert isinstance(outcome.error, InternalInconsistency)
    assert not stack
    assert transport.last_text.startswith("⚠️ Something went wrong while finishing Age.")
    assert tracker.error_counts == {"FLOW_002": 1}


@pytest.mark.asyncio
async def test_aggregate_mismatch_fails_caller_future(sink):
    command = CommandRegistry().register_command(
        "age", "A", prompts=[PromptSpec(key="age", text="?")], aggregate_schema=Age
    )
    stack, frame = make_stack(command, {"age": "old"}, programmatic=True)
    frame.completion = asyncio.get_running_loop().create_future()

    await sink.finalize(CHAT_ID, stack)

    with pytest.raises(InternalInconsistency):
        await frame.completion


@pytest.mark.asyncio
async def test_action_failure_is_reported_generically(sink, transport, tracker):
    def explode(answers, meta):
        raise RuntimeError("database is down")

    command = CommandRegistry().register_command(
        "save", "S", prompts=[PromptSpec(key="x", text="?")], action=explode
    )
    stack, _ = make_stack(command, {"x": "1"})

    outcome = await sink.finalize(CHAT_ID, stack)

    assert outcome.ok
    assert outcome.answers == {"x": "1"}
    assert transport.texts() == [
        "⚠️ Your answers for Save were collected, but processing them failed. Please try again later."
    ]
    assert "database is down" not in transport.last_text
    assert tracker.error_counts == {"FLOW_003": 1}


@pytest.mark.asyncio
async def test_async_action_receives_answers_and_meta(sink, transport):
    received = {}

    async def store(answers, meta):
        received["answers"] = answers
        received["meta"] = meta
        return "Saved!"

    command = CommandRegistry().register_command(
        "save", "S", prompts=[PromptSpec(key="x", text="?")], action=store
    )
    stack, _ = make_stack(command, {"x": "1"})

    await sink.finalize(CHAT_ID, stack)

    assert received["answers"] == {"x": "1"}
    assert received["meta"].chat_id == CHAT_ID
    assert received["meta"].command_name == "save"
    assert transport.last_text == "Saved!"


@pytest.mark.asyncio
async def test_delegated_frames_report_nothing(sink, transport):
    command = CommandRegistry().register_command("child", "C", prompts=[PromptSpec(key="x", text="?")])
    stack, _ = make_stack(command, {"x": "1"}, delegated=True)

    outcome = await sink.finalize(CHAT_ID, stack)

    assert outcome.answers == {"x": "1"}
    assert transport.sent == []


@pytest.mark.asyncio
async def test_command_without_prompts_reports_empty_summary(sink, transport):
    command = CommandRegistry().register_command("ping", "P")
    stack, _ = make_stack(command, {})

    await sink.finalize(CHAT_ID, stack)

    assert transport.last_text == "✅ Ping complete."
