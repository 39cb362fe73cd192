"""
Unit Tests: aiogram-обвязка

- AiogramTransport: клавиатуры и разбиение длинных сообщений
- FlowHandlers: текст -> FlowDispatcher, ошибки -> сообщение пользователю
- HandlerRegistry / FlowStateLoggerMiddleware
"""

from unittest.mock import AsyncMock, Mock

import pytest
from aiogram import Dispatcher, types
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import ReplyKeyboardMarkup, ReplyKeyboardRemove

from flowbot.core.error_handling import ErrorTracker, error_tracker
from flowbot.prompts.models import Affordance
from flowbot.session import SessionStore
from telegram_interface.handler_registry import HandlerRegistry
from telegram_interface.handlers import FlowHandlers
from telegram_interface.middleware import FlowStateLoggerMiddleware
from telegram_interface.transport import AiogramTransport
from telegram_interface.utilities import build_reply_markup, split_message


def make_message(text="hi", chat_id=7, user_id=42):
    message = Mock(spec=types.Message)
    message.text = text
    message.chat = Mock(id=chat_id)
    message.from_user = Mock(id=user_id)
    message.answer = AsyncMock()
    return message


# ============================================================================
# KEYBOARDS / SPLITTING
# ============================================================================

def test_build_reply_markup_buttons():
    markup = build_reply_markup(Affordance(buttons=("Yes", "No"), one_time=True))

    assert isinstance(markup, ReplyKeyboardMarkup)
    assert [[button.text for button in row] for row in markup.keyboard] == [["Yes"], ["No"]]
    assert markup.one_time_keyboard is True
    assert markup.resize_keyboard is True


def test_build_reply_markup_removal_and_none():
    assert isinstance(build_reply_markup(Affordance.removal()), ReplyKeyboardRemove)
    assert build_reply_markup(Affordance()) is None
    assert build_reply_markup(None) is None


def test_split_message_short_text_is_untouched():
    assert split_message("hello", limit=10) == ["hello"]


def test_split_message_prefers_paragraph_boundaries():
    text = "aaaa\n\nbbbb\n\ncccc"

    assert split_message(text, limit=12) == ["aaaa\n\nbbbb", "cccc"]


def test_split_message_cuts_oversized_lines():
    parts = split_message("x" * 25, limit=10)

    assert parts == ["x" * 10, "x" * 10, "x" * 5]


def test_split_message_parts_respect_limit():
    text = "\n".join(f"line {i}" for i in range(200))

    parts = split_message(text, limit=100)

    assert all(len(part) <= 100 for part in parts)
    assert "\n".join(parts).split("\n") == text.split("\n")


# ============================================================================
# TRANSPORT
# ============================================================================

@pytest.mark.asyncio
async def test_transport_sends_plain_text_with_markup():
    bot = Mock()
    bot.send_message = AsyncMock()
    transport = AiogramTransport(bot)

    await transport.send(7, "Pick one", Affordance(buttons=("A",)))

    bot.send_message.assert_awaited_once()
    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["chat_id"] == 7
    assert kwargs["text"] == "Pick one"
    assert isinstance(kwargs["reply_markup"], ReplyKeyboardMarkup)
    assert "parse_mode" not in kwargs


@pytest.mark.asyncio
async def test_transport_puts_keyboard_on_last_part_only():
    bot = Mock()
    bot.send_message = AsyncMock()
    transport = AiogramTransport(bot, max_length=12, part_delay=0)

    await transport.send(7, "aaaa\n\nbbbb\n\ncccc", Affordance.removal())

    calls = bot.send_message.await_args_list
    assert [call.kwargs["text"] for call in calls] == ["aaaa\n\nbbbb", "cccc"]
    assert calls[0].kwargs["reply_markup"] is None
    assert isinstance(calls[1].kwargs["reply_markup"], ReplyKeyboardRemove)


@pytest.mark.asyncio
async def test_transport_tracks_and_reraises_telegram_failures():
    bot = Mock()
    bot.send_message = AsyncMock(
        side_effect=TelegramBadRequest(method=Mock(), message="Bad Request: chat not found")
    )
    tracker = ErrorTracker()
    transport = AiogramTransport(bot, tracker=tracker)

    with pytest.raises(TelegramBadRequest):
        await transport.send(7, "Hello")

    assert tracker.error_counts == {"BOT_002": 1}
    assert tracker.error_history[-1]["context"]["chat_id"] == 7


# ============================================================================
# HANDLERS
# ============================================================================

@pytest.mark.asyncio
async def test_text_handler_forwards_to_flow():
    flow = Mock()
    flow.on_message = AsyncMock()
    message = make_message("/order_item")

    await FlowHandlers.handle_text(message, flow)

    flow.on_message.assert_awaited_once_with(7, "/order_item", 42)


@pytest.mark.asyncio
async def test_text_handler_reports_unexpected_errors():
    flow = Mock()
    flow.on_message = AsyncMock(side_effect=RuntimeError("boom"))
    message = make_message()
    tracked_before = error_tracker.error_counts.get("BOT_001", 0)

    await FlowHandlers.handle_text(message, flow)

    message.answer.assert_awaited_once_with("❌ Could not process your message. Please try again.")
    assert error_tracker.error_counts["BOT_001"] == tracked_before + 1


@pytest.mark.asyncio
async def test_non_text_handler(messages):
    message = make_message(text=None)

    await FlowHandlers.handle_non_text(message, messages)

    message.answer.assert_awaited_once_with("I can only read text messages. Please type your answer.")


def test_handler_registry_registers_text_and_fallback(dispatcher, messages):
    dp = Dispatcher()

    HandlerRegistry(dp, dispatcher, messages).register_all()

    assert len(dp.message.handlers) == 2


@pytest.mark.asyncio
async def test_state_logger_passes_result_through():
    middleware = FlowStateLoggerMiddleware(SessionStore())
    handler = AsyncMock(return_value="handled")
    message = make_message()

    result = await middleware(handler, message, {})

    assert result == "handled"
    handler.assert_awaited_once_with(message, {})
