"""
Error handling and tracking for FlowBot.

Taxonomy:
- CommandNotFound / Unauthorized / Cooldown - surfaced to the invocation caller
- InvalidInput - recovered inside the prompt flow, never escapes
- InternalInconsistency / ActionFailure - logged, reported generically
"""

import asyncio
import functools
import logging
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from aiogram import types

from .logging import LoggerMixin, get_logger


class ErrorCode(Enum):
    """Standardized error codes for tracking and debugging"""

    # Invocation errors
    COMMAND_NOT_FOUND = "CMD_001"
    UNAUTHORIZED = "CMD_002"
    COOLDOWN = "CMD_003"
    DUPLICATE_COMMAND = "CMD_004"

    # Flow errors
    INVALID_INPUT = "FLOW_001"
    INTERNAL_INCONSISTENCY = "FLOW_002"
    ACTION_FAILURE = "FLOW_003"
    COMMAND_STOPPED = "FLOW_004"

    # Transport errors
    BOT_UPDATE_ERROR = "BOT_001"
    BOT_SEND_ERROR = "BOT_002"

    UNKNOWN_ERROR = "SYS_999"


class FlowBotException(Exception):
    """Base exception class for FlowBot"""

    default_code = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        user_id: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.user_id = user_id
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging"""
        return {
            'error_code': self.error_code.value,
            'message': self.message,
            'user_id': self.user_id,
            'context': self.context,
            'timestamp': self.timestamp.isoformat(),
            'type': self.__class__.__name__
        }


class CommandNotFound(FlowBotException):
    """No command registered under the requested name"""
    default_code = ErrorCode.COMMAND_NOT_FOUND


class Unauthorized(FlowBotException):
    """Private command invoked by a non-privileged user"""
    default_code = ErrorCode.UNAUTHORIZED


class Cooldown(FlowBotException):
    """Same command invoked again inside the cooldown window"""
    default_code = ErrorCode.COOLDOWN

    def __init__(self, message: str, retry_after: float, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class DuplicateCommand(FlowBotException):
    """Command name already registered"""
    default_code = ErrorCode.DUPLICATE_COMMAND


class InvalidInput(FlowBotException):
    """Reply failed parsing or validation"""
    default_code = ErrorCode.INVALID_INPUT


class InternalInconsistency(FlowBotException):
    """Aggregate schema rejected answers that passed field-level validation"""
    default_code = ErrorCode.INTERNAL_INCONSISTENCY


class ActionFailure(FlowBotException):
    """Post-collection action raised"""
    default_code = ErrorCode.ACTION_FAILURE


class CommandStopped(FlowBotException):
    """Frame was discarded with the stop token before it finished"""
    default_code = ErrorCode.COMMAND_STOPPED


class ErrorTracker(LoggerMixin):
    """
    Central error tracking.
    Collects and categorizes errors with context.
    """

    MAX_HISTORY = 1000

    def __init__(self):
        self.error_counts: Dict[str, int] = {}
        self.error_history = []
        self.error_logger = get_logger('flowbot.errors')

    def track_error(
        self,
        error: Exception,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        user_id: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        severity: str = "ERROR"
    ) -> Dict[str, Any]:
        """Track error with full context and metrics"""

        error_data = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'error_code': error_code.value,
            'user_id': user_id,
            'context': context or {},
            'traceback': ''.join(traceback.format_exception(type(error), error, error.__traceback__)),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'severity': severity
        }

        extra = {
            'error_code': error_code.value,
            'user_id': user_id,
            'context': context or {}
        }
        exc_info = (type(error), error, error.__traceback__)

        if severity == "CRITICAL":
            self.error_logger.critical(f"Critical error: {error}", extra=extra, exc_info=exc_info)
        elif severity == "WARNING":
            self.error_logger.warning(f"Warning: {error}", extra=extra)
        else:
            self.error_logger.error(f"Error: {error}", extra=extra, exc_info=exc_info)

        self.error_counts[error_code.value] = self.error_counts.get(error_code.value, 0) + 1
        self.error_history.append(error_data)

        # Keep only recent errors in memory
        if len(self.error_history) > self.MAX_HISTORY:
            self.error_history = self.error_history[-self.MAX_HISTORY:]

        return error_data

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics for monitoring"""
        now = datetime.now(timezone.utc)
        return {
            'total_errors': sum(self.error_counts.values()),
            'error_counts_by_code': self.error_counts.copy(),
            'recent_errors': len([
                e for e in self.error_history
                if (now - datetime.fromisoformat(e['timestamp'])).total_seconds() < 3600
            ])
        }


# Global error tracker instance
error_tracker = ErrorTracker()


def handle_errors(
    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
    user_message: str = "Something went wrong. Please try again later.",
    tracker: Optional[ErrorTracker] = None,
    severity: str = "ERROR"
):
    """
    Decorator for handling errors in bot handlers.

    Args:
        error_code: Standardized error code for unknown errors
        user_message: Message to send to user
        tracker: ErrorTracker to report to (global one by default)
        severity: Error severity level
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            active_tracker = tracker or error_tracker
            try:
                return await func(*args, **kwargs)
            except FlowBotException as e:
                active_tracker.track_error(e, e.error_code, e.user_id, e.context, severity)
                await handle_user_error(args, e.message, e.user_id)
                return None
            except Exception as e:
                user_id = extract_user_id_from_args(args)
                context = {'function': func.__name__, 'args': str(args)[:200]}

                active_tracker.track_error(e, error_code, user_id, context, severity)
                await handle_user_error(args, user_message, user_id)
                return None

        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"handle_errors expects a coroutine function, got {func!r}")
        return async_wrapper

    return decorator


def extract_user_id_from_args(args) -> Optional[int]:
    """Extract user ID from function arguments"""
    for arg in args:
        if isinstance(arg, types.Message) and arg.from_user:
            return arg.from_user.id
        elif hasattr(arg, 'from_user') and hasattr(arg.from_user, 'id'):
            return arg.from_user.id
    return None


async def handle_user_error(args, message: str, user_id: Optional[int] = None):
    """Send error message to user if possible"""
    try:
        for arg in args:
            if isinstance(arg, types.Message):
                await arg.answer(f"❌ {message}")
                return
    except Exception as e:
        logger = get_logger('flowbot.errors')
        logger.warning(f"Failed to send error message to user {user_id}: {e}")
