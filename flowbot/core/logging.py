"""
Logging system for FlowBot.
Structured JSON log lines, channel loggers for bot/user activity and
a performance context manager.
"""

import json
import logging
import sys
import traceback
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from .config import Settings

EXTRA_FIELDS = ('user_id', 'chat_id', 'command', 'error_code', 'response_time', 'context')


class FlowBotFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        for field_name in EXTRA_FIELDS:
            if hasattr(record, field_name):
                log_entry[field_name] = getattr(record, field_name)

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_entry, ensure_ascii=False, separators=(',', ':'), default=str)


def setup_logging(settings: Settings) -> None:
    """
    Setup logging configuration.

    Console handler always; JSON file handlers only if log_to_files is enabled.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if settings.debug else settings.log_level.upper())
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    root_logger.addHandler(console_handler)

    if not settings.log_to_files:
        return

    log_dir = Path(settings.log_dir)
    (log_dir / "errors").mkdir(parents=True, exist_ok=True)
    (log_dir / "users").mkdir(parents=True, exist_ok=True)

    # Main application log (rotating by size)
    app_handler = RotatingFileHandler(
        log_dir / "flowbot.log",
        maxBytes=50*1024*1024,  # 50MB
        backupCount=10,
        encoding='utf-8'
    )
    app_handler.setLevel(logging.INFO)
    app_handler.setFormatter(FlowBotFormatter())
    root_logger.addHandler(app_handler)

    # Error log (rotating by time)
    error_handler = TimedRotatingFileHandler(
        log_dir / "errors" / "errors.log",
        when='midnight',
        interval=1,
        backupCount=30,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(FlowBotFormatter())
    root_logger.addHandler(error_handler)

    # User activity log
    user_handler = TimedRotatingFileHandler(
        log_dir / "users" / "user_activity.log",
        when='midnight',
        interval=1,
        backupCount=90,  # Keep 3 months
        encoding='utf-8'
    )
    user_handler.setLevel(logging.INFO)
    user_handler.setFormatter(FlowBotFormatter())
    logging.getLogger('flowbot.users').addHandler(user_handler)


class LoggerMixin:
    """Mixin to add logging capabilities to any class"""

    @property
    def logger(self):
        """Get logger instance for the class"""
        if not hasattr(self, '_logger'):
            self._logger = logging.getLogger(f'flowbot.{self.__class__.__name__}')
        return self._logger

    def log_user_action(self, action: str, user_id: Optional[int], chat_id: Optional[int] = None, **kwargs):
        """Log user action with structured data"""
        extra = {
            'user_id': user_id,
            'chat_id': chat_id,
            'context': kwargs
        }
        logging.getLogger('flowbot.users').info(f"User action: {action}", extra=extra)

    def log_bot_event(self, event: str, **kwargs):
        """Log bot event"""
        logging.getLogger('flowbot.bot').info(f"Bot event: {event}", extra={'context': kwargs})

    def log_error(self, error_code: str, message: str, user_id: Optional[int] = None, **kwargs):
        """Log error with structured information"""
        extra = {
            'error_code': error_code,
            'user_id': user_id,
            'context': kwargs
        }
        self.logger.error(f"Error {error_code}: {message}", extra=extra)


@contextmanager
def log_performance(operation_name: str, logger_instance: Optional[logging.Logger] = None):
    """Context manager to log operation performance"""
    start_time = datetime.now()
    logger_instance = logger_instance or logging.getLogger('flowbot.metrics')

    try:
        yield

        duration = (datetime.now() - start_time).total_seconds()
        logger_instance.info(
            f"Operation completed: {operation_name}",
            extra={'response_time': duration, 'context': {'status': 'success'}}
        )

    except Exception as e:
        duration = (datetime.now() - start_time).total_seconds()
        logger_instance.error(
            f"Operation failed: {operation_name}",
            extra={
                'response_time': duration,
                'context': {'status': 'error', 'error_type': type(e).__name__, 'error_message': str(e)}
            }
        )
        raise


def get_logger(name: str = 'flowbot') -> logging.Logger:
    """Get logger instance by name"""
    return logging.getLogger(name)


def describe_value(value: Any, limit: int = 80) -> str:
    """Short repr for log lines"""
    text = repr(value)
    return text if len(text) <= limit else text[:limit - 3] + "..."
