"""
FlowBot Messages System

Шаблоны сообщений (JSON + Jinja2) и форматирование ответов
"""

from .service import MessageService
from .formatters import format_value, format_summary, format_command_list, format_title

__all__ = [
    'MessageService',
    'format_value',
    'format_summary',
    'format_command_list',
    'format_title',
]
