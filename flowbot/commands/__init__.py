"""
Command Registry - команды, их вопросы и права доступа
"""

from .access import AccessPolicy
from .models import CommandSpec, InvocationMeta, normalize_name
from .registry import CommandRegistry

__all__ = [
    "AccessPolicy",
    "CommandSpec",
    "InvocationMeta",
    "CommandRegistry",
    "normalize_name",
]
