"""
Formatters - plain-text rendering of answers and command lists
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from pydantic import BaseModel

EMPTY_VALUE = "—"
INDENT = "  "


def format_value(value: Any, depth: int = 0) -> str:
    """Render one answer value for chat output"""
    if value is None:
        return EMPTY_VALUE
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        lines = [f"{INDENT * (depth + 1)}{key}: {format_value(item, depth + 1)}" for key, item in value.items()]
        return "\n" + "\n".join(lines) if lines else EMPTY_VALUE
    if isinstance(value, (list, tuple)):
        if not value:
            return EMPTY_VALUE
        if any(isinstance(item, (Mapping, BaseModel)) for item in value):
            # Вложенные результаты (например, повторённые подкоманды) - нумерованный список
            lines = [
                f"{INDENT * (depth + 1)}{index}.{format_value(item, depth + 1)}"
                for index, item in enumerate(value, start=1)
            ]
            return "\n" + "\n".join(lines)
        return ", ".join(format_value(item, depth) for item in value)
    return str(value)


def format_summary(answers: Dict[str, Any]) -> str:
    """key: value lines in answer order"""
    return "\n".join(f"{key}: {format_value(value)}" for key, value in answers.items())


def format_command_list(groups: Iterable[Tuple[str, List[Any]]]) -> str:
    """Categorized command list; commands need .name and .description"""
    blocks = []
    for category, commands in groups:
        lines = [category]
        lines.extend(f"• /{command.name} - {command.description}" for command in commands)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def format_title(command_name: str) -> str:
    """order_item -> Order item"""
    words = command_name.replace("-", " ").replace("_", " ").split()
    return " ".join(words).capitalize() if words else command_name
