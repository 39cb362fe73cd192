"""
Prompt models - декларативное описание одного вопроса команды.
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import TypeAdapter

from .results import ValidationResult


class PromptKind(Enum):
    """Expected answer type"""
    TEXT = "text"
    NUMBER = "number"
    CONFIRM = "confirm"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"

    @property
    def has_choices(self) -> bool:
        return self in (PromptKind.SINGLE_CHOICE, PromptKind.MULTI_CHOICE)


Parser = Callable[[str], Any]
Validator = Callable[[Any, Dict[str, Any]], ValidationResult]


@dataclass(frozen=True)
class Affordance:
    """
    Transport-neutral reply keyboard.

    buttons - one button per row; remove - hide any keyboard left by a previous prompt.
    """
    buttons: Tuple[str, ...] = ()
    one_time: bool = False
    remove: bool = False

    @classmethod
    def removal(cls) -> "Affordance":
        return cls(remove=True)


@dataclass
class PromptSpec:
    """
    One question of a command.

    Attributes:
        key: Answer key inside the command's answer map
        text: Prompt text sent to the chat
        help: Text sent when the user replies with the help token
        kind: Expected answer type
        choices: Options for SINGLE_CHOICE / MULTI_CHOICE
        parser: Custom raw-text parser (sync or async), replaces the per-kind default
        schema: Pydantic type the parsed value must satisfy
        validator: Cross-field check (value, partial_answers) -> Valid | Invalid
        delegate: Command whose full run produces this prompt's value
        repeat: Reply is a run count; the delegate runs that many times
    """
    key: str
    text: str
    help: Optional[str] = None
    kind: PromptKind = PromptKind.TEXT
    choices: Tuple[str, ...] = ()
    parser: Optional[Parser] = None
    schema: Any = None
    validator: Optional[Validator] = None
    delegate: Optional[str] = None
    repeat: bool = False

    def __post_init__(self):
        if not self.key:
            raise ValueError("Prompt key must not be empty")

        self.choices = tuple(self.choices)
        if self.kind.has_choices and not self.choices:
            raise ValueError(f"Prompt '{self.key}': {self.kind.value} requires non-empty choices")
        if self.choices and not self.kind.has_choices:
            raise ValueError(f"Prompt '{self.key}': choices are only allowed for choice prompts")

        if self.repeat and not self.delegate:
            raise ValueError(f"Prompt '{self.key}': repeat requires a delegate command")

    @cached_property
    def adapter(self) -> Optional[TypeAdapter]:
        """Compiled pydantic adapter for schema, if any"""
        if self.schema is None:
            return None
        return TypeAdapter(self.schema)
