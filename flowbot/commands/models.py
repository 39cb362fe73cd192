"""
Command models - декларативное описание команды
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel

from ..prompts.models import PromptSpec


@dataclass(frozen=True)
class InvocationMeta:
    """Who started a frame and how"""
    chat_id: int
    user_id: Optional[int]
    command_name: str
    programmatic: bool = False
    delegated: bool = False


Action = Callable[[Dict[str, Any], InvocationMeta], Any]


def normalize_name(name: str) -> str:
    """'/Order_Item@my_bot ' -> 'order_item'"""
    name = name.strip()
    if name.startswith("/"):
        name = name[1:]
    name = name.split("@", 1)[0]
    return name.strip().lower()


@dataclass
class CommandSpec:
    """
    Registered command: ordered prompts, access level and completion hooks.

    aggregate_schema validates the complete answer map once every prompt
    is resolved; its fields must all be produced by prompts.
    """
    name: str
    description: str
    prompts: List[PromptSpec] = field(default_factory=list)
    category: str = "General"
    is_public: bool = True
    aggregate_schema: Optional[Type[BaseModel]] = None
    action: Optional[Action] = None

    def __post_init__(self):
        self.name = normalize_name(self.name)
        if not self.name or any(ch.isspace() for ch in self.name):
            raise ValueError(f"Invalid command name: {self.name!r}")

        self.prompts = list(self.prompts)
        keys = [prompt.key for prompt in self.prompts]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            raise ValueError(f"Command '{self.name}' has duplicate prompt keys: {duplicates}")

        if self.aggregate_schema is not None:
            missing = [
                field_info.alias or field_name
                for field_name, field_info in self.aggregate_schema.model_fields.items()
                if (field_info.alias or field_name) not in keys
            ]
            if missing:
                raise ValueError(
                    f"Command '{self.name}': aggregate schema fields without prompts: {missing}"
                )

    @property
    def delegates(self) -> List[str]:
        """Names of commands this one runs as sub-commands"""
        return [normalize_name(prompt.delegate) for prompt in self.prompts if prompt.delegate]
