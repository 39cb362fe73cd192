"""
Command Registry - имя команды -> CommandSpec

Duplicate names are rejected. Populated once at startup; writes are locked,
reads are not.
"""

import logging
import threading
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence, Type

from pydantic import BaseModel

from .models import Action, CommandSpec, normalize_name
from ..core.error_handling import CommandNotFound, DuplicateCommand
from ..prompts.models import PromptSpec

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Process-wide command catalog"""

    def __init__(self):
        self._commands: "OrderedDict[str, CommandSpec]" = OrderedDict()
        self._lock = threading.Lock()

    def register(self, spec: CommandSpec) -> CommandSpec:
        """Add a command; raises DuplicateCommand on name collision"""
        with self._lock:
            if spec.name in self._commands:
                raise DuplicateCommand(
                    f"Command '{spec.name}' is already registered",
                    context={'command': spec.name}
                )
            self._commands[spec.name] = spec

        logger.info(
            f"📝 Command registered: /{spec.name} "
            f"(category={spec.category}, public={spec.is_public}, prompts={len(spec.prompts)})"
        )
        return spec

    def register_command(
        self,
        name: str,
        description: str,
        prompts: Sequence[PromptSpec] = (),
        category: str = "General",
        is_public: bool = True,
        aggregate_schema: Optional[Type[BaseModel]] = None,
        action: Optional[Action] = None
    ) -> CommandSpec:
        """Build a CommandSpec from parts and register it"""
        return self.register(CommandSpec(
            name=name,
            description=description,
            prompts=list(prompts),
            category=category,
            is_public=is_public,
            aggregate_schema=aggregate_schema,
            action=action
        ))

    def lookup(self, name: str) -> CommandSpec:
        key = normalize_name(name)
        spec = self._commands.get(key)
        if spec is None:
            raise CommandNotFound(f"Unknown command '{key}'", context={'command': key})
        return spec

    def list_visible(self, privileged: bool) -> "OrderedDict[str, List[CommandSpec]]":
        """Commands grouped by category in first-seen order"""
        groups: "OrderedDict[str, List[CommandSpec]]" = OrderedDict()
        for spec in list(self._commands.values()):
            if spec.is_public or privileged:
                groups.setdefault(spec.category, []).append(spec)
        return groups

    def missing_delegates(self) -> Dict[str, List[str]]:
        """Delegate references that point to unregistered commands"""
        missing = {}
        for spec in self._commands.values():
            unknown = [name for name in spec.delegates if name not in self._commands]
            if unknown:
                missing[spec.name] = unknown
        return missing

    def names(self) -> List[str]:
        return list(self._commands.keys())

    def __contains__(self, name: str) -> bool:
        return normalize_name(name) in self._commands

    def __len__(self) -> int:
        return len(self._commands)
