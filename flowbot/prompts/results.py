"""
Validation results - tagged variants returned by parsers and validators.
"""

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Valid:
    """Accepted value (possibly transformed)"""
    value: Any

    @property
    def is_valid(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    """Rejected value with a human-readable reason"""
    reason: str

    @property
    def is_valid(self) -> bool:
        return False


ValidationResult = Union[Valid, Invalid]
