"""
Prompt Engine - один вопрос, один (или несколько для multi choice) ответ
"""

from .models import Affordance, PromptKind, PromptSpec
from .results import Invalid, Valid, ValidationResult
from .engine import PromptEngine, PromptOutcome, PromptState

__all__ = [
    "Affordance",
    "PromptKind",
    "PromptSpec",
    "Valid",
    "Invalid",
    "ValidationResult",
    "PromptEngine",
    "PromptOutcome",
    "PromptState",
]
