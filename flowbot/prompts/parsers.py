"""
Default per-kind parsers.

Integer literals parse to int, other finite numbers to float.
Confirm maps configured yes/no tokens to bool.
Choices match case-insensitively and return the canonical option.
"""

import math
import re
from typing import Iterable, Sequence

from .models import PromptKind, PromptSpec
from .results import Invalid, Valid, ValidationResult
from ..core.config import ControlTokens

INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
GROUPED_PATTERN = re.compile(r"^[+-]?\d{1,3}(,\d{3})+$")


def parse_text(raw: str) -> ValidationResult:
    return Valid(raw.strip())


def parse_number(raw: str) -> ValidationResult:
    text = raw.strip()

    # "1,000" is a grouped integer, not 1.0
    if GROUPED_PATTERN.match(text):
        return Invalid("Use digits without separators, e.g. 1000.")

    text = text.replace(",", ".")
    if INTEGER_PATTERN.match(text):
        try:
            return Valid(int(text))
        except ValueError:
            # Past the interpreter's int conversion limit
            return Invalid("That number is too long.")

    try:
        value = float(text)
    except ValueError:
        return Invalid(f"'{raw.strip()}' is not a number. Send digits, e.g. 3 or 2.5.")

    if not math.isfinite(value):
        return Invalid("Please send a finite number.")
    return Valid(value)


def parse_confirm(raw: str, yes: Iterable[str], no: Iterable[str]) -> ValidationResult:
    token = raw.strip().lower()
    yes, no = tuple(yes), tuple(no)

    if token in yes:
        return Valid(True)
    if token in no:
        return Valid(False)
    return Invalid(f"Please answer '{yes[0]}' or '{no[0]}'.")


def parse_choice(raw: str, choices: Sequence[str]) -> ValidationResult:
    token = raw.strip().lower()
    for choice in choices:
        if choice.lower() == token:
            return Valid(choice)
    return Invalid(f"'{raw.strip()}' is not one of: {', '.join(choices)}.")


def default_parse(prompt: PromptSpec, raw: str, tokens: ControlTokens) -> ValidationResult:
    """Parse raw text according to the prompt kind"""
    if prompt.kind is PromptKind.NUMBER:
        return parse_number(raw)
    if prompt.kind is PromptKind.CONFIRM:
        return parse_confirm(raw, tokens.yes, tokens.no)
    if prompt.kind.has_choices:
        return parse_choice(raw, prompt.choices)
    return parse_text(raw)
