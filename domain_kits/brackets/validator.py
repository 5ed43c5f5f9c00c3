"""
Bracket validator.

Scans the input once with a stack of open kinds. The verdict is Balanced only
when every closer meets an opener of the same kind on top of the stack and
nothing is left open at the end.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .errors import EmptyInputError
from .tokens import Kind, tokenize


class Outcome(str, Enum):
    BALANCED = "Balanced"
    NOT_BALANCED = "Not Balanced"


@dataclass(frozen=True)
class ValidationReport:
    outcome: Outcome
    # Index of the first closer that broke the scan, if any
    position: Optional[int] = None
    # mismatched_closer | orphan_closer | unclosed_openers
    reason: Optional[str] = None
    unclosed: int = 0

    @property
    def balanced(self) -> bool:
        return self.outcome is Outcome.BALANCED

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "position": self.position,
            "reason": self.reason,
            "unclosed": self.unclosed,
        }


def inspect(text: str) -> ValidationReport:
    """
    Validate text and explain the verdict.

    Raises:
        EmptyInputError: text is empty
        InvalidCharacterError: text contains a non-bracket character
    """
    if not text:
        raise EmptyInputError()

    stack: List[Kind] = []
    for token in tokenize(text):
        if token.is_opener:
            stack.append(token.kind)
            continue
        if not stack:
            return ValidationReport(Outcome.NOT_BALANCED, token.position, "orphan_closer", 0)
        if stack[-1] is not token.kind:
            return ValidationReport(Outcome.NOT_BALANCED, token.position, "mismatched_closer", len(stack))
        stack.pop()

    if stack:
        return ValidationReport(Outcome.NOT_BALANCED, None, "unclosed_openers", len(stack))
    return ValidationReport(Outcome.BALANCED)


def validate(text: str) -> Outcome:
    """Return Outcome.BALANCED or Outcome.NOT_BALANCED for text."""
    return inspect(text).outcome


def is_balanced(text: str) -> bool:
    return inspect(text).balanced
