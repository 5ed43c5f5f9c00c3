"""
Bracket fixer.

Repairs a bracket sequence by insertion only:
- an orphan closer (empty stack, or a different kind on top) becomes a
  synthesized opener+closer pair, leaving the stack as it was
- brackets still open at the end get their closers appended, innermost first
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .errors import InvalidCharacterError
from .tokens import Kind, classify, closer_for, opener_for


@dataclass(frozen=True)
class FixReport:
    """Result of a repair."""
    result: str
    pairs_inserted: int = 0
    closers_appended: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.pairs_inserted or self.closers_appended)

    def to_dict(self) -> dict:
        return {
            "pairs_inserted": self.pairs_inserted,
            "closers_appended": self.closers_appended,
            "changed": self.changed,
        }


def repair(text: str) -> FixReport:
    """
    Repair text and report what was added.

    Empty input is valid and yields an empty result.

    Raises:
        InvalidCharacterError: text contains a non-bracket character. The
            exception's ``partial`` holds the output built up to that point.
    """
    stack: List[Kind] = []
    out: List[str] = []
    pairs = 0

    for idx, ch in enumerate(text):
        try:
            token = classify(ch, idx)
        except InvalidCharacterError as exc:
            raise InvalidCharacterError(exc.char, exc.position, partial="".join(out)) from None

        if token.is_opener:
            stack.append(token.kind)
            out.append(ch)
        elif stack and stack[-1] is token.kind:
            stack.pop()
            out.append(ch)
        else:
            out.append(opener_for(token.kind))
            out.append(ch)
            pairs += 1

    appended = len(stack)
    while stack:
        out.append(closer_for(stack.pop()))

    return FixReport(result="".join(out), pairs_inserted=pairs, closers_appended=appended)


def fix(text: str) -> str:
    """Return a balanced version of text."""
    return repair(text).result
