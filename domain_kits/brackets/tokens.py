"""
Bracket token classification.

Every input character is either an opener or a closer of one of three kinds.
Anything else is rejected at tokenization time.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List

from .errors import InvalidCharacterError


class Kind(str, Enum):
    """Bracket family."""
    PAREN = "paren"
    CURLY = "curly"
    SQUARE = "square"


OPENERS = {"(": Kind.PAREN, "{": Kind.CURLY, "[": Kind.SQUARE}
CLOSERS = {")": Kind.PAREN, "}": Kind.CURLY, "]": Kind.SQUARE}

_OPEN_CHAR = {kind: ch for ch, kind in OPENERS.items()}
_CLOSE_CHAR = {kind: ch for ch, kind in CLOSERS.items()}


@dataclass(frozen=True)
class Token:
    kind: Kind
    is_opener: bool
    position: int

    @property
    def char(self) -> str:
        return opener_for(self.kind) if self.is_opener else closer_for(self.kind)


def opener_for(kind: Kind) -> str:
    return _OPEN_CHAR[kind]


def closer_for(kind: Kind) -> str:
    return _CLOSE_CHAR[kind]


def classify(char: str, position: int = 0) -> Token:
    """Classify a single character, raising InvalidCharacterError for non-brackets."""
    if char in OPENERS:
        return Token(kind=OPENERS[char], is_opener=True, position=position)
    if char in CLOSERS:
        return Token(kind=CLOSERS[char], is_opener=False, position=position)
    raise InvalidCharacterError(char, position)


def tokenize(text: str) -> List[Token]:
    """
    Split text into bracket tokens.

    The whole input is classified before any balance decision is made, so an
    invalid character anywhere wins over an imbalance earlier in the string.
    """
    return [classify(ch, idx) for idx, ch in enumerate(text)]
