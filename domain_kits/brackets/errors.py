"""
Bracket Error Taxonomy

Typed errors raised by the validator and fixer, and a lookup table the
service layer uses to turn them into wire messages.

Only two genuine failures exist:
- empty_input: validate() was given zero characters
- invalid_character: a character is not one of ( ) { } [ ]

"Not Balanced" is an outcome, not an error.
"""
from typing import Optional


class BracketError(ValueError):
    """Base class for all bracket kit failures."""

    code = "bracket_error"


class EmptyInputError(BracketError):
    code = "empty_input"

    def __init__(self):
        super().__init__("empty string")


class InvalidCharacterError(BracketError):
    code = "invalid_character"

    def __init__(self, char: str, position: int, partial: Optional[str] = None):
        super().__init__(f"bad string: {char!r} at index {position}")
        self.char = char
        self.position = position
        # Output built before the bad character; diagnostic only
        self.partial = partial


class BracketErrorTaxonomy:
    """Map error codes to wire-level messages and API codes."""

    CATEGORIES = {
        'empty_input': {
            'message': 'empty string',
            'api_code': 'EMPTY_INPUT',
            'operations': ('validate',),
            'description': 'Input had zero characters; validate refuses to call it balanced',
        },
        'invalid_character': {
            'message': 'bad string',
            'api_code': 'INVALID_CHARACTER',
            'operations': ('validate', 'fix'),
            'description': 'Input contains a character that is not ( ) { } [ ]',
        },
    }

    @classmethod
    def classify(cls, error_code: str) -> dict:
        """
        Retrieve category info for an error code.

        Args:
            error_code: One of the category keys

        Returns:
            Dict with message, api_code, operations, description
        """
        if error_code in cls.CATEGORIES:
            return cls.CATEGORIES[error_code]
        return {
            'message': 'unknown error',
            'api_code': 'UNKNOWN_ERROR',
            'operations': (),
            'description': 'See logs for details',
        }

    @classmethod
    def for_exception(cls, exc: BracketError) -> dict:
        return cls.classify(exc.code)

    @classmethod
    def all_categories(cls) -> list:
        """Return list of all error category names."""
        return list(cls.CATEGORIES.keys())
