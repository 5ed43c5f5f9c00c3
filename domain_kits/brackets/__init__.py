# Bracket Balance Domain Kit
# Check whether ( ) { } [ ] are correctly nested and closed,
# and repair sequences that are not

from .errors import BracketError, EmptyInputError, InvalidCharacterError, BracketErrorTaxonomy
from .tokens import Kind, Token, classify, tokenize
from .validator import Outcome, ValidationReport, inspect, validate, is_balanced
from .fixer import FixReport, repair, fix

__all__ = [
    'BracketError', 'EmptyInputError', 'InvalidCharacterError', 'BracketErrorTaxonomy',
    'Kind', 'Token', 'classify', 'tokenize',
    'Outcome', 'ValidationReport', 'inspect', 'validate', 'is_balanced',
    'FixReport', 'repair', 'fix',
]
__version__ = '1.0.0'
