"""
Services for the competition engine
Loading/saving competition documents and building league standings
"""

from .exceptions import (
    ServiceError, ValidationError, ReferenceSyntaxError, NotFoundError,
    DuplicateError, BusinessRuleError, MatchResultError,
    CircularReferenceError, ConfigurationError
)

__all__ = [
    'ServiceError',
    'ValidationError',
    'ReferenceSyntaxError',
    'NotFoundError',
    'DuplicateError',
    'BusinessRuleError',
    'MatchResultError',
    'CircularReferenceError',
    'ConfigurationError'
]
