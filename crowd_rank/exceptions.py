"""
Exception classes for the crowd ranking engine.

Centralized location for all custom exceptions to avoid circular imports.
"""


class DomainError(ValueError):
    """Raised when supplied belief state or inputs violate an engine invariant."""
    pass


class NumericInstability(ArithmeticError):
    """Raised when a moment-matching step degenerates (zero, negative or non-finite)."""
    pass


class ValidationError(ValueError):
    """Base exception for validation-related errors."""
    pass


class DuplicateVoteError(ValidationError):
    """Raised when an annotator votes twice on the same pair."""
    pass


class ConfigurationError(ValueError):
    """Base exception for configuration-related errors."""
    pass
