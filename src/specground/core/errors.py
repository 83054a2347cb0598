"""
Error types for specground descriptor parsing, value synthesis and grounding.
"""

from __future__ import annotations

from enum import Enum


class SpecgroundError(Exception):
    """Base exception for all specground errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidArgumentError(SpecgroundError, ValueError):
    """
    Raised when a type descriptor or value literal is badly formed.

    This is the single fault kind of the value factory. It is never
    retried: it aborts the grounding run that triggered it.
    """

    pass


class DescriptorError(InvalidArgumentError):
    """
    Raised when a type descriptor cannot be parsed.

    Examples:
    - Unmatched or missing generic delimiters: ``List[Integer``
    - Wrong parameter arity: ``Map[String]``
    - Unrecognised generic base type: ``Bag[Integer]``
    """

    def __init__(self, message: str, descriptor: str):
        self.descriptor = descriptor
        super().__init__(message)


class LiteralError(InvalidArgumentError):
    """
    Raised when a value literal does not fit its descriptor.

    Examples:
    - Unbalanced composite literal: ``[1, [2]``
    - Pair literal with more than one top-level ``=``
    - Primitive conversion failure: ``"abc"`` as Integer
    """

    def __init__(self, message: str, literal: str | None):
        self.literal = literal
        super().__init__(message)


class ResolutionFailure(str, Enum):
    """Why an external type could not be constructed."""

    NOT_FOUND = "not-found"
    NO_CONSTRUCTOR = "no-constructor"
    CONSTRUCTOR_FAILED = "constructor-failed"


class ExternalTypeError(InvalidArgumentError):
    """Raised when the backing class of an external type cannot be used."""

    def __init__(self, message: str, type_name: str, reason: ResolutionFailure):
        self.type_name = type_name
        self.reason = reason
        super().__init__(message)


class GroundingError(SpecgroundError):
    """
    Raised when a grounding run cannot be set up.

    Examples:
    - Unsupported grounding selector
    - Output location is not a directory
    """

    pass


class SuiteLoadError(SpecgroundError):
    """Raised when a test suite document does not validate."""

    pass
