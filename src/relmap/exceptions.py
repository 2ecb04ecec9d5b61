"""
relmap Exception Hierarchy

Structured exceptions for library, CLI, and embedding consumers.  The
engine surfaces exactly one failure kind to callers of
:func:`relmap.build_relationships`: a non-recoverable processing error,
carried inside the returned result rather than raised.  The raising
variants below are used internally and by ``unwrap()``.

Usage::

    from relmap.exceptions import ProcessingError

    try:
        maps = build_relationships(functions, corpus).unwrap()
    except ProcessingError as exc:
        print(f"relmap error: {exc}")
"""


class RelmapError(Exception):
    """Base exception for all relmap errors."""


class ConfigError(RelmapError, ValueError):
    """Configuration is invalid (e.g. a negative window size).

    Inherits from ``ValueError`` so that callers catching ``ValueError``
    from ``RelmapConfig.validate()`` keep working.
    """


class ProcessingError(RelmapError):
    """Non-recoverable failure while building relationships.

    Raised when the inputs are structurally invalid; no partial output
    is produced.
    """

    error_type = "PROCESSING_ERROR"
    recoverable = False


class InputFormatError(ProcessingError, ValueError):
    """A function descriptor or snippet is missing required fields."""
