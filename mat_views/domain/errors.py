"""Project-native typed exceptions for materialized view lifecycle failures."""

from __future__ import annotations

import traceback


class MatViewsError(Exception):
    """Base exception for lifecycle orchestration failures."""


class DefinitionValidationError(MatViewsError, ValueError):
    """Definition attributes violate naming, SQL or strategy rules."""


class DefinitionNotFoundError(MatViewsError, LookupError):
    """Requested definition id does not exist."""

    def __init__(self, definition_id: int):
        super().__init__(f"materialized view definition not found: id={definition_id}")
        self.definition_id = definition_id


class MatViewServiceError(MatViewsError, RuntimeError):
    """Service precondition failure reported through an error envelope."""


class UnknownEnumCodeError(MatViewsError, ValueError):
    """Persisted enum code falls outside the known set (data corruption)."""

    def __init__(self, enum_name: str, code: object):
        super().__init__(f"unknown {enum_name} code: {code!r}")
        self.enum_name = enum_name
        self.code = code


class RunStateTransitionError(MatViewsError, RuntimeError):
    """Run status change is not allowed by the run state machine."""


class EnqueueConfigurationError(MatViewsError, RuntimeError):
    """Enqueue adapter has no usable backend configured."""


def domain_serialize_error(error: BaseException) -> dict[str, object]:
    """Serialize an exception into the structured error payload.

    Args:
        error: Exception to serialize.

    Returns:
        dict[str, object]: Payload with `message`, `kind` and `backtrace`.
    """

    backtrace_lines: list[str] = []
    if error.__traceback__ is not None:
        backtrace_lines = [line.rstrip("\n") for line in traceback.format_tb(error.__traceback__)]
    return {
        "message": str(error),
        "kind": type(error).__name__,
        "backtrace": backtrace_lines,
    }
