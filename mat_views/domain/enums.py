"""Enumerations with explicit persisted codes and symbolic names."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Final

from .errors import UnknownEnumCodeError


class _PersistedCodeEnum(IntEnum):
    """Integer-backed enum stored in a smallint column."""

    @classmethod
    def from_code(cls, code: object):
        """Map a persisted integer code to its enum member.

        Args:
            code: Raw value read from the database.

        Returns:
            Enum member for the code.

        Raises:
            UnknownEnumCodeError: Raised when the code is not part of the known set.
        """

        if isinstance(code, bool) or not isinstance(code, int):
            raise UnknownEnumCodeError(cls.__name__, code)
        try:
            return cls(code)
        except ValueError as error:
            raise UnknownEnumCodeError(cls.__name__, code) from error

    @classmethod
    def from_value(cls, value: object):
        """Parse a symbolic name (or an existing member) into an enum member.

        Args:
            value: Member, lowercase symbolic name, or persisted code.

        Returns:
            Enum member for the value.

        Raises:
            ValueError: Raised when the value does not name a member.
        """

        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls.from_code(value)
        normalized_value = str(value).strip().lower()
        for member in cls:
            if member.label == normalized_value:
                return member
        allowed_values = ", ".join(member.label for member in cls)
        raise ValueError(f"{cls.__name__} must be one of: {allowed_values}")

    @property
    def label(self) -> str:
        """Return the lowercase symbolic name."""

        return self.name.lower()


class RefreshStrategy(_PersistedCodeEnum):
    """Refresh strategy selecting the refresh service."""

    REGULAR = 0
    CONCURRENT = 1
    SWAP = 2


class RunStatus(_PersistedCodeEnum):
    """Lifecycle status of one run row."""

    PENDING = 0
    RUNNING = 1
    SUCCESS = 2
    FAILED = 3

    @property
    def is_terminal(self) -> bool:
        return self in RUN_TERMINAL_STATUSES


class RunOperation(_PersistedCodeEnum):
    """Kind of mutation a run records."""

    CREATE = 0
    REFRESH = 1
    DROP = 2


RUN_TERMINAL_STATUSES: Final[frozenset[RunStatus]] = frozenset({RunStatus.SUCCESS, RunStatus.FAILED})


class RowCountStrategy(str, Enum):
    """Method used to report a view's size after an operation."""

    ESTIMATED = "estimated"
    EXACT = "exact"
    NONE = "none"

    @classmethod
    def from_value(cls, value: object) -> RowCountStrategy:
        """Parse a row count strategy name.

        Args:
            value: Member, name string, or None (treated as `none`).

        Returns:
            RowCountStrategy: Parsed strategy.

        Raises:
            ValueError: Raised when the name is unknown.
        """

        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        normalized_value = str(value).strip().lower()
        for member in cls:
            if member.value == normalized_value:
                return member
        raise ValueError("row_count_strategy must be one of: estimated, exact, none")


class ServiceStatus(str, Enum):
    """Symbolic outcome carried by every result envelope."""

    OK = "ok"
    CREATED = "created"
    SKIPPED = "skipped"
    REFRESHED = "refreshed"
    SWAPPED = "swapped"
    DROPPED = "dropped"
    ERROR = "error"


SERVICE_SUCCESS_STATUSES: Final[frozenset[ServiceStatus]] = frozenset(
    {
        ServiceStatus.OK,
        ServiceStatus.CREATED,
        ServiceStatus.SKIPPED,
        ServiceStatus.REFRESHED,
        ServiceStatus.SWAPPED,
        ServiceStatus.DROPPED,
    }
)
