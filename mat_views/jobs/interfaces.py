"""Typed interfaces for job-layer orchestration responsibilities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from mat_views.domain import RowCountStrategy, ServiceResponse


class JobKind(str, Enum):
    """Closed set of orchestration jobs that can be enqueued."""

    CREATE_VIEW = "create_view"
    REFRESH_VIEW = "refresh_view"
    DELETE_VIEW = "delete_view"

    @classmethod
    def from_value(cls, value: object) -> JobKind:
        """Parse a job kind name.

        Args:
            value: Member or registered name.

        Returns:
            JobKind: Parsed job kind.

        Raises:
            ValueError: Raised when the name is not a registered job kind.
        """

        if isinstance(value, cls):
            return value
        normalized_value = str(value).strip().lower()
        for member in cls:
            if member.value == normalized_value:
                return member
        allowed_values = ", ".join(member.value for member in cls)
        raise ValueError(f"job_kind must be one of: {allowed_values}")


@dataclass(frozen=True)
class JobOptions:
    """Normalized per-invocation job options.

    Attributes:
        force: Drop and rebuild an existing view on create.
        cascade: Drop dependent objects on delete.
        row_count_strategy: How row counts are reported.
    """

    force: bool = False
    cascade: bool = False
    row_count_strategy: RowCountStrategy = RowCountStrategy.ESTIMATED

    def to_dict(self) -> dict[str, Any]:
        return {
            "force": self.force,
            "cascade": self.cascade,
            "row_count_strategy": self.row_count_strategy.value,
        }


class MatViewJobPort(Protocol):
    """Port implemented by every orchestration job."""

    job_kind: JobKind

    def perform(self, definition_id: int, **options: Any) -> ServiceResponse:
        """Run one lifecycle operation for a definition.

        Args:
            definition_id: Definition identifier.
            **options: Raw job options (`force`, `cascade`, `row_count_strategy`).

        Returns:
            ServiceResponse: Envelope returned by the service.

        Raises:
            DefinitionNotFoundError: Raised when the definition does not exist.
            Exception: Service exceptions are re-raised after the run is finalized.
        """


class EnqueueBackendPort(Protocol):
    """Port implemented by each task runtime backend."""

    backend_name: str

    def job_enqueue(self, job_kind: JobKind, queue: str, args: list[Any]) -> None:
        """Hand one job to the task runtime.

        Args:
            job_kind: Job to run.
            queue: Target queue name.
            args: JSON-compatible positional job arguments.

        Raises:
            RuntimeError: Raised when the backend cannot accept the job.
        """
