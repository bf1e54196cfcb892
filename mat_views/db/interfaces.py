"""Typed interfaces for database-layer services.

All SQL access for definitions, runs and the job queue table stays in the db
package. DDL against materialized views lives in the services package.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from mat_views.domain import MatViewDefinition, RunOperation, RunStatus


@dataclass(frozen=True)
class MatViewRunState:
    """Lifecycle and outcome state for one run.

    Attributes:
        status: Run status.
        started_at: Run start timestamp.
        finished_at: Terminal timestamp, None while non-terminal.
        duration_ms: Monotonic duration, None while non-terminal.
        error: Serialized error (`message`, `kind`, `backtrace`) when failed.
        meta: Request and response payload captured at finalization.
    """

    status: RunStatus
    started_at: datetime
    finished_at: datetime | None
    duration_ms: int | None
    error: dict[str, Any] | None
    meta: dict[str, Any]


@dataclass(frozen=True)
class MatViewRunRecord:
    """Persistence model for one run row.

    Attributes:
        run_id: Unique run identifier.
        definition_id: Owning definition identifier.
        operation: Mutation kind recorded by the run.
        state: Lifecycle and outcome values.
        created_at: Row creation timestamp.
    """

    run_id: int
    definition_id: int
    operation: RunOperation
    state: MatViewRunState
    created_at: datetime


@dataclass(frozen=True)
class QueuedJobRecord:
    """Persistence model for one job row of the `postgres` enqueue backend.

    Attributes:
        queued_job_id: Unique row identifier.
        job_kind: Registered job kind name.
        queue_name: Target queue.
        args: Positional job arguments.
        enqueued_at: Insert timestamp.
    """

    queued_job_id: int
    job_kind: str
    queue_name: str
    args: list[Any]
    enqueued_at: datetime


class DefinitionRepositoryPort(Protocol):
    """Port definition for materialized view definition persistence."""

    def db_definition_create(self, definition: MatViewDefinition) -> MatViewDefinition:
        """Insert a new definition.

        Args:
            definition: Validated definition without id.

        Returns:
            MatViewDefinition: Persisted definition with id and timestamps.

        Raises:
            ValueError: Raised when the name is already taken.
            RuntimeError: Raised when persistence fails.
        """

    def db_definition_update(self, definition: MatViewDefinition) -> MatViewDefinition:
        """Replace the editable attributes of an existing definition.

        Args:
            definition: Validated definition carrying its id.

        Returns:
            MatViewDefinition: Updated definition.

        Raises:
            LookupError: Raised when the definition does not exist.
            RuntimeError: Raised when persistence fails.
        """

    def db_definition_get_by_id(self, definition_id: int) -> MatViewDefinition | None:
        """Fetch one definition by primary key.

        Args:
            definition_id: Definition identifier.

        Returns:
            MatViewDefinition | None: Matching definition, or None when absent.

        Raises:
            RuntimeError: Raised when the read fails.
        """

    def db_definition_get_by_name(self, name: str) -> MatViewDefinition | None:
        """Fetch one definition by unique view name.

        Args:
            name: Unqualified view name.

        Returns:
            MatViewDefinition | None: Matching definition, or None when absent.

        Raises:
            RuntimeError: Raised when the read fails.
        """

    def db_definition_list(self) -> list[MatViewDefinition]:
        """List all definitions ordered by name.

        Returns:
            list[MatViewDefinition]: Definitions.

        Raises:
            RuntimeError: Raised when the read fails.
        """

    def db_definition_delete(self, definition_id: int) -> bool:
        """Delete a definition row regardless of physical view state.

        Args:
            definition_id: Definition identifier.

        Returns:
            bool: Whether a row was deleted.

        Raises:
            RuntimeError: Raised when persistence fails.
        """


class RunRepositoryPort(Protocol):
    """Port definition for run lifecycle persistence and reads."""

    def db_run_create_running(self, definition_id: int, operation: RunOperation) -> MatViewRunRecord:
        """Create a run row in `running` status with `started_at = now()`.

        Args:
            definition_id: Owning definition identifier.
            operation: Mutation kind.

        Returns:
            MatViewRunRecord: Newly created run.

        Raises:
            RuntimeError: Raised when persistence fails.
        """

    def db_run_finalize(
        self,
        run_id: int,
        status: RunStatus,
        duration_ms: int,
        error: dict[str, Any] | None,
        meta: dict[str, Any],
    ) -> MatViewRunRecord:
        """Move a running run to a terminal status exactly once.

        Args:
            run_id: Run identifier.
            status: Terminal status (`success` or `failed`).
            duration_ms: Non-negative measured duration.
            error: Serialized error, required for `failed`, forbidden for `success`.
            meta: Request and response payload.

        Returns:
            MatViewRunRecord: Finalized run.

        Raises:
            LookupError: Raised when the run does not exist.
            RunStateTransitionError: Raised when the run is already terminal.
            ValueError: Raised when status or payload values are invalid.
            RuntimeError: Raised when persistence fails.
        """

    def db_run_get_by_id(self, run_id: int) -> MatViewRunRecord | None:
        """Fetch one run by primary key.

        Args:
            run_id: Run identifier.

        Returns:
            MatViewRunRecord | None: Matching run, or None when absent.

        Raises:
            RuntimeError: Raised when the read fails.
        """

    def db_run_list(
        self,
        limit: int,
        offset: int,
        definition_id: int | None = None,
    ) -> list[MatViewRunRecord]:
        """List runs latest first, optionally for one definition.

        Args:
            limit: Max rows to return.
            offset: Rows to skip.
            definition_id: Optional owning definition filter.

        Returns:
            list[MatViewRunRecord]: Deterministically ordered runs.

        Raises:
            ValueError: Raised when pagination arguments are invalid.
            RuntimeError: Raised when the read fails.
        """


class JobQueueRepositoryPort(Protocol):
    """Port definition for the `postgres` enqueue backend table."""

    def db_job_queue_insert(self, job_kind: str, queue_name: str, args: list[Any]) -> QueuedJobRecord:
        """Insert one queued job row.

        Args:
            job_kind: Registered job kind name.
            queue_name: Target queue.
            args: JSON-compatible positional arguments.

        Returns:
            QueuedJobRecord: Inserted row.

        Raises:
            RuntimeError: Raised when persistence fails.
        """
