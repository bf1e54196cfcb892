"""Database service for run lifecycle persistence."""

from __future__ import annotations

import json
from typing import Any

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from mat_views.domain import (
    RunOperation,
    RunStatus,
    RunStateTransitionError,
    domain_run_validate_transition,
)

from .interfaces import MatViewRunRecord, MatViewRunState, RunRepositoryPort

_RUN_COLUMNS = (
    "id, definition_id, operation, status, started_at, finished_at, duration_ms, "
    "error, meta, created_at"
)


class SQLAlchemyRunService(RunRepositoryPort):
    """SQLAlchemy-backed run repository.

    Finalization is guarded in SQL so that a run leaves `running` exactly once,
    even when two workers race on the same row.
    """

    def __init__(self, engine: Engine):
        """Initialize run persistence service.

        Args:
            engine: SQLAlchemy engine used for all persistence operations.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_run_create_running(self, definition_id: int, operation: RunOperation) -> MatViewRunRecord:
        """Create a running run row.

        Args:
            definition_id: Owning definition identifier.
            operation: Mutation kind.

        Returns:
            MatViewRunRecord: Newly created run.

        Raises:
            RuntimeError: Raised when persistence fails.
        """

        try:
            with self._engine.begin() as connection:
                row = connection.execute(
                    text(
                        "INSERT INTO mat_view_runs (definition_id, operation, status, started_at, meta) "
                        "VALUES (:definition_id, :operation, :status, now(), CAST('{}' AS jsonb)) "
                        f"RETURNING {_RUN_COLUMNS}"
                    ),
                    {
                        "definition_id": definition_id,
                        "operation": int(operation),
                        "status": int(RunStatus.RUNNING),
                    },
                ).mappings().one()
        except SQLAlchemyError as error:
            raise RuntimeError("failed to create running materialized view run") from error
        return self._map_run_record(row)

    def db_run_finalize(
        self,
        run_id: int,
        status: RunStatus,
        duration_ms: int,
        error: dict[str, Any] | None,
        meta: dict[str, Any],
    ) -> MatViewRunRecord:
        """Finalize a running run with end timestamp, duration and payloads.

        Args:
            run_id: Run identifier.
            status: Terminal status.
            duration_ms: Non-negative measured duration.
            error: Serialized error for failed runs.
            meta: Request and response payload.

        Returns:
            MatViewRunRecord: Finalized run.

        Raises:
            ValueError: Raised when status, duration or error payload are inconsistent.
            LookupError: Raised when the run does not exist.
            RunStateTransitionError: Raised when the run is not running anymore.
            RuntimeError: Raised when persistence fails.
        """

        if not status.is_terminal:
            raise ValueError("status must be one of: success, failed")
        if duration_ms < 0:
            raise ValueError("duration_ms must be >= 0")
        if status is RunStatus.FAILED and error is None:
            raise ValueError("failed runs require an error payload")
        if status is RunStatus.SUCCESS and error is not None:
            raise ValueError("successful runs must not carry an error payload")

        try:
            with self._engine.begin() as connection:
                updated_row = connection.execute(
                    text(
                        "UPDATE mat_view_runs SET "
                        "status = :status, "
                        "finished_at = now(), "
                        "duration_ms = :duration_ms, "
                        "error = CAST(:error AS jsonb), "
                        "meta = CAST(:meta AS jsonb), "
                        "updated_at = now() "
                        "WHERE id = :id AND status = :running_status "
                        f"RETURNING {_RUN_COLUMNS}"
                    ),
                    {
                        "id": run_id,
                        "status": int(status),
                        "duration_ms": duration_ms,
                        "error": json.dumps(error, default=str) if error is not None else None,
                        "meta": json.dumps(meta, default=str),
                        "running_status": int(RunStatus.RUNNING),
                    },
                ).mappings().first()
                if updated_row is not None:
                    return self._map_run_record(updated_row)

                current_row = connection.execute(
                    text("SELECT status FROM mat_view_runs WHERE id = :id"),
                    {"id": run_id},
                ).mappings().first()
        except SQLAlchemyError as database_error:
            raise RuntimeError("failed to finalize materialized view run") from database_error

        if current_row is None:
            raise LookupError(f"materialized view run not found: id={run_id}")
        domain_run_validate_transition(RunStatus.from_code(current_row["status"]), status)
        raise RunStateTransitionError(f"materialized view run {run_id} is not running")

    def db_run_get_by_id(self, run_id: int) -> MatViewRunRecord | None:
        """Fetch one run by id.

        Args:
            run_id: Run identifier.

        Returns:
            MatViewRunRecord | None: Matching run or None.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text(f"SELECT {_RUN_COLUMNS} FROM mat_view_runs WHERE id = :id"),
                    {"id": run_id},
                ).mappings().first()
        except SQLAlchemyError as error:
            raise RuntimeError("failed to fetch materialized view run by id") from error
        if row is None:
            return None
        return self._map_run_record(row)

    def db_run_list(
        self,
        limit: int,
        offset: int,
        definition_id: int | None = None,
    ) -> list[MatViewRunRecord]:
        """List runs ordered by latest start and id.

        Args:
            limit: Maximum number of rows.
            offset: Number of rows to skip.
            definition_id: Optional owning definition filter.

        Returns:
            list[MatViewRunRecord]: Ordered runs.

        Raises:
            ValueError: Raised when limit or offset are invalid.
            RuntimeError: Raised when database read fails.
        """

        if limit < 1:
            raise ValueError("limit must be >= 1")
        if offset < 0:
            raise ValueError("offset must be >= 0")

        where_clause = ""
        parameters: dict[str, Any] = {"limit": limit, "offset": offset}
        if definition_id is not None:
            where_clause = "WHERE definition_id = :definition_id "
            parameters["definition_id"] = definition_id

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        f"SELECT {_RUN_COLUMNS} FROM mat_view_runs "
                        f"{where_clause}"
                        "ORDER BY started_at DESC, id DESC "
                        "LIMIT :limit OFFSET :offset"
                    ),
                    parameters,
                ).mappings().all()
        except SQLAlchemyError as error:
            raise RuntimeError("failed to list materialized view runs") from error
        return [self._map_run_record(row) for row in rows]

    def _map_run_record(self, row: Any) -> MatViewRunRecord:
        """Map SQLAlchemy row mapping to typed run record.

        Args:
            row: SQLAlchemy mapping row.

        Returns:
            MatViewRunRecord: Typed run record.

        Raises:
            UnknownEnumCodeError: Raised when status or operation codes are unknown.
            TypeError: Raised when JSON columns have an unexpected shape.
        """

        error_value = row["error"]
        if error_value is not None and not isinstance(error_value, dict):
            raise TypeError("mat_view_runs.error must be a JSON object when present")
        meta_value = row["meta"] or {}
        if not isinstance(meta_value, dict):
            raise TypeError("mat_view_runs.meta must be a JSON object")

        return MatViewRunRecord(
            run_id=row["id"],
            definition_id=row["definition_id"],
            operation=RunOperation.from_code(row["operation"]),
            state=MatViewRunState(
                status=RunStatus.from_code(row["status"]),
                started_at=row["started_at"],
                finished_at=row["finished_at"],
                duration_ms=row["duration_ms"],
                error=error_value,
                meta=meta_value,
            ),
            created_at=row["created_at"],
        )
