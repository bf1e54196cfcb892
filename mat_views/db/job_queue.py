"""Database service backing the `postgres` enqueue backend."""

from __future__ import annotations

import json
from typing import Any

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from .interfaces import JobQueueRepositoryPort, QueuedJobRecord


class SQLAlchemyJobQueueService(JobQueueRepositoryPort):
    """Insert-only access to the `mat_view_job_queue` table.

    Claiming and executing rows belongs to the hosting task runtime.
    """

    def __init__(self, engine: Engine):
        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_job_queue_insert(self, job_kind: str, queue_name: str, args: list[Any]) -> QueuedJobRecord:
        """Insert one queued job row.

        Args:
            job_kind: Registered job kind name.
            queue_name: Target queue.
            args: JSON-compatible positional arguments.

        Returns:
            QueuedJobRecord: Inserted row.

        Raises:
            ValueError: Raised when job kind or queue name are blank.
            RuntimeError: Raised when persistence fails.
        """

        if not job_kind.strip():
            raise ValueError("job_kind must not be blank")
        if not queue_name.strip():
            raise ValueError("queue_name must not be blank")

        try:
            with self._engine.begin() as connection:
                row = connection.execute(
                    text(
                        "INSERT INTO mat_view_job_queue (job_kind, queue_name, args) "
                        "VALUES (:job_kind, :queue_name, CAST(:args AS jsonb)) "
                        "RETURNING id, job_kind, queue_name, args, enqueued_at"
                    ),
                    {
                        "job_kind": job_kind.strip(),
                        "queue_name": queue_name.strip(),
                        "args": json.dumps(list(args)),
                    },
                ).mappings().one()
        except SQLAlchemyError as error:
            raise RuntimeError("failed to insert queued materialized view job") from error

        return QueuedJobRecord(
            queued_job_id=row["id"],
            job_kind=row["job_kind"],
            queue_name=row["queue_name"],
            args=list(row["args"] or []),
            enqueued_at=row["enqueued_at"],
        )
