"""Orchestration job dropping a materialized view."""

from __future__ import annotations

from mat_views.domain import MatViewDefinition, RunOperation
from mat_views.services import MatViewServicePort

from .interfaces import JobKind, JobOptions
from .lifecycle import BaseMatViewJob


class DeleteViewJob(BaseMatViewJob):
    """Drop the view. Always passes `if_exists=True` so retries stay idempotent."""

    job_kind = JobKind.DELETE_VIEW
    run_operation = RunOperation.DROP

    def _job_build_service(self, definition: MatViewDefinition, options: JobOptions) -> MatViewServicePort:
        return self._service_factory.service_delete(
            definition=definition,
            cascade=options.cascade,
            row_count_strategy=options.row_count_strategy,
            if_exists=True,
        )
