"""Orchestration job creating a materialized view."""

from __future__ import annotations

from mat_views.domain import MatViewDefinition, RunOperation
from mat_views.services import MatViewServicePort

from .interfaces import JobKind, JobOptions
from .lifecycle import BaseMatViewJob


class CreateViewJob(BaseMatViewJob):
    """Create the view; honours `force` and `row_count_strategy`."""

    job_kind = JobKind.CREATE_VIEW
    run_operation = RunOperation.CREATE

    def _job_build_service(self, definition: MatViewDefinition, options: JobOptions) -> MatViewServicePort:
        return self._service_factory.service_create(
            definition=definition,
            force=options.force,
            row_count_strategy=options.row_count_strategy,
        )
